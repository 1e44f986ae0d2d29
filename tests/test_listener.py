"""Tests for event listeners and compaction event listeners."""

import pytest

import rocks
from rocks import (
    BackgroundErrorReason,
    Code,
    CompactionReason,
    FlushReason,
    TableFileCreationReason,
    WriteStallCondition,
)

from fake_engine import registered


class Recorder(rocks.EventListener):
    def __init__(self, suppress=False, per_key=None):
        self.events = []
        self.suppress = suppress
        self.per_key = per_key

    def on_flush_begin(self, info):
        self.events.append(("flush_begin", info))

    def on_flush_completed(self, info):
        self.events.append(("flush_completed", info))

    def on_compaction_completed(self, info):
        self.events.append(("compaction_completed", info))

    def on_table_file_created(self, info):
        self.events.append(("table_file_created", info))

    def on_table_file_deleted(self, info):
        self.events.append(("table_file_deleted", info))

    def on_memtable_sealed(self, info):
        self.events.append(("memtable_sealed", info))

    def on_column_family_handle_deletion_started(self, cf_id, cf_name):
        self.events.append(("cf_deleted", (cf_id, cf_name)))

    def on_external_file_ingested(self, info):
        self.events.append(("ingested", info))

    def on_stall_conditions_changed(self, info):
        self.events.append(("stall", info))

    def on_background_error(self, reason, error):
        self.events.append(("background_error", (reason, error)))
        return self.suppress

    def get_compaction_event_listener(self):
        return self.per_key

    def named(self, kind):
        return [info for name, info in self.events if name == kind]

    def kinds(self):
        return [name for name, _ in self.events]


class KeyLog(rocks.CompactionEventListener):
    def __init__(self):
        self.keys = []

    def on_compaction(self, level, key, value_type, existing_value, sequence, is_new):
        self.keys.append((level, key, value_type, existing_value, is_new))


class Failing(rocks.EventListener):
    def on_flush_completed(self, info):
        raise RuntimeError("listener broke")


def _open(db_path, *listeners):
    with rocks.Options(create_if_missing=True) as opts:
        for listener in listeners:
            opts.add_listener(listener)
        return rocks.DB.open(db_path, opts)


class TestFlushEvents:

    def test_flush_sequence(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        db.put(b"a", b"1")
        db.put(b"b", b"2")
        db.flush()
        assert listener.kinds() == [
            "memtable_sealed",
            "flush_begin",
            "table_file_created",
            "flush_completed",
        ]
        db.close()

    def test_flush_info(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        db.put(b"a", b"1")
        db.put(b"b", b"2")
        db.flush()

        (sealed,) = listener.named("memtable_sealed")
        assert sealed.cf_name == "default"
        assert sealed.num_entries == 2

        (info,) = listener.named("flush_completed")
        assert isinstance(info, rocks.FlushJobInfo)
        assert info.cf_id == 0
        assert info.cf_name == "default"
        assert info.file_path == f"{db_path}/000011.sst"
        assert info.largest_seqno == 2
        assert info.flush_reason == FlushReason.MANUAL_FLUSH
        assert not info.triggered_writes_stop

        (created,) = listener.named("table_file_created")
        assert created.db_name == db_path
        assert created.file_path == info.file_path
        assert created.reason == TableFileCreationReason.FLUSH
        assert created.status is None
        assert created.job_id == info.job_id
        db.close()

    def test_info_is_frozen(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        db.flush()
        info = listener.named("flush_begin")[0]
        with pytest.raises(AttributeError):
            info.cf_name = "other"
        db.close()

    def test_failing_listener_is_contained(self, engine, db_path, bridge_log):
        recorder = Recorder()
        db = _open(db_path, Failing(), recorder)
        db.put(b"a", b"1")
        db.flush()
        assert "listener broke" in bridge_log.text
        assert "flush_completed" in recorder.kinds()
        assert db.get(b"a") == b"1"
        db.close()


class TestCompactionEvents:

    def test_compaction_completed(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        db.put(b"a", b"1")
        db.flush()
        flushed = listener.named("flush_completed")[0].file_path
        db.compact_range()

        (info,) = listener.named("compaction_completed")
        assert info.cf_name == "default"
        assert info.status is None
        assert info.input_files == (flushed,)
        assert len(info.output_files) == 1
        assert info.output_files[0].endswith(".sst")
        assert info.output_level == 1
        assert info.compaction_reason == CompactionReason.MANUAL_COMPACTION

        (deleted,) = listener.named("table_file_deleted")
        assert deleted.file_path == flushed
        assert deleted.job_id == info.job_id
        db.close()

    def test_compaction_event_listener_sees_keys(self, engine, db_path):
        keys = KeyLog()
        listener = Recorder(per_key=keys)
        db = _open(db_path, listener)
        db.put(b"a", b"1")
        db.put(b"b", b"2")
        db.compact_range()
        assert keys.keys == [
            (1, b"a", rocks.ValueType.VALUE, b"1", False),
            (1, b"b", rocks.ValueType.VALUE, b"2", False),
        ]
        # handed to the engine for one compaction only
        assert not registered(keys)
        assert registered(listener)
        db.close()

    def test_merged_values_are_new(self, engine, db_path):
        class Append(rocks.AssociativeMergeOperator):
            def name(self):
                return "append"

            def merge(self, key, existing_value, value):
                return (existing_value or b"") + value

        keys = KeyLog()
        with rocks.Options(create_if_missing=True, merge_operator=Append()) as opts:
            opts.add_listener(Recorder(per_key=keys))
            db = rocks.DB.open(db_path, opts)
        db.merge(b"m", b"x")
        db.merge(b"m", b"y")
        db.compact_range()
        assert keys.keys == [(1, b"m", rocks.ValueType.VALUE, b"xy", True)]
        db.close()


class TestColumnFamilyDeletion:

    def test_non_default_on_handle_close(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        cf = db.create_column_family("logs")
        cf.close()
        assert listener.named("cf_deleted") == [(1, "logs")]
        db.close()

    def test_default_announced_once_at_close(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        default = db.default_column_family()
        default.close()
        assert listener.named("cf_deleted") == []
        db.close()
        assert listener.named("cf_deleted") == [(0, "default")]

    def test_listener_released_with_database(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        assert registered(listener)
        db.close()
        assert not registered(listener)
        assert [kind for kind, _ in engine.drops] == ["event_listener"]


class TestBackgroundErrors:

    def test_unsuppressed_error_stops_writes(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        suppressed = engine.trigger_background_error(
            db._db(), BackgroundErrorReason.FLUSH, Code.IO_ERROR, b"disk full"
        )
        assert not suppressed
        ((reason, error),) = listener.named("background_error")
        assert reason == BackgroundErrorReason.FLUSH
        assert isinstance(error, rocks.IOError)
        assert error.message == b"disk full"
        with pytest.raises(rocks.IOError):
            db.put(b"a", b"1")
        db.close()

    def test_suppressed_error_keeps_writes(self, engine, db_path):
        db = _open(db_path, Recorder(suppress=True))
        suppressed = engine.trigger_background_error(
            db._db(), BackgroundErrorReason.COMPACTION, Code.CORRUPTION
        )
        assert suppressed
        db.put(b"a", b"1")
        assert db.get(b"a") == b"1"
        db.close()

    def test_error_outlives_callback(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        engine.trigger_background_error(db._db(), BackgroundErrorReason.MEMTABLE, Code.BUSY, b"later")
        # the native status is gone; the Python copy is not
        ((_, error),) = listener.named("background_error")
        assert error.code == Code.BUSY
        assert "later" in str(error)
        db.close()


class TestOtherEvents:

    def test_stall_conditions(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        engine.trigger_stall(db._db(), "default", WriteStallCondition.STOPPED, WriteStallCondition.NORMAL)
        (info,) = listener.named("stall")
        assert info.cf_name == "default"
        assert info.cur == WriteStallCondition.STOPPED
        assert info.prev == WriteStallCondition.NORMAL
        db.close()

    def test_external_file_ingested(self, engine, db_path):
        listener = Recorder()
        db = _open(db_path, listener)
        engine.ingest_external_file(db._db(), "default", "/staging/batch.sst", {b"k": b"v"})
        (info,) = listener.named("ingested")
        assert info.external_file_path == "/staging/batch.sst"
        assert info.internal_file_path.startswith(db_path)
        assert info.global_seqno == 1
        assert db.get(b"k") == b"v"
        db.close()

    def test_default_callbacks_are_noops(self, engine, db_path):
        db = _open(db_path, rocks.EventListener())
        db.put(b"a", b"1")
        db.flush()
        db.compact_range()
        assert not engine.trigger_background_error(db._db(), 0, Code.IO_ERROR)
        db.close()
