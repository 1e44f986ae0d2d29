"""Tests for write batches and batch handlers."""

import pytest

import rocks
from rocks import WriteBatch, WriteBatchHandler, WriteOptions
from rocks.registry import live_count
from rocks.write_batch import _HandlerCall


class Recorder(WriteBatchHandler):
    def __init__(self, limit=None):
        self.records = []
        self.limit = limit

    def put(self, column_family_id, key, value):
        self.records.append(("put", column_family_id, key, value))

    def delete(self, column_family_id, key):
        self.records.append(("delete", column_family_id, key))

    def single_delete(self, column_family_id, key):
        self.records.append(("single_delete", column_family_id, key))

    def delete_range(self, column_family_id, begin_key, end_key):
        self.records.append(("delete_range", column_family_id, begin_key, end_key))

    def merge(self, column_family_id, key, value):
        self.records.append(("merge", column_family_id, key, value))

    def log_data(self, blob):
        self.records.append(("log_data", blob))

    def will_continue(self):
        return self.limit is None or len(self.records) < self.limit


class Exploding(WriteBatchHandler):
    def __init__(self):
        self.calls = 0

    def put(self, column_family_id, key, value):
        self.calls += 1
        raise KeyError(key)


class TestBuilding:

    def test_fluent_operations(self, engine):
        with WriteBatch() as batch:
            result = batch.put(b"a", b"1").merge(b"b", b"+").delete(b"c").single_delete(b"d")
            assert result is batch
            batch.delete_range(b"e", b"f").put_log_data(b"blob")
            assert batch.count() == 5
            assert len(batch) == 5

    def test_clear(self, engine):
        with WriteBatch() as batch:
            batch.put(b"a", b"1").clear()
            assert batch.count() == 0

    def test_serialized_round_trip(self, engine):
        with WriteBatch() as batch:
            batch.put(b"a", b"1").delete(b"b")
            data = batch.data()
        with WriteBatch(data) as restored:
            assert restored.count() == 2
            handler = Recorder()
            restored.iterate(handler)
        assert handler.records == [("put", 0, b"a", b"1"), ("delete", 0, b"b")]

    def test_garbage_data_is_rejected(self, engine):
        with pytest.raises(rocks.BridgeError):
            WriteBatch(b"not a batch")

    def test_save_points(self, engine):
        with WriteBatch() as batch:
            batch.put(b"a", b"1")
            batch.set_save_point()
            batch.put(b"b", b"2").put(b"c", b"3")
            batch.rollback_to_save_point()
            assert batch.count() == 1
            with pytest.raises(rocks.NotFound):
                batch.rollback_to_save_point()

    def test_append_and_clone(self, engine):
        with WriteBatch() as first, WriteBatch() as second:
            first.put(b"a", b"1")
            second.put(b"b", b"2")
            assert first.append(second) is first
            assert first.count() == 2
            copy = first.clone()
            first.clear()
            assert copy.count() == 2
            copy.close()

    def test_closed_batch(self, engine):
        batch = WriteBatch()
        batch.close()
        with pytest.raises(rocks.BridgeError):
            batch.put(b"a", b"1")


class TestIterate:

    def test_records_in_order_with_column_families(self, db):
        cf = db.create_column_family("other")
        with WriteBatch() as batch:
            batch.put(b"a", b"1")
            batch.merge(b"m", b"+", column_family=cf)
            batch.delete_range(b"x", b"y", column_family=cf)
            batch.put_log_data(b"note")
            handler = Recorder()
            batch.iterate(handler)
        assert handler.records == [
            ("put", 0, b"a", b"1"),
            ("merge", 1, b"m", b"+"),
            ("delete_range", 1, b"x", b"y"),
            ("log_data", b"note"),
        ]
        cf.close()

    def test_will_continue_stops_early(self, engine):
        with WriteBatch() as batch:
            batch.put(b"a", b"1").put(b"b", b"2").put(b"c", b"3")
            handler = Recorder(limit=2)
            batch.iterate(handler)
        assert [r[2] for r in handler.records] == [b"a", b"b"]

    def test_handler_error_is_reraised(self, engine):
        handler = Exploding()
        with WriteBatch() as batch:
            batch.put(b"a", b"1").put(b"b", b"2")
            with pytest.raises(KeyError):
                batch.iterate(handler)
        # no further callbacks after the failure
        assert handler.calls == 1

    def test_handler_is_released_after_iterate(self, engine):
        handler = Recorder()
        with WriteBatch() as batch:
            batch.put(b"a", b"1")
            batch.iterate(handler)
        assert [kind for kind, _ in engine.drops] == ["write_batch_handler"]
        assert live_count(_HandlerCall) == 0

    def test_iterate_closed_batch_registers_nothing(self, engine):
        batch = WriteBatch()
        batch.close()
        with pytest.raises(rocks.BridgeError):
            batch.iterate(Recorder())
        assert live_count(_HandlerCall) == 0
        assert engine.drops == []

    def test_handler_type_is_checked(self, engine):
        with WriteBatch() as batch:
            with pytest.raises(TypeError):
                batch.iterate(object())


class TestApply:

    def test_batch_targets_column_families(self, db):
        cf = db.create_column_family("other")
        with WriteBatch() as batch:
            batch.put(b"k", b"default").put(b"k", b"other", column_family=cf)
            db.write(batch)
        assert db.get(b"k") == b"default"
        assert cf.get(b"k") == b"other"
        cf.close()

    def test_dropped_family_in_batch(self, db):
        cf = db.create_column_family("gone")
        with WriteBatch() as batch:
            batch.put(b"a", b"1").put(b"b", b"2", column_family=cf)
            db.drop_column_family(cf)
            with pytest.raises(rocks.InvalidArgument):
                db.write(batch)
            assert db.get(b"a") is None
            with WriteOptions(ignore_missing_column_families=True) as wo:
                db.write(batch, wo)
            assert db.get(b"a") == b"1"
        cf.close()

    def test_log_data_is_not_applied(self, db):
        with WriteBatch() as batch:
            batch.put_log_data(b"only in the log")
            db.write(batch)
        with db.iterator() as it:
            assert list(it) == []
