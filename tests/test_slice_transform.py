"""Tests for prefix extractors."""

import rocks
from rocks import ReadOptions
from rocks import slice_transform as _slice_transform
from rocks.registry import box, unbox

from fake_engine import open_with, registered


class UpToColon(rocks.SliceTransform):
    def name(self):
        return "test.up-to-colon"

    def transform(self, key):
        return key[: key.index(b":") + 1]

    def in_domain(self, key):
        return b":" in key


class Exploding(rocks.SliceTransform):
    def name(self):
        return "test.exploding"

    def transform(self, key):
        raise RuntimeError("transform failed")

    def in_domain(self, key):
        return True


KEYS = (b"plain", b"user:1", b"user:2", b"zone:1")


def _fill(db):
    for key in KEYS:
        db.put(key, b"v")


class TestTrampolines:

    def test_transform_and_domain(self, engine):
        h = box(UpToColon(), rocks.SliceTransform)
        out = engine.lib.rocks_string_create()
        try:
            vt = _slice_transform.VTABLE
            vt.transform(h, b"user:9", 6, out)
            assert engine.handles[out].data == b"user:"
            assert vt.in_domain(h, b"user:9", 6) == 1
            assert vt.in_domain(h, b"plain", 5) == 0
            assert vt.in_range(h, b"user:", 5) == 0
            assert engine.call_name(vt, h) == b"test.up-to-colon"
        finally:
            engine.lib.rocks_string_destroy(out)
            unbox(h)

    def test_failure_keeps_whole_key(self, engine, bridge_log):
        h = box(Exploding(), rocks.SliceTransform)
        out = engine.lib.rocks_string_create()
        try:
            _slice_transform.VTABLE.transform(h, b"user:9", 6, out)
            assert engine.handles[out].data == b"user:9"
        finally:
            engine.lib.rocks_string_destroy(out)
            unbox(h)
        assert "transform failed" in bridge_log.text


class TestPrefixIteration:

    def test_prefix_same_as_start(self, engine, db_path):
        db = open_with(db_path, prefix_extractor=UpToColon())
        _fill(db)
        with ReadOptions(prefix_same_as_start=True) as ro, db.iterator(ro) as it:
            assert [k for k, _ in it.items(b"user:")] == [b"user:1", b"user:2"]
        db.close()

    def test_total_order_seek_ignores_prefix(self, engine, db_path):
        db = open_with(db_path, prefix_extractor=UpToColon())
        _fill(db)
        with ReadOptions(prefix_same_as_start=True, total_order_seek=True) as ro:
            with db.iterator(ro) as it:
                assert [k for k, _ in it.items(b"user:")] == [b"user:1", b"user:2", b"zone:1"]
        db.close()

    def test_fixed_builtin(self, engine, db_path):
        db = open_with(db_path, prefix_extractor_fixed=4)
        for key in (b"aaaa1", b"aaaa2", b"aaab1"):
            db.put(key, b"v")
        with ReadOptions(prefix_same_as_start=True) as ro, db.iterator(ro) as it:
            assert list(it.iter_keys(b"aaaa")) == [b"aaaa1", b"aaaa2"]
        db.close()

    def test_failing_transform_narrows_to_key(self, engine, db_path, bridge_log):
        db = open_with(db_path, prefix_extractor=Exploding())
        _fill(db)
        with ReadOptions(prefix_same_as_start=True) as ro, db.iterator(ro) as it:
            assert list(it.iter_keys(b"user:1")) == [b"user:1"]
        db.close()


class TestSharing:

    def test_shared_across_options(self, engine):
        transform = UpToColon()
        first = rocks.Options(prefix_extractor=transform)
        second = rocks.Options(prefix_extractor=transform)
        first.close()
        assert registered(transform)
        second.close()
        assert not registered(transform)

    def test_builtin_replaces_custom(self, engine, recwarn):
        transform = UpToColon()
        with rocks.Options(prefix_extractor=transform) as opts:
            opts.set_prefix_extractor_capped(3)
            data = engine.handles[opts.raw()]
            assert data.values["prefix_builtin"] == ("capped", 3)
            assert "prefix_extractor" not in data.adapters
        assert not registered(transform)
