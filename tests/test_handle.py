"""Tests for native handle ownership."""

import pytest

import rocks
from rocks.handle import NativeHandle

from fake_engine import FakeBatch, Shared


class TestNativeHandle:

    def test_close_is_idempotent(self, engine):
        cache = rocks.Cache(1024)
        cache.close()
        cache.close()
        assert cache.closed
        assert not any(isinstance(o, dict) and o.get("kind") == "lru" for o in engine.handles.values())

    def test_raw_after_close_raises(self, engine):
        cache = rocks.Cache(1024)
        cache.close()
        with pytest.raises(rocks.BridgeError):
            cache.raw()

    def test_context_manager_closes(self, engine):
        with rocks.WriteBatch() as batch:
            batch.put(b"k", b"v")
        assert batch.closed
        assert engine.live(FakeBatch) == []

    def test_null_pointer_is_rejected(self, engine):
        with pytest.raises(rocks.BridgeError):
            NativeHandle(None)

    def test_null_from_constructor_is_rejected(self, engine):
        with pytest.raises(rocks.BridgeError):
            rocks.WriteBatch(b"not a batch")

    def test_borrowed_handle_never_destroys(self, engine):
        owner = rocks.WriteBatch()
        borrowed = rocks.WriteBatch.borrowed(owner.raw())
        assert not borrowed.owned
        borrowed.close()
        assert len(engine.live(FakeBatch)) == 1
        owner.put(b"still", b"alive")
        owner.close()

    def test_garbage_collection_destroys(self, engine):
        import gc

        batch = rocks.WriteBatch()
        del batch
        gc.collect()
        assert engine.live(FakeBatch) == []

    def test_clone_needs_copy_function(self, engine):
        with rocks.Cache(16) as cache:
            with pytest.raises(TypeError):
                cache.clone()

    def test_clone_is_an_independent_handle(self, engine):
        stats = rocks.Statistics()
        copy = stats.clone()
        assert copy.raw() != stats.raw()
        stats.close()
        # the copy keeps the shared native object alive
        assert copy.get_ticker_count(rocks.Ticker.BYTES_WRITTEN) == 0
        copy.close()
        assert engine.live(Shared) == []

    def test_repr_shows_state(self, engine):
        batch = rocks.WriteBatch()
        assert "closed" not in repr(batch)
        batch.close()
        assert "closed" in repr(batch)
