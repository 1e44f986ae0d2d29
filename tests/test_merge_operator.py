"""Tests for merge operators."""

import pytest

import rocks
from rocks import merge_operator as _merge_operator
from rocks.registry import box, unbox

from fake_engine import open_with, registered


class Concat(rocks.AssociativeMergeOperator):
    def name(self):
        return "test.concat"

    def merge(self, key, existing_value, value):
        if existing_value is None:
            return value
        return existing_value + b"|" + value


class Counter(rocks.MergeOperator):
    """Sums decimal operands; partial merges pre-add adjacent operands."""

    def __init__(self):
        self.full_calls = []
        self.partial_calls = 0

    def name(self):
        return "test.counter"

    def full_merge(self, key, existing_value, operands):
        self.full_calls.append((existing_value, list(operands)))
        total = int(existing_value) if existing_value is not None else 0
        return str(total + sum(int(op) for op in operands)).encode()

    def partial_merge(self, key, left, right):
        self.partial_calls += 1
        return str(int(left) + int(right)).encode()


class Failing(rocks.MergeOperator):
    def name(self):
        return "test.failing"

    def full_merge(self, key, existing_value, operands):
        if b"bad" in operands:
            return None
        return operands[-1]


class Raising(rocks.AssociativeMergeOperator):
    def name(self):
        return "test.raising"

    def merge(self, key, existing_value, value):
        raise ValueError("cannot merge")


class TestAssociative:

    def test_operands_fold_in_order(self, engine, db_path):
        db = open_with(db_path, merge_operator=Concat())
        for value in (b"a", b"b", b"c"):
            db.merge(b"k", value)
        assert db.get(b"k") == b"a|b|c"
        db.close()

    def test_merge_on_top_of_put(self, engine, db_path):
        db = open_with(db_path, merge_operator=Concat())
        db.put(b"k", b"base")
        db.merge(b"k", b"x")
        assert db.get(b"k") == b"base|x"
        db.close()

    def test_engine_fold_matches_python_fold(self, engine, db_path):
        operands = [b"\x00", b"\xff\xfe", b"a\x00b", b"", b"\x80" * 3, b"|", b"\x7f\x00\x01"]
        op = Concat()
        db = open_with(db_path, merge_operator=Concat())
        expected = {}
        for n in range(1, len(operands) + 1):
            key = b"k\x00" + bytes([n])
            folded = None
            for value in operands[:n]:
                db.merge(key, value)
                folded = op.merge(key, folded, value)
            expected[key] = folded
            assert db.get(key) == folded
        db.flush()
        for key, folded in expected.items():
            assert db.get(key) == folded
        db.close()

    def test_exception_surfaces_as_corruption(self, engine, db_path):
        db = open_with(db_path, merge_operator=Raising())
        db.merge(b"k", b"1")
        with pytest.raises(rocks.Corruption):
            db.get(b"k")
        db.close()

    def test_trampoline_null_existing_is_none(self, engine):
        h = box(Concat(), rocks.AssociativeMergeOperator)
        out = engine.lib.rocks_string_create()
        try:
            ok = _merge_operator.ASSOCIATIVE_VTABLE.merge(h, b"k", 1, None, 0, b"v", 1, out)
            assert ok == 1
            assert engine.handles[out].data == b"v"
            # an empty but present existing value is not None
            ok = _merge_operator.ASSOCIATIVE_VTABLE.merge(h, b"k", 1, b"", 0, b"v", 1, out)
            assert engine.handles[out].data == b"|v"
        finally:
            engine.lib.rocks_string_destroy(out)
            unbox(h)


class TestFullMerge:

    def test_full_merge_sees_base_and_operands(self, engine, db_path):
        counter = Counter()
        db = open_with(db_path, merge_operator=counter)
        db.put(b"n", b"10")
        db.merge(b"n", b"1")
        db.merge(b"n", b"2")
        assert db.get(b"n") == b"13"
        assert counter.full_calls[-1] == (b"10", [b"1", b"2"])
        db.close()

    def test_missing_base_is_none(self, engine, db_path):
        counter = Counter()
        db = open_with(db_path, merge_operator=counter)
        db.merge(b"n", b"5")
        assert db.get(b"n") == b"5"
        assert counter.full_calls[-1] == (None, [b"5"])
        db.close()

    def test_flush_combines_operands_with_partial_merge(self, engine, db_path):
        counter = Counter()
        db = open_with(db_path, merge_operator=counter)
        for value in (b"1", b"2", b"3"):
            db.merge(b"n", value)
        db.flush()
        assert counter.partial_calls == 2
        assert db.get(b"n") == b"6"
        assert counter.full_calls[-1] == (None, [b"6"])
        db.close()

    def test_failed_merge_is_corruption(self, engine, db_path):
        stats = rocks.Statistics()
        db = open_with(db_path, merge_operator=Failing(), statistics=stats)
        db.merge(b"k", b"good")
        assert db.get(b"k") == b"good"
        db.merge(b"k", b"bad")
        with pytest.raises(rocks.Corruption):
            db.get(b"k")
        assert stats.get_ticker_count(rocks.Ticker.NUMBER_MERGE_FAILURES) == 1
        db.close()
        stats.close()

    def test_failed_merge_stops_iteration_with_status(self, engine, db_path):
        db = open_with(db_path, merge_operator=Failing())
        db.put(b"a", b"1")
        db.merge(b"b", b"bad")
        with db.iterator() as it:
            with pytest.raises(rocks.Corruption):
                list(it)
        db.close()


class TestRegistration:

    def test_merge_without_operator_is_rejected(self, db):
        with pytest.raises(rocks.NotSupported):
            db.merge(b"k", b"v")

    def test_set_merge_operator_dispatches_on_kind(self, engine):
        with rocks.Options() as opts:
            opts.set_merge_operator(Concat())
            data = engine.handles[opts.raw()]
            assert data.adapters["merge_operator"].kind == "associative_merge_operator"

    def test_replacing_warns_and_drops_previous(self, engine):
        first, second = Counter(), Counter()
        with rocks.Options() as opts:
            opts.set_merge_operator(first)
            with pytest.warns(RuntimeWarning):
                opts.set_merge_operator(second)
            assert not registered(first)
            assert registered(second)
        assert not registered(second)
