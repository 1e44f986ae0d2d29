"""Tests for the status bridge."""

import itertools
import pickle

import pytest

import rocks
from rocks.errors import Code, Status, SubCode, check, invoke

from fake_engine import FakeStatus


class TestStatusValues:
    """Status objects built on the Python side."""

    def test_of_picks_specific_subclass(self):
        error = Status.of(Code.CORRUPTION, SubCode.NONE, b"bad block")
        assert isinstance(error, rocks.Corruption)
        assert error.code == Code.CORRUPTION
        assert error.message == b"bad block"
        assert error.state == b"bad block"

    def test_every_code_has_a_subclass(self):
        for code in Code:
            if code == Code.OK:
                continue
            error = Status.of(code)
            assert type(error) is not Status
            assert error.code == code

    def test_unknown_code_stays_generic(self):
        error = Status.of(99, 0, b"?")
        assert type(error) is Status
        assert "Unknown code(99)" in str(error)

    def test_rendering_includes_subcode_and_message(self):
        error = rocks.IOError(b"/tmp/x/LOCK", SubCode.PATH_NOT_FOUND)
        assert str(error) == "IO error: No such file or directory: /tmp/x/LOCK"

    def test_status_is_an_exception(self):
        with pytest.raises(rocks.RocksError):
            raise rocks.NotFound()

    def test_pickle_keeps_class_and_fields(self):
        error = rocks.InvalidArgument(b"no such option", SubCode.NONE)
        restored = pickle.loads(pickle.dumps(error))
        assert isinstance(restored, rocks.InvalidArgument)
        assert restored.message == b"no such option"


class TestNativeStatus:
    """Crossing the boundary in both directions."""

    def test_null_is_ok(self, engine):
        assert Status.from_native(None) is None
        check(None)

    def test_from_native_destroys_owned_status(self, engine):
        ptr = engine.lib.rocks_status_create_with_code_and_msg(int(Code.BUSY), 0, b"later", 5)
        error = Status.from_native(ptr)
        assert isinstance(error, rocks.Busy)
        assert error.message == b"later"
        assert engine.live(FakeStatus) == []

    def test_borrowed_status_is_left_alone(self, engine):
        ptr = engine.lib.rocks_status_create_with_code_and_msg(int(Code.ABORTED), 0, b"x", 1)
        error = Status.from_native(ptr, owned=False)
        assert isinstance(error, rocks.Aborted)
        assert len(engine.live(FakeStatus)) == 1
        engine.lib.rocks_status_destroy(ptr)

    def test_ok_code_maps_to_none(self, engine):
        ptr = engine.lib.rocks_status_create_with_code_and_msg(0, 0, None, 0)
        assert Status.from_native(ptr) is None
        assert engine.live(FakeStatus) == []

    def test_to_native_round_trips_code_and_message(self, engine):
        original = rocks.TimedOut(b"deadline", SubCode.LOCK_TIMEOUT)
        ptr = original.to_native()
        copy = Status.from_native(ptr)
        assert isinstance(copy, rocks.TimedOut)
        assert copy.subcode == SubCode.LOCK_TIMEOUT
        assert copy.message == b"deadline"

    def test_invoke_raises_reported_status(self, engine, db_path):
        with rocks.Options() as opts:
            with pytest.raises(rocks.InvalidArgument) as info:
                invoke(engine.lib.rocks_db_open, opts.raw(), db_path.encode())
        assert b"does not exist" in info.value.message
        assert engine.live(FakeStatus) == []

    def test_check_raises_and_frees(self, engine):
        ptr = engine.lib.rocks_status_create_with_code_and_msg(int(Code.NOT_FOUND), 0, None, 0)
        with pytest.raises(rocks.NotFound):
            check(ptr)
        assert engine.live(FakeStatus) == []


@pytest.mark.parametrize(
    "code, subcode",
    list(itertools.product([c for c in Code if c != Code.OK], SubCode)),
    ids=lambda v: v.name,
)
def test_every_code_and_subcode_survive_the_boundary(engine, code, subcode):
    message = b"msg\x00\xff" + code.name.encode()
    original = Status.of(code, subcode, message)
    copy = Status.from_native(original.to_native())
    assert type(copy) is type(original)
    assert copy.code == code
    assert copy.subcode == subcode
    assert copy.message == message
    assert engine.live(FakeStatus) == []
