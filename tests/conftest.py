"""Shared fixtures: every test runs against a fresh in-process engine."""

import gc
import logging

import pytest

from rocks import DB
from rocks._ffi import _FFI

from fake_engine import FakeEngine


@pytest.fixture
def engine(monkeypatch):
    """Install a FakeEngine as the loaded native library."""
    gc.collect()
    fake = FakeEngine()
    monkeypatch.setattr(_FFI, "_lib", fake.lib)
    yield fake
    gc.collect()
    assert fake.errors == [], "\n".join(fake.errors)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "db")


@pytest.fixture
def db(engine, db_path):
    """An open database with default options."""
    database = DB.open(db_path)
    yield database
    database.close()


@pytest.fixture
def bridge_log(caplog):
    caplog.set_level(logging.DEBUG, logger="rocks")
    return caplog
