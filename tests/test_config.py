"""Tests for bridge configuration and library lookup."""

import logging

import pytest

import rocks
from rocks import config as rocks_config
from rocks._ffi import _find_library
from rocks.config import BridgeConfig, configure, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch, tmp_path):
    for key in (rocks_config.ENV_LIB_PATH, rocks_config.ENV_LIB_NAME, rocks_config.ENV_LOG_LEVEL):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    logger = logging.getLogger("rocks")
    level = logger.level
    reset_config()
    yield
    reset_config()
    logger.setLevel(level)


class TestFromEnv:

    def test_defaults(self):
        assert BridgeConfig.from_env() == BridgeConfig()

    def test_reads_dotenv_file(self, tmp_path):
        env = tmp_path / "custom.env"
        env.write_text("ROCKS_LIB_PATH=/opt/rocks/lib\nROCKS_LOG_LEVEL=debug\n")
        config = BridgeConfig.from_env(env)
        assert config.lib_path == "/opt/rocks/lib"
        assert config.log_level == "debug"
        assert config.lib_name is None

    def test_finds_dotenv_in_working_directory(self, tmp_path):
        (tmp_path / ".env").write_text("ROCKS_LIB_NAME=librocks-dev.so\n")
        assert BridgeConfig.from_env().lib_name == "librocks-dev.so"

    def test_process_environment_wins(self, tmp_path, monkeypatch):
        env = tmp_path / "custom.env"
        env.write_text("ROCKS_LIB_PATH=/from/file\n")
        monkeypatch.setenv("ROCKS_LIB_PATH", "/from/env")
        assert BridgeConfig.from_env(env).lib_path == "/from/env"

    def test_empty_values_are_none(self, monkeypatch):
        monkeypatch.setenv("ROCKS_LIB_PATH", "")
        assert BridgeConfig.from_env().lib_path is None


class TestConfigure:

    def test_overrides_and_get_config(self):
        config = configure(lib_path="/somewhere")
        assert config.lib_path == "/somewhere"
        assert get_config() is config

    def test_get_config_is_lazy(self, monkeypatch):
        monkeypatch.setenv("ROCKS_LIB_NAME", "custom.so")
        assert get_config().lib_name == "custom.so"
        monkeypatch.setenv("ROCKS_LIB_NAME", "other.so")
        assert get_config().lib_name == "custom.so"
        reset_config()
        assert get_config().lib_name == "other.so"

    def test_log_level_applied(self):
        configure(BridgeConfig(log_level="warning"))
        assert logging.getLogger("rocks").level == logging.WARNING

    def test_unknown_log_level_is_ignored(self, caplog):
        before = logging.getLogger("rocks").level
        configure(BridgeConfig(log_level="chatty"))
        assert logging.getLogger("rocks").level == before
        assert "chatty" in caplog.text

    def test_config_is_immutable(self):
        config = BridgeConfig()
        with pytest.raises(AttributeError):
            config.lib_path = "/x"
        assert config.with_overrides(lib_name="a.so").lib_name == "a.so"


class TestFindLibrary:

    def test_explicit_file(self, tmp_path):
        lib = tmp_path / "librocks-custom.so"
        lib.write_bytes(b"")
        assert _find_library(BridgeConfig(lib_path=str(lib))) == str(lib)

    def test_directory_with_name(self, tmp_path):
        (tmp_path / "librocks-test.so").write_bytes(b"")
        found = _find_library(BridgeConfig(lib_path=str(tmp_path), lib_name="librocks-test.so"))
        assert found == str(tmp_path / "librocks-test.so")

    def test_not_found(self, tmp_path):
        with pytest.raises(rocks.LibraryNotFoundError) as info:
            _find_library(BridgeConfig(lib_path=str(tmp_path), lib_name="librocks-missing.so"))
        assert "ROCKS_LIB_PATH" in str(info.value)
        assert isinstance(info.value, rocks.RocksError)
