# Copyright 2025 Sushanth (https://github.com/sushanthpy)
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Process-wide bridge configuration.

There are no hidden default option objects in the binding. The only global
state is one :class:`BridgeConfig`, installed with :func:`configure` or built
lazily from the environment by :func:`get_config`.

Environment variables (a ``.env`` file is read too, process env wins):
    ROCKS_LIB_PATH: path to the native library, or a directory holding it
    ROCKS_LIB_NAME: library file name override
    ROCKS_LOG_LEVEL: level for the ``rocks`` logger (e.g. ``DEBUG``)
"""

import logging
import os
import threading
from dataclasses import dataclass, replace
from typing import Optional, Union

from dotenv import dotenv_values, find_dotenv

logger = logging.getLogger(__name__)

ENV_LIB_PATH = "ROCKS_LIB_PATH"
ENV_LIB_NAME = "ROCKS_LIB_NAME"
ENV_LOG_LEVEL = "ROCKS_LOG_LEVEL"


@dataclass(frozen=True)
class BridgeConfig:
    """
    Bridge configuration.

    Attributes:
        lib_path: Library file or directory searched before the defaults.
        lib_name: Library file name (platform default when None).
        log_level: Level applied to the ``rocks`` logger by :func:`configure`.
    """
    lib_path: Optional[str] = None
    lib_name: Optional[str] = None
    log_level: Optional[str] = None

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, os.PathLike]] = None) -> "BridgeConfig":
        """
        Build a config from ``.env`` values overlaid with ``os.environ``.

        Args:
            env_file: Explicit dotenv file. When None, the nearest ``.env``
                from the current working directory upwards is used if any.
        """
        if env_file is None:
            env_file = find_dotenv(usecwd=True)
        values = {}
        if env_file:
            values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
        for key in (ENV_LIB_PATH, ENV_LIB_NAME, ENV_LOG_LEVEL):
            if key in os.environ:
                values[key] = os.environ[key]

        return cls(
            lib_path=values.get(ENV_LIB_PATH) or None,
            lib_name=values.get(ENV_LIB_NAME) or None,
            log_level=values.get(ENV_LOG_LEVEL) or None,
        )

    def with_overrides(self, **overrides) -> "BridgeConfig":
        return replace(self, **overrides)


_config: Optional[BridgeConfig] = None
_config_lock = threading.Lock()


def configure(config: Optional[BridgeConfig] = None, **overrides) -> BridgeConfig:
    """
    Install the process-wide configuration.

    Must run before the first call that loads the native library for
    ``lib_path`` / ``lib_name`` to take effect.

    Example:
        rocks.configure(lib_path="/opt/rocks/lib", log_level="DEBUG")
    """
    global _config

    base = config if config is not None else BridgeConfig.from_env()
    if overrides:
        base = base.with_overrides(**overrides)

    with _config_lock:
        _config = base

    if base.log_level:
        level = logging.getLevelName(base.log_level.upper())
        if isinstance(level, int):
            logging.getLogger("rocks").setLevel(level)
        else:
            logger.warning("Ignoring unknown log level %r", base.log_level)
    return base


def get_config() -> BridgeConfig:
    """Return the installed configuration, reading the environment on first use."""
    global _config

    if _config is None:
        with _config_lock:
            if _config is None:
                _config = BridgeConfig.from_env()
    return _config


def reset_config() -> None:
    """Forget the installed configuration (next :func:`get_config` rereads env)."""
    global _config

    with _config_lock:
        _config = None
