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
Callback registry.

Python objects handed to the engine never travel as raw ``PyObject*``. Each
registration inserts the object into a process-wide :class:`HandleMap` and the
engine receives the integer handle as its opaque state word. Trampolines
borrow the object by handle for the duration of one call; the engine's drop
call is the only thing that removes it.

Handles start at 1, so a NULL state word is always a contract violation.
"""

import functools
import itertools
import logging
import threading
from typing import Any, Dict, Optional, Tuple, Type

from ._ffi import DROP_FN, NAME_FN, _FFI
from .errors import CallbackContractError
from .slice import assign

logger = logging.getLogger(__name__)


class Shareable:
    """
    Marker for callback objects the engine may call from several threads at
    once.

    Comparators, merge operators and slice transforms are always shared.
    A :class:`~rocks.CompactionFilter` registered directly on an options
    object must mix this in; filters built per compaction by a factory do not
    need it.
    """


class HandleMap:
    """Thread-safe map of integer handles to live callback objects."""

    def __init__(self):
        self._lock = threading.Lock()
        self._map: Dict[int, Tuple[Any, str]] = {}
        self._counter = itertools.count(1)

    def insert(self, obj: Any, trait: str) -> int:
        with self._lock:
            handle = next(self._counter)
            self._map[handle] = (obj, trait)
        return handle

    def get(self, handle: Optional[int]) -> Any:
        with self._lock:
            entry = self._map.get(handle) if handle else None
        if entry is None:
            raise CallbackContractError(f"unknown callback handle {handle!r}")
        return entry[0]

    def remove(self, handle: Optional[int]) -> Any:
        with self._lock:
            entry = self._map.pop(handle, None) if handle else None
        if entry is None:
            raise CallbackContractError(f"drop of unknown callback handle {handle!r}")
        return entry[0]

    def count(self, trait: Optional[str] = None) -> int:
        with self._lock:
            if trait is None:
                return len(self._map)
            return sum(1 for _, t in self._map.values() if t == trait)

    def __contains__(self, handle: int) -> bool:
        with self._lock:
            return handle in self._map

    def __len__(self) -> int:
        return self.count()


_handles = HandleMap()


def box(obj: Any, trait: Type) -> int:
    """
    Register ``obj`` as an implementation of ``trait`` and return its handle.

    Ownership passes to the engine once the handle is handed over; only the
    drop trampoline may remove it afterwards.

    Raises:
        TypeError: ``obj`` is not an instance of ``trait``.
    """
    if not isinstance(obj, trait):
        raise TypeError(f"{type(obj).__name__} is not a {trait.__name__}")
    return _handles.insert(obj, trait.__name__)


def borrow(handle: Optional[int]) -> Any:
    return _handles.get(handle)


def unbox(handle: Optional[int]) -> Any:
    """Remove ``handle`` and run the object's ``close()`` hook if it has one."""
    obj = _handles.remove(handle)
    hook = getattr(obj, "close", None)
    if callable(hook):
        hook()
    return obj


def live_count(trait: Optional[Type] = None) -> int:
    """Number of registered callback objects (optionally of one trait)."""
    return _handles.count(None if trait is None else trait.__name__)


def guarded(fallback: Any):
    """
    Turn ``fn(obj, *args)`` into a trampoline body ``(state, *args)``.

    The object is borrowed from the registry for the call. Exceptions are
    logged and replaced by ``fallback``; they never reach the engine.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def trampoline(state, *args):
            try:
                obj = borrow(state)
            except CallbackContractError:
                logger.critical("%s called with unknown state %r", fn.__name__, state)
                return fallback
            try:
                return fn(obj, *args)
            except Exception:
                logger.exception(
                    "%s.%s raised; returning %r to the engine",
                    type(obj).__name__, fn.__name__.lstrip("_"), fallback,
                )
                return fallback
        return trampoline
    return decorator


def object_name(obj: Any) -> bytes:
    name = obj.name()
    if isinstance(name, str):
        name = name.encode("utf-8")
    return name


@guarded(None)
def _name(obj, out):
    assign(_FFI.get_lib(), out, object_name(obj))


def _drop(state):
    try:
        unbox(state)
    except CallbackContractError:
        logger.critical("drop called with unknown state %r", state)
    except Exception:
        logger.exception("close() hook failed during drop of handle %r", state)


# shared by every vtable
NAME = NAME_FN(_name)
DROP = DROP_FN(_drop)
