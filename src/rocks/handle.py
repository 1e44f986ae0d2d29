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
Owned native resource handles.

A :class:`NativeHandle` wraps exactly one opaque native pointer and calls the
matching ``rocks_*_destroy`` function exactly once, on :meth:`close`, on
context-manager exit, or when the wrapper is garbage collected.
"""

import logging
import threading
from typing import Optional

from ._ffi import _FFI
from .errors import BridgeError

logger = logging.getLogger(__name__)


class NativeHandle:
    """
    Exactly-once owner of a native pointer.

    Subclasses name their native functions through class attributes:

        class Cache(NativeHandle):
            _destroy_fn = "rocks_cache_destroy"

    Args:
        ptr: Address returned by a native constructor (must be non-NULL).
        owned: When False the handle is a borrow and ``close()`` never
            destroys the native object.
    """

    _destroy_fn: Optional[str] = None
    _copy_fn: Optional[str] = None

    def __init__(self, ptr: Optional[int], owned: bool = True):
        if not ptr:
            raise BridgeError(f"{type(self).__name__}: native constructor returned NULL")
        self._lib = _FFI.get_lib()
        self._ptr = ptr
        self._owned = owned
        self._close_lock = threading.Lock()

    @classmethod
    def _wrap(cls, ptr: Optional[int], owned: bool = True) -> "NativeHandle":
        obj = cls.__new__(cls)
        NativeHandle.__init__(obj, ptr, owned)
        return obj

    @classmethod
    def borrowed(cls, ptr: int) -> "NativeHandle":
        """Wrap ``ptr`` without taking ownership."""
        return cls._wrap(ptr, owned=False)

    @property
    def closed(self) -> bool:
        return self._ptr is None

    @property
    def owned(self) -> bool:
        return self._owned

    def raw(self) -> int:
        """Return the native address. Raises BridgeError after close."""
        ptr = self._ptr
        if ptr is None:
            raise BridgeError(f"{type(self).__name__} is closed")
        return ptr

    def clone(self) -> "NativeHandle":
        """Allocate an independent native copy through the copy function."""
        if self._copy_fn is None:
            raise TypeError(f"{type(self).__name__} does not support clone()")
        ptr = getattr(self._lib, self._copy_fn)(self.raw())
        return type(self)._wrap(ptr)

    def _destroy(self, ptr: int) -> None:
        getattr(self._lib, self._destroy_fn)(ptr)

    def close(self) -> None:
        """Destroy the native object. Safe to call more than once."""
        with self._close_lock:
            ptr, self._ptr = self._ptr, None
        if ptr is None or not self._owned:
            return
        self._destroy(ptr)

    def __del__(self):
        if getattr(self, "_ptr", None) is not None:
            try:
                self.close()
            except Exception:
                logger.exception("Failed to release %s", type(self).__name__)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._ptr is None else hex(self._ptr)
        return f"<{type(self).__name__} {state}{'' if self._owned else ' borrowed'}>"
