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
Byte views and native output buffers.

Pointers handed out by the engine are only valid for the duration of the call
that produced them, so every read goes through :func:`view`, which copies the
bytes into a Python ``bytes`` object.
"""

import ctypes
from typing import List, Optional, Union

from ._ffi import _FFI
from .handle import NativeHandle

BytesLike = Union[bytes, bytearray, memoryview]


def as_bytes(data: BytesLike, what: str = "value") -> bytes:
    """Normalise a bytes-like argument for a native call."""
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"{what} must be bytes-like, not {type(data).__name__}")


def optional_bytes(data: Optional[BytesLike], what: str = "value") -> Optional[bytes]:
    return None if data is None else as_bytes(data, what)


def view(ptr: Optional[int], size: int) -> bytes:
    """Copy ``size`` bytes starting at ``ptr``."""
    if not ptr or not size:
        return b""
    return ctypes.string_at(ptr, size)


def view_array(ptrs, lens, count: int) -> List[bytes]:
    """Copy ``count`` (pointer, length) pairs out of parallel C arrays."""
    return [view(ptrs[i], lens[i]) for i in range(count)]


def assign(lib, out: int, data: BytesLike) -> None:
    """Write ``data`` into the native output buffer ``out``."""
    data = as_bytes(data)
    lib.rocks_string_assign(out, data, len(data))


class NativeString(NativeHandle):
    """
    Engine-owned growable byte buffer used as an out parameter.

    Example:
        with NativeString() as buf:
            lib.rocks_db_get(db, ropts, cf, key, len(key), buf.raw(), status)
            value = buf.value()
    """

    _destroy_fn = "rocks_string_destroy"

    def __init__(self):
        super().__init__(_FFI.get_lib().rocks_string_create())

    def value(self) -> bytes:
        size = ctypes.c_size_t()
        ptr = self._lib.rocks_string_data(self.raw(), ctypes.byref(size))
        return view(ptr, size.value)

    def set(self, data: BytesLike) -> None:
        assign(self._lib, self.raw(), data)
