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
Database iterators.

Example:
    with db.iterator() as it:
        for key, value in it:
            ...

    it = db.iterator(rocks.ReadOptions(iterate_upper_bound=b"user:~"))
    it.seek(b"user:")
    while it.valid():
        print(it.key(), it.value())
        it.next()
    it.check_status()

Keys and values are copied out of the engine, so they stay valid after the
iterator moves on. An iterator keeps its database open until it is closed.
"""

import ctypes
from typing import Iterator as _PyIterator, Optional, Tuple

from .errors import BridgeError, invoke
from .handle import NativeHandle
from .slice import BytesLike, as_bytes, view


class Iterator(NativeHandle):
    """Cursor over a consistent view of one column family."""

    _destroy_fn = "rocks_iter_destroy"

    def __init__(self, ptr: int, db_ref, read_options=None):
        super().__init__(ptr)
        self._db_ref = db_ref
        # holds bound keys and the snapshot for as long as the cursor lives
        self._read_options = read_options

    def _destroy(self, ptr: int) -> None:
        try:
            super()._destroy(ptr)
        finally:
            self._db_ref.release()

    def valid(self) -> bool:
        return bool(self._lib.rocks_iter_valid(self.raw()))

    def seek_to_first(self) -> "Iterator":
        self._lib.rocks_iter_seek_to_first(self.raw())
        return self

    def seek_to_last(self) -> "Iterator":
        self._lib.rocks_iter_seek_to_last(self.raw())
        return self

    def seek(self, target: BytesLike) -> "Iterator":
        """Position at the first key ``>= target``."""
        target = as_bytes(target, "target")
        self._lib.rocks_iter_seek(self.raw(), target, len(target))
        return self

    def seek_for_prev(self, target: BytesLike) -> "Iterator":
        """Position at the last key ``<= target``."""
        target = as_bytes(target, "target")
        self._lib.rocks_iter_seek_for_prev(self.raw(), target, len(target))
        return self

    def next(self) -> None:
        self._require_valid()
        self._lib.rocks_iter_next(self.raw())

    def prev(self) -> None:
        self._require_valid()
        self._lib.rocks_iter_prev(self.raw())

    def key(self) -> bytes:
        self._require_valid()
        size = ctypes.c_size_t()
        ptr = self._lib.rocks_iter_key(self.raw(), ctypes.byref(size))
        return view(ptr, size.value)

    def value(self) -> bytes:
        self._require_valid()
        size = ctypes.c_size_t()
        ptr = self._lib.rocks_iter_value(self.raw(), ctypes.byref(size))
        return view(ptr, size.value)

    def item(self) -> Tuple[bytes, bytes]:
        return self.key(), self.value()

    def check_status(self) -> None:
        """Raise the Status that ended iteration, if it was not simply the end."""
        invoke(self._lib.rocks_iter_get_status, self.raw())

    def _require_valid(self) -> None:
        if not self.valid():
            raise BridgeError("iterator is not positioned at a valid entry")

    def items(self, start: Optional[BytesLike] = None, reverse: bool = False) -> _PyIterator[Tuple[bytes, bytes]]:
        """
        Yield ``(key, value)`` pairs from ``start`` (or the first/last key).

        Args:
            start: Seek target; with ``reverse`` the scan starts at the last
                key ``<= start``.
            reverse: Walk towards smaller keys.
        """
        if start is None and reverse:
            self.seek_to_last()
        elif start is None:
            self.seek_to_first()
        elif reverse:
            self.seek_for_prev(start)
        else:
            self.seek(start)

        step = self.prev if reverse else self.next
        while self.valid():
            yield self.key(), self.value()
            step()
        self.check_status()

    def iter_keys(self, start: Optional[BytesLike] = None) -> _PyIterator[bytes]:
        for key, _ in self.items(start):
            yield key

    def __iter__(self):
        return self.items()
