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
Atomic write batches.

Example:
    batch = rocks.WriteBatch()
    batch.put(b"a", b"1").delete(b"b").merge(b"c", b"+1")
    db.write(batch)

A batch can be decoded again with :meth:`WriteBatch.iterate` and a
:class:`WriteBatchHandler`. An exception raised by the handler stops the
iteration and is re-raised from ``iterate`` on the calling thread.
"""

import ctypes
import logging
from typing import Optional

from ._ffi import (
    BLOB_FN,
    DELETE_CF_FN,
    DELETE_RANGE_CF_FN,
    FLAG_FN,
    MARK_FN,
    PUT_CF_FN,
    WriteBatchHandlerVTable,
    _FFI,
)
from .errors import CallbackContractError, Status, check, invoke
from .handle import NativeHandle
from .registry import DROP, borrow, box
from .slice import BytesLike, as_bytes, view

logger = logging.getLogger(__name__)


def _cf(column_family) -> Optional[int]:
    return None if column_family is None else column_family.raw()


class WriteBatch(NativeHandle):
    """
    An ordered group of updates applied atomically by :meth:`DB.write`.

    Args:
        data: Serialized batch contents (as returned by :meth:`data`) to
            start from.
    """

    _destroy_fn = "rocks_writebatch_destroy"
    _copy_fn = "rocks_writebatch_copy"

    def __init__(self, data: Optional[BytesLike] = None):
        lib = _FFI.get_lib()
        if data is None:
            ptr = lib.rocks_writebatch_create()
        else:
            data = as_bytes(data, "data")
            ptr = lib.rocks_writebatch_create_from(data, len(data))
        super().__init__(ptr)

    def put(self, key: BytesLike, value: BytesLike, column_family=None) -> "WriteBatch":
        key, value = as_bytes(key, "key"), as_bytes(value, "value")
        self._lib.rocks_writebatch_put(self.raw(), _cf(column_family), key, len(key), value, len(value))
        return self

    def merge(self, key: BytesLike, value: BytesLike, column_family=None) -> "WriteBatch":
        key, value = as_bytes(key, "key"), as_bytes(value, "value")
        self._lib.rocks_writebatch_merge(self.raw(), _cf(column_family), key, len(key), value, len(value))
        return self

    def delete(self, key: BytesLike, column_family=None) -> "WriteBatch":
        key = as_bytes(key, "key")
        self._lib.rocks_writebatch_delete(self.raw(), _cf(column_family), key, len(key))
        return self

    def single_delete(self, key: BytesLike, column_family=None) -> "WriteBatch":
        key = as_bytes(key, "key")
        self._lib.rocks_writebatch_single_delete(self.raw(), _cf(column_family), key, len(key))
        return self

    def delete_range(self, begin_key: BytesLike, end_key: BytesLike, column_family=None) -> "WriteBatch":
        """Delete every key in ``[begin_key, end_key)``."""
        begin_key, end_key = as_bytes(begin_key, "begin_key"), as_bytes(end_key, "end_key")
        self._lib.rocks_writebatch_delete_range(
            self.raw(), _cf(column_family), begin_key, len(begin_key), end_key, len(end_key)
        )
        return self

    def put_log_data(self, blob: BytesLike) -> "WriteBatch":
        """Append a blob that is written to the WAL but not applied to the DB."""
        blob = as_bytes(blob, "blob")
        self._lib.rocks_writebatch_put_log_data(self.raw(), blob, len(blob))
        return self

    def clear(self) -> "WriteBatch":
        self._lib.rocks_writebatch_clear(self.raw())
        return self

    def count(self) -> int:
        return self._lib.rocks_writebatch_count(self.raw())

    def __len__(self) -> int:
        return self.count()

    def data(self) -> bytes:
        """Serialized batch representation."""
        size = ctypes.c_size_t()
        ptr = self._lib.rocks_writebatch_data(self.raw(), ctypes.byref(size))
        return view(ptr, size.value)

    def set_save_point(self) -> None:
        self._lib.rocks_writebatch_set_save_point(self.raw())

    def rollback_to_save_point(self) -> None:
        """Undo everything since the last save point (NotFound if none)."""
        invoke(self._lib.rocks_writebatch_rollback_to_save_point, self.raw())

    def append(self, other: "WriteBatch") -> "WriteBatch":
        invoke(self._lib.rocks_writebatch_append, self.raw(), other.raw())
        return self

    def iterate(self, handler: "WriteBatchHandler") -> None:
        """
        Replay the batch into ``handler`` in insertion order.

        Iteration stops early when ``handler.will_continue()`` returns False.

        Raises:
            Exception: Whatever the handler raised, after the native
                iteration has unwound.
        """
        ptr = self.raw()
        call = _HandlerCall(handler)
        state = box(call, _HandlerCall)
        status = ctypes.c_void_p()
        self._lib.rocks_writebatch_iterate(
            ptr, state, ctypes.byref(HANDLER_VTABLE), ctypes.byref(status)
        )
        if call.error is not None:
            # the handler error wins; still release the native status
            Status.from_native(status.value)
            raise call.error
        check(status.value)


class WriteBatchHandler:
    """Receives the records of a :class:`WriteBatch` during ``iterate``."""

    def put(self, column_family_id: int, key: bytes, value: bytes) -> None:
        pass

    def delete(self, column_family_id: int, key: bytes) -> None:
        pass

    def single_delete(self, column_family_id: int, key: bytes) -> None:
        pass

    def delete_range(self, column_family_id: int, begin_key: bytes, end_key: bytes) -> None:
        pass

    def merge(self, column_family_id: int, key: bytes, value: bytes) -> None:
        pass

    def log_data(self, blob: bytes) -> None:
        pass

    def mark_begin_prepare(self) -> None:
        pass

    def mark_end_prepare(self, xid: bytes) -> None:
        pass

    def mark_rollback(self, xid: bytes) -> None:
        pass

    def mark_commit(self, xid: bytes) -> None:
        pass

    def will_continue(self) -> bool:
        return True


class _HandlerCall:
    """One ``iterate`` invocation: the handler plus its first error."""

    def __init__(self, handler: WriteBatchHandler):
        if not isinstance(handler, WriteBatchHandler):
            raise TypeError(f"{type(handler).__name__} is not a WriteBatchHandler")
        self.handler = handler
        self.error: Optional[BaseException] = None


def _dispatch(state, method: str, *args) -> bool:
    try:
        call = borrow(state)
    except CallbackContractError:
        logger.critical("write batch handler called with unknown state %r", state)
        return False
    if call.error is not None:
        return False
    try:
        getattr(call.handler, method)(*args)
    except Exception as e:
        logger.debug("%s.%s raised; stopping iteration", type(call.handler).__name__, method)
        call.error = e
        return False
    return True


def _put_cf(state, cf_id, key, key_len, value, value_len):
    _dispatch(state, "put", cf_id, view(key, key_len), view(value, value_len))


def _delete_cf(state, cf_id, key, key_len):
    _dispatch(state, "delete", cf_id, view(key, key_len))


def _single_delete_cf(state, cf_id, key, key_len):
    _dispatch(state, "single_delete", cf_id, view(key, key_len))


def _delete_range_cf(state, cf_id, begin, begin_len, end, end_len):
    _dispatch(state, "delete_range", cf_id, view(begin, begin_len), view(end, end_len))


def _merge_cf(state, cf_id, key, key_len, value, value_len):
    _dispatch(state, "merge", cf_id, view(key, key_len), view(value, value_len))


def _log_data(state, blob, blob_len):
    _dispatch(state, "log_data", view(blob, blob_len))


def _mark_begin_prepare(state):
    _dispatch(state, "mark_begin_prepare")


def _mark_end_prepare(state, xid, xid_len):
    _dispatch(state, "mark_end_prepare", view(xid, xid_len))


def _mark_rollback(state, xid, xid_len):
    _dispatch(state, "mark_rollback", view(xid, xid_len))


def _mark_commit(state, xid, xid_len):
    _dispatch(state, "mark_commit", view(xid, xid_len))


def _will_continue(state):
    try:
        call = borrow(state)
    except CallbackContractError:
        logger.critical("will_continue called with unknown state %r", state)
        return 0
    if call.error is not None:
        return 0
    try:
        return 1 if call.handler.will_continue() else 0
    except Exception as e:
        call.error = e
        return 0


HANDLER_VTABLE = WriteBatchHandlerVTable(
    put_cf=PUT_CF_FN(_put_cf),
    delete_cf=DELETE_CF_FN(_delete_cf),
    single_delete_cf=DELETE_CF_FN(_single_delete_cf),
    delete_range_cf=DELETE_RANGE_CF_FN(_delete_range_cf),
    merge_cf=PUT_CF_FN(_merge_cf),
    log_data=BLOB_FN(_log_data),
    mark_begin_prepare=MARK_FN(_mark_begin_prepare),
    mark_end_prepare=BLOB_FN(_mark_end_prepare),
    mark_rollback=BLOB_FN(_mark_rollback),
    mark_commit=BLOB_FN(_mark_commit),
    will_continue=FLAG_FN(_will_continue),
    drop=DROP,
)
