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
Rocks Error Classes

The native engine reports failures as ``rocks_status_t`` objects. A NULL
status pointer or a status whose code is ``OK`` means success; anything else
is converted into a :class:`Status` exception (or one of its per-code
subclasses) at the first Python call site that received it.

Example:
    try:
        db.put(b"k", b"v")
    except rocks.Busy as e:
        print(e.code, e.subcode, e.message)
"""

import ctypes
from enum import IntEnum
from typing import Dict, Optional, Type, Union


class Code(IntEnum):
    OK = 0
    NOT_FOUND = 1
    CORRUPTION = 2
    NOT_SUPPORTED = 3
    INVALID_ARGUMENT = 4
    IO_ERROR = 5
    MERGE_IN_PROGRESS = 6
    INCOMPLETE = 7
    SHUTDOWN_IN_PROGRESS = 8
    TIMED_OUT = 9
    ABORTED = 10
    BUSY = 11
    EXPIRED = 12
    TRY_AGAIN = 13
    COMPACTION_TOO_LARGE = 14
    COLUMN_FAMILY_DROPPED = 15


class SubCode(IntEnum):
    NONE = 0
    MUTEX_TIMEOUT = 1
    LOCK_TIMEOUT = 2
    LOCK_LIMIT = 3
    NO_SPACE = 4
    DEADLOCK = 5
    STALE_FILE = 6
    MEMORY_LIMIT = 7
    SPACE_LIMIT = 8
    PATH_NOT_FOUND = 9
    MERGE_OPERANDS_INSUFFICIENT_CAPACITY = 10
    MANUAL_COMPACTION_PAUSED = 11


_CODE_TEXT = {
    Code.OK: "OK",
    Code.NOT_FOUND: "NotFound",
    Code.CORRUPTION: "Corruption",
    Code.NOT_SUPPORTED: "Not implemented",
    Code.INVALID_ARGUMENT: "Invalid argument",
    Code.IO_ERROR: "IO error",
    Code.MERGE_IN_PROGRESS: "Merge in progress",
    Code.INCOMPLETE: "Result incomplete",
    Code.SHUTDOWN_IN_PROGRESS: "Shutdown in progress",
    Code.TIMED_OUT: "Operation timed out",
    Code.ABORTED: "Operation aborted",
    Code.BUSY: "Resource busy",
    Code.EXPIRED: "Operation expired",
    Code.TRY_AGAIN: "Operation failed. Try again.",
    Code.COMPACTION_TOO_LARGE: "Compaction too large",
    Code.COLUMN_FAMILY_DROPPED: "Column family dropped",
}

_SUBCODE_TEXT = {
    SubCode.MUTEX_TIMEOUT: "Timeout Acquiring Mutex",
    SubCode.LOCK_TIMEOUT: "Timeout waiting to lock key",
    SubCode.LOCK_LIMIT: "Failed to acquire lock due to max_num_locks limit",
    SubCode.NO_SPACE: "No space left on device",
    SubCode.DEADLOCK: "Deadlock",
    SubCode.STALE_FILE: "Stale file handle",
    SubCode.MEMORY_LIMIT: "Memory limit reached",
    SubCode.SPACE_LIMIT: "Space limit reached",
    SubCode.PATH_NOT_FOUND: "No such file or directory",
    SubCode.MERGE_OPERANDS_INSUFFICIENT_CAPACITY: "Insufficient capacity for merge operands",
    SubCode.MANUAL_COMPACTION_PAUSED: "Manual compaction paused",
}


class RocksError(Exception):
    """Base exception for all rocks errors."""


class BridgeError(RocksError):
    """Binding-level failure that did not come from a native status."""


class LibraryNotFoundError(BridgeError):
    """The native engine library could not be located."""


class CallbackContractError(BridgeError):
    """A callback state word did not resolve to a live registered object."""


class Status(RocksError):
    """
    A non-OK status reported by the native engine.

    Attributes:
        code: Primary status code.
        subcode: Refinement of the code (``SubCode.NONE`` when absent).
        message: Raw message bytes exactly as the engine reported them.
    """

    code: Code = Code.OK

    def __init__(
        self,
        code: Union[Code, int],
        subcode: Union[SubCode, int] = SubCode.NONE,
        message: bytes = b"",
    ):
        self.code = _coerce(Code, code)
        self.subcode = _coerce(SubCode, subcode)
        self.message = bytes(message)
        super().__init__(self._render())

    def _render(self) -> str:
        text = _CODE_TEXT.get(self.code, f"Unknown code({int(self.code)})")
        if self.subcode:
            text += ": " + _SUBCODE_TEXT.get(self.subcode, f"Unknown subcode({int(self.subcode)})")
        if self.message:
            text += ": " + self.message.decode("utf-8", errors="replace")
        return text

    @property
    def state(self) -> bytes:
        return self.message

    def __reduce__(self):
        return (Status.of, (int(self.code), int(self.subcode), self.message))

    @staticmethod
    def of(
        code: Union[Code, int],
        subcode: Union[SubCode, int] = SubCode.NONE,
        message: bytes = b"",
    ) -> "Status":
        """Build the most specific Status subclass for ``code``."""
        cls = _BY_CODE.get(code)
        if cls is None:
            return Status(code, subcode, message)
        return cls(message, subcode)

    @classmethod
    def from_native(cls, ptr: Optional[int], owned: bool = True) -> Optional["Status"]:
        """
        Copy a native status into Python.

        Args:
            ptr: ``rocks_status_t*`` address, may be NULL.
            owned: Destroy the native status after copying. Statuses borrowed
                from event info structures must pass ``owned=False``.

        Returns:
            None for NULL or OK, otherwise the matching Status exception.
        """
        if not ptr:
            return None

        from ._ffi import _FFI

        lib = _FFI.get_lib()
        try:
            code = lib.rocks_status_code(ptr)
            if code == Code.OK:
                return None
            subcode = lib.rocks_status_subcode(ptr)
            size = ctypes.c_size_t()
            state = lib.rocks_status_get_state(ptr, ctypes.byref(size))
            message = ctypes.string_at(state, size.value) if state and size.value else b""
        finally:
            if owned:
                lib.rocks_status_destroy(ptr)
        return cls.of(code, subcode, message)

    def to_native(self) -> int:
        """Create a fresh native status carrying this code, subcode and message.

        The caller owns the returned pointer.
        """
        from ._ffi import _FFI

        lib = _FFI.get_lib()
        ptr = lib.rocks_status_create_with_code_and_msg(
            int(self.code), int(self.subcode), self.message, len(self.message)
        )
        if not ptr:
            raise BridgeError("rocks_status_create_with_code_and_msg returned NULL")
        return ptr


def _coerce(enum_type, value):
    try:
        return enum_type(value)
    except ValueError:
        return int(value)


class _CodedStatus(Status):
    """Status whose code is fixed by the subclass."""

    def __init__(self, message: bytes = b"", subcode: Union[SubCode, int] = SubCode.NONE):
        super().__init__(self.code, subcode, message)


class NotFound(_CodedStatus):
    code = Code.NOT_FOUND


class Corruption(_CodedStatus):
    code = Code.CORRUPTION


class NotSupported(_CodedStatus):
    code = Code.NOT_SUPPORTED


class InvalidArgument(_CodedStatus):
    code = Code.INVALID_ARGUMENT


class IOError(_CodedStatus):  # noqa: A001
    code = Code.IO_ERROR


class MergeInProgress(_CodedStatus):
    code = Code.MERGE_IN_PROGRESS


class Incomplete(_CodedStatus):
    code = Code.INCOMPLETE


class ShutdownInProgress(_CodedStatus):
    code = Code.SHUTDOWN_IN_PROGRESS


class TimedOut(_CodedStatus):
    code = Code.TIMED_OUT


class Aborted(_CodedStatus):
    code = Code.ABORTED


class Busy(_CodedStatus):
    code = Code.BUSY


class Expired(_CodedStatus):
    code = Code.EXPIRED


class TryAgain(_CodedStatus):
    code = Code.TRY_AGAIN


class CompactionTooLarge(_CodedStatus):
    code = Code.COMPACTION_TOO_LARGE


class ColumnFamilyDropped(_CodedStatus):
    code = Code.COLUMN_FAMILY_DROPPED


_BY_CODE: Dict[int, Type[Status]] = {
    cls.code: cls
    for cls in (
        NotFound, Corruption, NotSupported, InvalidArgument, IOError,
        MergeInProgress, Incomplete, ShutdownInProgress, TimedOut, Aborted,
        Busy, Expired, TryAgain, CompactionTooLarge, ColumnFamilyDropped,
    )
}


def check(status_ptr: Optional[int]) -> None:
    """Raise the Status held by ``status_ptr`` unless it is NULL or OK.

    The native status is destroyed either way.
    """
    error = Status.from_native(status_ptr, owned=True)
    if error is not None:
        raise error


def invoke(fn, *args):
    """
    Call a fallible entry point, appending the ``rocks_status_t**`` argument.

    Example:
        invoke(lib.rocks_db_flush, db, flush_opts, cf)
    """
    status = ctypes.c_void_p()
    result = fn(*args, ctypes.byref(status))
    check(status.value)
    return result
