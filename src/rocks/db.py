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
Rocks Database

Direct access to the native engine through ctypes.

Example:
    with rocks.DB.open("/tmp/db") as db:
        db.put(b"key", b"value")
        assert db.get(b"key") == b"value"

Every object derived from an open database (column family handles,
iterators, snapshots) holds a counted reference to it. The native database
is closed once the last of them is closed, so a column family handle may
safely outlive the :class:`DB` it came from.
"""

import ctypes
import logging
import os
import threading
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ._ffi import _FFI
from .errors import BridgeError, NotFound, invoke
from .handle import NativeHandle
from .iterator import Iterator
from .options import CompactRangeOptions, FlushOptions, Options, ReadOptions, WriteOptions
from .slice import BytesLike, NativeString, as_bytes, optional_bytes, view
from .snapshot import Snapshot
from .write_batch import WriteBatch

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

DEFAULT_COLUMN_FAMILY_NAME = "default"


@dataclass
class _Slot:
    raw: int
    lib: object
    path: str
    refs: int


class _DBArena:
    """
    Reference-counted registry of open native databases keyed by id.

    The native ``rocks_db_close`` runs exactly once, when the count of a slot
    drops to zero.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._slots: Dict[int, _Slot] = {}
        self._next_id = 1

    def register(self, raw: int, lib, path: str) -> "_DBRef":
        """Adopt a freshly opened database. The returned ref holds count 1."""
        with self._lock:
            db_id = self._next_id
            self._next_id += 1
            self._slots[db_id] = _Slot(raw=raw, lib=lib, path=path, refs=0)
        return _DBRef(self, db_id)

    def acquire(self, db_id: int) -> None:
        with self._lock:
            slot = self._slots.get(db_id)
            if slot is None:
                raise BridgeError(f"database {db_id} is closed")
            slot.refs += 1

    def release(self, db_id: int) -> None:
        with self._lock:
            slot = self._slots.get(db_id)
            if slot is None:
                raise BridgeError(f"database {db_id} released too many times")
            slot.refs -= 1
            if slot.refs > 0:
                return
            del self._slots[db_id]
        slot.lib.rocks_db_close(slot.raw)
        logger.info("Closed database at %s", slot.path)

    def raw(self, db_id: int) -> int:
        with self._lock:
            slot = self._slots.get(db_id)
        if slot is None:
            raise BridgeError(f"database {db_id} is closed")
        return slot.raw

    def refs(self, db_id: int) -> int:
        with self._lock:
            slot = self._slots.get(db_id)
            return 0 if slot is None else slot.refs

    def __contains__(self, db_id: int) -> bool:
        with self._lock:
            return db_id in self._slots


_arena = _DBArena()


class _DBRef:
    """One counted reference to an arena slot, released at most once."""

    def __init__(self, arena: _DBArena, db_id: int):
        arena.acquire(db_id)
        self._arena = arena
        self.db_id = db_id
        self._lock = threading.Lock()
        self._released = False

    def raw(self) -> int:
        if self._released:
            raise BridgeError("database reference already released")
        return self._arena.raw(self.db_id)

    def share(self) -> "_DBRef":
        return _DBRef(self._arena, self.db_id)

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self._arena.release(self.db_id)


def _path_bytes(path: PathLike) -> bytes:
    return os.fsencode(path)


def _raw_or_none(handle) -> Optional[int]:
    return None if handle is None else handle.raw()


def _pointer_array(items: Sequence[bytes]):
    """Build parallel (void*, size_t) C arrays. Returns (keepalive, ptrs, lens)."""
    buffers = [ctypes.create_string_buffer(item, max(len(item), 1)) for item in items]
    ptrs = (ctypes.c_void_p * len(items))(*[ctypes.addressof(b) for b in buffers])
    lens = (ctypes.c_size_t * len(items))(*[len(item) for item in items])
    return buffers, ptrs, lens


class _Operations:
    """Key/value operations shared by DB and ColumnFamilyHandle."""

    _lib = None

    def _db(self) -> int:
        raise NotImplementedError

    def _db_ref(self) -> _DBRef:
        raise NotImplementedError

    def _cf(self, column_family: Optional["ColumnFamilyHandle"]) -> Optional[int]:
        raise NotImplementedError

    def put(
        self,
        key: BytesLike,
        value: BytesLike,
        column_family: Optional["ColumnFamilyHandle"] = None,
        write_options: Optional[WriteOptions] = None,
    ) -> None:
        """Set ``key`` to ``value``."""
        key, value = as_bytes(key, "key"), as_bytes(value, "value")
        invoke(
            self._lib.rocks_db_put,
            self._db(), _raw_or_none(write_options), self._cf(column_family),
            key, len(key), value, len(value),
        )

    def get(
        self,
        key: BytesLike,
        column_family: Optional["ColumnFamilyHandle"] = None,
        read_options: Optional[ReadOptions] = None,
    ) -> Optional[bytes]:
        """
        Read ``key``.

        Returns:
            The value, or None if the key does not exist.

        Raises:
            Status: Any failure other than NotFound (e.g. a failed merge
                surfaces as Corruption).
        """
        key = as_bytes(key, "key")
        with NativeString() as out:
            try:
                invoke(
                    self._lib.rocks_db_get,
                    self._db(), _raw_or_none(read_options), self._cf(column_family),
                    key, len(key), out.raw(),
                )
            except NotFound:
                return None
            return out.value()

    def delete(
        self,
        key: BytesLike,
        column_family: Optional["ColumnFamilyHandle"] = None,
        write_options: Optional[WriteOptions] = None,
    ) -> None:
        key = as_bytes(key, "key")
        invoke(
            self._lib.rocks_db_delete,
            self._db(), _raw_or_none(write_options), self._cf(column_family), key, len(key),
        )

    def single_delete(
        self,
        key: BytesLike,
        column_family: Optional["ColumnFamilyHandle"] = None,
        write_options: Optional[WriteOptions] = None,
    ) -> None:
        """Delete a key that was written exactly once since its last delete."""
        key = as_bytes(key, "key")
        invoke(
            self._lib.rocks_db_single_delete,
            self._db(), _raw_or_none(write_options), self._cf(column_family), key, len(key),
        )

    def delete_range(
        self,
        begin_key: BytesLike,
        end_key: BytesLike,
        column_family: Optional["ColumnFamilyHandle"] = None,
        write_options: Optional[WriteOptions] = None,
    ) -> None:
        """Delete every key in ``[begin_key, end_key)``."""
        begin_key, end_key = as_bytes(begin_key, "begin_key"), as_bytes(end_key, "end_key")
        invoke(
            self._lib.rocks_db_delete_range,
            self._db(), _raw_or_none(write_options), self._cf(column_family),
            begin_key, len(begin_key), end_key, len(end_key),
        )

    def merge(
        self,
        key: BytesLike,
        value: BytesLike,
        column_family: Optional["ColumnFamilyHandle"] = None,
        write_options: Optional[WriteOptions] = None,
    ) -> None:
        """Queue ``value`` as a merge operand for ``key``."""
        key, value = as_bytes(key, "key"), as_bytes(value, "value")
        invoke(
            self._lib.rocks_db_merge,
            self._db(), _raw_or_none(write_options), self._cf(column_family),
            key, len(key), value, len(value),
        )

    def write(self, batch: WriteBatch, write_options: Optional[WriteOptions] = None) -> None:
        """Apply ``batch`` atomically."""
        invoke(self._lib.rocks_db_write, self._db(), _raw_or_none(write_options), batch.raw())

    def iterator(
        self,
        read_options: Optional[ReadOptions] = None,
        column_family: Optional["ColumnFamilyHandle"] = None,
    ) -> Iterator:
        ref = self._db_ref().share()
        try:
            ptr = self._lib.rocks_db_create_iterator(
                ref.raw(), _raw_or_none(read_options), self._cf(column_family)
            )
            return Iterator(ptr, ref, read_options)
        except Exception:
            ref.release()
            raise

    def snapshot(self) -> Snapshot:
        ref = self._db_ref().share()
        try:
            return Snapshot(self._lib.rocks_db_get_snapshot(ref.raw()), ref)
        except Exception:
            ref.release()
            raise

    def flush(
        self,
        column_family: Optional["ColumnFamilyHandle"] = None,
        wait: bool = True,
        flush_options: Optional[FlushOptions] = None,
    ) -> None:
        """Flush the memtable of one column family to a table file."""
        if flush_options is None:
            with FlushOptions(wait=wait) as options:
                invoke(self._lib.rocks_db_flush, self._db(), options.raw(), self._cf(column_family))
            return
        invoke(self._lib.rocks_db_flush, self._db(), flush_options.raw(), self._cf(column_family))

    def compact_range(
        self,
        begin: Optional[BytesLike] = None,
        end: Optional[BytesLike] = None,
        column_family: Optional["ColumnFamilyHandle"] = None,
        options: Optional[CompactRangeOptions] = None,
    ) -> None:
        """Compact ``[begin, end]``; None on either side means unbounded."""
        begin, end = optional_bytes(begin, "begin"), optional_bytes(end, "end")
        invoke(
            self._lib.rocks_db_compact_range,
            self._db(), _raw_or_none(options), self._cf(column_family),
            begin, 0 if begin is None else len(begin),
            end, 0 if end is None else len(end),
        )

    def get_property(
        self, name: str, column_family: Optional["ColumnFamilyHandle"] = None
    ) -> Optional[str]:
        """Return a ``rocksdb.*`` property value, or None if it is unknown."""
        with NativeString() as out:
            found = self._lib.rocks_db_get_property(
                self._db(), self._cf(column_family), name.encode("utf-8"), out.raw()
            )
            if not found:
                return None
            return out.value().decode("utf-8", errors="replace")

    def get_int_property(
        self, name: str, column_family: Optional["ColumnFamilyHandle"] = None
    ) -> Optional[int]:
        value = self.get_property(name, column_family)
        return None if value is None else int(value)

    def latest_sequence_number(self) -> int:
        return self._lib.rocks_db_get_latest_sequence_number(self._db())

    def get_approximate_sizes(
        self,
        ranges: Sequence[Tuple[BytesLike, BytesLike]],
        column_family: Optional["ColumnFamilyHandle"] = None,
    ) -> np.ndarray:
        """
        Estimate on-disk bytes used by each ``[start, limit)`` range.

        Returns:
            ``np.ndarray`` of ``uint64``, one entry per range.
        """
        n = len(ranges)
        sizes = np.ascontiguousarray(np.zeros(n, dtype=np.uint64))
        if n == 0:
            return sizes
        starts = [as_bytes(start, "start") for start, _ in ranges]
        limits = [as_bytes(limit, "limit") for _, limit in ranges]
        start_bufs, start_ptrs, start_lens = _pointer_array(starts)
        limit_bufs, limit_ptrs, limit_lens = _pointer_array(limits)
        invoke(
            self._lib.rocks_db_get_approximate_sizes,
            self._db(), self._cf(column_family), n,
            start_ptrs, start_lens, limit_ptrs, limit_lens,
            sizes.ctypes.data_as(ctypes.POINTER(ctypes.c_uint64)),
        )
        del start_bufs, limit_bufs
        return sizes


class ColumnFamilyHandle(_Operations, NativeHandle):
    """
    Handle to one column family of an open database.

    Operations called on the handle target its column family. The handle
    keeps the database open until it is closed, even if the :class:`DB`
    object was closed first.
    """

    def __init__(self, ptr: int, db_ref: _DBRef, owned: bool = True):
        NativeHandle.__init__(self, ptr, owned=owned)
        self._ref = db_ref
        size = ctypes.c_size_t()
        name_ptr = self._lib.rocks_column_family_handle_get_name(ptr, ctypes.byref(size))
        self._name = view(name_ptr, size.value).decode("utf-8", errors="replace")
        self._id = self._lib.rocks_column_family_handle_get_id(ptr)

    @property
    def name(self) -> str:
        return self._name

    @property
    def id(self) -> int:
        return self._id

    def _db(self) -> int:
        self.raw()
        return self._ref.raw()

    def _db_ref(self) -> _DBRef:
        self.raw()
        return self._ref

    def _cf(self, column_family: Optional["ColumnFamilyHandle"]) -> int:
        if column_family is not None and column_family is not self:
            raise ValueError("column_family must be omitted when calling through a ColumnFamilyHandle")
        return self.raw()

    def close(self) -> None:
        """Destroy the handle (owned handles only) and release the database."""
        with self._close_lock:
            ptr, self._ptr = self._ptr, None
        if ptr is None:
            return
        try:
            if self._owned:
                self._lib.rocks_column_family_handle_destroy(self._ref.raw(), ptr)
        finally:
            self._ref.release()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"id={self._id}"
        return f"<ColumnFamilyHandle {self._name!r} {state}>"


class DB(_Operations):
    """
    An open database.

    Use :meth:`open`, :meth:`open_for_read_only` or
    :meth:`open_with_column_families` rather than the constructor.
    """

    def __init__(self, path: str, db_ref: _DBRef, lib):
        self.path = path
        self._lib = lib
        self._ref = db_ref
        self._closed = False

    @classmethod
    def _adopt(cls, raw: int, lib, path: PathLike) -> "DB":
        path = os.fspath(path)
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if not raw:
            raise BridgeError(f"rocks_db_open returned NULL for {path}")
        logger.debug("Opened database at %s", path)
        return cls(path, _arena.register(raw, lib, path), lib)

    @classmethod
    def open(cls, path: PathLike, options: Optional[Options] = None) -> "DB":
        """
        Open (or create) a database.

        Args:
            path: Database directory.
            options: Open options. Defaults to ``Options(create_if_missing=True)``.

        Returns:
            DB instance.

        Raises:
            Status: The engine refused to open the database (e.g. IOError
                when another process holds the lock).
        """
        lib = _FFI.get_lib()
        if options is None:
            with Options(create_if_missing=True) as default:
                raw = invoke(lib.rocks_db_open, default.raw(), _path_bytes(path))
        else:
            raw = invoke(lib.rocks_db_open, options.raw(), _path_bytes(path))
        return cls._adopt(raw, lib, path)

    @classmethod
    def open_for_read_only(
        cls,
        path: PathLike,
        options: Optional[Options] = None,
        error_if_log_file_exist: bool = False,
    ) -> "DB":
        lib = _FFI.get_lib()
        flag = 1 if error_if_log_file_exist else 0
        if options is None:
            with Options() as default:
                raw = invoke(lib.rocks_db_open_for_read_only, default.raw(), _path_bytes(path), flag)
        else:
            raw = invoke(lib.rocks_db_open_for_read_only, options.raw(), _path_bytes(path), flag)
        return cls._adopt(raw, lib, path)

    @classmethod
    def open_with_column_families(
        cls,
        path: PathLike,
        options: Options,
        column_families: Union[Sequence[str], Mapping[str, Optional[Options]]],
    ) -> Tuple["DB", List[ColumnFamilyHandle]]:
        """
        Open a database together with the named column families.

        Args:
            path: Database directory.
            options: Database options.
            column_families: Column family names, or a mapping of name to
                per-family options (None uses ``options``). Every existing
                family must be listed.

        Returns:
            ``(db, handles)`` with one owned handle per requested family, in
            the order given.
        """
        if isinstance(column_families, Mapping):
            entries = list(column_families.items())
        else:
            entries = [(name, None) for name in column_families]
        if not entries:
            raise ValueError("column_families must name at least one column family")

        lib = _FFI.get_lib()
        n = len(entries)
        names = (ctypes.c_char_p * n)(*[name.encode("utf-8") for name, _ in entries])
        cf_options = (ctypes.c_void_p * n)(
            *[(cf_opts or options).raw() for _, cf_opts in entries]
        )
        handles = (ctypes.c_void_p * n)()
        raw = invoke(
            lib.rocks_db_open_column_families,
            options.raw(), _path_bytes(path), n, names, cf_options, handles,
        )
        db = cls._adopt(raw, lib, path)
        wrapped: List[ColumnFamilyHandle] = []
        try:
            for i in range(n):
                if not handles[i]:
                    raise BridgeError(f"no handle returned for column family {entries[i][0]!r}")
                ref = db._ref.share()
                try:
                    wrapped.append(ColumnFamilyHandle(handles[i], ref))
                except Exception:
                    ref.release()
                    raise
        except Exception:
            for j in range(len(wrapped) + 1, n):
                if handles[j]:
                    lib.rocks_column_family_handle_destroy(raw, handles[j])
            for handle in wrapped:
                handle.close()
            db.close()
            raise
        return db, wrapped

    @staticmethod
    def list_column_families(path: PathLike, options: Optional[Options] = None) -> List[str]:
        lib = _FFI.get_lib()
        count = ctypes.c_size_t()
        if options is None:
            with Options() as default:
                names = invoke(
                    lib.rocks_db_list_column_families, default.raw(), _path_bytes(path), ctypes.byref(count)
                )
        else:
            names = invoke(
                lib.rocks_db_list_column_families, options.raw(), _path_bytes(path), ctypes.byref(count)
            )
        if not names:
            return []
        try:
            result = []
            for i in range(count.value):
                size = ctypes.c_size_t()
                ptr = lib.rocks_column_family_names_get(names, i, ctypes.byref(size))
                result.append(view(ptr, size.value).decode("utf-8", errors="replace"))
            return result
        finally:
            lib.rocks_column_family_names_destroy(names)

    @staticmethod
    def destroy_db(path: PathLike, options: Optional[Options] = None) -> None:
        """Delete the database files at ``path``. The database must be closed."""
        lib = _FFI.get_lib()
        if options is None:
            with Options() as default:
                invoke(lib.rocks_destroy_db, default.raw(), _path_bytes(path))
        else:
            invoke(lib.rocks_destroy_db, options.raw(), _path_bytes(path))

    def _check_open(self) -> None:
        if self._closed:
            raise BridgeError("Database is closed")

    def _db(self) -> int:
        self._check_open()
        return self._ref.raw()

    def _db_ref(self) -> _DBRef:
        self._check_open()
        return self._ref

    def _cf(self, column_family: Optional[ColumnFamilyHandle]) -> Optional[int]:
        if column_family is None:
            return None
        if column_family._ref.db_id != self._ref.db_id:
            raise ValueError(f"{column_family!r} belongs to a different database")
        return column_family.raw()

    @property
    def closed(self) -> bool:
        return self._closed

    def default_column_family(self) -> ColumnFamilyHandle:
        """Unowned handle to the default column family (never destroyed natively)."""
        ref = self._db_ref().share()
        try:
            ptr = self._lib.rocks_db_default_column_family(ref.raw())
            return ColumnFamilyHandle(ptr, ref, owned=False)
        except Exception:
            ref.release()
            raise

    def create_column_family(self, name: str, options: Optional[Options] = None) -> ColumnFamilyHandle:
        ref = self._db_ref().share()
        try:
            if options is None:
                with Options() as default:
                    ptr = invoke(
                        self._lib.rocks_db_create_column_family,
                        ref.raw(), default.raw(), name.encode("utf-8"),
                    )
            else:
                ptr = invoke(
                    self._lib.rocks_db_create_column_family,
                    ref.raw(), options.raw(), name.encode("utf-8"),
                )
            return ColumnFamilyHandle(ptr, ref)
        except Exception:
            ref.release()
            raise

    def drop_column_family(self, column_family: ColumnFamilyHandle) -> None:
        """Drop the family's data. The handle itself still has to be closed."""
        invoke(self._lib.rocks_db_drop_column_family, self._db(), self._cf(column_family))

    def close(self) -> None:
        """Release this object's reference; the engine closes with the last one."""
        if self._closed:
            return
        self._closed = True
        self._ref.release()

    def __del__(self):
        if not getattr(self, "_closed", True):
            try:
                self.close()
            except Exception:
                logger.exception("Failed to close database at %s", self.path)

    def __enter__(self) -> "DB":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<DB {self.path!r}{' closed' if self._closed else ''}>"
