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


"""Point-in-time read views."""

from .handle import NativeHandle


class Snapshot(NativeHandle):
    """
    A consistent read view obtained with :meth:`DB.snapshot`.

    Example:
        with db.snapshot() as snap:
            old = db.get(b"k", read_options=rocks.ReadOptions(snapshot=snap))

    Releasing the snapshot lets compaction drop the versions it pinned.
    """

    def __init__(self, ptr: int, db_ref):
        super().__init__(ptr)
        self._db_ref = db_ref
        self._sequence_number = self._lib.rocks_snapshot_get_sequence_number(ptr)

    @property
    def sequence_number(self) -> int:
        return self._sequence_number

    def _destroy(self, ptr: int) -> None:
        try:
            self._lib.rocks_db_release_snapshot(self._db_ref.raw(), ptr)
        finally:
            self._db_ref.release()

    def release(self) -> None:
        self.close()
