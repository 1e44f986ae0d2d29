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


"""Block and row caches."""

from ._ffi import _FFI
from .handle import NativeHandle


class Cache(NativeHandle):
    """
    LRU cache shared by any number of option objects.

    Example:
        cache = rocks.Cache(64 << 20)
        opts.set_block_cache(cache)
    """

    _destroy_fn = "rocks_cache_destroy"

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        super().__init__(_FFI.get_lib().rocks_cache_create_lru(capacity))

    @classmethod
    def new_lru_cache(cls, capacity: int) -> "Cache":
        return cls(capacity)

    @property
    def usage(self) -> int:
        """Bytes currently charged to the cache."""
        return self._lib.rocks_cache_get_usage(self.raw())

    @property
    def pinned_usage(self) -> int:
        return self._lib.rocks_cache_get_pinned_usage(self.raw())

    @property
    def capacity(self) -> int:
        return self._lib.rocks_cache_get_capacity(self.raw())

    def set_capacity(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        self._lib.rocks_cache_set_capacity(self.raw(), capacity)
