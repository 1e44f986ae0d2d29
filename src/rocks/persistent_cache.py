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


"""Secondary (on-disk) block cache."""

import os
from typing import Union

from ._ffi import _FFI
from .errors import invoke
from .handle import NativeHandle
from .slice import NativeString


class PersistentCache(NativeHandle):
    """
    Block cache tier backed by a directory on fast local storage.

    Args:
        path: Directory holding the cache files.
        size: Maximum size in bytes.
        optimized_for_nvm: Tune I/O for non-volatile memory.

    Raises:
        Status: The engine could not create the cache (e.g. ``IOError``).
    """

    _destroy_fn = "rocks_persistent_cache_destroy"
    _copy_fn = "rocks_persistent_cache_copy"

    def __init__(self, path: Union[str, os.PathLike], size: int, optimized_for_nvm: bool = False):
        lib = _FFI.get_lib()
        ptr = invoke(
            lib.rocks_persistent_cache_create,
            os.fsencode(path), size, 1 if optimized_for_nvm else 0,
        )
        super().__init__(ptr)

    def get_printable_options(self) -> str:
        with NativeString() as out:
            self._lib.rocks_persistent_cache_get_printable_options(self.raw(), out.raw())
            return out.value().decode("utf-8", errors="replace")
