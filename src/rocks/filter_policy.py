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


"""Table filter policies."""

from ._ffi import _FFI
from .handle import NativeHandle


class BloomFilterPolicy(NativeHandle):
    """Bloom filter with roughly ``bits_per_key`` bits per key (10 gives ~1% false positives)."""

    _destroy_fn = "rocks_filterpolicy_destroy"

    def __init__(self, bits_per_key: float = 10.0):
        if bits_per_key <= 0:
            raise ValueError("bits_per_key must be positive")
        self.bits_per_key = float(bits_per_key)
        super().__init__(_FFI.get_lib().rocks_filterpolicy_create_bloom(self.bits_per_key))
