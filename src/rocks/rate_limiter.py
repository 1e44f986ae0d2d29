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


"""I/O rate limiting for flush and compaction."""

from ._ffi import _FFI
from .handle import NativeHandle


class RateLimiter(NativeHandle):
    """
    Token bucket limiting background write throughput.

    Args:
        rate_bytes_per_sec: Total write budget.
        refill_period_us: How often tokens are refilled.
        fairness: Odds (1/fairness) that low priority requests jump the queue.
    """

    _destroy_fn = "rocks_ratelimiter_destroy"

    def __init__(self, rate_bytes_per_sec: int, refill_period_us: int = 100 * 1000, fairness: int = 10):
        if rate_bytes_per_sec <= 0:
            raise ValueError("rate_bytes_per_sec must be positive")
        super().__init__(
            _FFI.get_lib().rocks_ratelimiter_create(rate_bytes_per_sec, refill_period_us, fairness)
        )

    @property
    def bytes_per_second(self) -> int:
        return self._lib.rocks_ratelimiter_get_bytes_per_second(self.raw())

    def set_bytes_per_second(self, rate_bytes_per_sec: int) -> None:
        if rate_bytes_per_sec <= 0:
            raise ValueError("rate_bytes_per_sec must be positive")
        self._lib.rocks_ratelimiter_set_bytes_per_second(self.raw(), rate_bytes_per_sec)
