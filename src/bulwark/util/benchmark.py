"""Wall-clock and monotonic timestamps for measuring request latency."""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class BenchmarkTimestamp:
    """Start marker of a request.

    ``wall_ms`` is the epoch time in milliseconds used for cooldowns and
    session expirations; ``perf_ns`` is a monotonic counter used only for
    measuring how long the request took.
    """

    wall_ms: int
    perf_ns: int

    @classmethod
    def now(cls, wall_ms: int | None = None) -> BenchmarkTimestamp:
        return cls(
            wall_ms=int(time.time() * 1000) if wall_ms is None else wall_ms,
            perf_ns=time.perf_counter_ns(),
        )

    def elapsed_ms(self) -> float:
        return (time.perf_counter_ns() - self.perf_ns) / 1_000_000


def epoch_ms() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)
