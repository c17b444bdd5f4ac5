from dataclasses import dataclass, field
from datetime import datetime, timezone
import asyncio
from collections import defaultdict


@dataclass
class MetricsCollector:
    """Simple in-memory metrics collector.

    Counts are per-process; export to Prometheus or similar happens outside
    this service.
    """

    counters: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    timestamps: dict[str, datetime] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def increment(self, name: str, value: int = 1, labels: dict | None = None) -> None:
        """Increment a counter."""
        key = self._make_key(name, labels)
        async with self._lock:
            self.counters[key] += value
            self.timestamps[key] = datetime.now(timezone.utc)

    async def get_counter(self, name: str, labels: dict | None = None) -> int:
        """Get current counter value."""
        key = self._make_key(name, labels)
        return self.counters.get(key, 0)

    async def get_all(self) -> dict:
        """Get all metrics."""
        async with self._lock:
            return {
                "counters": dict(self.counters),
                "last_updated": {k: v.isoformat() for k, v in self.timestamps.items()}
            }

    def _make_key(self, name: str, labels: dict | None = None) -> str:
        """Create a unique key for a metric with labels."""
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


# Convenience functions for identity events
async def track_registration(collector: MetricsCollector, outcome: str) -> None:
    await collector.increment("registrations", 1, {"outcome": outcome})


async def track_login(collector: MetricsCollector, outcome: str) -> None:
    await collector.increment("logins", 1, {"outcome": outcome})


async def track_token_refresh(collector: MetricsCollector, outcome: str) -> None:
    await collector.increment("token_refreshes", 1, {"outcome": outcome})


async def track_recovery_request(collector: MetricsCollector, flow: str) -> None:
    await collector.increment("recovery_requests", 1, {"flow": flow})
