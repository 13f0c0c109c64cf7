from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Callable, Collection, Dict, List

from models.records import FeatureReading


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _downsample(readings: List[FeatureReading], max_points: int) -> List[FeatureReading]:
    if max_points <= 0 or len(readings) <= max_points:
        return readings
    if max_points == 1:
        return [readings[-1]]
    step = (len(readings) - 1) / (max_points - 1)
    return [readings[round(index * step)] for index in range(max_points)]


class InMemoryStatesSource:
    """Process-local stand-in for the aggregated states API.

    Readings are kept per feature in timestamp order and served in the same
    payload shape the remote API returns.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._readings: Dict[str, List[FeatureReading]] = defaultdict(list)
        self._clock = clock
        self._lock = Lock()

    def record(self, reading: FeatureReading) -> None:
        with self._lock:
            readings = self._readings[reading.feature_id]
            readings.append(reading)
            readings.sort(key=lambda item: item.timestamp)

    def feature_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._readings)

    async def aggregated_states(
        self,
        feature_ids: Collection[str],
        interval_minutes: int,
        max_points: int = 100,
    ) -> List[Dict[str, Any]]:
        since = self._clock() - timedelta(minutes=interval_minutes)
        payload: List[Dict[str, Any]] = []
        with self._lock:
            for feature_id in sorted(feature_ids):
                readings = self._readings.get(feature_id)
                if not readings:
                    continue
                window = [reading for reading in readings if reading.timestamp >= since]
                payload.append(
                    {
                        "device": {"name": readings[-1].device_name},
                        "values": [
                            {"created_at": reading.timestamp.isoformat(), "value": reading.value}
                            for reading in _downsample(window, max_points)
                        ],
                    }
                )
        return payload

    async def close(self) -> None:
        return None
