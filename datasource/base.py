"""Contract shared by the aggregated-states data sources."""

from __future__ import annotations

from typing import Any, Collection, Dict, List, Protocol, runtime_checkable


class DataSourceError(RuntimeError):
    """Raised when aggregated states cannot be retrieved or understood."""


@runtime_checkable
class AggregatedStatesSource(Protocol):
    async def aggregated_states(
        self,
        feature_ids: Collection[str],
        interval_minutes: int,
        max_points: int = 100,
    ) -> List[Dict[str, Any]]:
        ...

    async def close(self) -> None:
        ...
