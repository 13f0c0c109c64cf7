"""Fetch aggregated feature history and derive widget statistics."""

from __future__ import annotations

import logging
import math
from typing import Collection, List, Optional, Sequence

from pydantic import ValidationError

from datasource.base import AggregatedStatesSource, DataSourceError
from datasource.schemas import AggregatedStateRecord, AggregatedStatesPayload
from models.records import DerivedStats, FetchResult, Series, SeriesPoint
from services.statistics import average, round_display, variation

logger = logging.getLogger(__name__)

DEFAULT_MAX_POINTS = 100


class AggregationFetcher:
    """Turns one aggregated-states request into chart series and summary stats."""

    def __init__(self, source: AggregatedStatesSource, max_points: int = DEFAULT_MAX_POINTS) -> None:
        self.source = source
        self.max_points = max_points

    async def fetch(
        self,
        feature_ids: Collection[str],
        interval_minutes: int,
        max_points: Optional[int] = None,
    ) -> FetchResult:
        if not feature_ids:
            return FetchResult(empty_series=True)

        raw = await self.source.aggregated_states(
            feature_ids,
            interval_minutes,
            max_points if max_points is not None else self.max_points,
        )
        try:
            records = AggregatedStatesPayload.validate_python(raw)
        except ValidationError as exc:
            raise DataSourceError(
                f"Aggregated states payload is malformed ({exc.error_count()} errors)."
            ) from exc

        try:
            series = tuple(_to_series(record) for record in records)
        except (TypeError, ValueError) as exc:
            raise DataSourceError(f"Aggregated states payload cannot be charted: {exc}") from exc
        empty_series = all(not item.points for item in series)
        stats = DerivedStats() if empty_series else derive_stats(series)
        return FetchResult(empty_series=empty_series, series=series, stats=stats)


def _to_series(record: AggregatedStateRecord) -> Series:
    ordered = sorted(record.values, key=lambda value: value.created_at)
    return Series(
        name=record.device.name,
        points=tuple(SeriesPoint(timestamp=value.created_at, value=value.value) for value in ordered),
    )


def derive_stats(series: Sequence[Series]) -> DerivedStats:
    """Average first-to-last variation and last value over every non-empty series.

    Features whose first or last point has no value do not take part in
    the corresponding average. Opposite infinite variations cancel out to
    no variation at all rather than NaN.
    """
    variations: List[float] = []
    last_values: List[float] = []
    for item in series:
        if not item.points:
            continue
        first_value = item.points[0].value
        last_value = item.points[-1].value
        feature_variation = variation(first_value, last_value)
        if feature_variation is not None:
            variations.append(feature_variation)
        if last_value is not None:
            last_values.append(last_value)

    return DerivedStats(
        last_value_rounded=round_display(average(last_values)) if last_values else None,
        variation_percent=_finite_or_none(average(variations)) if variations else None,
    )


def _finite_or_none(value: float) -> Optional[float]:
    return None if math.isnan(value) else value
