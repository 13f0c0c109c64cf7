"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union

DisplayValue = Union[int, float, str]


class ChartType(str, Enum):
    line = "line"
    area = "area"
    bar = "bar"
    stepline = "stepline"


class WidgetPhase(str, Enum):
    """Coarse lifecycle stage derived from a widget state snapshot."""

    idle = "idle"
    loading = "loading"
    populated = "populated"
    empty = "empty"


@dataclass(frozen=True, slots=True)
class FeatureReading:
    """A single reading produced by a device feature."""

    feature_id: str
    device_name: str
    timestamp: datetime
    value: Optional[float]


@dataclass(frozen=True, slots=True)
class SeriesPoint:
    timestamp: datetime
    value: Optional[float]


@dataclass(frozen=True, slots=True)
class Series:
    """Ordered readings of one feature over the requested window."""

    name: str
    points: Tuple[SeriesPoint, ...] = ()


@dataclass(frozen=True, slots=True)
class DerivedStats:
    last_value_rounded: Optional[DisplayValue] = None
    variation_percent: Optional[float] = None


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of one aggregation fetch, ready to be merged into widget state."""

    empty_series: bool
    series: Tuple[Series, ...] = ()
    stats: DerivedStats = field(default_factory=DerivedStats)


@dataclass(frozen=True, slots=True)
class WidgetConfig:
    """Configuration supplied by whoever owns the widget.

    ``feature_id`` is the single-feature form older widgets were saved with;
    it is only consulted when ``feature_ids`` is absent.
    """

    feature_ids: Optional[FrozenSet[str]] = None
    feature_id: Optional[str] = None
    interval_window: Optional[str] = None
    title: Optional[str] = None
    unit: Optional[str] = None
    display_variation: bool = True
    display_axes: bool = False
    chart_type: ChartType = ChartType.line

    def resolved_feature_ids(self) -> FrozenSet[str]:
        if self.feature_ids is not None:
            return frozenset(self.feature_ids)
        if self.feature_id:
            return frozenset({self.feature_id})
        return frozenset()


@dataclass(frozen=True, slots=True)
class WidgetState:
    """Snapshot published to renderers; replaced wholesale on every update."""

    loading: bool = True
    series: Tuple[Series, ...] = ()
    empty_series: Optional[bool] = None
    stats: DerivedStats = field(default_factory=DerivedStats)
    dropdown_open: bool = False
    interval_minutes: int = 60

    @property
    def phase(self) -> WidgetPhase:
        if self.loading:
            return WidgetPhase.loading
        if self.empty_series is None:
            return WidgetPhase.idle
        if self.empty_series:
            return WidgetPhase.empty
        return WidgetPhase.populated
