"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

import math
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from models.intervals import IntervalWindow, name_of
from models.records import ChartType, WidgetConfig, WidgetPhase
from services.controller import WidgetController

JsonNumber = Union[int, float, str]


def _json_number(value: Optional[JsonNumber]) -> Optional[JsonNumber]:
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return "NaN"
        return "Infinity" if value > 0 else "-Infinity"
    return value


def _direction(value: Optional[float]) -> Optional[str]:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    if value > 0:
        return "up"
    if value < 0:
        return "down"
    return "flat"


class WidgetConfigPayload(BaseModel):
    """Chart widget configuration as saved on a dashboard."""

    feature_ids: Optional[List[str]] = Field(
        default=None, description="Device feature selectors charted by the widget."
    )
    feature_id: Optional[str] = Field(
        default=None, description="Single feature selector used by older widgets."
    )
    interval: Optional[IntervalWindow] = None
    title: Optional[str] = None
    unit: Optional[str] = None
    display_variation: bool = True
    display_axes: bool = False
    chart_type: ChartType = ChartType.line

    def to_config(self) -> WidgetConfig:
        return WidgetConfig(
            feature_ids=frozenset(self.feature_ids) if self.feature_ids is not None else None,
            feature_id=self.feature_id,
            interval_window=self.interval.value if self.interval is not None else None,
            title=self.title,
            unit=self.unit,
            display_variation=self.display_variation,
            display_axes=self.display_axes,
            chart_type=self.chart_type,
        )


class IntervalSelection(BaseModel):
    window: IntervalWindow


class IntervalInfo(BaseModel):
    name: IntervalWindow
    minutes: int


class SeriesPointPayload(BaseModel):
    x: datetime
    y: Optional[float] = None


class SeriesPayload(BaseModel):
    name: str
    data: List[SeriesPointPayload] = Field(default_factory=list)


class WidgetStateResponse(BaseModel):
    """Read-only snapshot of a widget for renderers."""

    widget_id: str
    phase: WidgetPhase
    loading: bool
    empty_series: Optional[bool] = None
    interval: Optional[IntervalWindow] = None
    interval_minutes: int
    dropdown_open: bool = False
    title: Optional[str] = None
    unit: Optional[str] = None
    display_variation: bool = True
    display_axes: bool = False
    chart_type: ChartType = ChartType.line
    last_value_rounded: Optional[JsonNumber] = Field(
        default=None, description="Average last value across features, rounded for display."
    )
    variation_percent: Optional[JsonNumber] = Field(
        default=None,
        description="Average first-to-last change in percent; may be 'Infinity' or '-Infinity'.",
    )
    variation_direction: Optional[str] = None
    series: List[SeriesPayload] = Field(default_factory=list)

    @classmethod
    def from_controller(cls, controller: WidgetController) -> "WidgetStateResponse":
        state = controller.state
        config = controller.config
        return cls(
            widget_id=controller.widget_id,
            phase=state.phase,
            loading=state.loading,
            empty_series=state.empty_series,
            interval=name_of(state.interval_minutes),
            interval_minutes=state.interval_minutes,
            dropdown_open=state.dropdown_open,
            title=config.title,
            unit=config.unit,
            display_variation=config.display_variation,
            display_axes=config.display_axes,
            chart_type=config.chart_type,
            last_value_rounded=_json_number(state.stats.last_value_rounded),
            variation_percent=_json_number(state.stats.variation_percent),
            variation_direction=_direction(state.stats.variation_percent),
            series=[
                SeriesPayload(
                    name=item.name,
                    data=[SeriesPointPayload(x=point.timestamp, y=point.value) for point in item.points],
                )
                for item in state.series
            ],
        )


class DeviceStatePayload(BaseModel):
    """A new reading reported by a device feature."""

    feature_id: str
    device_name: str
    value: Optional[float] = None
    created_at: Optional[datetime] = None


class PublishResponse(BaseModel):
    delivered: int = Field(..., ge=0, description="Number of widgets notified.")
