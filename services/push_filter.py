from __future__ import annotations

from models.events import DeviceNewStateEvent
from models.intervals import IntervalWindow
from models.records import WidgetConfig


def should_refresh(
    event: DeviceNewStateEvent,
    config: WidgetConfig,
    current_interval_minutes: int,
) -> bool:
    """Decide whether a new-state notification warrants refetching the chart.

    Only the last-hour view refreshes on push; a single new point barely
    moves the longer windows.
    """
    if current_interval_minutes != IntervalWindow.last_hour.minutes:
        return False
    feature_ids = config.resolved_feature_ids()
    if not feature_ids:
        return False
    return event.feature_id in feature_ids
