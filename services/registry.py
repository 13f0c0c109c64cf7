"""Keeps the widgets created through the HTTP surface alive until deleted."""

from __future__ import annotations

import logging
from datetime import timezone
from functools import lru_cache
from typing import Dict, List, Optional

from datasource.base import AggregatedStatesSource
from datasource.http_source import HttpAggregatedStatesSource
from datasource.memory_source import InMemoryStatesSource
from models.events import DeviceNewStateEvent, EventType
from models.records import FeatureReading, WidgetConfig
from services.controller import WidgetController
from services.event_bus import NotificationBus
from services.fetcher import AggregationFetcher
from settings import get_settings

logger = logging.getLogger(__name__)


class WidgetNotFoundError(KeyError):
    pass


class WidgetRegistry:
    """Creates, looks up and tears down widget controllers sharing one bus and data source."""

    def __init__(
        self,
        source: AggregatedStatesSource,
        bus: Optional[NotificationBus] = None,
        max_points: int = 100,
    ) -> None:
        self.source = source
        self.bus = bus or NotificationBus()
        self.fetcher = AggregationFetcher(source, max_points=max_points)
        self._widgets: Dict[str, WidgetController] = {}

    def create(self, config: WidgetConfig) -> WidgetController:
        controller = WidgetController(config, self.fetcher, self.bus)
        self._widgets[controller.widget_id] = controller
        controller.mount()
        logger.info(
            "Widget created",
            extra={
                "widget_id": controller.widget_id,
                "feature_ids": sorted(config.resolved_feature_ids()),
                "interval_minutes": controller.interval_minutes,
            },
        )
        return controller

    def get(self, widget_id: str) -> WidgetController:
        controller = self._widgets.get(widget_id)
        if controller is None:
            raise WidgetNotFoundError(f"Widget {widget_id!r} not found.")
        return controller

    def widgets(self) -> List[WidgetController]:
        return list(self._widgets.values())

    async def delete(self, widget_id: str) -> None:
        controller = self._widgets.pop(widget_id, None)
        if controller is None:
            raise WidgetNotFoundError(f"Widget {widget_id!r} not found.")
        await controller.destroy()
        logger.info("Widget deleted", extra={"widget_id": widget_id})

    def ingest(self, reading: FeatureReading) -> int:
        """Record ``reading`` when the source is local and announce it to every widget."""
        if reading.timestamp.tzinfo is None:
            reading = FeatureReading(
                feature_id=reading.feature_id,
                device_name=reading.device_name,
                timestamp=reading.timestamp.replace(tzinfo=timezone.utc),
                value=reading.value,
            )
        if isinstance(self.source, InMemoryStatesSource):
            self.source.record(reading)
        event = DeviceNewStateEvent(
            feature_id=reading.feature_id,
            device_name=reading.device_name,
            value=reading.value,
            created_at=reading.timestamp,
        )
        return self.bus.publish(EventType.device_new_state, event)

    async def close(self) -> None:
        while self._widgets:
            _, controller = self._widgets.popitem()
            await controller.destroy()
        await self.source.close()


@lru_cache
def build_default_registry() -> WidgetRegistry:
    """Factory that wires the registry with the configured data source."""
    settings = get_settings()
    source: AggregatedStatesSource
    if settings.data_source_url:
        source = HttpAggregatedStatesSource(settings.data_source_url, timeout=settings.request_timeout)
    else:
        source = InMemoryStatesSource()
    return WidgetRegistry(source=source, max_points=settings.max_points)
