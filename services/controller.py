"""Lifecycle and state management for a single chart widget."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Set, Union
from uuid import uuid4

from datasource.base import DataSourceError
from models.events import DeviceNewStateEvent, EventType
from models.intervals import IntervalWindow, minutes_of, resolve_minutes
from models.records import WidgetConfig, WidgetState
from services.event_bus import NotificationBus, Unsubscribe
from services.fetcher import AggregationFetcher
from services.push_filter import should_refresh

logger = logging.getLogger(__name__)


class WidgetController:
    """Owns the state of one chart widget between ``mount`` and ``destroy``.

    Every refresh, whatever triggered it, goes through :meth:`refresh`.
    Requests are numbered; a completion is only applied when it belongs to
    the most recent request, so a slow response for an old window can never
    overwrite data for the window currently selected.
    """

    def __init__(
        self,
        config: WidgetConfig,
        fetcher: AggregationFetcher,
        bus: NotificationBus,
        widget_id: Optional[str] = None,
    ) -> None:
        self.widget_id = widget_id or str(uuid4())
        self._config = config
        self._fetcher = fetcher
        self._bus = bus
        self._interval_minutes = resolve_minutes(config.interval_window)
        self._state = WidgetState(loading=True, interval_minutes=self._interval_minutes)
        self._request_seq = 0
        self._tasks: Set[asyncio.Task[None]] = set()
        self._unsubscribe: Optional[Unsubscribe] = None
        self._destroyed = False

    @property
    def config(self) -> WidgetConfig:
        return self._config

    @property
    def state(self) -> WidgetState:
        return self._state

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def mount(self) -> Optional[asyncio.Task[None]]:
        """Start the first fetch and listen for new device states."""
        if self._destroyed:
            raise RuntimeError(f"Widget {self.widget_id} has already been destroyed.")
        task = self._trigger_refresh()
        if self._unsubscribe is None:
            self._unsubscribe = self._bus.subscribe(EventType.device_new_state, self.handle_new_state)
        return task

    def reconfigure(self, config: WidgetConfig) -> Optional[asyncio.Task[None]]:
        """Adopt a new configuration, refetching when the charted data may differ."""
        if self._destroyed:
            return None
        previous = self._config
        self._config = config

        interval_changed = previous.interval_window != config.interval_window
        features_changed = previous.resolved_feature_ids() != config.resolved_feature_ids()
        title_changed = previous.title != config.title
        unit_changed = previous.unit != config.unit

        if interval_changed:
            self._interval_minutes = resolve_minutes(config.interval_window)
            self._apply(interval_minutes=self._interval_minutes)
        if interval_changed or features_changed or title_changed or unit_changed:
            return self._trigger_refresh()
        return None

    def select_interval(self, window: Union[IntervalWindow, str]) -> Optional[asyncio.Task[None]]:
        minutes = minutes_of(window)
        if minutes is None:
            raise ValueError(f"Unknown interval window {window!r}.")
        if self._destroyed:
            return None
        self._interval_minutes = minutes
        self._apply(interval_minutes=minutes, dropdown_open=False)
        return self._trigger_refresh()

    def toggle_dropdown(self) -> WidgetState:
        if not self._destroyed:
            self._apply(dropdown_open=not self._state.dropdown_open)
        return self._state

    def handle_new_state(self, event: DeviceNewStateEvent) -> None:
        if self._destroyed:
            return
        if should_refresh(event, self._config, self._interval_minutes):
            self._trigger_refresh()

    async def refresh(self) -> None:
        """Fetch data for the current configuration and merge it into state."""
        if self._destroyed:
            return
        self._request_seq += 1
        seq = self._request_seq
        feature_ids = self._config.resolved_feature_ids()
        interval_minutes = self._interval_minutes
        context = self._log_context(seq, feature_ids, interval_minutes)

        self._apply(loading=True)
        try:
            result = await self._fetcher.fetch(feature_ids, interval_minutes)
        except DataSourceError as exc:
            logger.warning(
                "Chart data fetch failed, keeping previous data",
                extra={**context, "reason": str(exc)},
            )
            if self._is_current(seq):
                self._apply(loading=False)
            return
        except Exception:
            logger.exception("Unexpected error while fetching chart data", extra=context)
            if self._is_current(seq):
                self._apply(loading=False)
            return

        if not self._is_current(seq):
            logger.debug("Discarding superseded chart data", extra={**context, "status": "stale"})
            return

        self._apply(
            loading=False,
            series=result.series,
            empty_series=result.empty_series,
            stats=result.stats,
        )

    async def wait_for_pending(self) -> None:
        """Wait until every fetch started so far has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.debug("Widget destroyed", extra={"widget_id": self.widget_id})

    def _trigger_refresh(self) -> Optional[asyncio.Task[None]]:
        if self._destroyed:
            return None
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_current(self, seq: int) -> bool:
        return not self._destroyed and seq == self._request_seq

    def _apply(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)

    def _log_context(self, seq: int, feature_ids: Any, interval_minutes: int) -> Dict[str, Any]:
        return {
            "widget_id": self.widget_id,
            "request_seq": seq,
            "feature_ids": sorted(feature_ids),
            "interval_minutes": interval_minutes,
        }
