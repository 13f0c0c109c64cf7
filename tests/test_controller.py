"""Behavioural tests for the widget controller lifecycle."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from datasource.base import DataSourceError
from models.events import DeviceNewStateEvent, EventType
from models.intervals import IntervalWindow
from models.records import WidgetConfig, WidgetPhase
from services.controller import WidgetController
from services.event_bus import NotificationBus
from services.fetcher import AggregationFetcher

_START = datetime(2024, 1, 1, tzinfo=timezone.utc)
_HOUR = IntervalWindow.last_hour.minutes
_DAY = IntervalWindow.last_day.minutes


def _record(name: str, *values: Optional[float]) -> Dict[str, Any]:
    return {
        "device": {"name": name},
        "values": [
            {"created_at": (_START + timedelta(minutes=index)).isoformat(), "value": value}
            for index, value in enumerate(values)
        ],
    }


class ScriptedSource:
    """Answers per window size and records every request it receives."""

    def __init__(self, responses: Optional[Dict[int, List[Dict[str, Any]]]] = None) -> None:
        self.responses = responses or {}
        self.error: Optional[Exception] = None
        self.gates: Dict[int, asyncio.Event] = {}
        self.calls: List[tuple] = []

    async def aggregated_states(self, feature_ids, interval_minutes, max_points=100):
        self.calls.append((frozenset(feature_ids), interval_minutes))
        gate = self.gates.get(interval_minutes)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return self.responses.get(interval_minutes, [])

    async def close(self) -> None:
        return None


def _controller(
    source: ScriptedSource,
    config: WidgetConfig,
    bus: Optional[NotificationBus] = None,
) -> WidgetController:
    return WidgetController(config, AggregationFetcher(source), bus or NotificationBus())


def _config(*feature_ids: str, window: Optional[str] = "last-hour", **kwargs: Any) -> WidgetConfig:
    return WidgetConfig(feature_ids=frozenset(feature_ids), interval_window=window, **kwargs)


def test_construction_starts_in_loading_with_configured_window() -> None:
    controller = _controller(ScriptedSource(), _config("f1", window="last-week"))

    assert controller.state.loading is True
    assert controller.state.phase is WidgetPhase.loading
    assert controller.interval_minutes == IntervalWindow.last_week.minutes
    assert controller.mounted is False


def test_unset_or_unknown_window_defaults_to_last_hour() -> None:
    assert _controller(ScriptedSource(), _config("f1", window=None)).interval_minutes == _HOUR
    assert _controller(ScriptedSource(), _config("f1", window="fortnight")).interval_minutes == _HOUR


def test_populates_state_from_single_feature() -> None:
    source = ScriptedSource({_HOUR: [_record("Thermometer", 10, 20)]})

    async def scenario() -> WidgetController:
        controller = _controller(source, _config("f1"))
        controller.mount()
        await controller.wait_for_pending()
        return controller

    controller = asyncio.run(scenario())

    state = controller.state
    assert state.loading is False
    assert state.empty_series is False
    assert state.phase is WidgetPhase.populated
    assert state.stats.last_value_rounded == 20
    assert state.stats.variation_percent == 100
    assert state.series[0].name == "Thermometer"
    assert source.calls == [(frozenset({"f1"}), _HOUR)]


def test_empty_feature_set_goes_straight_to_empty_without_requests() -> None:
    source = ScriptedSource({_HOUR: [_record("unused", 1)]})

    async def scenario() -> WidgetController:
        controller = _controller(source, WidgetConfig(feature_ids=frozenset()))
        controller.mount()
        await controller.wait_for_pending()
        return controller

    controller = asyncio.run(scenario())

    assert controller.state.loading is False
    assert controller.state.empty_series is True
    assert controller.state.phase is WidgetPhase.empty
    assert source.calls == []


def test_legacy_single_feature_widget_is_fetched() -> None:
    source = ScriptedSource({_HOUR: [_record("Legacy", 1, 2)]})

    async def scenario() -> WidgetController:
        controller = _controller(source, WidgetConfig(feature_id="legacy"))
        controller.mount()
        await controller.wait_for_pending()
        return controller

    controller = asyncio.run(scenario())

    assert source.calls == [(frozenset({"legacy"}), _HOUR)]
    assert controller.state.stats.variation_percent == 100


def test_failed_fetch_keeps_previous_data_and_clears_loading(caplog) -> None:
    source = ScriptedSource({_HOUR: [_record("Thermometer", 10, 15)]})

    async def scenario() -> tuple:
        controller = _controller(source, _config("f1"))
        controller.mount()
        await controller.wait_for_pending()
        before = controller.state
        source.error = DataSourceError("connection refused")
        with caplog.at_level(logging.WARNING):
            await controller.refresh()
        return controller, before

    controller, before = asyncio.run(scenario())

    after = controller.state
    assert after.loading is False
    assert after.series == before.series
    assert after.stats == before.stats
    assert after.empty_series is False
    records = [record for record in caplog.records if record.name == "services.controller"]
    assert any("fetch failed" in record.getMessage() for record in records)
    assert any(getattr(record, "widget_id", None) == controller.widget_id for record in records)
    assert any(getattr(record, "reason", None) == "connection refused" for record in records)


def test_first_fetch_failure_leaves_widget_idle() -> None:
    source = ScriptedSource()
    source.error = DataSourceError("unreachable")

    async def scenario() -> WidgetController:
        controller = _controller(source, _config("f1"))
        controller.mount()
        await controller.wait_for_pending()
        return controller

    controller = asyncio.run(scenario())

    assert controller.state.loading is False
    assert controller.state.series == ()
    assert controller.state.phase is WidgetPhase.idle


def test_malformed_payload_is_treated_like_a_failed_fetch() -> None:
    source = ScriptedSource({_HOUR: [{"device": {}, "values": "nope"}]})

    async def scenario() -> WidgetController:
        controller = _controller(source, _config("f1"))
        controller.mount()
        await controller.wait_for_pending()
        return controller

    controller = asyncio.run(scenario())

    assert controller.state.loading is False
    assert controller.state.empty_series is None


def test_mixed_timezone_timestamps_do_not_leave_widget_loading() -> None:
    payload = [
        {
            "device": {"name": "Clock"},
            "values": [
                {"created_at": "2024-01-01T00:00:00", "value": 1},
                {"created_at": "2024-01-01T00:01:00Z", "value": 2},
            ],
        }
    ]
    source = ScriptedSource({_HOUR: payload})

    async def scenario() -> WidgetController:
        controller = _controller(source, _config("f1"))
        controller.mount()
        await controller.wait_for_pending()
        return controller

    controller = asyncio.run(scenario())

    assert controller.state.loading is False
    assert controller.state.empty_series is None


def test_unexpected_source_error_is_logged_and_clears_loading(caplog) -> None:
    source = ScriptedSource({_HOUR: [_record("Thermometer", 10, 15)]})

    async def scenario() -> tuple:
        controller = _controller(source, _config("f1"))
        controller.mount()
        await controller.wait_for_pending()
        before = controller.state
        source.error = OSError("disk gone")
        with caplog.at_level(logging.ERROR):
            await controller.refresh()
        return controller, before

    controller, before = asyncio.run(scenario())

    after = controller.state
    assert after.loading is False
    assert after.series == before.series
    assert after.stats == before.stats
    records = [record for record in caplog.records if record.name == "services.controller"]
    assert any(record.levelno == logging.ERROR and record.exc_info for record in records)
    assert any(getattr(record, "widget_id", None) == controller.widget_id for record in records)


def test_push_event_for_unrelated_feature_does_not_fetch() -> None:
    source = ScriptedSource({_HOUR: [_record("Thermometer", 1, 2)]})
    bus = NotificationBus()

    async def scenario() -> None:
        controller = _controller(source, _config("f1"), bus=bus)
        controller.mount()
        await controller.wait_for_pending()
        bus.publish(EventType.device_new_state, DeviceNewStateEvent(feature_id="f2"))
        await controller.wait_for_pending()

    asyncio.run(scenario())

    assert len(source.calls) == 1


def test_push_event_for_charted_feature_refetches_last_hour() -> None:
    source = ScriptedSource({_HOUR: [_record("Thermometer", 1, 2)]})
    bus = NotificationBus()

    async def scenario() -> WidgetController:
        controller = _controller(source, _config("f1"), bus=bus)
        controller.mount()
        await controller.wait_for_pending()
        source.responses[_HOUR] = [_record("Thermometer", 1, 2, 4)]
        bus.publish(EventType.device_new_state, DeviceNewStateEvent(feature_id="f1", value=4))
        await controller.wait_for_pending()
        return controller

    controller = asyncio.run(scenario())

    assert len(source.calls) == 2
    assert controller.state.stats.last_value_rounded == 4
    assert controller.state.stats.variation_percent == 300


def test_push_event_is_ignored_outside_last_hour() -> None:
    source = ScriptedSource({_DAY: [_record("Thermometer", 1, 2)]})
    bus = NotificationBus()

    async def scenario() -> None:
        controller = _controller(source, _config("f1", window="last-day"), bus=bus)
        controller.mount()
        await controller.wait_for_pending()
        bus.publish(EventType.device_new_state, DeviceNewStateEvent(feature_id="f1"))
        await controller.wait_for_pending()

    asyncio.run(scenario())

    assert source.calls == [(frozenset({"f1"}), _DAY)]


def test_stale_response_never_overwrites_newer_window() -> None:
    source = ScriptedSource(
        {
            _HOUR: [_record("Thermometer", 10, 11)],
            _DAY: [_record("Thermometer", 10, 30)],
        }
    )

    async def scenario() -> tuple:
        source.gates = {_HOUR: asyncio.Event(), _DAY: asyncio.Event()}
        controller = _controller(source, _config("f1"))
        hour_task = controller.mount()
        await asyncio.sleep(0)
        day_task = controller.select_interval(IntervalWindow.last_day)
        await asyncio.sleep(0)

        source.gates[_DAY].set()
        await day_task
        after_day = controller.state

        source.gates[_HOUR].set()
        await hour_task
        await controller.wait_for_pending()
        return controller, after_day

    controller, after_day = asyncio.run(scenario())

    assert source.calls == [(frozenset({"f1"}), _HOUR), (frozenset({"f1"}), _DAY)]
    assert after_day.stats.last_value_rounded == 30
    assert controller.state == after_day
    assert controller.state.interval_minutes == _DAY
    assert controller.state.stats.variation_percent == 200
    assert controller.state.loading is False


def test_select_interval_closes_dropdown_and_refetches() -> None:
    source = ScriptedSource({_HOUR: [_record("T", 1, 2)], _DAY: [_record("T", 2, 3)]})

    async def scenario() -> WidgetController:
        controller = _controller(source, _config("f1"))
        controller.mount()
        await controller.wait_for_pending()
        controller.toggle_dropdown()
        assert controller.state.dropdown_open is True
        controller.select_interval("last-day")
        await controller.wait_for_pending()
        controller.select_interval("last-day")
        await controller.wait_for_pending()
        return controller

    controller = asyncio.run(scenario())

    assert controller.state.dropdown_open is False
    assert controller.state.interval_minutes == _DAY
    assert [call[1] for call in source.calls] == [_HOUR, _DAY, _DAY]
    assert controller.state.stats.variation_percent == 50


def test_select_unknown_interval_is_rejected() -> None:
    controller = _controller(ScriptedSource(), _config("f1"))

    with pytest.raises(ValueError, match="last-century"):
        controller.select_interval("last-century")


def test_reconfigure_refetches_only_for_relevant_changes() -> None:
    source = ScriptedSource({_HOUR: [_record("T", 1, 2)], _DAY: [_record("T", 1, 3)]})
    base = _config("f1", title="Temperature", unit="celsius")

    async def scenario() -> tuple:
        controller = _controller(source, base)
        controller.mount()
        await controller.wait_for_pending()

        display_only = controller.reconfigure(
            _config("f1", title="Temperature", unit="celsius", display_axes=True)
        )
        title_task = controller.reconfigure(_config("f1", title="Kitchen", unit="celsius"))
        await controller.wait_for_pending()
        interval_task = controller.reconfigure(_config("f1", window="last-day", title="Kitchen", unit="celsius"))
        await controller.wait_for_pending()
        features_task = controller.reconfigure(
            _config("f1", "f2", window="last-day", title="Kitchen", unit="celsius")
        )
        await controller.wait_for_pending()
        return controller, display_only, title_task, interval_task, features_task

    controller, display_only, title_task, interval_task, features_task = asyncio.run(scenario())

    assert display_only is None
    assert title_task is not None
    assert interval_task is not None
    assert features_task is not None
    assert controller.interval_minutes == _DAY
    assert controller.config.display_axes is False
    assert source.calls == [
        (frozenset({"f1"}), _HOUR),
        (frozenset({"f1"}), _HOUR),
        (frozenset({"f1"}), _DAY),
        (frozenset({"f1", "f2"}), _DAY),
    ]


def test_reconfigure_to_empty_features_switches_to_empty_state() -> None:
    source = ScriptedSource({_HOUR: [_record("T", 1, 2)]})

    async def scenario() -> WidgetController:
        controller = _controller(source, _config("f1"))
        controller.mount()
        await controller.wait_for_pending()
        controller.reconfigure(_config())
        await controller.wait_for_pending()
        return controller

    controller = asyncio.run(scenario())

    assert controller.state.empty_series is True
    assert controller.state.loading is False
    assert len(source.calls) == 1


def test_subscription_spans_mount_to_destroy() -> None:
    bus = NotificationBus()
    source = ScriptedSource()

    async def scenario() -> None:
        first = _controller(source, _config("f1"), bus=bus)
        second = _controller(source, _config("f2"), bus=bus)
        assert bus.subscriber_count(EventType.device_new_state) == 0

        first.mount()
        first.mount()
        second.mount()
        await first.wait_for_pending()
        await second.wait_for_pending()
        assert bus.subscriber_count(EventType.device_new_state) == 2

        await first.destroy()
        await first.destroy()
        assert bus.subscriber_count(EventType.device_new_state) == 1
        assert first.mounted is False

        await second.destroy()
        assert bus.subscriber_count(EventType.device_new_state) == 0

    asyncio.run(scenario())


def test_destroy_discards_in_flight_fetch() -> None:
    source = ScriptedSource({_HOUR: [_record("T", 1, 2)]})
    bus = NotificationBus()

    async def scenario() -> WidgetController:
        source.gates = {_HOUR: asyncio.Event()}
        controller = _controller(source, _config("f1"), bus=bus)
        task = controller.mount()
        await asyncio.sleep(0)
        await controller.destroy()
        source.gates[_HOUR].set()
        assert task is not None and task.cancelled()
        bus.publish(EventType.device_new_state, DeviceNewStateEvent(feature_id="f1"))
        assert controller.reconfigure(_config("f9")) is None
        assert controller.select_interval("last-day") is None
        return controller

    controller = asyncio.run(scenario())

    assert controller.destroyed is True
    assert controller.state.loading is True
    assert controller.state.series == ()
    assert len(source.calls) == 1


def test_mount_after_destroy_is_an_error() -> None:
    async def scenario() -> None:
        controller = _controller(ScriptedSource(), _config("f1"))
        await controller.destroy()
        controller.mount()

    with pytest.raises(RuntimeError, match="destroyed"):
        asyncio.run(scenario())
