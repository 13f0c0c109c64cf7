"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.schemas import (
    DeviceStatePayload,
    IntervalInfo,
    IntervalSelection,
    PublishResponse,
    WidgetConfigPayload,
    WidgetStateResponse,
)
from models.intervals import IntervalWindow
from models.records import FeatureReading
from services.controller import WidgetController
from services.registry import WidgetNotFoundError, WidgetRegistry, build_default_registry

router = APIRouter()


def get_registry() -> WidgetRegistry:
    return build_default_registry()


def _lookup(registry: WidgetRegistry, widget_id: str) -> WidgetController:
    try:
        return registry.get(widget_id)
    except WidgetNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc


@router.post(
    "/widgets",
    status_code=status.HTTP_201_CREATED,
    response_model=WidgetStateResponse,
    summary="Create a chart widget and start loading its data.",
)
async def create_widget(
    payload: WidgetConfigPayload,
    registry: WidgetRegistry = Depends(get_registry),
) -> WidgetStateResponse:
    config = payload.to_config()
    controller = registry.create(config)
    if not config.resolved_feature_ids():
        # Nothing to fetch; settle into the empty state before answering.
        await controller.wait_for_pending()
    return WidgetStateResponse.from_controller(controller)


@router.get(
    "/widgets/{widget_id}",
    response_model=WidgetStateResponse,
    summary="Current render state of a widget.",
)
async def get_widget(
    widget_id: str,
    registry: WidgetRegistry = Depends(get_registry),
) -> WidgetStateResponse:
    return WidgetStateResponse.from_controller(_lookup(registry, widget_id))


@router.put(
    "/widgets/{widget_id}/config",
    response_model=WidgetStateResponse,
    summary="Replace the configuration of a widget.",
)
async def update_widget_config(
    widget_id: str,
    payload: WidgetConfigPayload,
    registry: WidgetRegistry = Depends(get_registry),
) -> WidgetStateResponse:
    controller = _lookup(registry, widget_id)
    controller.reconfigure(payload.to_config())
    return WidgetStateResponse.from_controller(controller)


@router.post(
    "/widgets/{widget_id}/interval",
    response_model=WidgetStateResponse,
    summary="Switch the time window shown by a widget.",
)
async def select_widget_interval(
    widget_id: str,
    payload: IntervalSelection,
    registry: WidgetRegistry = Depends(get_registry),
) -> WidgetStateResponse:
    controller = _lookup(registry, widget_id)
    controller.select_interval(payload.window)
    return WidgetStateResponse.from_controller(controller)


@router.post(
    "/widgets/{widget_id}/dropdown",
    response_model=WidgetStateResponse,
    summary="Open or close the window selector of a widget.",
)
async def toggle_widget_dropdown(
    widget_id: str,
    registry: WidgetRegistry = Depends(get_registry),
) -> WidgetStateResponse:
    controller = _lookup(registry, widget_id)
    controller.toggle_dropdown()
    return WidgetStateResponse.from_controller(controller)


@router.delete(
    "/widgets/{widget_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Tear down a widget and stop listening for its updates.",
)
async def delete_widget(
    widget_id: str,
    registry: WidgetRegistry = Depends(get_registry),
) -> Response:
    try:
        await registry.delete(widget_id)
    except WidgetNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/intervals",
    response_model=list[IntervalInfo],
    summary="Time windows a widget can display.",
)
async def list_intervals() -> list[IntervalInfo]:
    return [IntervalInfo(name=window, minutes=window.minutes) for window in IntervalWindow]


@router.post(
    "/states",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=PublishResponse,
    summary="Report a new device feature state and notify widgets.",
)
async def publish_state(
    payload: DeviceStatePayload,
    registry: WidgetRegistry = Depends(get_registry),
) -> PublishResponse:
    reading = FeatureReading(
        feature_id=payload.feature_id,
        device_name=payload.device_name,
        timestamp=payload.created_at or datetime.now(timezone.utc),
        value=payload.value,
    )
    delivered = registry.ingest(reading)
    return PublishResponse(delivered=delivered)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
