"""Notification payloads broadcast on the in-process bus."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    device_new_state = "device.new-state"


@dataclass(frozen=True, slots=True)
class DeviceNewStateEvent:
    """A device feature reported a new reading."""

    feature_id: str
    device_name: Optional[str] = None
    value: Optional[float] = None
    created_at: Optional[datetime] = None
