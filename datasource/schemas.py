"""Pydantic models for the ``aggregated_states`` response payload."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class DeviceRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str


class StateValue(BaseModel):
    """One aggregated point; ``value`` is missing when the sensor reported nothing."""

    model_config = ConfigDict(extra="ignore")

    created_at: datetime
    value: Optional[float] = None


class AggregatedStateRecord(BaseModel):
    """Aggregated history of a single device feature."""

    model_config = ConfigDict(extra="ignore")

    device: DeviceRef
    values: List[StateValue] = Field(default_factory=list)


AggregatedStatesPayload = TypeAdapter(List[AggregatedStateRecord])
