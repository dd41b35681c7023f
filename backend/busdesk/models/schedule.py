"""
Schedule models for the bus operator console.

This module contains the dated departure instance of a route and the
parameters of a server-side bulk generation job.
"""

from datetime import date, datetime, timedelta
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import ScheduleStatus
from ..utils.timefmt import parse_datetime


class ScheduleModel(BaseModel):
    """
    One timed departure of a route.

    ``available_seats`` is server-reported and never computed client-side.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    route_id: int = Field(..., description="Owning route ID")
    bus_id: Optional[int] = Field(None, description="Owning bus ID")
    departure_time: datetime = Field(..., description="Departure timestamp")
    arrival_time: datetime = Field(..., description="Arrival timestamp")
    price: float = Field(..., gt=0, description="Ticket price")
    available_seats: Optional[int] = Field(None, ge=0, description="Server-reported free seats")

    @field_validator("departure_time", "arrival_time", mode="before")
    @classmethod
    def parse_timestamp(cls, value: Any) -> Any:
        parsed = parse_datetime(value) if isinstance(value, str) else None
        return parsed or value

    @model_validator(mode="after")
    def check_arrival_after_departure(self) -> "ScheduleModel":
        if self.arrival_time <= self.departure_time:
            raise ValueError("arrival_time must be after departure_time")
        return self

    def status(self, now: Optional[datetime] = None) -> ScheduleStatus:
        """
        Classify the departure relative to ``now``.

        Args:
            now: Reference time, defaults to the current local time

        Returns:
            ScheduleStatus: departed, boarding (< 1h), today (< 24h) or upcoming
        """
        now = now or datetime.now(self.departure_time.tzinfo)
        remaining = self.departure_time - now

        if remaining < timedelta(0):
            return ScheduleStatus.DEPARTED
        if remaining < timedelta(hours=1):
            return ScheduleStatus.BOARDING
        if remaining < timedelta(hours=24):
            return ScheduleStatus.TODAY
        return ScheduleStatus.UPCOMING


class ScheduleGenerationJobModel(BaseModel):
    """
    Bulk schedule generation request.

    The server produces the schedules; the client keeps no identity for the
    job beyond these parameters.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    bus_id: int = Field(..., description="Bus whose routes get schedules")
    start_date: date = Field(..., description="First day to generate")
    days: int = Field(..., ge=1, description="Number of days to generate")
