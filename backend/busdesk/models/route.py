"""
Route model for the bus operator console.

A route is a source/destination pairing owned by one bus, carrying the fare
and duration defaults that schedules derive from.
"""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel


class RouteModel(BaseModel):
    """
    Route as returned by the server.

    Distances are kilometres, fares are in the operator's currency and the
    estimated duration is in minutes.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    bus_id: Optional[int] = Field(None, description="Owning bus ID")
    source: str = Field(..., min_length=1, description="Departure point")
    destination: str = Field(..., min_length=1, description="Arrival point")
    distance: float = Field(..., gt=0, description="Distance in kilometres")
    base_fare: float = Field(..., gt=0, description="Default fare for schedules")
    custom_fare: Optional[float] = Field(None, ge=0, description="Fare override, 0 when unused")
    estimated_duration: int = Field(..., gt=0, description="Travel time in minutes")
    departure_time: Optional[str] = Field(None, description="Default departure time-of-day (HH:MM)")
    active: bool = Field(default=True, description="Whether the route is bookable")

    @property
    def label(self) -> str:
        return f"{self.source} → {self.destination}"
