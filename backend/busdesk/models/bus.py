"""
Bus and seat models for the bus operator console.

The bus is read-only for this console; its optional seat list doubles as the
seat inventory for booking when present.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class SeatModel(BaseModel):
    """
    Individual seat on a bus, or per-schedule seat availability entry.

    Servers report the booked flag either as ``booked``/``isBooked`` or as an
    inverted ``available`` flag; both are folded into ``booked``.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int = Field(..., description="Seat identifier")
    seat_number: int = Field(..., ge=1, description="Seat number (1-based)")
    seat_label: Optional[str] = Field(None, description="Printed label (e.g. 'A1')")
    seat_type: Optional[str] = Field(None, description="Seat type (e.g. 'window', 'aisle')")
    booked: bool = Field(default=False, description="Whether the seat is already booked")

    @model_validator(mode="before")
    @classmethod
    def normalize_booked_flag(cls, data: Any) -> Any:
        if isinstance(data, dict) and "booked" not in data:
            if "isBooked" in data:
                data = {**data, "booked": bool(data["isBooked"])}
            elif "available" in data:
                data = {**data, "booked": not bool(data["available"])}
        return data

    @property
    def label(self) -> str:
        """Label shown to the operator, falling back to the seat number."""
        return self.seat_label or str(self.seat_number)


class BusModel(BaseModel):
    """
    Bus details shown in the console header.

    ``seats`` is optional; an empty list means seat inventory has to be
    fetched per schedule.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    bus_number: str = Field(default="", description="Registration / fleet number")
    bus_name: Optional[str] = Field(None, description="Display name")
    bus_type: Optional[str] = Field(None, description="Bus type (e.g. 'Standard', 'Deluxe')")
    total_seats: int = Field(default=0, ge=0, description="Total seat count")
    layout: Optional[str] = Field(None, description="Seat layout descriptor (e.g. '2x2')")
    seats: List[SeatModel] = Field(default_factory=list, description="Known seat inventory")

    @property
    def display_name(self) -> str:
        """Header title, e.g. 'Druk Express (BT-001)'."""
        if self.bus_name:
            return f"{self.bus_name} ({self.bus_number})"
        return self.bus_number or f"Bus {self.id}"
