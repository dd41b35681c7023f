"""
Booking request model for the seat-locking booking flow.
"""

from typing import List
from pydantic import BaseModel, Field, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from .enums import BookingStatus


class BookingRequestModel(BaseModel):
    """
    Seat lock request submitted for one schedule.

    The seat number and label lists are derived from the selected seats and
    always line up index by index with ``seat_ids``.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    schedule_id: int = Field(..., description="Schedule being booked")
    seat_ids: List[int] = Field(..., min_length=1, description="Selected seat IDs in selection order")
    seat_numbers: List[int] = Field(..., min_length=1, description="Selected seat numbers")
    seat_labels: List[str] = Field(..., min_length=1, description="Selected seat labels")
    cid: str = Field(..., min_length=1, description="Applicant national ID")
    mobile_no: str = Field(..., min_length=1, description="Applicant mobile number")
    email: str = Field(..., min_length=1, description="Applicant email address")
    status: BookingStatus = Field(default=BookingStatus.PENDING, description="Requested booking status")

    @model_validator(mode="after")
    def check_seat_lists_aligned(self) -> "BookingRequestModel":
        if not (len(self.seat_ids) == len(self.seat_numbers) == len(self.seat_labels)):
            raise ValueError("seat_ids, seat_numbers and seat_labels must have the same length")
        return self
