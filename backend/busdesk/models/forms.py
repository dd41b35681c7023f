"""
Form state for the console's input panels.

Form fields hold raw operator input as strings. Parsing happens when a payload
is built, after validation has passed.
"""

from dataclasses import dataclass, fields
from typing import ClassVar, Dict, Optional, Tuple

from .enums import BookingStatus
from .route import RouteModel
from .schedule import ScheduleModel
from ..utils.timefmt import format_form_datetime, format_number

FieldErrors = Dict[str, str]


def first_invalid_field(order: Tuple[str, ...], errors: FieldErrors) -> Optional[str]:
    """Return the first field of ``order`` with an error, in form order."""
    for name in order:
        if name in errors:
            return name
    return next(iter(errors), None)


@dataclass
class RouteForm:
    """Route create/edit form."""

    FIELD_ORDER: ClassVar[Tuple[str, ...]] = (
        "source", "destination", "distance", "base_fare", "estimated_duration",
        "custom_fare", "departure_time",
    )

    source: str = ""
    destination: str = ""
    distance: str = ""
    base_fare: str = ""
    estimated_duration: str = ""
    custom_fare: str = ""
    departure_time: str = ""
    active: Optional[bool] = None

    @classmethod
    def from_route(cls, route: RouteModel) -> "RouteForm":
        return cls(
            source=route.source or "",
            destination=route.destination or "",
            distance=format_number(route.distance),
            base_fare=format_number(route.base_fare),
            estimated_duration=format_number(route.estimated_duration),
            custom_fare=format_number(route.custom_fare) if route.custom_fare else "",
            departure_time=route.departure_time or "",
            active=route.active,
        )


@dataclass
class ScheduleForm:
    """Schedule create/edit form; every value is the raw operator input."""

    FIELD_ORDER: ClassVar[Tuple[str, ...]] = ("route_id", "departure_time", "arrival_time", "price")

    route_id: str = ""
    departure_time: str = ""
    arrival_time: str = ""
    price: str = ""

    @classmethod
    def from_schedule(cls, schedule: ScheduleModel) -> "ScheduleForm":
        return cls(
            route_id=str(schedule.route_id),
            departure_time=format_form_datetime(schedule.departure_time),
            arrival_time=format_form_datetime(schedule.arrival_time),
            price=format_number(schedule.price),
        )


@dataclass
class GenerateForm:
    """Bulk schedule generation form."""

    FIELD_ORDER: ClassVar[Tuple[str, ...]] = ("start_date", "days")

    start_date: str = ""
    days: str = "1"


@dataclass
class BookingForm:
    """Applicant details entered alongside the seat selection."""

    FIELD_ORDER: ClassVar[Tuple[str, ...]] = ("seats", "cid", "mobile_no", "email")

    cid: str = ""
    mobile_no: str = ""
    email: str = ""
    status: BookingStatus = BookingStatus.PENDING


def form_field_names(form) -> Tuple[str, ...]:
    """Names of the editable fields of a form dataclass."""
    return tuple(f.name for f in fields(form))
