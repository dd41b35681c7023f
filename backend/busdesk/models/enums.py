"""
Enums for the bus operator console.

This module contains all enumeration types used by the models and the
workflow managers.
"""

from enum import Enum


class BookingStatus(str, Enum):
    """Status carried by a booking request."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class PanelState(str, Enum):
    """Visibility of one route's schedule panel."""
    HIDDEN = "hidden"
    LOADING = "loading"
    SHOWN = "shown"


class OperationState(str, Enum):
    """Submission state of a guarded write operation."""
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class FormKind(str, Enum):
    """Forms and panels whose visibility the view coordinator owns."""
    ROUTE = "route"
    SCHEDULE = "schedule"
    GENERATE = "generate"
    BOOKING = "booking"


class Severity(str, Enum):
    """Notification severity passed to the presenter."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SubmitOutcome(str, Enum):
    """Terminal result of a user-triggered operation."""
    SUCCESS = "success"
    INVALID = "invalid"      # Blocked by client-side validation
    FAILED = "failed"        # Transport or server error
    BUSY = "busy"            # Same operation already in flight
    CANCELLED = "cancelled"  # Confirmation declined


class ScheduleStatus(str, Enum):
    """Departure status of a schedule relative to now."""
    DEPARTED = "departed"
    BOARDING = "boarding"
    TODAY = "today"
    UPCOMING = "upcoming"
