"""
Bus console Pydantic models package.

This package contains the Pydantic v2 models for server entities, the
dataclass form state edited by the operator, and shared enumerations.
"""

# Enums
from .enums import (
    BookingStatus,
    PanelState,
    OperationState,
    FormKind,
    Severity,
    SubmitOutcome,
    ScheduleStatus,
)

# Server entities
from .bus import BusModel, SeatModel
from .route import RouteModel
from .schedule import ScheduleModel, ScheduleGenerationJobModel
from .booking import BookingRequestModel
from .dashboard import DashboardStatsModel

# Form state
from .forms import (
    FieldErrors,
    RouteForm,
    ScheduleForm,
    GenerateForm,
    BookingForm,
    first_invalid_field,
)

__all__ = [
    # Enums
    "BookingStatus",
    "PanelState",
    "OperationState",
    "FormKind",
    "Severity",
    "SubmitOutcome",
    "ScheduleStatus",

    # Entities
    "BusModel",
    "SeatModel",
    "RouteModel",
    "ScheduleModel",
    "ScheduleGenerationJobModel",
    "BookingRequestModel",
    "DashboardStatsModel",

    # Forms
    "FieldErrors",
    "RouteForm",
    "ScheduleForm",
    "GenerateForm",
    "BookingForm",
    "first_invalid_field",
]
