"""
Workflow layer for the bus operator console.

This module contains the state containers behind the bus management screen:
route and schedule lifecycle, derived schedule fields, seat booking, the
screen coordinator, and the dashboard aggregator.
"""

from .operation_guard import OperationGuard
from .presenter import Presenter, failure_message, DELETE_CONFIRM_TITLE, DELETE_CONFIRM_LABEL
from .derived_fields import DerivedFieldResolver
from .route_manager import RouteManager
from .schedule_manager import ScheduleManager
from .seat_booking import SeatBookingWorkflow
from .view_coordinator import ViewCoordinator
from .dashboard import DashboardAggregator, booking_amount

__all__ = [
    # Collaborators
    "OperationGuard",
    "Presenter",
    "failure_message",
    "DELETE_CONFIRM_TITLE",
    "DELETE_CONFIRM_LABEL",

    # Managers
    "DerivedFieldResolver",
    "RouteManager",
    "ScheduleManager",
    "SeatBookingWorkflow",
    "ViewCoordinator",

    # Dashboard
    "DashboardAggregator",
    "booking_amount",
]
