"""
View coordinator for the bus management screen.

Owns the route, schedule and booking state containers for one bus, the
visibility of the four forms, and the screen lifecycle (load once per bus,
close on unmount). Switching bus ids starts a fresh load.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from pydantic import ValidationError

from ..api.config import ApiError
from ..api.responses import extract_entity
from ..models.bus import BusModel
from ..models.enums import FormKind, Severity
from .presenter import Presenter
from .route_manager import RouteManager
from .schedule_manager import ScheduleManager
from .seat_booking import SeatBookingWorkflow

if TYPE_CHECKING:
    from ..api.client import BookingApiClient

logger = logging.getLogger(__name__)


class ViewCoordinator:
    """
    Screen-level coordinator wiring the managers to their collaborators.

    Features:
    - Initial load runs once for the current bus; a repeat call joins it
    - Switching to another bus discards the previous bus's state and loads again
    - Form visibility and focus requests, forwarded to the presenter
    - Cross-manager callbacks (route deleted, booking completed)
    - ``close()`` makes late responses no-ops
    """

    def __init__(self, api: "BookingApiClient", presenter: Presenter, bus_id: Optional[int] = None):
        """
        Args:
            api: Booking API collaborator
            presenter: Confirmation / notification collaborator
            bus_id: Bus to manage; may be supplied later to ``load``
        """
        self.api = api
        self.presenter = presenter
        self.bus_id = bus_id
        self.bus: Optional[BusModel] = None
        self.active = True

        self.visible: Dict[FormKind, bool] = {kind: False for kind in FormKind}
        self.focus: Optional[Tuple[FormKind, Optional[str]]] = None

        self.routes = RouteManager(api, presenter, self)
        self.schedules = ScheduleManager(api, presenter, self, self.routes)
        self.booking = SeatBookingWorkflow(api, presenter, self)

        self._current_load: Optional[Tuple[int, "asyncio.Task[None]"]] = None

    async def load(self, bus_id: Optional[int] = None) -> None:
        """
        Load the bus and its routes.

        Runs once while the bus id stays the same; concurrent or repeated
        calls await that load. A different bus id resets the screen and
        loads the new bus, even if it was shown before.
        """
        if bus_id is not None and bus_id != self.bus_id:
            self._switch_bus(bus_id)
        if self.bus_id is None:
            raise ValueError("No bus id to load")

        if self._current_load is not None and self._current_load[0] == self.bus_id:
            logger.debug(f"Initial load for bus {self.bus_id} already started")
            task = self._current_load[1]
        else:
            task = asyncio.ensure_future(self._load(self.bus_id))
            self._current_load = (self.bus_id, task)
        await task

    def _switch_bus(self, bus_id: int) -> None:
        if self.bus_id is not None:
            logger.info(f"Switching view from bus {self.bus_id} to bus {bus_id}")
            self.bus = None
            self.routes.reset()
            self.schedules.reset()
            self.booking.close_booking()
        self.bus_id = bus_id
        self._current_load = None

    async def _load(self, bus_id: int) -> None:
        logger.info(f"Loading bus {bus_id}")
        try:
            response = await self.api.get_bus(bus_id)
        except ApiError as e:
            logger.error(f"Error loading bus {bus_id}: {e}")
            await self.presenter.notify(Severity.ERROR, "Error", "Failed to load bus details.")
            response = None

        if not self.active or bus_id != self.bus_id:
            return

        entity = extract_entity(response, "bus") if response is not None else None
        try:
            self.bus = BusModel.model_validate(entity) if entity else None
        except ValidationError as e:
            logger.warning(f"Malformed bus {bus_id} payload: {e}")
            self.bus = None
        await self.routes.list_routes(bus_id)

    # Forms

    def show_form(self, kind: FormKind) -> None:
        self.visible[kind] = True
        self.request_focus(kind)

    def hide_form(self, kind: FormKind) -> None:
        self.visible[kind] = False
        if self.focus is not None and self.focus[0] is kind:
            self.focus = None

    def is_visible(self, kind: FormKind) -> bool:
        return self.visible.get(kind, False)

    def request_focus(self, kind: FormKind, field: Optional[str] = None) -> None:
        """Bring a form (and optionally one of its fields) into view."""
        self.focus = (kind, field)
        self.presenter.scroll_into_view(kind, field)

    # Cross-manager callbacks

    def on_route_deleted(self, route_id: int) -> None:
        self.schedules.forget_route(route_id)

    async def on_booking_completed(self, route_id: int) -> None:
        """Seat availability changed; refresh the route's cached schedules."""
        await self.schedules.invalidate_route(route_id)

    def close(self) -> None:
        """Unmount the screen; responses arriving afterwards change nothing."""
        self.active = False
        logger.info(f"Closed view for bus {self.bus_id}")
