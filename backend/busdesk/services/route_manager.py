"""
Route lifecycle for one bus: list, create, update and delete.

Writes are validated client-side, guarded against double submission and
always followed by a full re-fetch of the route list; server-assigned fields
are never merged optimistically.
"""

import logging
import re
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..api.config import ApiError
from ..api.responses import decode_collection
from ..models.enums import FormKind, Severity, SubmitOutcome
from ..models.forms import FieldErrors, RouteForm, first_invalid_field, form_field_names
from ..models.route import RouteModel
from ..utils.timefmt import parse_positive_float, parse_positive_int
from .operation_guard import OperationGuard
from .presenter import DELETE_CONFIRM_LABEL, DELETE_CONFIRM_TITLE, Presenter, failure_message

if TYPE_CHECKING:
    from ..api.client import BookingApiClient
    from .view_coordinator import ViewCoordinator

logger = logging.getLogger(__name__)

_TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class RouteManager:
    """
    Route state container for the bus being viewed.

    Holds the loaded route list, the route form with its field errors, the
    route being edited, and the submission guards.
    """

    def __init__(self, api: "BookingApiClient", presenter: Presenter, view: "ViewCoordinator"):
        """
        Args:
            api: Booking API collaborator
            presenter: Confirmation / notification collaborator
            view: Owning view coordinator
        """
        self.api = api
        self.presenter = presenter
        self.view = view

        self.routes: List[RouteModel] = []
        self.form = RouteForm()
        self.errors: FieldErrors = {}
        self.editing: Optional[RouteModel] = None
        self.pending_delete: Optional[RouteModel] = None
        self.loading = False

        self.submit_guard = OperationGuard("route submit")
        self.delete_guard = OperationGuard("route delete")

    @property
    def submitting(self) -> bool:
        return self.submit_guard.in_flight

    def find_route(self, route_id: int) -> Optional[RouteModel]:
        """Loaded route with ``route_id``, if any."""
        return next((route for route in self.routes if route.id == route_id), None)

    async def list_routes(self, bus_id: int, refresh: bool = False) -> List[RouteModel]:
        """
        Fetch the routes of ``bus_id`` and replace the in-memory list.

        Entries without an identifier, or failing validation, are dropped.
        On failure the previous list is kept and the operator is notified. A
        list arriving after the view moved to another bus is discarded.

        Args:
            bus_id: Bus whose routes to load
            refresh: Post-mutation refresh; leaves the ``loading`` flag unset

        Returns:
            The current route list
        """
        self.loading = not refresh

        try:
            response = await self.api.get_routes(bus_id)
        except ApiError as e:
            logger.error(f"Error loading routes for bus {bus_id}: {e}")
            await self.presenter.notify(Severity.ERROR, "Error", "Failed to load routes.")
            return self.routes
        finally:
            self.loading = False

        if not self.view.active or bus_id != self.view.bus_id:
            return self.routes

        self.routes = decode_collection(response, "routes", RouteModel)
        logger.info(f"Loaded {len(self.routes)} routes for bus {bus_id}")
        return self.routes

    async def refresh(self) -> List[RouteModel]:
        """Re-fetch the route list of the current bus."""
        return await self.list_routes(self.view.bus_id, refresh=True)

    # Form handling

    def start_create(self) -> None:
        """Open an empty route form."""
        self.form = RouteForm()
        self.errors = {}
        self.editing = None
        self.view.show_form(FormKind.ROUTE)

    def start_edit(self, route: RouteModel) -> None:
        """Open the route form pre-filled from ``route``."""
        self.form = RouteForm.from_route(route)
        self.errors = {}
        self.editing = route
        self.view.show_form(FormKind.ROUTE)

    def reset_form(self) -> None:
        """Clear and hide the route form."""
        self.form = RouteForm()
        self.errors = {}
        self.editing = None
        self.view.hide_form(FormKind.ROUTE)

    def reset(self) -> None:
        """Forget the routes of the previous bus."""
        self.routes = []
        self.pending_delete = None
        self.reset_form()

    def update_field(self, field: str, value: Any) -> None:
        """Set one form field and clear its pending error."""
        if field not in form_field_names(self.form):
            raise ValueError(f"Unknown route form field: {field}")
        setattr(self.form, field, value)
        self.errors.pop(field, None)

    @staticmethod
    def validate(form: RouteForm) -> FieldErrors:
        """
        Validate a route form, collecting every field error at once.

        Returns:
            Field name -> message; empty when the form is valid
        """
        errors: FieldErrors = {}
        source = form.source.strip()
        destination = form.destination.strip()

        if not source:
            errors["source"] = "Source is required"
        if not destination:
            errors["destination"] = "Destination is required"
        elif source and source.casefold() == destination.casefold():
            errors["destination"] = "Destination must be different from source"

        if parse_positive_float(form.distance) is None:
            errors["distance"] = "Distance must be greater than 0"
        if parse_positive_float(form.base_fare) is None:
            errors["base_fare"] = "Base fare must be greater than 0"
        if parse_positive_int(form.estimated_duration) is None:
            errors["estimated_duration"] = "Estimated duration must be greater than 0"

        custom_fare = str(form.custom_fare).strip()
        if custom_fare:
            try:
                if float(custom_fare) < 0:
                    errors["custom_fare"] = "Custom fare cannot be negative"
            except ValueError:
                errors["custom_fare"] = "Custom fare must be a number"

        departure = str(form.departure_time).strip()
        if departure and not _TIME_OF_DAY.match(departure):
            errors["departure_time"] = "Departure time must be HH:MM"

        return errors

    @staticmethod
    def build_payload(form: RouteForm, bus_id: int) -> Dict[str, Any]:
        """
        Build the wire payload from a validated form.

        ``customFare`` defaults to 0 when blank and ``active`` to True when unset.
        """
        custom_fare = str(form.custom_fare).strip()
        payload: Dict[str, Any] = {
            "busId": bus_id,
            "source": form.source.strip(),
            "destination": form.destination.strip(),
            "distance": float(form.distance),
            "baseFare": float(form.base_fare),
            "customFare": float(custom_fare) if custom_fare else 0,
            "estimatedDuration": parse_positive_int(form.estimated_duration),
            "active": True if form.active is None else bool(form.active),
        }
        departure = str(form.departure_time).strip()
        if departure:
            payload["departureTime"] = departure
        return payload

    async def submit(self) -> SubmitOutcome:
        """
        Validate the form and create or update the route.

        On validation failure the errors are stored and the first invalid
        field receives focus; no call is made. On success the form is reset
        and hidden and the list re-fetched. On failure the form stays
        populated for retry.
        """
        self.errors = self.validate(self.form)
        if self.errors:
            field = first_invalid_field(RouteForm.FIELD_ORDER, self.errors)
            logger.info(f"Route form rejected: {sorted(self.errors)}")
            self.view.request_focus(FormKind.ROUTE, field)
            return SubmitOutcome.INVALID

        payload = self.build_payload(self.form, self.view.bus_id)
        if self.editing is not None:
            outcome = await self.update_route(self.editing.id, payload)
        else:
            outcome = await self.create_route(payload)

        if outcome is SubmitOutcome.SUCCESS:
            self.reset_form()
        return outcome

    async def create_route(self, payload: Dict[str, Any]) -> SubmitOutcome:
        """Create a route and refresh the list."""
        return await self._write(
            lambda: self.api.create_route(payload),
            success_message="Route created successfully.",
        )

    async def update_route(self, route_id: int, payload: Dict[str, Any]) -> SubmitOutcome:
        """Update a route and refresh the list."""
        return await self._write(
            lambda: self.api.update_route(route_id, payload),
            success_message="Route updated successfully.",
        )

    async def _write(self, call, success_message: str) -> SubmitOutcome:
        async with self.submit_guard.acquire() as acquired:
            if not acquired:
                return SubmitOutcome.BUSY

            try:
                await call()
            except ApiError as e:
                logger.error(f"Error saving route: {e}")
                await self.presenter.notify(
                    Severity.ERROR, "Error",
                    failure_message("Failed to save route. Please try again.", e),
                )
                return SubmitOutcome.FAILED

            logger.info(success_message)
            await self.presenter.notify(Severity.SUCCESS, "Success!", success_message)
            await self.refresh()
            return SubmitOutcome.SUCCESS

    async def delete_route(self, route: RouteModel) -> SubmitOutcome:
        """
        Delete a route after explicit confirmation.

        Two steps: the intent is recorded as ``pending_delete``, then the
        presenter asks for irreversible confirmation. Declining has no side
        effects.
        """
        async with self.delete_guard.acquire() as acquired:
            if not acquired:
                return SubmitOutcome.BUSY

            self.pending_delete = route
            try:
                confirmed = await self.presenter.confirm(
                    DELETE_CONFIRM_TITLE,
                    f"This will permanently delete the route from {route.source} to {route.destination}.",
                    DELETE_CONFIRM_LABEL,
                )
                if not confirmed:
                    logger.info(f"Deletion of route {route.id} declined")
                    return SubmitOutcome.CANCELLED

                await self.api.delete_route(route.id)
            except ApiError as e:
                logger.error(f"Error deleting route {route.id}: {e}")
                await self.presenter.notify(
                    Severity.ERROR, "Error",
                    failure_message("Failed to delete route. Please try again.", e),
                )
                return SubmitOutcome.FAILED
            finally:
                self.pending_delete = None

            logger.info(f"Deleted route {route.id}")
            await self.presenter.notify(Severity.SUCCESS, "Deleted!", "Route has been deleted.")
            if self.editing is not None and self.editing.id == route.id:
                self.reset_form()
            self.view.on_route_deleted(route.id)
            await self.refresh()
            return SubmitOutcome.SUCCESS
