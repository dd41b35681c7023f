"""
Schedule lifecycle per route: cached listing, create, update, delete and
bulk generation over a date range.

Schedules are cached per route id in a ResourceCache. Each route's panel
moves independently through ``hidden -> loading -> shown``; a repeat request
for a cached or loading route toggles the panel instead of fetching again.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Union

from ..api.config import ApiError
from ..api.responses import decode_collection
from ..cache.resource_cache import ResourceCache
from ..models.enums import FormKind, PanelState, Severity, SubmitOutcome
from ..models.forms import FieldErrors, GenerateForm, ScheduleForm, first_invalid_field, form_field_names
from ..models.schedule import ScheduleGenerationJobModel, ScheduleModel
from ..utils.timefmt import (
    format_wire_datetime,
    parse_date,
    parse_datetime,
    parse_positive_float,
    parse_positive_int,
)
from .derived_fields import DerivedFieldResolver
from .operation_guard import OperationGuard
from .presenter import DELETE_CONFIRM_LABEL, DELETE_CONFIRM_TITLE, Presenter, failure_message

if TYPE_CHECKING:
    from ..api.client import BookingApiClient
    from .route_manager import RouteManager
    from .view_coordinator import ViewCoordinator

logger = logging.getLogger(__name__)


class ScheduleManager:
    """
    Schedule state container for the bus being viewed.

    Features:
    - Per-route schedule cache with single-flight fetches
    - Independent per-route panel state keyed by route id
    - Schedule form with derived arrival time and price
    - Bulk generation form, enabled only when the bus has routes
    """

    def __init__(
        self,
        api: "BookingApiClient",
        presenter: Presenter,
        view: "ViewCoordinator",
        routes: "RouteManager",
    ):
        """
        Args:
            api: Booking API collaborator
            presenter: Confirmation / notification collaborator
            view: Owning view coordinator
            routes: Route manager supplying the selectable routes
        """
        self.api = api
        self.presenter = presenter
        self.view = view
        self.routes = routes

        self.cache = ResourceCache("schedules")
        self.panels: Dict[int, PanelState] = {}
        self.resolver = DerivedFieldResolver(routes.find_route)

        self.form = ScheduleForm()
        self.errors: FieldErrors = {}
        self.editing: Optional[ScheduleModel] = None

        self.generate_form = GenerateForm()
        self.generate_errors: FieldErrors = {}

        self.submit_guard = OperationGuard("schedule submit")
        self.delete_guard = OperationGuard("schedule delete")
        self.generate_guard = OperationGuard("schedule generate")

    @property
    def submitting(self) -> bool:
        return self.submit_guard.in_flight

    @property
    def generating(self) -> bool:
        return self.generate_guard.in_flight

    @property
    def can_generate(self) -> bool:
        """Bulk generation needs at least one route on the bus."""
        return bool(self.routes.routes)

    def panel_state(self, route_id: int) -> PanelState:
        return self.panels.get(route_id, PanelState.HIDDEN)

    def expanded_routes(self) -> List[int]:
        """Route ids whose schedule panel is currently shown."""
        return [route_id for route_id, state in self.panels.items() if state is PanelState.SHOWN]

    def schedules_for(self, route_id: int) -> List[ScheduleModel]:
        """Cached schedules of a route, without fetching."""
        return self.cache.peek(route_id, [])

    # Listing

    async def list_schedules_for_route(self, route_id: int, force: bool = False) -> List[ScheduleModel]:
        """
        Show (or hide) the schedules of one route.

        Without ``force`` this toggles: a shown or loading panel is hidden, a
        hidden panel with cached data is shown without a fetch, and only a
        hidden, uncached panel triggers a fetch. With ``force`` the cache entry
        is invalidated and re-fetched (``shown -> loading -> shown``).

        Args:
            route_id: Route whose schedules to show
            force: Bypass the cache (post-mutation refresh)

        Returns:
            The route's schedules, or an empty list when hidden or failed
        """
        state = self.panel_state(route_id)

        if not force:
            if state is PanelState.SHOWN:
                self.panels[route_id] = PanelState.HIDDEN
                return self.schedules_for(route_id)
            if state is PanelState.LOADING:
                # Collapse while the fetch finishes; its result is still cached
                self.panels[route_id] = PanelState.HIDDEN
                return []
            if self.cache.contains(route_id):
                self.panels[route_id] = PanelState.SHOWN
                return self.cache.get(route_id)
        else:
            self.cache.invalidate(route_id)

        self.panels[route_id] = PanelState.LOADING
        try:
            schedules = await self.cache.get_or_fetch(route_id, lambda: self._fetch_schedules(route_id))
        except ApiError as e:
            logger.error(f"Error loading schedules for route {route_id}: {e}")
            if self.panels.get(route_id) is PanelState.LOADING:
                self.panels[route_id] = PanelState.HIDDEN
            await self.presenter.notify(Severity.ERROR, "Error", "Failed to load schedules.")
            return []

        if self.view.active and self.panels.get(route_id) is PanelState.LOADING:
            self.panels[route_id] = PanelState.SHOWN
        return schedules

    async def _fetch_schedules(self, route_id: int) -> List[ScheduleModel]:
        response = await self.api.get_schedules_by_route(route_id)
        schedules = decode_collection(response, "schedules", ScheduleModel)
        logger.info(f"Loaded {len(schedules)} schedules for route {route_id}")
        return schedules

    async def invalidate_route(self, route_id: int) -> None:
        """
        Drop a route's cached schedules after a mutation.

        A route currently being viewed is reloaded right away; any other
        route is refetched lazily the next time it is expanded.
        """
        if self.panel_state(route_id) in (PanelState.SHOWN, PanelState.LOADING):
            await self.list_schedules_for_route(route_id, force=True)
        else:
            self.cache.invalidate(route_id)

    async def invalidate_routes(self, route_ids: Iterable[Optional[int]]) -> None:
        for route_id in {route_id for route_id in route_ids if route_id is not None}:
            await self.invalidate_route(route_id)

    async def invalidate_all(self) -> None:
        """Drop every cached schedule list, reloading the shown ones."""
        await self.invalidate_routes(set(self.cache.keys()) | set(self.panels))

    def forget_route(self, route_id: int) -> None:
        """Discard all state of a deleted route."""
        self.cache.invalidate(route_id)
        self.panels.pop(route_id, None)

    def reset(self) -> None:
        """Drop every cached schedule, panel and open form."""
        self.cache.clear()
        self.panels.clear()
        self.reset_form()
        self.reset_generate_form()

    # Form handling

    def start_create(self, route_id: Optional[int] = None) -> None:
        """Open an empty schedule form, optionally with a route pre-selected."""
        self.form = ScheduleForm()
        self.errors = {}
        self.editing = None
        if route_id is not None:
            self.resolver.apply(self.form, "route_id", str(route_id))
        self.view.show_form(FormKind.SCHEDULE)

    def start_edit(self, schedule: ScheduleModel) -> None:
        """Open the schedule form pre-filled from ``schedule``."""
        self.form = ScheduleForm.from_schedule(schedule)
        self.errors = {}
        self.editing = schedule
        self.view.show_form(FormKind.SCHEDULE)

    def reset_form(self) -> None:
        """Clear and hide the schedule form."""
        self.form = ScheduleForm()
        self.errors = {}
        self.editing = None
        self.view.hide_form(FormKind.SCHEDULE)

    def update_field(self, field: str, value: Any) -> None:
        """Set one form field, recompute derived fields and clear its error."""
        if field not in form_field_names(self.form):
            raise ValueError(f"Unknown schedule form field: {field}")
        self.resolver.apply(self.form, field, value)
        self.errors.pop(field, None)

    @staticmethod
    def validate(form: ScheduleForm) -> FieldErrors:
        """
        Validate a schedule form, collecting every field error at once.

        Returns:
            Field name -> message; empty when the form is valid
        """
        errors: FieldErrors = {}

        if parse_positive_int(form.route_id) is None:
            errors["route_id"] = "Route is required"

        departure = parse_datetime(form.departure_time)
        arrival = parse_datetime(form.arrival_time)

        if not str(form.departure_time).strip():
            errors["departure_time"] = "Departure time is required"
        elif departure is None:
            errors["departure_time"] = "Departure time is not a valid date and time"

        if not str(form.arrival_time).strip():
            errors["arrival_time"] = "Arrival time is required"
        elif arrival is None:
            errors["arrival_time"] = "Arrival time is not a valid date and time"

        if parse_positive_float(form.price) is None:
            errors["price"] = "Price must be greater than 0"

        if departure is not None and arrival is not None and arrival <= departure:
            errors["arrival_time"] = "Arrival time must be after departure time"

        return errors

    @staticmethod
    def build_payload(form: ScheduleForm, bus_id: int) -> Dict[str, Any]:
        """Build the wire payload from a validated form; timestamps in wire format."""
        return {
            "busId": bus_id,
            "routeId": parse_positive_int(form.route_id),
            "departureTime": format_wire_datetime(parse_datetime(form.departure_time)),
            "arrivalTime": format_wire_datetime(parse_datetime(form.arrival_time)),
            "price": parse_positive_float(form.price),
        }

    async def submit(self) -> SubmitOutcome:
        """
        Validate the form and create or update the schedule.

        Validation failures block the call and focus the first invalid field.
        On success the form is reset and hidden.
        """
        self.errors = self.validate(self.form)
        if self.errors:
            field = first_invalid_field(ScheduleForm.FIELD_ORDER, self.errors)
            logger.info(f"Schedule form rejected: {sorted(self.errors)}")
            self.view.request_focus(FormKind.SCHEDULE, field)
            return SubmitOutcome.INVALID

        payload = self.build_payload(self.form, self.view.bus_id)
        if self.editing is not None:
            outcome = await self.update_schedule(self.editing.id, payload, previous_route_id=self.editing.route_id)
        else:
            outcome = await self.create_schedule(payload)

        if outcome is SubmitOutcome.SUCCESS:
            self.reset_form()
        return outcome

    async def create_schedule(self, payload: Dict[str, Any]) -> SubmitOutcome:
        """Create a schedule and refresh its route's cached schedules."""
        return await self._write(
            lambda: self.api.create_schedule(payload),
            "Schedule created successfully.",
            [payload.get("routeId")],
        )

    async def update_schedule(
        self,
        schedule_id: int,
        payload: Dict[str, Any],
        previous_route_id: Optional[int] = None,
    ) -> SubmitOutcome:
        """Update a schedule and refresh the cached schedules of the routes involved."""
        return await self._write(
            lambda: self.api.update_schedule(schedule_id, payload),
            "Schedule updated successfully.",
            [payload.get("routeId"), previous_route_id],
        )

    async def _write(self, call, success_message: str, route_ids: List[Optional[int]]) -> SubmitOutcome:
        async with self.submit_guard.acquire() as acquired:
            if not acquired:
                return SubmitOutcome.BUSY

            try:
                await call()
            except ApiError as e:
                logger.error(f"Error saving schedule: {e}")
                await self.presenter.notify(
                    Severity.ERROR, "Error",
                    failure_message("Failed to save schedule. Please try again.", e),
                )
                return SubmitOutcome.FAILED

            logger.info(success_message)
            await self.presenter.notify(Severity.SUCCESS, "Success!", success_message)
            await self.invalidate_routes(route_ids)
            return SubmitOutcome.SUCCESS

    async def delete_schedule(self, schedule: ScheduleModel) -> SubmitOutcome:
        """Delete a schedule after explicit confirmation; declining has no side effects."""
        async with self.delete_guard.acquire() as acquired:
            if not acquired:
                return SubmitOutcome.BUSY

            try:
                confirmed = await self.presenter.confirm(
                    DELETE_CONFIRM_TITLE,
                    "This will permanently delete this schedule.",
                    DELETE_CONFIRM_LABEL,
                )
                if not confirmed:
                    logger.info(f"Deletion of schedule {schedule.id} declined")
                    return SubmitOutcome.CANCELLED

                await self.api.delete_schedule(schedule.id)
            except ApiError as e:
                logger.error(f"Error deleting schedule {schedule.id}: {e}")
                await self.presenter.notify(
                    Severity.ERROR, "Error",
                    failure_message("Failed to delete schedule. Please try again.", e),
                )
                return SubmitOutcome.FAILED

            logger.info(f"Deleted schedule {schedule.id}")
            await self.presenter.notify(Severity.SUCCESS, "Deleted!", "Schedule has been deleted.")
            if self.editing is not None and self.editing.id == schedule.id:
                self.reset_form()
            await self.invalidate_route(schedule.route_id)
            return SubmitOutcome.SUCCESS

    # Bulk generation

    def start_generate(self) -> None:
        """Open the bulk generation form."""
        self.generate_form = GenerateForm()
        self.generate_errors = {}
        self.view.show_form(FormKind.GENERATE)

    def reset_generate_form(self) -> None:
        self.generate_form = GenerateForm()
        self.generate_errors = {}
        self.view.hide_form(FormKind.GENERATE)

    @staticmethod
    def validate_generate(start_date: Any, days: Any) -> FieldErrors:
        """Validate generation parameters: a start date and at least one day."""
        errors: FieldErrors = {}
        if start_date is None or not str(start_date).strip():
            errors["start_date"] = "Start date is required"
        elif parse_date(start_date) is None:
            errors["start_date"] = "Start date must be YYYY-MM-DD"
        if parse_positive_int(days) is None:
            errors["days"] = "Number of days must be at least 1"
        return errors

    async def generate_schedules(self, bus_id: int, start_date: Any, days: Union[int, str]) -> SubmitOutcome:
        """
        Ask the server to generate schedules for every route of the bus.

        Repeated calls are not deduplicated client-side; the server rejects
        or merges duplicates.

        Args:
            bus_id: Bus whose routes get schedules
            start_date: First day (``YYYY-MM-DD`` or date)
            days: Number of days, at least 1
        """
        if not self.can_generate:
            await self.presenter.notify(
                Severity.WARNING, "No routes", "Add at least one route before generating schedules."
            )
            return SubmitOutcome.INVALID

        self.generate_errors = self.validate_generate(start_date, days)
        if self.generate_errors:
            field = first_invalid_field(GenerateForm.FIELD_ORDER, self.generate_errors)
            logger.info(f"Generation rejected: {sorted(self.generate_errors)}")
            self.view.request_focus(FormKind.GENERATE, field)
            return SubmitOutcome.INVALID

        job = ScheduleGenerationJobModel(
            bus_id=bus_id,
            start_date=parse_date(start_date),
            days=parse_positive_int(days),
        )

        async with self.generate_guard.acquire() as acquired:
            if not acquired:
                return SubmitOutcome.BUSY

            try:
                await self.api.generate_schedules(job.model_dump(mode="json", by_alias=True))
            except ApiError as e:
                logger.error(f"Error generating schedules for bus {bus_id}: {e}")
                await self.presenter.notify(
                    Severity.ERROR, "Error",
                    failure_message("Failed to generate schedules. Please try again.", e),
                )
                return SubmitOutcome.FAILED

            logger.info(f"Generated schedules for bus {bus_id}: {job.days} day(s) from {job.start_date}")
            await self.presenter.notify(
                Severity.SUCCESS, "Success!",
                f"Schedules generated for {job.days} day(s) starting {job.start_date.isoformat()}.",
            )
            await self.invalidate_all()
            return SubmitOutcome.SUCCESS

    async def submit_generate(self) -> SubmitOutcome:
        """Run bulk generation from the generation form."""
        outcome = await self.generate_schedules(
            self.view.bus_id, self.generate_form.start_date, self.generate_form.days
        )
        if outcome is SubmitOutcome.SUCCESS:
            self.reset_generate_form()
        return outcome
