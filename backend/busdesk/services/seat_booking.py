"""
Seat booking workflow: seat inventory, multi-seat selection and the
seat-lock booking submission.

The selection is the single source of truth for the seat id, number and
label lists sent to the server; those lists are recomputed on every toggle
and never edited directly.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import ValidationError

from ..api.config import ApiError
from ..api.responses import decode_collection
from ..models.booking import BookingRequestModel
from ..models.bus import SeatModel
from ..models.enums import BookingStatus, FormKind, Severity, SubmitOutcome
from ..models.forms import BookingForm, FieldErrors, first_invalid_field, form_field_names
from ..models.schedule import ScheduleModel
from .operation_guard import OperationGuard
from .presenter import Presenter

if TYPE_CHECKING:
    from ..api.client import BookingApiClient
    from .view_coordinator import ViewCoordinator

logger = logging.getLogger(__name__)

BOOKING_FAILED_MESSAGE = "Failed to book seats. Please try again."


class SeatBookingWorkflow:
    """
    Booking panel state for one schedule at a time.

    Features:
    - Seat inventory from the bus's known seat list, else fetched per schedule
    - Ordered multi-seat selection; booked seats are not selectable
    - Derived seat number / label lists kept in step with the selection
    - Single in-flight booking submission
    """

    def __init__(self, api: "BookingApiClient", presenter: Presenter, view: "ViewCoordinator"):
        """
        Args:
            api: Booking API collaborator
            presenter: Notification collaborator
            view: Owning view coordinator
        """
        self.api = api
        self.presenter = presenter
        self.view = view

        self.schedule: Optional[ScheduleModel] = None
        self.seats: List[SeatModel] = []
        self.selected: Dict[int, SeatModel] = {}
        self.form = BookingForm()
        self.errors: FieldErrors = {}
        self.loading_seats = False

        self.booking_guard = OperationGuard("booking")

    @property
    def submitting(self) -> bool:
        return self.booking_guard.in_flight

    @property
    def selected_seat_ids(self) -> List[int]:
        return list(self.selected)

    @property
    def seat_numbers(self) -> List[int]:
        """Seat numbers of the selection, in selection order."""
        return [seat.seat_number for seat in self.selected.values()]

    @property
    def seat_labels(self) -> List[str]:
        """Seat labels of the selection, in selection order."""
        return [seat.label for seat in self.selected.values()]

    async def open_booking(self, schedule: ScheduleModel) -> List[SeatModel]:
        """
        Open the booking panel for a schedule and load its seat inventory.

        The bus-level seat list is used when known, avoiding a round trip;
        otherwise schedule-specific availability is fetched. Any previous
        selection and applicant details are discarded.

        Returns:
            The seat inventory shown for selection
        """
        self._reset_selection()
        self.form = BookingForm()
        self.schedule = schedule
        self.view.show_form(FormKind.BOOKING)

        bus = self.view.bus
        if bus is not None and bus.seats:
            self.seats = list(bus.seats)
            logger.info(f"Using {len(self.seats)} bus-level seats for schedule {schedule.id}")
            return self.seats

        self.seats = []
        self.loading_seats = True
        try:
            response = await self.api.get_available_seats(schedule.id)
        except ApiError as e:
            logger.error(f"Error loading seats for schedule {schedule.id}: {e}")
            await self.presenter.notify(Severity.ERROR, "Error", "Failed to load seat availability.")
            return self.seats
        finally:
            self.loading_seats = False

        if not self.view.active or self.schedule is not schedule:
            return self.seats

        self.seats = decode_collection(response, "seats", SeatModel)
        logger.info(f"Loaded {len(self.seats)} seats for schedule {schedule.id}")
        return self.seats

    def close_booking(self) -> None:
        """Discard all booking state and hide the panel."""
        self._reset_selection()
        self.form = BookingForm()
        self.schedule = None
        self.seats = []
        self.view.hide_form(FormKind.BOOKING)

    def _reset_selection(self) -> None:
        self.selected = {}
        self.errors = {}

    def toggle_seat(self, seat: SeatModel) -> bool:
        """
        Add or remove a seat from the selection.

        Returns:
            bool: True if the seat is selected afterwards; booked seats are
            never selectable and always return False
        """
        if seat.booked:
            logger.debug(f"Seat {seat.label} is booked and cannot be selected")
            return False

        if seat.id in self.selected:
            del self.selected[seat.id]
            selected = False
        else:
            self.selected[seat.id] = seat
            selected = True

        self.errors.pop("seats", None)
        return selected

    def update_field(self, field: str, value: Any) -> None:
        """Set one applicant field and clear its pending error."""
        if field not in form_field_names(self.form):
            raise ValueError(f"Unknown booking form field: {field}")
        setattr(self.form, field, value)
        self.errors.pop(field, None)

    def validate(self) -> FieldErrors:
        """Require at least one seat and all three applicant contact fields."""
        errors: FieldErrors = {}
        if not self.selected:
            errors["seats"] = "Select at least one seat"
        if not str(self.form.cid).strip():
            errors["cid"] = "CID is required"
        if not str(self.form.mobile_no).strip():
            errors["mobile_no"] = "Mobile number is required"
        if not str(self.form.email).strip():
            errors["email"] = "Email is required"
        return errors

    def build_request(self) -> BookingRequestModel:
        """Booking request for the current schedule, selection and form."""
        return BookingRequestModel(
            schedule_id=self.schedule.id,
            seat_ids=self.selected_seat_ids,
            seat_numbers=self.seat_numbers,
            seat_labels=self.seat_labels,
            cid=str(self.form.cid).strip(),
            mobile_no=str(self.form.mobile_no).strip(),
            email=str(self.form.email).strip(),
            status=self.form.status or BookingStatus.PENDING,
        )

    async def submit_booking(self) -> SubmitOutcome:
        """
        Validate and submit the seat lock request.

        A failure keeps the selection and form for retry and shows the
        server's message when it sent one. A success clears all booking
        state, closes the panel and refreshes the affected route's schedules.
        """
        if self.schedule is None:
            raise RuntimeError("No schedule open for booking")

        self.errors = self.validate()
        if self.errors:
            field = first_invalid_field(BookingForm.FIELD_ORDER, self.errors)
            logger.info(f"Booking rejected: {sorted(self.errors)}")
            self.view.request_focus(FormKind.BOOKING, field)
            return SubmitOutcome.INVALID

        async with self.booking_guard.acquire() as acquired:
            if not acquired:
                return SubmitOutcome.BUSY

            schedule = self.schedule
            try:
                request = self.build_request()
            except ValidationError as e:
                logger.error(f"Invalid booking request for schedule {schedule.id}: {e}")
                await self.presenter.notify(Severity.ERROR, "Booking Failed", BOOKING_FAILED_MESSAGE)
                return SubmitOutcome.INVALID

            try:
                await self.api.lock_booking(request.model_dump(mode="json", by_alias=True))
            except ApiError as e:
                logger.error(f"Booking for schedule {schedule.id} failed: {e}")
                await self.presenter.notify(
                    Severity.ERROR, "Booking Failed", e.server_message or BOOKING_FAILED_MESSAGE
                )
                return SubmitOutcome.FAILED

            logger.info(f"Locked seats {request.seat_labels} on schedule {schedule.id}")
            await self.presenter.notify(
                Severity.SUCCESS, "Booking Successful",
                f"Seats {', '.join(request.seat_labels)} booked.",
            )
            self.close_booking()
            await self.view.on_booking_completed(schedule.route_id)
            return SubmitOutcome.SUCCESS
