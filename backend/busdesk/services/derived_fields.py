"""
Derived field resolution for the schedule form.

Two fields are computed from others:
- arrival time = departure time + the selected route's estimated duration,
  recomputed whenever the departure changes while a route is selected
- price = the selected route's base fare, recomputed whenever the route
  selection changes and otherwise left to the operator
"""

import logging
from datetime import timedelta
from typing import Callable, Optional

from ..models.forms import ScheduleForm
from ..models.route import RouteModel
from ..utils.timefmt import format_form_datetime, format_number, parse_datetime

logger = logging.getLogger(__name__)

RouteLookup = Callable[[int], Optional[RouteModel]]


class DerivedFieldResolver:
    """
    Keeps derived schedule-form fields in sync with operator edits.

    Arrival time is treated as fully derived while a route is selected: a
    departure change overwrites whatever arrival was there. Price is derived
    only on route change; manual price edits stick until the route changes.
    """

    def __init__(self, route_lookup: RouteLookup):
        """
        Args:
            route_lookup: Resolves a route id to the loaded route, or None
        """
        self.route_lookup = route_lookup

    def selected_route(self, form: ScheduleForm) -> Optional[RouteModel]:
        """Route currently selected in the form, if it is a known route."""
        try:
            route_id = int(str(form.route_id).strip())
        except (TypeError, ValueError):
            return None
        return self.route_lookup(route_id)

    def apply(self, form: ScheduleForm, field: str, value: str) -> ScheduleForm:
        """
        Set ``field`` to ``value`` and recompute what depends on it.

        Args:
            form: Schedule form, updated in place
            field: Name of the edited field
            value: New raw value

        Returns:
            ScheduleForm: The same form instance
        """
        setattr(form, field, value)

        if field == "route_id":
            route = self.selected_route(form)
            if route is not None:
                form.price = format_number(route.base_fare)
                self._derive_arrival(form, route)
        elif field == "departure_time":
            route = self.selected_route(form)
            if route is not None:
                self._derive_arrival(form, route)

        return form

    @staticmethod
    def compute_arrival(departure: str, route: RouteModel) -> Optional[str]:
        """Arrival in form format, or None when the departure is unparseable."""
        parsed = parse_datetime(departure)
        if parsed is None:
            return None
        return format_form_datetime(parsed + timedelta(minutes=route.estimated_duration))

    def _derive_arrival(self, form: ScheduleForm, route: RouteModel) -> None:
        arrival = self.compute_arrival(form.departure_time, route)
        if arrival is not None:
            form.arrival_time = arrival
            logger.debug(f"Derived arrival {arrival} from route {route.id} "
                         f"(+{route.estimated_duration} min)")
