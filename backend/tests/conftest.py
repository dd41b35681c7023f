"""
Shared fixtures: an in-memory booking backend and a recording presenter.
"""

import asyncio
import copy
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

import pytest

from busdesk.api.config import ApiError, ApiResponseError
from busdesk.models.enums import FormKind, Severity
from busdesk.services.presenter import Presenter
from busdesk.services.view_coordinator import ViewCoordinator


BUS = {
    "id": 1,
    "busNumber": "BT-001",
    "busName": "Druk Express",
    "busType": "Standard",
    "totalSeats": 3,
}

ROUTES = [
    {"id": 10, "busId": 1, "source": "Thimphu", "destination": "Paro", "distance": 55,
     "baseFare": 150, "estimatedDuration": 90, "active": True},
    {"id": 11, "busId": 1, "source": "Paro", "destination": "Punakha", "distance": 125,
     "baseFare": 300, "estimatedDuration": 180, "active": True},
]

SCHEDULES = {
    10: [{"id": 100, "routeId": 10, "busId": 1, "departureTime": "2030-01-01 10:00:00",
          "arrivalTime": "2030-01-01 11:30:00", "price": 150, "availableSeats": 2}],
    11: [],
}

SEATS = [
    {"id": 101, "seatNumber": 1, "seatLabel": "A1", "available": True},
    {"id": 102, "seatNumber": 2, "seatLabel": "A2", "available": True},
    {"id": 103, "seatNumber": 3, "seatLabel": "B1", "available": False},
]


class FakeBusApi:
    """
    In-memory stand-in for BookingApiClient.

    Every call is counted by method name. ``fail(name)`` makes a method raise,
    ``hold(name)`` makes it wait until ``release(name)``.
    """

    def __init__(self):
        self.bus = copy.deepcopy(BUS)
        self.routes: List[Dict[str, Any]] = copy.deepcopy(ROUTES)
        self.schedules: Dict[int, List[Dict[str, Any]]] = copy.deepcopy(SCHEDULES)
        self.seats: List[Dict[str, Any]] = copy.deepcopy(SEATS)
        self.bookings: List[Dict[str, Any]] = []

        self.calls: Counter = Counter()
        self.payloads: Dict[str, List[Any]] = {}
        self.failures: Dict[str, ApiError] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self._next_id = 1000

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    # Test controls

    def fail(self, name: str, error: Optional[ApiError] = None) -> None:
        self.failures[name] = error or ApiResponseError("HTTP error! status: 500", status_code=500)

    def recover(self, name: str) -> None:
        self.failures.pop(name, None)

    def hold(self, name: str) -> None:
        self.gates[name] = asyncio.Event()

    def release(self, name: str) -> None:
        gate = self.gates.pop(name, None)
        if gate is not None:
            gate.set()

    async def _call(self, name: str, payload: Any = None) -> None:
        self.calls[name] += 1
        if payload is not None:
            self.payloads.setdefault(name, []).append(copy.deepcopy(payload))
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        if name in self.failures:
            raise self.failures[name]

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    # Buses and routes

    async def get_bus(self, bus_id):
        await self._call("get_bus")
        return {"success": True, "data": self.bus}

    async def get_buses(self):
        await self._call("get_buses")
        return [self.bus]

    async def get_routes(self, bus_id=None):
        await self._call("get_routes")
        return {"success": True, "data": copy.deepcopy(self.routes)}

    async def create_route(self, payload):
        await self._call("create_route", payload)
        route = {**payload, "id": self._new_id()}
        self.routes.append(route)
        return {"success": True, "data": route}

    async def update_route(self, route_id, payload):
        await self._call("update_route", payload)
        for route in self.routes:
            if route["id"] == route_id:
                route.update(payload)
        return {"success": True}

    async def delete_route(self, route_id):
        await self._call("delete_route")
        self.routes = [route for route in self.routes if route["id"] != route_id]
        self.schedules.pop(route_id, None)
        return {"success": True, "status": 204, "message": "Operation completed successfully"}

    # Schedules

    async def get_schedules_by_route(self, route_id):
        await self._call("get_schedules_by_route")
        return copy.deepcopy(self.schedules.get(route_id, []))

    async def create_schedule(self, payload):
        await self._call("create_schedule", payload)
        schedule = {**payload, "id": self._new_id()}
        self.schedules.setdefault(payload["routeId"], []).append(schedule)
        return {"success": True, "data": schedule}

    async def update_schedule(self, schedule_id, payload):
        await self._call("update_schedule", payload)
        for route_id, items in self.schedules.items():
            self.schedules[route_id] = [item for item in items if item["id"] != schedule_id]
        self.schedules.setdefault(payload["routeId"], []).append({**payload, "id": schedule_id})
        return {"success": True}

    async def delete_schedule(self, schedule_id):
        await self._call("delete_schedule")
        for route_id, items in self.schedules.items():
            self.schedules[route_id] = [item for item in items if item["id"] != schedule_id]
        return {"success": True}

    async def generate_schedules(self, payload):
        await self._call("generate_schedules", payload)
        return {"success": True, "message": "Schedules generated"}

    # Seats and bookings

    async def get_available_seats(self, schedule_id):
        await self._call("get_available_seats")
        return {"success": True, "seats": copy.deepcopy(self.seats)}

    async def lock_booking(self, payload):
        await self._call("lock_booking", payload)
        for seat in self.seats:
            if seat["id"] in payload["seatIds"]:
                seat["available"] = False
        booking = {**payload, "id": self._new_id()}
        self.bookings.append(booking)
        return {"success": True, "data": booking}

    # Dashboard sources

    async def get_bus_bookings(self, user_id=None):
        await self._call("get_bus_bookings")
        return {"data": [{"id": 1, "totalAmount": 300}, {"id": 2, "price": "150.5"}]}

    async def get_hotel_bookings_count(self):
        await self._call("get_hotel_bookings_count")
        return {"count": 4}

    async def get_taxi_bookings(self):
        await self._call("get_taxi_bookings")
        return [{"id": 7, "totalAmount": 0, "cost": 80}]

    async def get_movie_bookings(self):
        await self._call("get_movie_bookings")
        return {"content": [{"id": 9, "amount": 20}]}

    async def get_hotels(self):
        await self._call("get_hotels")
        return {"data": [{"id": 1}, {"id": 2}]}


class RecordingPresenter(Presenter):
    """Presenter that records every interaction and answers confirmations with ``answer``."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.confirmations: List[Tuple[str, str, str]] = []
        self.notifications: List[Tuple[Severity, str, str]] = []
        self.focus: List[Tuple[FormKind, Optional[str]]] = []

    async def confirm(self, title, body, confirm_label):
        self.confirmations.append((title, body, confirm_label))
        return self.answer

    async def notify(self, severity, title, message):
        self.notifications.append((severity, title, message))

    def scroll_into_view(self, target, field=None):
        self.focus.append((target, field))

    def messages(self, severity: Severity) -> List[str]:
        return [message for sev, _, message in self.notifications if sev is severity]


@pytest.fixture
def api():
    return FakeBusApi()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def view(api, presenter):
    return ViewCoordinator(api, presenter, bus_id=1)
