"""
busdesk: operator console for the bus route, schedule and seat-booking desk.

The package keeps one bus's dependent resources consistent on a single screen:
1. Routes belonging to the bus (create, edit, delete)
2. Schedules per route, cached per route id with explicit invalidation
3. Seat inventory and the seat-locking booking flow

All collaborator calls are asynchronous; state lives in one manager object per
concern, owned by the view coordinator.
"""

__version__ = "0.1.0"
