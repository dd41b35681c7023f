"""
Tests for per-route schedule listing, schedule writes and bulk generation.
"""

import asyncio
from datetime import date

import pytest

from busdesk.models.enums import FormKind, PanelState, Severity, SubmitOutcome
from busdesk.models.forms import ScheduleForm
from busdesk.services.schedule_manager import ScheduleManager


class TestPanelToggling:
    """Test the hidden -> loading -> shown panel cycle and its cache."""

    @pytest.mark.asyncio
    async def test_open_close_open_fetches_once(self, view, api):
        await view.load()
        manager = view.schedules

        schedules = await manager.list_schedules_for_route(10)
        assert [schedule.id for schedule in schedules] == [100]
        assert manager.panel_state(10) is PanelState.SHOWN

        await manager.list_schedules_for_route(10)
        assert manager.panel_state(10) is PanelState.HIDDEN

        schedules = await manager.list_schedules_for_route(10)
        assert manager.panel_state(10) is PanelState.SHOWN
        assert [schedule.id for schedule in schedules] == [100]
        assert api.calls["get_schedules_by_route"] == 1

    @pytest.mark.asyncio
    async def test_routes_are_independent(self, view):
        await view.load()
        manager = view.schedules
        await manager.list_schedules_for_route(10)
        await manager.list_schedules_for_route(11)

        assert manager.expanded_routes() == [10, 11]
        await manager.list_schedules_for_route(10)
        assert manager.expanded_routes() == [11]

    @pytest.mark.asyncio
    async def test_repeat_while_loading_collapses(self, view, api):
        """Test that a second request during a fetch hides the panel without a second fetch."""
        await view.load()
        manager = view.schedules
        api.hold("get_schedules_by_route")

        pending = asyncio.ensure_future(manager.list_schedules_for_route(10))
        await asyncio.sleep(0)
        assert manager.panel_state(10) is PanelState.LOADING

        assert await manager.list_schedules_for_route(10) == []
        assert manager.panel_state(10) is PanelState.HIDDEN

        api.release("get_schedules_by_route")
        await pending
        assert manager.panel_state(10) is PanelState.HIDDEN
        assert manager.cache.contains(10)
        assert api.calls["get_schedules_by_route"] == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_hides_panel(self, view, api, presenter):
        await view.load()
        api.fail("get_schedules_by_route")

        assert await view.schedules.list_schedules_for_route(10) == []
        assert view.schedules.panel_state(10) is PanelState.HIDDEN
        assert not view.schedules.cache.contains(10)
        assert "Failed to load schedules." in presenter.messages(Severity.ERROR)

    @pytest.mark.asyncio
    async def test_close_during_fetch_leaves_panel_loading(self, view, api):
        await view.load()
        api.hold("get_schedules_by_route")

        pending = asyncio.ensure_future(view.schedules.list_schedules_for_route(10))
        await asyncio.sleep(0)
        view.close()
        api.release("get_schedules_by_route")
        await pending

        assert view.schedules.panel_state(10) is PanelState.LOADING


class TestInvalidation:
    """Test cache invalidation after mutations."""

    @pytest.mark.asyncio
    async def test_shown_route_reloads_immediately(self, view, api):
        await view.load()
        await view.schedules.list_schedules_for_route(10)

        await view.schedules.invalidate_route(10)

        assert api.calls["get_schedules_by_route"] == 2
        assert view.schedules.panel_state(10) is PanelState.SHOWN

    @pytest.mark.asyncio
    async def test_hidden_route_refetches_on_next_expand(self, view, api):
        """Test that a collapsed route is not re-fetched until expanded again."""
        await view.load()
        manager = view.schedules
        await manager.list_schedules_for_route(10)
        await manager.list_schedules_for_route(10)

        await manager.invalidate_route(10)
        assert api.calls["get_schedules_by_route"] == 1
        assert not manager.cache.contains(10)

        await manager.list_schedules_for_route(10)
        assert api.calls["get_schedules_by_route"] == 2


class TestValidation:
    """Test schedule form validation."""

    def test_arrival_not_after_departure(self):
        form = ScheduleForm(route_id="10", departure_time="2030-01-01T10:00",
                            arrival_time="2030-01-01T10:00", price="150")
        assert ScheduleManager.validate(form) == {
            "arrival_time": "Arrival time must be after departure time"
        }

    def test_empty_form(self):
        errors = ScheduleManager.validate(ScheduleForm())
        assert errors == {
            "route_id": "Route is required",
            "departure_time": "Departure time is required",
            "arrival_time": "Arrival time is required",
            "price": "Price must be greater than 0",
        }

    @pytest.mark.asyncio
    async def test_invalid_submit_makes_no_call(self, view, api, presenter):
        await view.load()
        manager = view.schedules
        manager.start_create(10)
        manager.update_field("departure_time", "2030-01-01T10:00")
        manager.update_field("arrival_time", "2030-01-01T09:00")

        outcome = await manager.submit()

        assert outcome is SubmitOutcome.INVALID
        assert "arrival_time" in manager.errors
        assert api.calls["create_schedule"] == 0
        assert presenter.focus[-1] == (FormKind.SCHEDULE, "arrival_time")

    def test_payload_uses_wire_timestamps(self):
        form = ScheduleForm(route_id="10", departure_time="2030-01-01T10:00",
                            arrival_time="2030-01-01T11:30", price="150")
        assert ScheduleManager.build_payload(form, bus_id=1) == {
            "busId": 1, "routeId": 10, "departureTime": "2030-01-01 10:00:00",
            "arrivalTime": "2030-01-01 11:30:00", "price": 150.0,
        }


class TestWrites:
    """Test schedule create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_with_derived_fields(self, view, api, presenter):
        """Thimphu -> Paro at 10:00 is submitted arriving 11:30 at 150."""
        await view.load()
        manager = view.schedules
        await manager.list_schedules_for_route(10)

        manager.start_create()
        manager.update_field("route_id", "10")
        manager.update_field("departure_time", "2030-02-01T10:00")
        outcome = await manager.submit()

        assert outcome is SubmitOutcome.SUCCESS
        assert api.payloads["create_schedule"] == [{
            "busId": 1, "routeId": 10, "departureTime": "2030-02-01 10:00:00",
            "arrivalTime": "2030-02-01 11:30:00", "price": 150.0,
        }]
        assert len(manager.schedules_for(10)) == 2
        assert not view.is_visible(FormKind.SCHEDULE)
        assert "Schedule created successfully." in presenter.messages(Severity.SUCCESS)

    @pytest.mark.asyncio
    async def test_created_route_drives_schedule_form(self, view):
        """A newly created Thimphu -> Paro route prefills arrival 11:30 and price 150."""
        await view.load()
        view.routes.start_create()
        for field, value in (("source", "Thimphu"), ("destination", "Paro"), ("distance", "65"),
                             ("base_fare", "150"), ("estimated_duration", "90")):
            view.routes.update_field(field, value)
        assert await view.routes.submit() is SubmitOutcome.SUCCESS
        route = view.routes.routes[-1]

        manager = view.schedules
        manager.start_create()
        manager.update_field("route_id", str(route.id))
        manager.update_field("departure_time", "2025-01-01T10:00")

        assert manager.form.arrival_time == "2025-01-01T11:30"
        assert manager.form.price == "150"

    @pytest.mark.asyncio
    async def test_moving_schedule_invalidates_both_routes(self, view, api):
        await view.load()
        manager = view.schedules
        schedules = await manager.list_schedules_for_route(10)
        await manager.list_schedules_for_route(11)

        manager.start_edit(schedules[0])
        manager.update_field("route_id", "11")
        manager.update_field("departure_time", "2030-01-01T10:00")
        outcome = await manager.submit()

        assert outcome is SubmitOutcome.SUCCESS
        assert api.payloads["update_schedule"][0]["price"] == 300.0
        assert manager.schedules_for(10) == []
        assert [schedule.id for schedule in manager.schedules_for(11)] == [100]

    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self, view, api, presenter):
        await view.load()
        schedules = await view.schedules.list_schedules_for_route(10)
        presenter.answer = False

        assert await view.schedules.delete_schedule(schedules[0]) is SubmitOutcome.CANCELLED
        assert api.calls["delete_schedule"] == 0

        presenter.answer = True
        assert await view.schedules.delete_schedule(schedules[0]) is SubmitOutcome.SUCCESS
        assert view.schedules.schedules_for(10) == []


class TestGeneration:
    """Test bulk schedule generation."""

    @pytest.mark.asyncio
    async def test_generate_posts_job_and_invalidates_all(self, view, api):
        await view.load()
        manager = view.schedules
        await manager.list_schedules_for_route(10)
        await manager.list_schedules_for_route(11)
        await manager.list_schedules_for_route(11)

        outcome = await manager.generate_schedules(1, "2030-03-01", "7")

        assert outcome is SubmitOutcome.SUCCESS
        assert api.payloads["generate_schedules"] == [
            {"busId": 1, "startDate": "2030-03-01", "days": 7}
        ]
        # Route 10 is shown and reloads, route 11 is collapsed and is only invalidated
        assert api.calls["get_schedules_by_route"] == 3
        assert manager.cache.contains(10)
        assert not manager.cache.contains(11)

    @pytest.mark.asyncio
    async def test_zero_days_rejected(self, view, api, presenter):
        await view.load()

        outcome = await view.schedules.generate_schedules(1, date(2030, 3, 1), 0)

        assert outcome is SubmitOutcome.INVALID
        assert view.schedules.generate_errors == {"days": "Number of days must be at least 1"}
        assert api.calls["generate_schedules"] == 0
        assert presenter.focus[-1] == (FormKind.GENERATE, "days")

    @pytest.mark.asyncio
    async def test_generation_needs_routes(self, view, api, presenter):
        api.routes = []
        await view.load()

        assert not view.schedules.can_generate
        outcome = await view.schedules.generate_schedules(1, "2030-03-01", 1)

        assert outcome is SubmitOutcome.INVALID
        assert api.calls["generate_schedules"] == 0
        assert presenter.notifications[-1][0] is Severity.WARNING

    @pytest.mark.asyncio
    async def test_submit_generate_from_form(self, view, api):
        await view.load()
        manager = view.schedules
        manager.start_generate()
        manager.generate_form.start_date = "2030-03-01"
        manager.generate_form.days = "3"

        assert await manager.submit_generate() is SubmitOutcome.SUCCESS
        assert api.payloads["generate_schedules"][0]["days"] == 3
        assert not view.is_visible(FormKind.GENERATE)

    def test_validate_generate_messages(self):
        assert ScheduleManager.validate_generate("", "1") == {"start_date": "Start date is required"}
        assert ScheduleManager.validate_generate("03/01/2030", "1") == {
            "start_date": "Start date must be YYYY-MM-DD"
        }
