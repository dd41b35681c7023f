"""
Tests for the route lifecycle: listing, validation, create/update and delete.
"""

import asyncio

import pytest

from busdesk.api.config import ApiResponseError
from busdesk.models.enums import FormKind, Severity, SubmitOutcome
from busdesk.models.forms import RouteForm
from busdesk.services.route_manager import RouteManager


def fill(manager: RouteManager, **values):
    defaults = {
        "source": "Thimphu", "destination": "Punakha", "distance": "72",
        "base_fare": "250", "estimated_duration": "150",
    }
    defaults.update(values)
    for field, value in defaults.items():
        manager.update_field(field, value)


class TestListRoutes:
    """Test loading the route list."""

    @pytest.mark.asyncio
    async def test_initial_load(self, view, api):
        await view.load()
        assert [route.id for route in view.routes.routes] == [10, 11]
        assert view.bus.display_name == "Druk Express (BT-001)"
        assert api.calls["get_routes"] == 1

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_list(self, view, api, presenter):
        await view.load()
        api.fail("get_routes")

        routes = await view.routes.refresh()

        assert [route.id for route in routes] == [10, 11]
        assert "Failed to load routes." in presenter.messages(Severity.ERROR)
        assert view.routes.loading is False

    @pytest.mark.asyncio
    async def test_response_after_close_is_ignored(self, view, api):
        """Test that a list arriving after unmount does not touch state."""
        await view.load()
        api.routes = []
        api.hold("get_routes")

        pending = asyncio.ensure_future(view.routes.refresh())
        await asyncio.sleep(0)
        view.close()
        api.release("get_routes")
        await pending

        assert [route.id for route in view.routes.routes] == [10, 11]


class TestValidation:
    """Test client-side route validation."""

    def test_empty_form_reports_every_field(self):
        errors = RouteManager.validate(RouteForm())
        assert errors == {
            "source": "Source is required",
            "destination": "Destination is required",
            "distance": "Distance must be greater than 0",
            "base_fare": "Base fare must be greater than 0",
            "estimated_duration": "Estimated duration must be greater than 0",
        }

    def test_same_source_and_destination(self):
        """Test that source and destination are compared ignoring case and spaces."""
        form = RouteForm(source="Paro", destination=" paro ", distance="1",
                         base_fare="1", estimated_duration="1")
        errors = RouteManager.validate(form)
        assert errors == {"destination": "Destination must be different from source"}

    def test_optional_fields(self):
        form = RouteForm(source="A", destination="B", distance="1", base_fare="1",
                         estimated_duration="1", custom_fare="-5", departure_time="25:00")
        errors = RouteManager.validate(form)
        assert set(errors) == {"custom_fare", "departure_time"}

    def test_payload(self):
        form = RouteForm(source=" Thimphu ", destination="Paro", distance="55",
                         base_fare="150", estimated_duration="90", departure_time="07:30")
        payload = RouteManager.build_payload(form, bus_id=1)
        assert payload == {
            "busId": 1, "source": "Thimphu", "destination": "Paro", "distance": 55.0,
            "baseFare": 150.0, "customFare": 0, "estimatedDuration": 90, "active": True,
            "departureTime": "07:30",
        }

    @pytest.mark.asyncio
    async def test_invalid_submit_makes_no_call(self, view, api, presenter):
        await view.load()
        view.routes.start_create()

        outcome = await view.routes.submit()

        assert outcome is SubmitOutcome.INVALID
        assert api.calls["create_route"] == 0
        assert presenter.focus[-1] == (FormKind.ROUTE, "source")
        assert view.is_visible(FormKind.ROUTE)

    @pytest.mark.asyncio
    async def test_editing_a_field_clears_its_error(self, view):
        await view.load()
        view.routes.start_create()
        await view.routes.submit()
        assert "source" in view.routes.errors

        view.routes.update_field("source", "Thimphu")
        assert "source" not in view.routes.errors
        assert "destination" in view.routes.errors

    def test_unknown_field_rejected(self, view):
        with pytest.raises(ValueError):
            view.routes.update_field("colour", "red")


class TestWrites:
    """Test create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_then_list(self, view, api, presenter):
        """Test that a created route appears after the automatic refresh."""
        await view.load()
        view.routes.start_create()
        fill(view.routes)

        outcome = await view.routes.submit()

        assert outcome is SubmitOutcome.SUCCESS
        assert api.calls["create_route"] == 1
        assert api.payloads["create_route"][0]["busId"] == 1
        assert api.calls["get_routes"] == 2
        created = view.routes.routes[-1]
        assert (created.source, created.destination, created.distance,
                created.base_fare, created.estimated_duration) == ("Thimphu", "Punakha", 72, 250, 150)
        assert not view.is_visible(FormKind.ROUTE)
        assert view.routes.form == RouteForm()
        assert "Route created successfully." in presenter.messages(Severity.SUCCESS)

    @pytest.mark.asyncio
    async def test_edit_prefills_and_updates(self, view, api):
        await view.load()
        route = view.routes.find_route(10)
        view.routes.start_edit(route)
        assert view.routes.form.base_fare == "150"
        assert view.is_visible(FormKind.ROUTE)

        view.routes.update_field("base_fare", "175")
        outcome = await view.routes.submit()

        assert outcome is SubmitOutcome.SUCCESS
        assert api.calls["update_route"] == 1
        assert view.routes.find_route(10).base_fare == 175
        assert view.routes.editing is None

    @pytest.mark.asyncio
    async def test_failure_keeps_form_for_retry(self, view, api, presenter):
        await view.load()
        api.fail("create_route", ApiResponseError("HTTP error! status: 409", status_code=409,
                                                  server_message="Route already exists"))
        view.routes.start_create()
        fill(view.routes)

        outcome = await view.routes.submit()

        assert outcome is SubmitOutcome.FAILED
        assert view.routes.form.source == "Thimphu"
        assert view.is_visible(FormKind.ROUTE)
        assert len(view.routes.routes) == 2
        assert presenter.messages(Severity.ERROR) == [
            "Failed to save route. Please try again. (Route already exists)"
        ]
        assert not view.routes.submitting

    @pytest.mark.asyncio
    async def test_double_submit_is_rejected(self, view, api):
        """Test that a second submit while one is in flight sends nothing."""
        await view.load()
        view.routes.start_create()
        fill(view.routes)
        api.hold("create_route")

        first = asyncio.ensure_future(view.routes.submit())
        await asyncio.sleep(0)
        second = await view.routes.submit()
        api.release("create_route")

        assert second is SubmitOutcome.BUSY
        assert await first is SubmitOutcome.SUCCESS
        assert api.calls["create_route"] == 1


class TestDelete:
    """Test confirmed deletion."""

    @pytest.mark.asyncio
    async def test_confirmed_delete(self, view, api, presenter):
        await view.load()
        route = view.routes.find_route(10)

        outcome = await view.routes.delete_route(route)

        assert outcome is SubmitOutcome.SUCCESS
        assert presenter.confirmations == [(
            "Are you sure?",
            "This will permanently delete the route from Thimphu to Paro.",
            "Yes, delete it!",
        )]
        assert api.calls["delete_route"] == 1
        assert view.routes.find_route(10) is None
        assert "Route has been deleted." in presenter.messages(Severity.SUCCESS)
        assert view.routes.pending_delete is None

    @pytest.mark.asyncio
    async def test_declined_delete_has_no_effect(self, view, api, presenter):
        await view.load()
        presenter.answer = False

        outcome = await view.routes.delete_route(view.routes.find_route(10))

        assert outcome is SubmitOutcome.CANCELLED
        assert api.calls["delete_route"] == 0
        assert len(view.routes.routes) == 2
        assert presenter.notifications == []

    @pytest.mark.asyncio
    async def test_delete_drops_cached_schedules(self, view):
        await view.load()
        await view.schedules.list_schedules_for_route(10)
        assert view.schedules.cache.contains(10)

        await view.routes.delete_route(view.routes.find_route(10))

        assert not view.schedules.cache.contains(10)
        assert 10 not in view.schedules.panels

    @pytest.mark.asyncio
    async def test_deleting_edited_route_resets_form(self, view):
        await view.load()
        route = view.routes.find_route(10)
        view.routes.start_edit(route)

        await view.routes.delete_route(route)

        assert view.routes.editing is None
        assert not view.is_visible(FormKind.ROUTE)
