"""
Async HTTP client for the booking backend.

This module wraps ``httpx.AsyncClient`` with the endpoint set the operator
console consumes, uniform error translation into the ``ApiError`` hierarchy,
and the backend's loose success-body conventions (empty bodies and non-JSON
bodies are still successes).
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from .config import (
    ApiConfig,
    ApiConnectionError,
    ApiResponseError,
    ApiTimeoutError,
    Endpoints,
)
from .responses import extract_error_message

logger = logging.getLogger(__name__)

EMPTY_SUCCESS_MESSAGE = "Operation completed successfully"


class BookingApiClient:
    """
    Booking backend client.

    Features:
    - One shared ``httpx.AsyncClient`` with bearer token and JSON headers
    - Transport failures mapped to ApiConnectionError / ApiTimeoutError
    - Non-2xx responses mapped to ApiResponseError with the server message
    - Empty or non-JSON success bodies normalised to a success indicator
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the booking API client.

        Args:
            config: ApiConfig instance, defaults to environment-based config
            transport: Optional httpx transport, used by tests to stub the server
        """
        self.config = config or ApiConfig.from_env()
        self._client = httpx.AsyncClient(transport=transport, **self.config.to_client_kwargs())

        logger.info(f"Initializing booking API client: {self.config}")

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "BookingApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def request(self, method: str, path: str, payload: Optional[Any] = None) -> Any:
        """
        Issue one request and decode its body.

        Args:
            method: HTTP method
            path: Endpoint path relative to the base URL
            payload: JSON body for POST/PUT

        Returns:
            Decoded JSON, response text, or a success indicator for empty bodies

        Raises:
            ApiConnectionError: If the server cannot be reached or the response cannot be read
            ApiTimeoutError: If the transport timeout elapses
            ApiResponseError: If the server answers with a non-success status
        """
        start_time = time.time()
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out after {self.config.timeout}s")
            raise ApiTimeoutError(f"Request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiConnectionError(f"Could not reach booking API: {e}") from e

        elapsed_ms = (time.time() - start_time) * 1000
        logger.debug(f"{method} {path} -> {response.status_code} ({elapsed_ms:.1f}ms)")

        if not response.is_success:
            server_message = extract_error_message(self._decode_body(response))
            logger.error(f"{method} {path} returned HTTP {response.status_code}: {server_message}")
            raise ApiResponseError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
                server_message=server_message,
            )

        body = self._decode_body(response)
        if body is None:
            return {
                "success": True,
                "status": response.status_code,
                "message": EMPTY_SUCCESS_MESSAGE,
            }
        return body

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        """Decode JSON or text; None for an empty or unparsable-JSON body."""
        if not response.content:
            return None

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                logger.warning(f"Failed to parse JSON body (HTTP {response.status_code})")
                return None

        text = response.text
        return text if text.strip() else None

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, payload: Optional[Any] = None) -> Any:
        return await self.request("POST", path, payload)

    async def put(self, path: str, payload: Optional[Any] = None) -> Any:
        return await self.request("PUT", path, payload)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    # Buses and routes

    async def get_bus(self, bus_id: int) -> Any:
        return await self.get(f"{Endpoints.BUSES}/bus/{bus_id}")

    async def get_buses(self) -> Any:
        return await self.get(Endpoints.BUSES)

    async def get_routes(self, bus_id: Optional[int] = None) -> Any:
        if bus_id is None:
            return await self.get(Endpoints.BUS_ROUTES)
        return await self.get(f"{Endpoints.BUS_ROUTES}/bus/{bus_id}")

    async def create_route(self, payload: Dict[str, Any]) -> Any:
        return await self.post(Endpoints.BUS_ROUTES, payload)

    async def update_route(self, route_id: int, payload: Dict[str, Any]) -> Any:
        return await self.put(f"{Endpoints.BUS_ROUTES}/{route_id}", payload)

    async def delete_route(self, route_id: int) -> Any:
        return await self.delete(f"{Endpoints.BUS_ROUTES}/{route_id}")

    # Schedules

    async def get_schedules_by_route(self, route_id: int) -> Any:
        return await self.get(f"{Endpoints.SCHEDULES}/route/{route_id}")

    async def create_schedule(self, payload: Dict[str, Any]) -> Any:
        return await self.post(Endpoints.SCHEDULES, payload)

    async def update_schedule(self, schedule_id: int, payload: Dict[str, Any]) -> Any:
        return await self.put(f"{Endpoints.SCHEDULES}/{schedule_id}", payload)

    async def delete_schedule(self, schedule_id: int) -> Any:
        return await self.delete(f"{Endpoints.SCHEDULES}/{schedule_id}")

    async def generate_schedules(self, payload: Dict[str, Any]) -> Any:
        return await self.post(f"{Endpoints.SCHEDULES}/bus/generate", payload)

    # Seats and bookings

    async def get_available_seats(self, schedule_id: int) -> Any:
        return await self.get(f"{Endpoints.SCHEDULE_SEATS}/{schedule_id}/available-seats")

    async def lock_booking(self, payload: Dict[str, Any]) -> Any:
        return await self.post(Endpoints.BOOKING_LOCK, payload)

    # Dashboard sources

    async def get_bus_bookings(self, user_id: Optional[str] = None) -> Any:
        if user_id:
            return await self.get(f"{Endpoints.BUS_BOOKINGS}/{user_id}")
        return await self.get(Endpoints.BUS_BOOKINGS)

    async def get_hotel_bookings_count(self) -> Any:
        return await self.get(Endpoints.HOTEL_BOOKINGS_COUNT)

    async def get_taxi_bookings(self) -> Any:
        return await self.get(Endpoints.TAXI_BOOKINGS)

    async def get_movie_bookings(self) -> Any:
        return await self.get(Endpoints.MOVIE_BOOKINGS)

    async def get_hotels(self) -> Any:
        return await self.get(Endpoints.HOTELS)
