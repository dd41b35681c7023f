"""
Booking API transport configuration and error types.

This module provides the configuration class for the HTTP transport,
the endpoint paths of the booking backend, and the exception hierarchy
raised by the API client.
"""

import os
import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass
from dotenv import load_dotenv

from ..utils.config import ConsoleConfig

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class Endpoints:
    """Endpoint paths of the booking backend."""

    BUSES = "/api/buses"
    BUS_ROUTES = "/api/bus-routes"
    SCHEDULES = "/api/schedules"
    SCHEDULE_SEATS = "/bus/bookings/schedule"
    BOOKING_LOCK = "/api/bookings/lock"

    # Dashboard sources
    BUS_BOOKINGS = "/bus/bookings"
    HOTEL_BOOKINGS_COUNT = "/bookings/hotel/count"
    TAXI_BOOKINGS = "/taxi/bookings"
    MOVIE_BOOKINGS = "/movie/bookings"
    HOTELS = "/api/v1/hotels"


@dataclass
class ApiConfig:
    """
    Configuration for the booking API transport.

    Timeouts are delegated entirely to the transport; the workflow managers
    never time out on their own.
    """

    base_url: str = "http://localhost:8080"
    timeout: float = 10.0
    token: Optional[str] = None
    user_agent: str = "busdesk/0.1"

    @classmethod
    def from_env(cls) -> "ApiConfig":
        """
        Create ApiConfig from environment variables.

        Returns:
            ApiConfig: Configuration instance with values from environment
        """
        return cls(
            base_url=os.getenv("BUSDESK_API_BASE_URL", "http://localhost:8080").rstrip("/"),
            timeout=float(os.getenv("BUSDESK_API_TIMEOUT", "10")),
            token=os.getenv("BUSDESK_API_TOKEN") or None,
        )

    @classmethod
    def from_console_config(cls, config: ConsoleConfig) -> "ApiConfig":
        """Build the transport subset of a validated console configuration."""
        return cls(
            base_url=config.api_base_url,
            timeout=config.api_timeout_seconds,
            token=config.api_token,
        )

    def to_client_kwargs(self) -> Dict[str, Any]:
        """
        Convert configuration to httpx.AsyncClient parameters.

        Returns:
            Dict[str, Any]: Keyword arguments for the HTTP client
        """
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        return {
            "base_url": self.base_url,
            "timeout": self.timeout,
            "headers": headers,
        }

    def __str__(self) -> str:
        """String representation hiding sensitive information."""
        token_display = "***" if self.token else "None"
        return f"ApiConfig(base_url={self.base_url}, timeout={self.timeout}, token={token_display})"


class ApiError(Exception):
    """Base exception for booking API failures."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 server_message: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


class ApiConnectionError(ApiError):
    """Raised when the booking API cannot be reached."""
    pass


class ApiTimeoutError(ApiError):
    """Raised when a request exceeds the transport timeout."""
    pass


class ApiResponseError(ApiError):
    """Raised for non-success HTTP responses."""
    pass
