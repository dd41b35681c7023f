"""
Dashboard statistics across the booking services.

Six sources are fetched concurrently; a failing source contributes nothing
and is reported in ``failed_sources`` instead of failing the whole dashboard.
"""

import asyncio
import logging
import math
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..api.config import ApiError
from ..api.responses import extract_count, extract_items
from ..models.dashboard import DashboardStatsModel

if TYPE_CHECKING:
    from ..api.client import BookingApiClient

logger = logging.getLogger(__name__)

REVENUE_FIELDS = ("totalAmount", "price", "cost", "amount")


def booking_amount(item: Any) -> float:
    """First positive numeric among the known amount fields, else 0."""
    if not isinstance(item, dict):
        return 0.0
    for key in REVENUE_FIELDS:
        try:
            value = float(item.get(key))
        except (TypeError, ValueError):
            continue
        if value > 0 and math.isfinite(value):
            return value
    return 0.0


class DashboardAggregator:
    """Parallel fetch-and-reduce of the dashboard counters."""

    def __init__(self, api: "BookingApiClient"):
        self.api = api

    async def collect(self, user_id: Optional[str] = None) -> DashboardStatsModel:
        """
        Fetch every source and reduce them to one stats record.

        Args:
            user_id: Restrict bus bookings to one user when given

        Returns:
            DashboardStatsModel with totals over the sources that answered
        """
        sources = {
            "hotel_bookings": self.api.get_hotel_bookings_count(),
            "bus_bookings": self.api.get_bus_bookings(user_id),
            "taxi_bookings": self.api.get_taxi_bookings(),
            "movie_bookings": self.api.get_movie_bookings(),
            "hotels": self.api.get_hotels(),
            "buses": self.api.get_buses(),
        }
        results = await asyncio.gather(*sources.values(), return_exceptions=True)

        responses: Dict[str, Any] = {}
        failed: List[str] = []
        for name, result in zip(sources, results):
            if isinstance(result, ApiError):
                logger.warning(f"Dashboard source '{name}' failed: {result}")
                failed.append(name)
            elif isinstance(result, BaseException):
                raise result
            else:
                responses[name] = result

        hotel_count = max(0, extract_count(responses["hotel_bookings"])) if "hotel_bookings" in responses else 0
        bus_bookings = self._items(responses, "bus_bookings")
        taxi_bookings = self._items(responses, "taxi_bookings")
        movie_bookings = self._items(responses, "movie_bookings")
        hotels = self._items(responses, "hotels")
        buses = self._items(responses, "buses")

        revenue = sum(booking_amount(item) for item in bus_bookings + taxi_bookings + movie_bookings)

        active_services = sum([
            bool(hotels) or hotel_count > 0,
            bool(buses) or bool(bus_bookings),
            bool(taxi_bookings),
            bool(movie_bookings),
        ])

        stats = DashboardStatsModel(
            total_bookings=hotel_count + len(bus_bookings) + len(taxi_bookings) + len(movie_bookings),
            revenue=revenue,
            active_services=active_services,
            total_buses=len(buses),
            total_hotels=len(hotels),
            failed_sources=failed,
        )
        logger.info(f"Dashboard collected: {stats.total_bookings} bookings, "
                    f"{len(failed)} failed source(s)")
        return stats

    @staticmethod
    def _items(responses: Dict[str, Any], name: str) -> List[Any]:
        if name not in responses:
            return []
        return extract_items(responses[name])
