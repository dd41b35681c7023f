"""
Dashboard statistics model.
"""

from typing import List
from pydantic import BaseModel, Field


class DashboardStatsModel(BaseModel):
    """Aggregated counters across the booking services."""

    total_bookings: int = Field(default=0, ge=0)
    revenue: float = Field(default=0.0, ge=0)
    active_services: int = Field(default=0, ge=0)
    total_buses: int = Field(default=0, ge=0)
    total_hotels: int = Field(default=0, ge=0)
    failed_sources: List[str] = Field(default_factory=list, description="Sources that could not be fetched")
