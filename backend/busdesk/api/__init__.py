"""
Transport layer for the bus operator console.

This module contains the booking API configuration, the async HTTP client
and the shape-tolerant response decoder shared by all workflow managers.
"""

from .config import (
    ApiConfig,
    Endpoints,
    ApiError,
    ApiConnectionError,
    ApiTimeoutError,
    ApiResponseError,
)
from .client import BookingApiClient
from .responses import (
    ResponseShape,
    classify_response,
    extract_items,
    extract_count,
    extract_entity,
    filter_identified,
    parse_models,
    decode_collection,
    extract_error_message,
)

__all__ = [
    # Configuration
    "ApiConfig",
    "Endpoints",

    # Errors
    "ApiError",
    "ApiConnectionError",
    "ApiTimeoutError",
    "ApiResponseError",

    # Client
    "BookingApiClient",

    # Decoding
    "ResponseShape",
    "classify_response",
    "extract_items",
    "extract_count",
    "extract_entity",
    "filter_identified",
    "parse_models",
    "decode_collection",
    "extract_error_message",
]
