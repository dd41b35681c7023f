"""
Shape-tolerant decoding of booking API responses.

The backend answers the same kind of request with several envelope shapes:
a bare array, ``{"data": [...]}``, ``{"<entity>": [...]}`` or, for paginated
endpoints, ``{"content": [...]}``. Counts may come back as a bare number or
wrapped in ``count``/``data``. This module classifies a response into one of
those shapes and extracts the payload with an explicit fallback order.
Malformed entries are dropped and logged rather than raised.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ResponseShape(str, Enum):
    """Envelope shapes understood by the decoder."""
    ARRAY = "array"        # [...]
    DATA = "data"          # {"data": [...]}
    ENTITY = "entity"      # {"routes": [...]}
    CONTENT = "content"    # {"content": [...]}
    COUNT = "count"        # 42, {"count": 42}, {"data": 42}, {"data": {"count": 42}}
    UNKNOWN = "unknown"


def classify_response(response: Any, entity_key: Optional[str] = None) -> ResponseShape:
    """
    Classify a response envelope.

    Collection shapes are checked in order: bare array, ``data`` array,
    ``<entity_key>`` array, ``content`` array; count shapes are checked last.

    Args:
        response: Decoded response body
        entity_key: Entity-named envelope key, e.g. "routes"

    Returns:
        ResponseShape: The first matching shape
    """
    if isinstance(response, list):
        return ResponseShape.ARRAY
    if isinstance(response, bool):
        return ResponseShape.UNKNOWN
    if isinstance(response, (int, float)):
        return ResponseShape.COUNT
    if not isinstance(response, dict):
        return ResponseShape.UNKNOWN

    if isinstance(response.get("data"), list):
        return ResponseShape.DATA
    if entity_key and isinstance(response.get(entity_key), list):
        return ResponseShape.ENTITY
    if isinstance(response.get("content"), list):
        return ResponseShape.CONTENT
    if _count_value(response) is not None:
        return ResponseShape.COUNT
    return ResponseShape.UNKNOWN


def extract_items(response: Any, entity_key: Optional[str] = None) -> List[Any]:
    """
    Extract the collection carried by a response.

    Args:
        response: Decoded response body
        entity_key: Entity-named envelope key, e.g. "schedules"

    Returns:
        List of raw entries; empty when the shape is not a collection
    """
    shape = classify_response(response, entity_key)

    if shape is ResponseShape.ARRAY:
        return list(response)
    if shape is ResponseShape.DATA:
        return list(response["data"])
    if shape is ResponseShape.ENTITY:
        return list(response[entity_key])
    if shape is ResponseShape.CONTENT:
        return list(response["content"])

    logger.warning(f"Unexpected collection response shape ({shape.value}) for "
                   f"'{entity_key or 'items'}': {type(response).__name__}")
    return []


def extract_count(response: Any) -> int:
    """
    Extract a count from a response.

    Order: bare number, ``count``, numeric ``data``, ``data.count``; anything
    else counts as 0.
    """
    if isinstance(response, bool):
        return 0
    if isinstance(response, (int, float)):
        return int(response)
    if isinstance(response, dict):
        value = _count_value(response)
        if value is not None:
            return value

    logger.warning(f"Unexpected count response: {type(response).__name__}")
    return 0


def extract_entity(response: Any, entity_key: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Extract a single entity object.

    Order: ``data`` object, ``<entity_key>`` object, the response itself when
    it carries an ``id``.
    """
    if not isinstance(response, dict):
        return None

    data = response.get("data")
    if isinstance(data, dict):
        return data
    if entity_key and isinstance(response.get(entity_key), dict):
        return response[entity_key]
    if response.get("id"):
        return response
    return None


def filter_identified(items: List[Any]) -> List[Dict[str, Any]]:
    """Keep only object entries with a truthy ``id``."""
    valid = [item for item in items if isinstance(item, dict) and item.get("id")]
    dropped = len(items) - len(valid)
    if dropped:
        logger.warning(f"Dropped {dropped} malformed entr{'y' if dropped == 1 else 'ies'} without an id")
    return valid


def parse_models(items: List[Dict[str, Any]], model: Type[ModelT]) -> List[ModelT]:
    """
    Validate raw entries into models, skipping entries that fail validation.

    Args:
        items: Raw entries, usually the output of filter_identified()
        model: Pydantic model class to validate into

    Returns:
        Successfully validated models, in input order
    """
    parsed: List[ModelT] = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {model.__name__} id={item.get('id')}: "
                           f"{e.error_count()} validation error(s)")
    return parsed


def decode_collection(response: Any, entity_key: str, model: Type[ModelT]) -> List[ModelT]:
    """Extract, filter and validate a collection response in one step."""
    return parse_models(filter_identified(extract_items(response, entity_key)), model)


def extract_error_message(body: Any) -> Optional[str]:
    """Return the server-provided error message of an error body, if any."""
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(body, str) and body.strip() and len(body) < 500:
        return body.strip()
    return None


def _count_value(response: Dict[str, Any]) -> Optional[int]:
    if "count" in response and response["count"] is not None:
        return _to_int(response["count"])

    data = response.get("data")
    if isinstance(data, (int, float)) and not isinstance(data, bool):
        return int(data)
    if isinstance(data, dict) and data.get("count") is not None:
        return _to_int(data["count"])
    return None


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
