"""
Serialization helpers for stored values.

safe_parse never raises: a missing, malformed or wrongly-shaped value is
replaced by a copy of the caller's fallback and the failure is logged.
"""

import copy
import json
import logging
from typing import Any, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def safe_parse(raw: Optional[str], fallback: T, expected_type: Optional[Type] = None) -> T:
    """
    Decode a stored JSON string.

    Args:
        raw: The stored string, or None when the key is absent
        fallback: Value returned when raw is absent or undecodable
        expected_type: If given, a decoded value of another type is
            treated as a decode failure (e.g. a dict where a list is stored)

    Returns:
        The decoded value, or a deep copy of fallback
    """
    if not raw:
        return copy.deepcopy(fallback)

    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.error(f"Error parsing storage data: {e}")
        return copy.deepcopy(fallback)

    if expected_type is not None and not isinstance(value, expected_type):
        logger.error(
            f"Error parsing storage data: expected {expected_type.__name__}, "
            f"got {type(value).__name__}"
        )
        return copy.deepcopy(fallback)

    return value


def dump(value: Any) -> str:
    """Encode a value for storage."""
    return json.dumps(value, ensure_ascii=False)
