"""Canonical JSON serialization used for content digests."""

import base64
import hashlib
import json
import math
from enum import Enum
from typing import Any

from pydantic import BaseModel


def normalize_for_json(obj: Any) -> Any:
    """Normalize an object into plain JSON types with a stable representation.

    Converts Pydantic models to dicts, Enum values to their values, tuples
    and sets to lists, and integral floats to ints so that ``1`` and ``1.0``
    serialize identically.

    Args:
        obj: The object to normalize.

    Returns:
        A JSON-serializable version of the object.

    Raises:
        ValueError: If the object contains NaN or infinite floats.
    """
    if obj is None or isinstance(obj, (bool, int, str)):
        return obj

    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Cannot canonicalize non-finite number: {obj}")
        return int(obj) if obj.is_integer() else obj

    if isinstance(obj, Enum):
        return normalize_for_json(obj.value)

    if isinstance(obj, BaseModel):
        return normalize_for_json(obj.model_dump(by_alias=True, exclude_none=True))

    if isinstance(obj, dict):
        return {str(key): normalize_for_json(value) for key, value in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [normalize_for_json(item) for item in obj]

    if isinstance(obj, (set, frozenset)):
        return sorted(normalize_for_json(item) for item in obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_dumps(obj: Any) -> str:
    """Serialize with sorted keys and no insignificant whitespace."""
    return json.dumps(
        normalize_for_json(obj),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def content_digest(obj: Any) -> str:
    """Base64-encoded SHA-256 of the canonical serialization of ``obj``."""
    digest = hashlib.sha256(canonical_dumps(obj).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")
