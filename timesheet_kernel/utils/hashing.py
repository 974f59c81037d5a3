"""
Canonical JSON and SHA-256 fingerprints.

Used for the create-request fingerprint stored on each submission (so an
idempotent replay with different fields can be spotted in the logs) and to
make notification metadata JSON-safe before it is stored.

Canonical form: sorted keys, no whitespace, Decimals without trailing
zeros ("160.00" and "160" are the same hours), ISO dates, UUID strings,
enum values.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _canonical_value(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        normalized = obj.normalize()
        # normalize() turns 100 into 1E+2; keep plain notation
        return format(normalized, "f")
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Cannot canonicalize {type(obj).__name__}")


def canonicalize_json(data: Any) -> str:
    """
    Render ``data`` as canonical JSON.

    Raises:
        TypeError: For values other than JSON natives, Decimal, date,
            datetime, UUID and Enum.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_canonical_value,
    )


def hash_payload(payload: Any) -> str:
    """Hex SHA-256 of the canonical JSON of ``payload``."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()
