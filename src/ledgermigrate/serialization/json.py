"""
JSON serialization utilities for ledgermigrate types.

Handles the types that the standard JSON encoder rejects: UUIDs,
datetimes and pydantic models.

Example:
    >>> from ledgermigrate.serialization import json_dumps, json_loads
    >>> from uuid import uuid4
    >>>
    >>> data = {"id": uuid4()}
    >>> json_str = json_dumps(data)
    >>> parsed = json_loads(json_str)
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class LedgerJSONEncoder(json.JSONEncoder):
    """
    JSON encoder that handles UUID, datetime, enum and pydantic model objects.

    - UUID objects: Converted to string representation
    - datetime objects: Converted to ISO 8601 format string
    - Enum members: Converted to their value
    - pydantic models: Converted with ``model_dump(mode="json")``
    """

    def default(self, obj: Any) -> Any:
        """
        Convert non-serializable objects to JSON-serializable formats.

        Args:
            obj: Object to serialize

        Returns:
            JSON-serializable representation

        Raises:
            TypeError: If object type is not supported
        """
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json")
        return super().default(obj)


def json_dumps(obj: Any) -> str:
    """
    Serialize object to JSON string with UUID, datetime and model support.

    Non-finite floats are rejected so that stored payloads stay valid JSON.

    Args:
        obj: Object to serialize

    Returns:
        JSON string representation

    Raises:
        ValueError: If obj contains NaN or infinite floats
    """
    return json.dumps(obj, cls=LedgerJSONEncoder, allow_nan=False)


def json_loads(s: str | bytes) -> Any:
    """
    Deserialize JSON string to Python object.

    UUID and datetime strings are not converted back to their original
    types; that is the caller's responsibility.

    Args:
        s: JSON string to deserialize

    Returns:
        Python object representation
    """
    return json.loads(s)


__all__ = [
    "LedgerJSONEncoder",
    "json_dumps",
    "json_loads",
]
