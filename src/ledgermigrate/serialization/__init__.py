"""
Serialization utilities for ledgermigrate.

Example:
    >>> from ledgermigrate.serialization import json_dumps
    >>> from uuid import uuid4
    >>>
    >>> json_str = json_dumps({"id": uuid4()})
"""

from ledgermigrate.serialization.json import (
    LedgerJSONEncoder,
    json_dumps,
    json_loads,
)

__all__ = [
    "LedgerJSONEncoder",
    "json_dumps",
    "json_loads",
]
