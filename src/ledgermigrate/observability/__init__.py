"""
Observability utilities for ledgermigrate.

Provides the injectable Tracer abstraction and the standard span
attribute names used across components.

Example:
    >>> from ledgermigrate.observability import create_tracer
    >>>
    >>> class MyComponent:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
"""

from ledgermigrate.observability.attributes import (
    ATTR_ACCOUNT_COUNT,
    ATTR_ARCHIVE_KEY,
    ATTR_BLOCKING,
    ATTR_DATA_MODE,
    ATTR_INTEGRATION_STATUS,
    ATTR_ISSUE_COUNT,
    ATTR_MIGRATION_SUCCESS,
    ATTR_STORAGE_KEY,
    ATTR_TRANSACTION_COUNT,
    ATTR_TRANSACTION_ID,
    ATTR_USER_ID,
)
from ledgermigrate.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)

__all__ = [
    # Tracer
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
    "ATTR_ACCOUNT_COUNT",
    "ATTR_ARCHIVE_KEY",
    "ATTR_BLOCKING",
    "ATTR_DATA_MODE",
    "ATTR_INTEGRATION_STATUS",
    "ATTR_ISSUE_COUNT",
    "ATTR_MIGRATION_SUCCESS",
    "ATTR_STORAGE_KEY",
    "ATTR_TRANSACTION_COUNT",
    "ATTR_TRANSACTION_ID",
    "ATTR_USER_ID",
]
