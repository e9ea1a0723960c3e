"""
ModeTransitionGate - Barrier between CRUD traffic and mode transitions.

CRUD calls run concurrently with each other, each holding a shared slot
for its whole duration. A mode transition (migration or rollback) closes
the gate, waits for the in-flight calls to drain, and only then changes
the mode. Calls that arrive while the gate is closed are turned away
immediately instead of being queued.

This guarantees that a CRUD call is either fully applied under the mode it
started in, or rejected; it never straddles a mode flip.

Usage:
    >>> gate = ModeTransitionGate(drain_timeout=5.0)
    >>>
    >>> async with gate.operation() as admitted:
    ...     if admitted:
    ...         await router.add_transaction(mode, txn)
    >>>
    >>> async with gate.transition("migration"):
    ...     ...  # no CRUD call is running here
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ledgermigrate.migration.exceptions import ErrorClassification, MigrationError

logger = logging.getLogger(__name__)


class TransitionDrainTimeoutError(MigrationError):
    """
    Raised when in-flight CRUD calls do not drain before the timeout.

    The gate is reopened before the error propagates.

    Attributes:
        transition: Name of the transition that gave up.
        timeout: The timeout in seconds that was exceeded.
        in_flight: CRUD calls still running when the timeout expired.
    """

    _default_classification = ErrorClassification(
        error_code="TRANSITION_DRAIN_TIMEOUT",
        category="state",
        recoverable=True,
        suggested_action="Retry once in-flight operations have finished",
    )

    def __init__(self, transition: str, timeout: float, in_flight: int) -> None:
        self.transition = transition
        self.timeout = timeout
        self.in_flight = in_flight
        super().__init__(
            f"{transition} gave up after {timeout}s waiting for {in_flight} "
            f"in-flight operation(s)"
        )


@dataclass(frozen=True)
class TransitionMetrics:
    """
    Metrics for a completed mode transition.

    Attributes:
        transition: Name of the transition ("migration", "rollback").
        duration_ms: How long the gate stayed closed in milliseconds.
        started_at: When the gate closed (UTC).
        ended_at: When the gate reopened (UTC).
        drained_operations: CRUD calls in flight when the gate closed.
        rejected_operations: CRUD calls turned away while closed.
    """

    transition: str
    duration_ms: float
    started_at: datetime
    ended_at: datetime
    drained_operations: int = 0
    rejected_operations: int = 0

    @property
    def duration_seconds(self) -> float:
        """Get duration in seconds."""
        return self.duration_ms / 1000.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "transition": self.transition,
            "duration_ms": self.duration_ms,
            "duration_seconds": self.duration_seconds,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "drained_operations": self.drained_operations,
            "rejected_operations": self.rejected_operations,
        }


class ModeTransitionGate:
    """
    Coordinates CRUD calls with mode transitions.

    Transitions are serialized with an asyncio.Lock; draining waits on an
    asyncio.Event that is set whenever no CRUD call is in flight.

    Attributes:
        _drain_timeout: Seconds to wait for in-flight calls (None = forever).
        _active: Number of CRUD calls currently holding a slot.
        _closed: Whether a transition is in progress.
    """

    def __init__(
        self,
        *,
        drain_timeout: float | None = None,
        max_history_size: int = 100,
    ) -> None:
        """
        Initialize the gate.

        Args:
            drain_timeout: Default seconds a transition waits for in-flight
                calls to finish. None waits indefinitely.
            max_history_size: Maximum number of transition metrics to retain.
        """
        self._drain_timeout = drain_timeout
        self._max_history_size = max_history_size
        self._active = 0
        self._closed = False
        self._rejected = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._lock = asyncio.Lock()
        self._metrics_history: list[TransitionMetrics] = []

    @property
    def is_closed(self) -> bool:
        """Check if a transition is currently in progress."""
        return self._closed

    @property
    def active_operations(self) -> int:
        return self._active

    @asynccontextmanager
    async def operation(self) -> AsyncIterator[bool]:
        """
        Hold a shared slot for one CRUD call.

        Yields:
            True if the call was admitted, False if a transition is in
            progress and the call must be rejected.
        """
        if self._closed:
            self._rejected += 1
            logger.debug("Operation rejected: mode transition in progress")
            yield False
            return

        self._active += 1
        self._idle.clear()
        try:
            yield True
        finally:
            self._active -= 1
            if self._active == 0:
                self._idle.set()

    @asynccontextmanager
    async def transition(
        self,
        name: str,
        *,
        timeout: float | None = None,
    ) -> AsyncIterator[None]:
        """
        Close the gate, drain in-flight calls and hold the gate exclusively.

        Args:
            name: Transition name used in logs and metrics.
            timeout: Drain timeout in seconds; overrides the default.

        Raises:
            TransitionDrainTimeoutError: If in-flight calls do not finish in
                time. The gate is reopened before raising.
        """
        effective_timeout = timeout if timeout is not None else self._drain_timeout

        async with self._lock:
            self._closed = True
            self._rejected = 0
            started = time.perf_counter()
            started_at = datetime.now(UTC)
            drained = self._active

            if drained:
                logger.debug("%s waiting for %d in-flight operation(s)", name, drained)

            try:
                await asyncio.wait_for(self._idle.wait(), timeout=effective_timeout)
            except TimeoutError:
                self._closed = False
                logger.warning(
                    "%s drain timeout after %.2fs (%d still in flight)",
                    name,
                    effective_timeout,
                    self._active,
                )
                raise TransitionDrainTimeoutError(
                    name, effective_timeout or 0.0, self._active
                ) from None
            except BaseException:
                self._closed = False
                raise

            try:
                yield
            finally:
                self._closed = False
                metrics = TransitionMetrics(
                    transition=name,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    started_at=started_at,
                    ended_at=datetime.now(UTC),
                    drained_operations=drained,
                    rejected_operations=self._rejected,
                )
                self._metrics_history.append(metrics)
                if len(self._metrics_history) > self._max_history_size:
                    self._metrics_history.pop(0)

                logger.info(
                    "%s released gate (duration=%.2fms, drained=%d, rejected=%d)",
                    name,
                    metrics.duration_ms,
                    drained,
                    metrics.rejected_operations,
                )

    def get_metrics_history(self) -> list[TransitionMetrics]:
        """
        Get recent transition metrics.

        Returns:
            List of recent TransitionMetrics instances.
        """
        return list(self._metrics_history)


__all__ = [
    "ModeTransitionGate",
    "TransitionDrainTimeoutError",
    "TransitionMetrics",
]
