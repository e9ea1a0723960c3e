"""
Unit tests for ModeTransitionGate.

Tests cover:
- Admission of CRUD calls while the gate is open
- Rejection of CRUD calls during a transition
- Draining of in-flight calls before the transition body runs
- Drain timeout and gate reopening
- Transition metrics history
"""

import asyncio
from datetime import UTC, datetime

import pytest

from ledgermigrate.migration.mode_gate import (
    ModeTransitionGate,
    TransitionDrainTimeoutError,
    TransitionMetrics,
)

# =============================================================================
# Basic admission
# =============================================================================


class TestModeTransitionGateBasic:
    """Basic tests for ModeTransitionGate."""

    def test_initial_state(self) -> None:
        gate = ModeTransitionGate()
        assert gate.is_closed is False
        assert gate.active_operations == 0
        assert gate.get_metrics_history() == []

    @pytest.mark.asyncio
    async def test_operation_admitted_when_open(self) -> None:
        gate = ModeTransitionGate()

        async with gate.operation() as admitted:
            assert admitted is True
            assert gate.active_operations == 1

        assert gate.active_operations == 0

    @pytest.mark.asyncio
    async def test_operations_run_concurrently(self) -> None:
        """CRUD calls do not exclude each other."""
        gate = ModeTransitionGate()
        inside = asyncio.Event()
        release = asyncio.Event()

        async def hold() -> None:
            async with gate.operation():
                inside.set()
                await release.wait()

        task = asyncio.create_task(hold())
        await inside.wait()

        async with gate.operation() as admitted:
            assert admitted is True
            assert gate.active_operations == 2

        release.set()
        await task

    @pytest.mark.asyncio
    async def test_slot_released_on_exception(self) -> None:
        gate = ModeTransitionGate()

        with pytest.raises(RuntimeError):
            async with gate.operation():
                raise RuntimeError("boom")

        assert gate.active_operations == 0


# =============================================================================
# Transitions
# =============================================================================


class TestModeTransitionGateTransition:
    """Tests for transitions closing the gate."""

    @pytest.mark.asyncio
    async def test_operation_rejected_during_transition(self) -> None:
        gate = ModeTransitionGate()

        async with gate.transition("migration"):
            assert gate.is_closed is True
            async with gate.operation() as admitted:
                assert admitted is False

        assert gate.is_closed is False
        async with gate.operation() as admitted:
            assert admitted is True

    @pytest.mark.asyncio
    async def test_transition_waits_for_in_flight_operation(self) -> None:
        """The transition body only runs once in-flight calls finished."""
        gate = ModeTransitionGate()
        events: list[str] = []
        inside = asyncio.Event()
        release = asyncio.Event()

        async def crud_call() -> None:
            async with gate.operation():
                inside.set()
                await release.wait()
                events.append("crud done")

        async def migrate() -> None:
            async with gate.transition("migration"):
                events.append("transition body")

        crud_task = asyncio.create_task(crud_call())
        await inside.wait()
        transition_task = asyncio.create_task(migrate())
        await asyncio.sleep(0.01)

        assert gate.is_closed is True
        assert events == []

        release.set()
        await asyncio.gather(crud_task, transition_task)

        assert events == ["crud done", "transition body"]
        assert gate.get_metrics_history()[0].drained_operations == 1

    @pytest.mark.asyncio
    async def test_drain_timeout_reopens_gate(self) -> None:
        gate = ModeTransitionGate(drain_timeout=0.05)
        inside = asyncio.Event()
        release = asyncio.Event()

        async def crud_call() -> None:
            async with gate.operation():
                inside.set()
                await release.wait()

        task = asyncio.create_task(crud_call())
        await inside.wait()

        with pytest.raises(TransitionDrainTimeoutError) as exc_info:
            async with gate.transition("rollback"):
                pytest.fail("transition body must not run")

        assert exc_info.value.transition == "rollback"
        assert exc_info.value.in_flight == 1
        assert gate.is_closed is False

        release.set()
        await task

    @pytest.mark.asyncio
    async def test_timeout_argument_overrides_default(self) -> None:
        gate = ModeTransitionGate(drain_timeout=60.0)
        inside = asyncio.Event()
        release = asyncio.Event()

        async def crud_call() -> None:
            async with gate.operation():
                inside.set()
                await release.wait()

        task = asyncio.create_task(crud_call())
        await inside.wait()

        with pytest.raises(TransitionDrainTimeoutError) as exc_info:
            async with gate.transition("migration", timeout=0.02):
                pass

        assert exc_info.value.timeout == 0.02
        release.set()
        await task

    @pytest.mark.asyncio
    async def test_gate_reopens_when_body_raises(self) -> None:
        gate = ModeTransitionGate()

        with pytest.raises(ValueError):
            async with gate.transition("migration"):
                raise ValueError("executor failed")

        assert gate.is_closed is False
        assert len(gate.get_metrics_history()) == 1


# =============================================================================
# Metrics
# =============================================================================


class TestTransitionMetrics:
    """Tests for transition metrics."""

    @pytest.mark.asyncio
    async def test_rejected_operations_counted(self) -> None:
        gate = ModeTransitionGate()

        async with gate.transition("migration"):
            for _ in range(3):
                async with gate.operation():
                    pass

        metrics = gate.get_metrics_history()[0]
        assert metrics.transition == "migration"
        assert metrics.rejected_operations == 3
        assert metrics.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_history_is_bounded(self) -> None:
        gate = ModeTransitionGate(max_history_size=2)

        for name in ("a", "b", "c"):
            async with gate.transition(name):
                pass

        assert [m.transition for m in gate.get_metrics_history()] == ["b", "c"]

    def test_to_dict(self) -> None:
        now = datetime.now(UTC)
        metrics = TransitionMetrics("migration", 1500.0, now, now)

        data = metrics.to_dict()
        assert data["duration_seconds"] == 1.5
        assert data["started_at"] == now.isoformat()
