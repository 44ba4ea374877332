"""Tests for the node-pool readiness gate."""

import asyncio

import pytest

from crossbar.errors import StepExecutionError
from crossbar.orchestration.gate import ReadinessGate


async def feed(*counts, error=None):
    for count in counts:
        yield count
    if error is not None:
        raise error


class TestReadinessGate:
    """Gate behaviour."""

    def test_opens_at_threshold(self):
        gate = ReadinessGate(min_ready=2)
        gate.report(1)
        assert not gate.is_open
        gate.report(2)
        assert gate.is_open
        assert gate.ready_count == 2

    def test_waiters_resume_when_feed_reaches_threshold(self):
        async def scenario():
            gate = ReadinessGate(min_ready=3)
            waiter = asyncio.create_task(gate.wait())
            await gate.watch(feed(0, 1, 3, 5))
            await asyncio.wait_for(waiter, timeout=1)
            return gate

        gate = asyncio.run(scenario())
        assert gate.is_open
        # The watch stops reading once the gate opened
        assert gate.ready_count == 3

    def test_feed_error_fails_waiters(self):
        async def scenario():
            gate = ReadinessGate(name="pool")
            await gate.watch(feed(0, error=RuntimeError("api unavailable")))
            await gate.wait()

        with pytest.raises(StepExecutionError, match="api unavailable"):
            asyncio.run(scenario())

    def test_feed_ending_below_threshold_keeps_gate_closed(self):
        async def scenario():
            gate = ReadinessGate(min_ready=2)
            await gate.watch(feed(0, 1))
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(gate.wait(), timeout=0.05)
            return gate

        gate = asyncio.run(scenario())
        assert not gate.is_open
        assert gate.ready_count == 1

    def test_fail_after_open_is_ignored(self):
        gate = ReadinessGate()
        gate.report(1)
        gate.fail(RuntimeError("late"))
        assert gate.is_open
