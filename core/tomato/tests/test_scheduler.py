"""Tests for the asyncio phase scheduler."""

import asyncio

from tomato.engine.lifecycle import PhasePlan
from tomato.runtime.scheduler import AsyncioPhaseScheduler, Phase


def _recorder():
    fired = []

    async def callback(session_id, phase):
        fired.append((session_id, phase))

    return fired, callback


def test_fires_work_then_break():
    async def scenario():
        fired, callback = _recorder()
        scheduler = AsyncioPhaseScheduler()
        scheduler.schedule(PhasePlan("s1", 0.01, 0.03), callback)
        await asyncio.sleep(0.1)
        return fired, scheduler.pending("s1")

    fired, pending = asyncio.run(scenario())

    assert fired == [("s1", Phase.WORK), ("s1", Phase.BREAK)]
    assert pending == 0


def test_cancel_drops_signals():
    async def scenario():
        fired, callback = _recorder()
        scheduler = AsyncioPhaseScheduler()
        scheduler.schedule(PhasePlan("s1", 0.02, 0.04), callback)
        scheduler.cancel("s1")
        await asyncio.sleep(0.08)
        return fired

    assert asyncio.run(scenario()) == []


def test_reschedule_replaces_pending_plan():
    async def scenario():
        fired, callback = _recorder()
        scheduler = AsyncioPhaseScheduler()
        scheduler.schedule(PhasePlan("s1", 0.02, 0.04), callback)
        scheduler.schedule(PhasePlan("s1", 0.05, 0.5), callback)
        await asyncio.sleep(0.08)
        pending = scheduler.pending("s1")
        await scheduler.shutdown()
        return fired, pending

    fired, pending = asyncio.run(scenario())

    # Only the second plan's work signal, once
    assert fired == [("s1", Phase.WORK)]
    assert pending == 1


def test_failing_callback_does_not_stop_break_signal():
    async def scenario():
        fired = []

        async def callback(session_id, phase):
            fired.append(phase)
            if phase == Phase.WORK:
                raise RuntimeError("notifier down")

        scheduler = AsyncioPhaseScheduler()
        scheduler.schedule(PhasePlan("s1", 0.01, 0.02), callback)
        await asyncio.sleep(0.08)
        return fired

    assert asyncio.run(scenario()) == [Phase.WORK, Phase.BREAK]


def test_shutdown_cancels_everything():
    async def scenario():
        fired, callback = _recorder()
        scheduler = AsyncioPhaseScheduler()
        scheduler.schedule(PhasePlan("s1", 0.05, 0.1), callback)
        scheduler.schedule(PhasePlan("s2", 0.05, 0.1), callback)
        await scheduler.shutdown()
        await asyncio.sleep(0.12)
        return fired, scheduler.pending("s1")

    fired, pending = asyncio.run(scenario())

    assert fired == []
    assert pending == 0
