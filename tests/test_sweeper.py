from __future__ import annotations

import asyncio

import pytest

from approval_rules.domain.pending import PendingActionKind, PendingActionStore, PendingActionSweeper
from tests.fixtures.fake_clock import FakeClock


@pytest.mark.asyncio
async def test_sweeper_removes_expired_actions_and_stops_cleanly() -> None:
    clock = FakeClock()
    store = PendingActionStore(clock=clock)
    token = store.put(store.new_action(
        kind=PendingActionKind.CREATE, payload=None, user_id="u1", tenant_id="t1",
    ))
    clock.advance(minutes=6)

    sweeper = PendingActionSweeper(store, interval=0.01)
    sweeper.start()
    assert sweeper.running

    for _ in range(100):
        if store.peek(token) is None:
            break
        await asyncio.sleep(0.01)

    await sweeper.stop()

    assert store.peek(token) is None
    assert not sweeper.running


@pytest.mark.asyncio
async def test_sweeper_as_context_manager() -> None:
    store = PendingActionStore()
    async with PendingActionSweeper(store, interval=10) as sweeper:
        assert sweeper.running
    assert not sweeper.running


@pytest.mark.asyncio
async def test_stop_without_start_is_a_no_op() -> None:
    sweeper = PendingActionSweeper(PendingActionStore())
    await sweeper.stop()
    assert not sweeper.running
