"""Tests for the periodic sync scheduler."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeRemote
from quotesync.engine import SyncEngine
from quotesync.scheduler import Scheduler
from quotesync.store import RecordStore


@pytest.fixture
def engine(store: RecordStore) -> SyncEngine:
    return SyncEngine(store, FakeRemote([{"text": "A", "category": "Server"}]))


class TestScheduler:
    """Tests for start/stop semantics."""

    @pytest.mark.asyncio
    async def test_start_runs_a_pass_immediately(self, engine: SyncEngine):
        scheduler = Scheduler(engine)
        assert scheduler.start(60) is True
        await asyncio.sleep(0.05)

        assert engine.pass_count == 1
        assert scheduler.is_running()

        assert scheduler.stop() is True
        await asyncio.wait_for(scheduler.wait_closed(), timeout=1)
        assert not scheduler.is_running()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, engine: SyncEngine):
        scheduler = Scheduler(engine)
        assert scheduler.start(60) is True
        assert scheduler.start(60) is False
        await asyncio.sleep(0.05)

        assert engine.pass_count == 1
        scheduler.stop()
        await scheduler.wait_closed()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, engine: SyncEngine):
        scheduler = Scheduler(engine)
        assert scheduler.stop() is False
        scheduler.start(60)
        assert scheduler.stop() is True
        assert scheduler.stop() is False
        await scheduler.wait_closed()

    @pytest.mark.asyncio
    async def test_runs_repeatedly_on_interval(self, engine: SyncEngine):
        scheduler = Scheduler(engine)
        scheduler.start(0.01)
        await asyncio.sleep(0.2)
        scheduler.stop()
        await scheduler.wait_closed()

        assert engine.pass_count >= 3

    @pytest.mark.asyncio
    async def test_stop_lets_in_flight_pass_finish(self, store: RecordStore):
        remote = FakeRemote([{"text": "A", "category": "Server"}])
        remote.gate = asyncio.Event()
        engine = SyncEngine(store, remote)
        scheduler = Scheduler(engine)

        scheduler.start(60)
        await asyncio.sleep(0.01)
        assert engine.is_syncing

        scheduler.stop()
        remote.gate.set()
        await asyncio.wait_for(scheduler.wait_closed(), timeout=1)

        assert engine.pass_count == 1
        assert store.get("a") is not None

    @pytest.mark.asyncio
    async def test_can_restart_after_stop(self, engine: SyncEngine):
        scheduler = Scheduler(engine)
        scheduler.start(60)
        await asyncio.sleep(0.01)
        scheduler.stop()
        await scheduler.wait_closed()

        assert scheduler.start(60) is True
        await asyncio.sleep(0.01)
        scheduler.stop()
        await scheduler.wait_closed()
        assert engine.pass_count == 2

    @pytest.mark.asyncio
    async def test_restart_with_pass_in_flight_reuses_loop(self, store: RecordStore):
        remote = FakeRemote([{"text": "A", "category": "Server"}])
        remote.gate = asyncio.Event()
        engine = SyncEngine(store, remote)
        scheduler = Scheduler(engine)

        scheduler.start(60)
        await asyncio.sleep(0.01)
        scheduler.stop()
        assert scheduler.start(60) is True
        assert scheduler.is_running()

        remote.gate.set()
        await asyncio.sleep(0.05)

        assert remote.calls == 1
        assert engine.pass_count == 1
        assert scheduler.is_running()

        scheduler.stop()
        await asyncio.wait_for(scheduler.wait_closed(), timeout=1)

    @pytest.mark.asyncio
    async def test_restart_before_loop_exits_runs_a_pass(self, engine: SyncEngine):
        scheduler = Scheduler(engine)
        scheduler.start(60)
        await asyncio.sleep(0.05)
        assert engine.pass_count == 1

        scheduler.stop()
        assert scheduler.start(60) is True
        await asyncio.sleep(0.05)

        assert engine.pass_count == 2
        scheduler.stop()
        await asyncio.wait_for(scheduler.wait_closed(), timeout=1)

    @pytest.mark.asyncio
    async def test_rejects_non_positive_interval(self, engine: SyncEngine):
        with pytest.raises(ValueError):
            Scheduler(engine).start(0)
