"""Unit tests for the tick schedulers and readiness reducers."""

import asyncio

from conftest import FakeHandle
from timedtext_player.playback.readiness import (
    aggregate_network_state,
    aggregate_ready_state,
    can_play,
    can_play_through,
    playing_handles,
)
from timedtext_player.playback.handles import NetworkState, ReadyState, ResourceHandle
from timedtext_player.playback.scheduler import AsyncioScheduler, ManualScheduler


class TestManualScheduler:
    def test_runs_due_tasks_in_order(self):
        sched = ManualScheduler()
        ran = []
        sched.call_later(0.2, lambda: ran.append("late"))
        sched.call_later(0.1, lambda: ran.append("early"))
        sched.call_later(0.1, lambda: ran.append("early-2"))
        assert sched.advance(0.15) == 2
        assert ran == ["early", "early-2"]
        assert sched.pending == 1
        sched.advance(0.1)
        assert ran == ["early", "early-2", "late"]

    def test_cancelled_task_never_runs(self):
        sched = ManualScheduler()
        ran = []
        task = sched.call_later(0.1, lambda: ran.append(1))
        task.cancel()
        assert sched.pending == 0
        assert sched.advance(1.0) == 0
        assert ran == []

    def test_task_scheduled_during_advance(self):
        sched = ManualScheduler()
        ran = []

        def tick():
            ran.append(sched.now)
            if len(ran) < 3:
                sched.call_later(0.1, tick)

        sched.call_later(0.1, tick)
        sched.advance(1.0)
        assert len(ran) == 3
        assert sched.now == 1.0


class TestAsyncioScheduler:
    def test_call_later_and_cancel(self):
        async def scenario():
            sched = AsyncioScheduler()
            fired = []
            sched.call_later(0.01, lambda: fired.append("kept"))
            dropped = sched.call_later(0.01, lambda: fired.append("dropped"))
            dropped.cancel()
            await asyncio.sleep(0.05)
            return fired

        assert asyncio.run(scenario()) == ["kept"]


class TestReadinessReducers:
    def test_fake_handle_satisfies_protocol(self):
        assert isinstance(FakeHandle("a"), ResourceHandle)

    def test_ready_state_is_minimum(self):
        handles = [FakeHandle("a"), FakeHandle("b", ReadyState.HAVE_CURRENT_DATA)]
        assert aggregate_ready_state(handles) == ReadyState.HAVE_CURRENT_DATA
        assert not can_play(handles)
        handles[1].ready_state = ReadyState.HAVE_FUTURE_DATA
        assert can_play(handles)
        assert not can_play_through(handles)

    def test_empty_set(self):
        assert aggregate_ready_state([]) == ReadyState.HAVE_NOTHING
        assert aggregate_network_state([]) == NetworkState.NETWORK_EMPTY

    def test_network_loading_wins(self):
        handles = [FakeHandle("a"), FakeHandle("b")]
        handles[0].network_state = NetworkState.NETWORK_NO_SOURCE
        assert aggregate_network_state(handles) == NetworkState.NETWORK_NO_SOURCE
        handles[1].network_state = NetworkState.NETWORK_LOADING
        assert aggregate_network_state(handles) == NetworkState.NETWORK_LOADING

    def test_playing_handles(self):
        a, b = FakeHandle("a"), FakeHandle("b")
        b.play()
        assert playing_handles([a, b]) == [b]
