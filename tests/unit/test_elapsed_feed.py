"""Unit tests for the live elapsed-time feed."""

import asyncio
import json

import pytest

from cafe_ops.exceptions import CheckInNotFoundError
from cafe_ops.models.check_in import CheckInState
from cafe_ops.repositories.document_store import CHECK_INS
from cafe_ops.services.elapsed_feed import to_event, watch_elapsed


def _collect(check_in_id, timer, interval=5.0, on_snapshot=None):
    async def run():
        snapshots = []
        async for snapshot in watch_elapsed(check_in_id, timer=timer, interval=interval):
            snapshots.append(snapshot)
            if on_snapshot is not None:
                on_snapshot(snapshots)
        return snapshots

    return asyncio.run(run())


class TestWatchElapsed:
    def test_closed_session_emits_once(self, open_session, timer, clock, make_purchase):
        check_in = open_session(make_purchase())
        clock.advance_time(minutes=2)
        timer.check_out(check_in.id)

        snapshots = _collect(check_in.id, timer)

        assert len(snapshots) == 1
        assert snapshots[0].state == CheckInState.CLOSED
        assert snapshots[0].elapsed == "00:02:00"

    def test_paused_session_emits_frozen_value(self, open_session, timer, clock, make_purchase):
        check_in = open_session(make_purchase())
        clock.advance_time(seconds=10)
        timer.pause(check_in.id)
        clock.advance_time(hours=1)

        snapshots = _collect(check_in.id, timer)

        assert [s.elapsed_millis for s in snapshots] == [10_000]

    def test_store_change_wakes_feed(self, open_session, timer, clock, make_purchase):
        check_in = open_session(make_purchase())

        def pause_after_first(snapshots):
            if len(snapshots) == 1:
                clock.advance_time(seconds=30)
                timer.pause(check_in.id)

        # A long interval: only the store notification can end this promptly
        snapshots = _collect(check_in.id, timer, interval=30.0, on_snapshot=pause_after_first)

        assert [s.state for s in snapshots] == [CheckInState.RUNNING, CheckInState.PAUSED]
        assert snapshots[-1].elapsed_millis == 30_000

    def test_ticks_while_running(self, open_session, timer, clock, make_purchase):
        check_in = open_session(make_purchase())

        def tick(snapshots):
            clock.advance_time(seconds=1)
            if len(snapshots) == 3:
                timer.check_out(check_in.id)

        snapshots = _collect(check_in.id, timer, interval=0.01, on_snapshot=tick)

        assert [s.elapsed_millis for s in snapshots] == [0, 1_000, 2_000, 3_000]
        assert snapshots[-1].state == CheckInState.CLOSED

    def test_unknown_session(self, timer, store):
        with pytest.raises(CheckInNotFoundError):
            _collect("missing", timer)

        assert store._subscribers[CHECK_INS] == []


def test_to_event(open_session, timer, clock, make_purchase):
    check_in = open_session(make_purchase())
    clock.advance_time(seconds=70)

    event = to_event(timer.elapsed(check_in.id))

    assert event.startswith("event: elapsed\ndata: ")
    assert event.endswith("\n\n")
    payload = json.loads(event.split("data: ", 1)[1])
    assert payload == {
        "checkInId": check_in.id,
        "state": "running",
        "elapsedMillis": 70_000,
        "elapsed": "00:01:10",
    }
