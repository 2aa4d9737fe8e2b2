import asyncio
import logging

import pytest

from phoenix_session_client.exceptions import MessageErrorKind, PHXMessageError
from phoenix_session_client.heartbeat import HEARTBEAT_INTERVAL, HeartbeatScheduler


def test_default_interval_is_two_seconds():
    assert HEARTBEAT_INTERVAL == 2.0


@pytest.mark.asyncio
async def test_scheduler_beats_repeatedly_until_stopped():
    beats = []

    async def beat():
        beats.append(len(beats) + 1)
        return len(beats)

    scheduler = HeartbeatScheduler(beat, interval=0.01)
    scheduler.start()
    await asyncio.sleep(0.1)

    assert scheduler.is_running
    await scheduler.stop()
    assert not scheduler.is_running

    count = len(beats)
    assert count >= 2
    await asyncio.sleep(0.05)
    assert len(beats) == count


@pytest.mark.asyncio
async def test_scheduler_waits_one_interval_before_first_beat():
    beats = []

    async def beat():
        beats.append(1)
        return 1

    scheduler = HeartbeatScheduler(beat, interval=10)
    scheduler.start()
    await asyncio.sleep(0.05)

    assert beats == []
    await scheduler.stop()


@pytest.mark.asyncio
async def test_scheduler_stops_and_reports_failed_heartbeat(caplog: pytest.LogCaptureFixture):
    async def beat():
        raise PHXMessageError("Outbound queue is closed", MessageErrorKind.SEND)

    scheduler = HeartbeatScheduler(beat, interval=0.01)
    with caplog.at_level(logging.WARNING):
        scheduler.start()
        await asyncio.sleep(0.1)

        assert not scheduler.is_running
        assert isinstance(scheduler.heartbeat_task.exception(), PHXMessageError)

        await scheduler.stop()

    assert "Heartbeat failed" in caplog.text
    assert "Heartbeat loop had stopped with an error" in caplog.text


@pytest.mark.asyncio
async def test_stop_without_start_is_a_no_op():
    async def beat():
        return 1

    scheduler = HeartbeatScheduler(beat)
    await scheduler.stop()

    assert not scheduler.is_running
