"""Unit tests for ConnectionSupervisor lifecycle, reconnects and queue draining."""

import asyncio
import logging
import time

import pytest

from oled_bridge.core.connection import RetryPolicy
from oled_bridge.core.errors import DeliveryFailedError, LinkOpenError, QueueAbandonedError
from oled_bridge.display.supervisor import ConnectionSupervisor, SupervisorState


def make_supervisor(link, **overrides) -> ConnectionSupervisor:
    params = dict(
        auto_reconnect=True,
        reconnect_interval=0.05,
        boot_settle_delay=0.0,
        command_settle_delay=0.0,
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0.01),
    )
    params.update(overrides)
    return ConnectionSupervisor(link, **params)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class TestStartup:
    @pytest.mark.asyncio
    async def test_start_runs_reset_sequence(self, fake_link):
        supervisor = make_supervisor(fake_link)

        assert supervisor.state is SupervisorState.UNINITIALIZED
        assert await supervisor.start() is True

        assert supervisor.state is SupervisorState.OPEN
        assert supervisor.is_ready
        assert supervisor.display_connected
        assert fake_link.lines == ["reset", "clear"]
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_boot_settle_delay_precedes_reset(self, fake_link):
        supervisor = make_supervisor(fake_link, boot_settle_delay=0.1)
        loop = asyncio.get_running_loop()

        started = loop.time()
        await supervisor.start()

        assert fake_link.write_times[0] - fake_link.open_times[0] >= 0.095
        assert loop.time() - started >= 0.095
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_open_failure_without_auto_reconnect_raises(self, fake_link):
        fake_link.open_failures = 1
        supervisor = make_supervisor(fake_link, auto_reconnect=False)

        with pytest.raises(LinkOpenError):
            await supervisor.start()

        assert supervisor.state is SupervisorState.CLOSED
        assert not supervisor.schedule.is_armed
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_open_failure_with_auto_reconnect_arms_schedule(self, fake_link):
        fake_link.open_failures = 1
        supervisor = make_supervisor(fake_link, reconnect_interval=10.0)

        assert await supervisor.start() is False

        assert supervisor.state is SupervisorState.CLOSED
        assert supervisor.schedule.is_armed
        assert not supervisor.display_connected
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_open_retried_at_interval_until_success(self, fake_link, caplog):
        caplog.set_level(logging.WARNING)
        fake_link.open_failures = 2
        supervisor = make_supervisor(fake_link, reconnect_interval=0.1)
        loop = asyncio.get_running_loop()

        started = loop.time()
        await supervisor.start()
        await wait_until(lambda: supervisor.state is SupervisorState.OPEN)

        assert loop.time() - started >= 0.19
        assert supervisor.failed_open_attempts == 2
        failures = [r for r in caplog.records if "Open attempt" in r.getMessage()]
        assert len(failures) == 2
        gaps = [b - a for a, b in zip(fake_link.open_times, fake_link.open_times[1:])]
        assert all(gap >= 0.095 for gap in gaps)

        await wait_until(lambda: supervisor.is_ready)
        assert fake_link.lines == ["reset", "clear"]
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_reset_failure_closes_link_and_reconnects(self, fake_link):
        fake_link.write_failures = 3
        supervisor = make_supervisor(fake_link)

        assert await supervisor.start() is False
        assert not fake_link.is_open

        await wait_until(lambda: supervisor.is_ready)
        assert fake_link.open_calls == 2
        assert fake_link.lines == ["reset", "clear"]
        await supervisor.shutdown()


class TestQueueing:
    @pytest.mark.asyncio
    async def test_commands_sent_while_closed_delivered_in_order(self, fake_link):
        fake_link.open_failures = 1
        supervisor = make_supervisor(fake_link)
        await supervisor.start()

        commands = ["clear", "textxy:0,0,Hi", "logo"]
        sends = [asyncio.create_task(supervisor.sender.send(c)) for c in commands]
        await asyncio.sleep(0)
        assert supervisor.queued_commands == 3

        await asyncio.wait_for(asyncio.gather(*sends), timeout=2.0)

        assert fake_link.lines == ["reset", "clear", *commands]
        assert supervisor.queued_commands == 0
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_settle_gap_after_each_queued_command(self, fake_link):
        fake_link.open_failures = 1
        supervisor = make_supervisor(fake_link, command_settle_delay=0.1)
        await supervisor.start()

        sends = [asyncio.create_task(supervisor.sender.send(c)) for c in ("clear", "textxy:0,0,Hi")]
        await asyncio.wait_for(asyncio.gather(*sends), timeout=3.0)

        assert fake_link.lines == ["reset", "clear", "clear", "textxy:0,0,Hi"]
        gaps = [b - a for a, b in zip(fake_link.write_times, fake_link.write_times[1:])]
        assert all(gap >= 0.095 for gap in gaps)
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_drop_mid_drain_keeps_remaining_commands(self, fake_link):
        supervisor = make_supervisor(fake_link)
        await supervisor.start()
        await fake_link.drop()

        async def drop_after_first(data):
            if data == b"a\n":
                fake_link.after_write = None
                await fake_link.drop()

        fake_link.after_write = drop_after_first
        sends = [asyncio.create_task(supervisor.sender.send(c)) for c in ("a", "b", "c")]

        await asyncio.wait_for(asyncio.gather(*sends), timeout=3.0)

        assert fake_link.lines == [
            "reset", "clear",
            "reset", "clear", "a",
            "reset", "clear", "b", "c",
        ]
        assert fake_link.open_calls == 3
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_delivery_failure_is_not_requeued(self, fake_link):
        supervisor = make_supervisor(fake_link)
        await supervisor.start()
        fake_link.fail_all_writes = True

        with pytest.raises(DeliveryFailedError) as exc_info:
            await supervisor.sender.send("logo")

        assert exc_info.value.attempts == 3
        assert supervisor.queued_commands == 0

        fake_link.fail_all_writes = False
        await supervisor.sender.send("weather")
        assert fake_link.lines == ["reset", "clear", "weather"]
        await supervisor.shutdown()


class TestReconnect:
    @pytest.mark.asyncio
    async def test_drop_reconnects_and_reruns_reset(self, fake_link):
        supervisor = make_supervisor(fake_link)
        await supervisor.start()

        await fake_link.drop()
        assert supervisor.state is SupervisorState.CLOSED
        assert not supervisor.is_ready
        assert supervisor.schedule.is_armed

        await wait_until(lambda: supervisor.is_ready)
        assert supervisor.state is SupervisorState.OPEN
        assert fake_link.lines == ["reset", "clear", "reset", "clear"]
        assert not supervisor.schedule.is_armed
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_reopen_after_drop_waits_interval_between_attempts(self, fake_link, caplog):
        caplog.set_level(logging.WARNING)
        supervisor = make_supervisor(fake_link, reconnect_interval=0.1)
        await supervisor.start()
        opens_before = len(fake_link.open_times)
        failed_before = supervisor.failed_open_attempts

        fake_link.open_failures = 2
        dropped_at = time.monotonic()
        await fake_link.drop()
        await wait_until(lambda: supervisor.is_ready)

        reopens = fake_link.open_times[opens_before:]
        assert len(reopens) == 3
        assert supervisor.failed_open_attempts - failed_before == 2
        gaps = [b - a for a, b in zip([dropped_at, *reopens], reopens)]
        assert all(gap >= 0.095 for gap in gaps)
        failures = [r for r in caplog.records if "Open attempt" in r.getMessage()]
        assert len(failures) == 2
        assert fake_link.lines == ["reset", "clear", "reset", "clear"]
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_stale_retry_does_not_write_during_reset_of_new_link(self, fake_link):
        supervisor = make_supervisor(
            fake_link,
            boot_settle_delay=0.3,
            retry_policy=RetryPolicy(max_attempts=3, base_delay=0.2),
        )
        await supervisor.start()

        fake_link.fail_all_writes = True
        send = asyncio.create_task(supervisor.sender.send("logo"))
        await asyncio.sleep(0.02)
        fake_link.fail_all_writes = False
        await fake_link.drop()

        with pytest.raises(DeliveryFailedError) as exc_info:
            await asyncio.wait_for(send, timeout=2.0)
        assert exc_info.value.attempts == 1

        await wait_until(lambda: supervisor.is_ready)
        assert fake_link.lines == ["reset", "clear", "reset", "clear"]
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_fault_is_logged(self, fake_link, caplog):
        caplog.set_level(logging.ERROR)
        supervisor = make_supervisor(fake_link, reconnect_interval=10.0)
        await supervisor.start()

        await fake_link.drop(OSError(5, "Input/output error"))

        assert any("Serial port error" in r.getMessage() for r in caplog.records)
        assert supervisor.state is SupervisorState.CLOSED
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_no_reconnect_when_disabled(self, fake_link):
        supervisor = make_supervisor(fake_link, auto_reconnect=False)
        await supervisor.start()

        await fake_link.drop()
        await asyncio.sleep(0.1)

        assert supervisor.state is SupervisorState.CLOSED
        assert not supervisor.schedule.is_armed
        assert fake_link.open_calls == 1
        await supervisor.shutdown()


class TestShutdown:
    @pytest.mark.asyncio
    async def test_shutdown_rejects_queued_commands(self, fake_link):
        fake_link.open_failures = 1
        supervisor = make_supervisor(fake_link, reconnect_interval=10.0)
        await supervisor.start()

        sends = [asyncio.create_task(supervisor.sender.send(c)) for c in ("clear", "logo")]
        await asyncio.sleep(0)
        await supervisor.shutdown()

        results = await asyncio.gather(*sends, return_exceptions=True)
        assert all(isinstance(r, QueueAbandonedError) for r in results)
        assert supervisor.state is SupervisorState.SHUTDOWN
        assert not supervisor.schedule.is_armed

    @pytest.mark.asyncio
    async def test_shutdown_closes_link_without_reconnect(self, fake_link):
        supervisor = make_supervisor(fake_link)
        await supervisor.start()

        await supervisor.shutdown()
        await asyncio.sleep(0.1)

        assert not fake_link.is_open
        assert fake_link.open_calls == 1
        assert supervisor.state is SupervisorState.SHUTDOWN

    @pytest.mark.asyncio
    async def test_send_after_shutdown_is_rejected_immediately(self, fake_link):
        supervisor = make_supervisor(fake_link)
        await supervisor.start()
        await supervisor.shutdown()

        with pytest.raises(QueueAbandonedError) as exc_info:
            await asyncio.wait_for(supervisor.sender.send("clear"), timeout=1.0)

        assert exc_info.value.reason == "shutdown"
        assert supervisor.queued_commands == 0
        assert fake_link.lines == ["reset", "clear"]

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self, fake_link):
        supervisor = make_supervisor(fake_link)
        await supervisor.start()

        await supervisor.shutdown()
        await supervisor.shutdown()

        assert fake_link.close_calls == 1


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_snapshot(self, fake_link):
        supervisor = make_supervisor(fake_link)
        await supervisor.start()

        status = supervisor.get_status()

        assert status["state"] == "open"
        assert status["displayConnected"] is True
        assert status["ready"] is True
        assert status["queuedCommands"] == 0
        assert status["port"] == fake_link.port
        await supervisor.shutdown()
