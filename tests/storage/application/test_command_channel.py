"""Tests for the single-outstanding-command controller channel."""

import asyncio

import pytest
from storage.controller.channel import ABORT_CLOSE_CODE, CommandChannel
from storage.exceptions import ConnectionLostError


class ManualTransport:
    """Records what is sent; replies are delivered by the test itself."""

    def __init__(self, fail_sends=False):
        self.sent: list[str] = []
        self.closed_with = None
        self.fail_sends = fail_sends

    async def send_text(self, data):
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent.append(data)

    async def close(self, code=1000, reason=None):
        self.closed_with = (code, reason)


async def _settle():
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.fixture()
def transport():
    return ManualTransport()


@pytest.fixture()
def channel(transport):
    return CommandChannel("main", transport, timeout=1.0)


class TestExecute:
    @pytest.mark.asyncio
    async def test_reply_is_returned(self, channel, transport):
        task = asyncio.create_task(channel.execute('peripheral.isPresent("chest")'))
        await _settle()
        assert transport.sent == ['peripheral.isPresent("chest")']
        assert channel.busy

        channel.deliver("true")
        assert await task == "true"
        assert not channel.busy

    @pytest.mark.asyncio
    async def test_second_command_waits_for_first_reply(self, channel, transport):
        first = asyncio.create_task(channel.execute("first"))
        second = asyncio.create_task(channel.execute("second"))
        await _settle()
        assert transport.sent == ["first"]

        channel.deliver("one")
        assert await first == "one"
        await _settle()
        assert transport.sent == ["first", "second"]

        channel.deliver("two")
        assert await second == "two"

    @pytest.mark.asyncio
    async def test_works_with_scripted_controller(self, controller):
        controller.peripherals["chest"] = [None] * 27
        channel = CommandChannel("main", controller, timeout=1.0)
        controller.channel = channel
        assert await channel.execute('peripheral.call("chest", "size")') == "27"


class TestUnsolicitedReplies:
    @pytest.mark.asyncio
    async def test_reply_without_command_is_dropped(self, channel, transport):
        channel.deliver("stray")

        task = asyncio.create_task(channel.execute("real"))
        await _settle()
        channel.deliver("answer")
        assert await task == "answer"
        assert not channel.closed


class TestConnectionLoss:
    @pytest.mark.asyncio
    async def test_disconnect_fails_pending_command(self, channel, transport):
        task = asyncio.create_task(channel.execute("slow"))
        await _settle()

        channel.close()
        with pytest.raises(ConnectionLostError):
            await task
        assert channel.closed
        assert not channel.busy

    @pytest.mark.asyncio
    async def test_disconnect_fails_queued_commands(self, channel, transport):
        first = asyncio.create_task(channel.execute("first"))
        second = asyncio.create_task(channel.execute("second"))
        await _settle()

        channel.close()
        with pytest.raises(ConnectionLostError):
            await first
        with pytest.raises(ConnectionLostError):
            await second
        assert transport.sent == ["first"]

    @pytest.mark.asyncio
    async def test_closed_channel_rejects_commands(self, channel, transport):
        channel.close()
        with pytest.raises(ConnectionLostError):
            await channel.execute("anything")
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_send_failure_closes_channel(self):
        channel = CommandChannel("main", ManualTransport(fail_sends=True), timeout=1.0)
        with pytest.raises(ConnectionLostError):
            await channel.execute("anything")
        assert channel.closed


class TestTimeout:
    @pytest.mark.asyncio
    async def test_timeout_aborts_channel(self, transport):
        channel = CommandChannel("main", transport, timeout=0.05)
        with pytest.raises(ConnectionLostError):
            await channel.execute("silent")
        assert channel.closed
        assert transport.closed_with[0] == ABORT_CLOSE_CODE

    @pytest.mark.asyncio
    async def test_late_reply_after_timeout_is_dropped(self, transport):
        channel = CommandChannel("main", transport, timeout=0.05)
        with pytest.raises(ConnectionLostError):
            await channel.execute("silent")
        channel.deliver("late")
        with pytest.raises(ConnectionLostError):
            await channel.execute("next")


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_command_closes_channel(self, channel, transport):
        task = asyncio.create_task(channel.execute("slow"))
        await _settle()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await _settle()
        assert channel.closed
        assert transport.closed_with[0] == ABORT_CLOSE_CODE
