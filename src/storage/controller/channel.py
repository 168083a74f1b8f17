"""CommandChannel: remote evaluation over a controller's single connection.

The wire protocol carries no correlation id: a reply belongs to whichever
command was sent last. The channel therefore lets exactly one command be in
flight; other callers queue on a lock. Any command that ends without its
reply (timeout, cancellation, disconnect) closes the channel, since a late
reply would otherwise be read as the answer to the next command.
"""

import asyncio
from typing import Protocol

import structlog

from storage.exceptions import ConnectionLostError

logger = structlog.get_logger(__name__)

# WebSocket close code for "internal error"; used when the channel gives up.
ABORT_CLOSE_CODE = 1011


class Transport(Protocol):
    """The send side of a controller connection (a WebSocket in production)."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


class CommandChannel:
    def __init__(self, system_name: str, transport: Transport, timeout: float = 10.0):
        self.system_name = system_name
        self._transport = transport
        self._timeout = timeout
        self._lock = asyncio.Lock()
        self._pending: asyncio.Future | None = None
        self._closed = False
        self._close_reason: str | None = None
        self._closing: asyncio.Task | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def busy(self) -> bool:
        """True while a command is waiting for its reply."""
        return self._pending is not None

    async def execute(self, expression: str) -> str:
        """Send ``expression`` and wait for the controller's reply to it."""
        async with self._lock:
            if self._closed:
                raise ConnectionLostError(f"Controller for {self.system_name!r} is gone: {self._close_reason}")

            reply = asyncio.get_running_loop().create_future()
            self._pending = reply
            try:
                try:
                    await self._transport.send_text(expression)
                except Exception as exc:
                    self.close(f"send failed: {exc}")
                    raise ConnectionLostError(f"Could not send to controller for {self.system_name!r}") from exc

                logger.debug("controller_command_sent", system=self.system_name, expression=expression)
                return await asyncio.wait_for(reply, self._timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "controller_timeout",
                    system=self.system_name,
                    expression=expression,
                    timeout=self._timeout,
                )
                await self.abort(f"no reply within {self._timeout}s")
                raise ConnectionLostError(
                    f"Controller for {self.system_name!r} did not answer within {self._timeout}s"
                ) from None
            except asyncio.CancelledError:
                self.close("command cancelled while awaiting its reply")
                self._closing = asyncio.get_running_loop().create_task(self._close_transport("command cancelled"))
                raise
            finally:
                self._pending = None

    def deliver(self, reply: str) -> None:
        """Hand an inbound reply to the command waiting for it."""
        if self._pending is None or self._pending.done():
            logger.warning("unsolicited_controller_reply", system=self.system_name, reply=reply[:200])
            return
        self._pending.set_result(reply)

    def close(self, reason: str = "controller disconnected") -> None:
        """Stop accepting commands and fail the one in flight, if any."""
        if self._closed:
            return
        self._closed = True
        self._close_reason = reason
        logger.info("controller_channel_closed", system=self.system_name, reason=reason)
        if self._pending is not None and not self._pending.done():
            self._pending.set_exception(
                ConnectionLostError(f"Controller for {self.system_name!r} disconnected: {reason}")
            )

    async def abort(self, reason: str) -> None:
        """Close the channel and the underlying connection."""
        self.close(reason)
        await self._close_transport(reason)

    async def _close_transport(self, reason: str) -> None:
        try:
            await self._transport.close(code=ABORT_CLOSE_CODE, reason=reason[:120])
        except Exception:
            logger.warning("controller_transport_close_failed", system=self.system_name, exc_info=True)
