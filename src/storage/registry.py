"""Process-wide registry of storage systems and their controller bindings."""

import asyncio
from dataclasses import dataclass, field

import structlog

from storage.controller.channel import CommandChannel, Transport
from storage.exceptions import (
    ConflictError,
    DuplicateControllerError,
    MalformedInputError,
    NotFoundError,
    PreconditionFailedError,
    UnknownSystemError,
)
from storage.model.system import StorageSystem
from storage.persistence import SystemStore
from storage.reconciler import TopologyReconciler

logger = structlog.get_logger(__name__)


@dataclass
class SystemHandle:
    """One storage system with its controller binding and operation lock.

    Operations that read or change the topology, or talk to the controller,
    hold ``lock`` for their whole duration.
    """

    system: StorageSystem
    channel: CommandChannel | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def name(self) -> str:
        return self.system.name

    @property
    def connected(self) -> bool:
        return self.channel is not None and not self.channel.closed

    def require_channel(self) -> CommandChannel:
        if not self.connected:
            raise PreconditionFailedError(f"Storage system {self.name!r} has no connected controller")
        return self.channel


class SystemRegistry:
    def __init__(
        self,
        systems: list[StorageSystem] | None = None,
        store: SystemStore | None = None,
        command_timeout: float = 10.0,
    ):
        self._handles: dict[str, SystemHandle] = {}
        self.store = store
        self.command_timeout = command_timeout
        self._save_lock = asyncio.Lock()
        for system in systems or []:
            self._handles[system.name] = SystemHandle(system)

    @classmethod
    def from_store(cls, store: SystemStore, command_timeout: float = 10.0) -> "SystemRegistry":
        return cls(store.load(), store=store, command_timeout=command_timeout)

    def names(self) -> list[str]:
        return list(self._handles)

    def systems(self) -> list[StorageSystem]:
        return [handle.system for handle in self._handles.values()]

    def get(self, name: str) -> SystemHandle:
        try:
            return self._handles[name]
        except KeyError:
            raise NotFoundError(f"Storage system {name!r} does not exist") from None

    def create(self, name: str) -> SystemHandle:
        if not name or not name.strip():
            raise MalformedInputError("Storage system name must not be blank")
        if name in self._handles:
            raise ConflictError(f"Storage system {name!r} already exists")
        handle = SystemHandle(StorageSystem(name=name))
        self._handles[name] = handle
        logger.info("system_created", system=name)
        self.save()
        return handle

    def reconciler(self, name: str) -> TopologyReconciler:
        return TopologyReconciler(self.get(name), on_change=self.persist)

    # -------------------------------------------------------------------
    # Controller binding
    # -------------------------------------------------------------------
    def bind(self, name: str, transport: Transport) -> CommandChannel:
        """Make a new connection the controller of ``name``.

        Rejected without side effects when the system is unknown or already
        has a live controller.
        """
        handle = self._handles.get(name)
        if handle is None:
            raise UnknownSystemError(f"Storage system {name!r} does not exist")
        if handle.connected:
            raise DuplicateControllerError(f"Storage system {name!r} already has a controller")

        channel = CommandChannel(name, transport, timeout=self.command_timeout)
        handle.channel = channel
        logger.info("controller_bound", system=name)
        return channel

    def unbind(self, channel: CommandChannel) -> None:
        """Release ``channel``'s binding and fail whatever it still had in flight."""
        handle = self._handles.get(channel.system_name)
        if handle is not None and handle.channel is channel:
            handle.channel = None
            logger.info("controller_unbound", system=channel.system_name)
        channel.close()

    def save(self) -> None:
        """Write every system to the store now, blocking the caller."""
        if self.store is not None:
            self._write(self.store.encode(self.systems()))

    async def persist(self) -> None:
        """Write every system to the store without blocking the event loop.

        The snapshot is taken before the write is handed to a worker thread,
        and writes are applied one at a time in the order they were taken.
        """
        if self.store is None:
            return
        payload = self.store.encode(self.systems())
        async with self._save_lock:
            await asyncio.to_thread(self._write, payload)

    def _write(self, payload: str) -> None:
        # The change is already live in memory; a failed write is retried by the next save.
        try:
            self.store.write(payload)
        except OSError as exc:
            logger.error("store_save_failed", path=str(self.store.path), error=str(exc))
