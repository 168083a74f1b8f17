"""StorageIndexer: refresh a storage location from the controller."""

import structlog

from storage.controller import expressions
from storage.controller.channel import CommandChannel
from storage.controller.parser import parse_item_detail, parse_presence, parse_size
from storage.exceptions import IndexingError, MalformedReplyError
from storage.model.items import ItemStack
from storage.model.locations import StorageLocation

logger = structlog.get_logger(__name__)


class StorageIndexer:
    """Reads locations through one system's channel.

    Commands go out strictly one after another: the size query, then one
    detail query per slot. The location is only updated once every slot has
    been read, so a failure part-way leaves the previous contents intact.
    """

    def __init__(self, channel: CommandChannel):
        self.channel = channel

    async def is_present(self, location_id: str) -> bool:
        reply = await self.channel.execute(expressions.is_present(location_id))
        return parse_presence(reply)

    async def read_slots(self, location_id: str) -> list[ItemStack | None]:
        try:
            slot_count = parse_size(await self.channel.execute(expressions.size(location_id)))
        except MalformedReplyError as exc:
            raise IndexingError(location_id, str(exc)) from exc

        items: list[ItemStack | None] = [None] * slot_count
        for index in range(slot_count):
            slot = index + 1
            reply = await self.channel.execute(expressions.item_detail(location_id, slot))
            try:
                items[index] = parse_item_detail(reply)
            except MalformedReplyError as exc:
                raise IndexingError(location_id, str(exc), slot=slot) from exc
        return items

    async def index(self, location: StorageLocation) -> StorageLocation:
        items = await self.read_slots(location.id)
        location.replace_items(items)
        logger.debug(
            "location_indexed",
            system=self.channel.system_name,
            location=location.id,
            slots=location.slot_count,
            occupied=sum(1 for _ in location.stacks()),
        )
        return location
