"""Shared fixtures for the Storage domain: items, systems and a scripted controller."""

import asyncio
import re

import pytest
from storage.model.items import Item, ItemStack
from storage.registry import SystemRegistry

_IS_PRESENT = re.compile(r'^peripheral\.isPresent\("(.*)"\)$')
_SIZE = re.compile(r'^peripheral\.call\("(.*)", "size"\)$')
_DETAIL = re.compile(r'^peripheral\.call\("(.*)", "getItemDetail", (\d+)\)$')


def render_detail(stack: ItemStack | None) -> str:
    """Serialize a stack the way the controller's textutils.serialize does."""
    if stack is None:
        return "nil"
    lines = [
        "{",
        f"  count = {stack.count},",
        f'  displayName = "{stack.item.display_name}",',
        "  itemGroups = {},",
        f"  maxCount = {stack.item.max_count},",
        f'  name = "{stack.item.item_id}",',
    ]
    if stack.item.nbt is not None:
        lines.append(f'  nbt = "{stack.item.nbt}",')
    lines += [
        "  tags = {",
        '    ["minecraft:stone"] = true,',
        "  },",
        "}",
    ]
    return "\n".join(lines)


class FakeController:
    """Answers controller expressions from an in-memory peripheral table.

    ``peripherals`` maps a location id to its slot list. ``overrides`` forces
    the reply to one expression; expressions in ``silent`` are never answered.
    """

    def __init__(self):
        self.peripherals: dict[str, list[ItemStack | None]] = {}
        self.overrides: dict[str, str] = {}
        self.silent: set[str] = set()
        self.sent: list[str] = []
        self.closed_with: tuple[int, str | None] | None = None
        self.channel = None
        self.in_flight = 0
        self.max_in_flight = 0

    async def send_text(self, data: str) -> None:
        self.sent.append(data)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        if data in self.silent:
            return
        reply = self.overrides.get(data)
        if reply is None:
            reply = self.answer(data)
        asyncio.get_running_loop().call_soon(self._reply, reply)

    def _reply(self, reply: str) -> None:
        self.in_flight -= 1
        self.channel.deliver(reply)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = (code, reason)

    def answer(self, expression: str) -> str:
        if match := _IS_PRESENT.match(expression):
            return "true" if match.group(1) in self.peripherals else "false"
        if match := _SIZE.match(expression):
            return str(len(self.peripherals[match.group(1)]))
        if match := _DETAIL.match(expression):
            return render_detail(self.peripherals[match.group(1)][int(match.group(2)) - 1])
        raise AssertionError(f"Unexpected expression: {expression}")


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------
@pytest.fixture()
def cobblestone():
    return Item(display_name="Cobblestone", item_id="minecraft:cobblestone", max_count=64)


@pytest.fixture()
def iron_ingot():
    return Item(display_name="Iron Ingot", item_id="minecraft:iron_ingot", max_count=64)


@pytest.fixture()
def named_sword():
    return Item(
        display_name="Excalibur",
        item_id="minecraft:diamond_sword",
        max_count=1,
        nbt="f3a9c2d1",
    )


# ---------------------------------------------------------------------------
# Controller and registry
# ---------------------------------------------------------------------------
@pytest.fixture()
def controller():
    return FakeController()


@pytest.fixture()
def registry():
    registry = SystemRegistry(command_timeout=0.5)
    registry.create("main")
    return registry


@pytest.fixture()
def handle(registry):
    return registry.get("main")


@pytest.fixture()
def connected(registry, controller):
    """Bind the fake controller to the ``main`` system."""
    controller.channel = registry.bind("main", controller)
    return controller
