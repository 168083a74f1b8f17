"""StorageSystem: everything one controller manages."""

from collections import Counter
from dataclasses import dataclass, field

from storage.exceptions import NotFoundError
from storage.model.items import Item
from storage.model.locations import Processor, StorageLocation, Terminal
from storage.model.recipes import Recipe


@dataclass
class StorageSystem:
    name: str
    storage: list[StorageLocation] = field(default_factory=list)
    processors: list[Processor] = field(default_factory=list)
    recipes: list[Recipe] = field(default_factory=list)
    terminals: list[Terminal] = field(default_factory=list)

    def locations(self):
        """Yield every registered location: bulk storage, processor buffers, terminal storage."""
        yield from self.storage
        for processor in self.processors:
            yield from processor.buffers
        for terminal in self.terminals:
            yield terminal.storage

    def location_ids(self) -> set[str]:
        return {location.id for location in self.locations()}

    def has_location(self, location_id: str) -> bool:
        return location_id in self.location_ids()

    def find_location(self, location_id: str) -> StorageLocation:
        for location in self.locations():
            if location.id == location_id:
                return location
        raise NotFoundError(f"Storage location {location_id!r} is not registered in {self.name!r}")

    def find_terminal(self, name: str) -> Terminal:
        for terminal in self.terminals:
            if terminal.name == name:
                return terminal
        raise NotFoundError(f"Terminal {name!r} is not registered in {self.name!r}")

    def has_terminal(self, name: str) -> bool:
        return any(terminal.name == name for terminal in self.terminals)

    def find_recipe(self, index: int) -> Recipe:
        if not 0 <= index < len(self.recipes):
            raise NotFoundError(f"Recipe {index} does not exist in {self.name!r}")
        return self.recipes[index]

    def inventory(self) -> list[tuple[Item, int]]:
        """Total count per item across bulk storage and processor output buffers.

        Processor output buffers count as withdraw-only storage; input buffers
        and terminal staging do not hold stock.
        """
        totals: Counter = Counter()
        items: dict[tuple[str, str | None], Item] = {}
        sources = list(self.storage) + [processor.output_buffer for processor in self.processors]
        for location in sources:
            for _, stack in location.stacks():
                key = (stack.item.item_id, stack.item.nbt)
                items.setdefault(key, stack.item)
                totals[key] += stack.count
        return [(items[key], totals[key]) for key in sorted(totals, key=lambda key: (key[0], key[1] or ""))]
