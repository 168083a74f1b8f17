"""Physical places that hold items: storage locations, processors, terminals."""

from dataclasses import dataclass, field

from protean.exceptions import ValidationError

from storage.model.items import ItemStack


@dataclass
class StorageLocation:
    """One container on the controller's peripheral network.

    ``items`` has one entry per physical slot (slot ``n`` lives at index
    ``n - 1``); ``None`` marks an empty slot.
    """

    id: str
    items: list[ItemStack | None] = field(default_factory=list)

    @property
    def slot_count(self) -> int:
        return len(self.items)

    def stacks(self):
        """Yield ``(slot, stack)`` for every occupied slot, slots numbered from 1."""
        for index, stack in enumerate(self.items):
            if stack is not None:
                yield index + 1, stack

    def count_of(self, item_id: str, nbt: str | None = None, any_nbt: bool = True) -> int:
        return sum(
            stack.count for _, stack in self.stacks() if stack.item.matches(item_id, nbt, any_nbt=any_nbt)
        )

    def replace_items(self, items: list[ItemStack | None]) -> None:
        self.items = list(items)


@dataclass
class Processor:
    """A conversion station with separate input and output buffers."""

    process: str
    input_buffer: StorageLocation
    output_buffer: StorageLocation

    def __post_init__(self):
        if self.input_buffer.id == self.output_buffer.id:
            raise ValidationError(
                {"output_buffer": [f"Input and output buffers must differ (both are {self.input_buffer.id})"]}
            )

    @property
    def buffers(self) -> tuple[StorageLocation, StorageLocation]:
        return self.input_buffer, self.output_buffer


@dataclass
class Terminal:
    """An access point; its storage is staging space, not storage capacity."""

    name: str
    storage: StorageLocation
