"""Warehouse addressing model: aisles of units of bins.

Only the shape and its invariants live here; deciding where items go is not
part of this service. Invariants are checked on construction and on every
mutation, and raise ``ValidationError``.
"""

from dataclasses import dataclass, field
from typing import Union

from protean.exceptions import ValidationError

from storage.model.items import Item, ItemStack

# Slot count of one bin container (a single chest).
SLOTS_PER_BIN = 27


# ---------------------------------------------------------------------------
# Bins
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class EmptyBin:
    def count_of(self, item_id: str) -> int:
        return 0


@dataclass(frozen=True)
class BulkBin:
    """A bin dedicated to a single item."""

    item: Item
    count: int

    def __post_init__(self):
        if self.count < 1:
            raise ValidationError({"count": ["A bulk bin holds at least one item"]})
        if self.count > self.capacity:
            raise ValidationError(
                {"count": [f"{self.count} exceeds bulk capacity {self.capacity} for {self.item.item_id}"]}
            )

    @property
    def capacity(self) -> int:
        return SLOTS_PER_BIN * self.item.max_count

    def count_of(self, item_id: str) -> int:
        return self.count if self.item.item_id == item_id else 0


@dataclass(frozen=True)
class MixedBin:
    """A bin holding arbitrary stacks, one per slot."""

    stacks: tuple[ItemStack | None, ...]

    def __post_init__(self):
        object.__setattr__(self, "stacks", tuple(self.stacks))
        if len(self.stacks) != SLOTS_PER_BIN:
            raise ValidationError({"stacks": [f"A mixed bin has exactly {SLOTS_PER_BIN} slots"]})
        if all(stack is None for stack in self.stacks):
            raise ValidationError({"stacks": ["A mixed bin must hold at least one stack"]})

    def count_of(self, item_id: str) -> int:
        return sum(stack.count for stack in self.stacks if stack is not None and stack.item.item_id == item_id)


Bin = Union[EmptyBin, BulkBin, MixedBin]


def bin_kind(bin_: Bin) -> str:
    if isinstance(bin_, EmptyBin):
        return "empty"
    elif isinstance(bin_, BulkBin):
        return "bulk"
    elif isinstance(bin_, MixedBin):
        return "mixed"
    raise TypeError(f"Not a bin: {bin_!r}")


# ---------------------------------------------------------------------------
# Units, aisles, warehouse
# ---------------------------------------------------------------------------
@dataclass
class Unit:
    """A shelving unit: a column of bins. ``bins`` is a tuple; change it through ``set_bin``."""

    bins: tuple[Bin, ...]

    def __post_init__(self):
        self.bins = tuple(self.bins)
        self._validate()

    def _validate(self):
        if not self.bins:
            raise ValidationError({"bins": ["A unit needs at least one bin"]})
        for bin_ in self.bins:
            bin_kind(bin_)

    def set_bin(self, index: int, bin_: Bin) -> None:
        if not 0 <= index < len(self.bins):
            raise ValidationError({"bins": [f"Bin index {index} is out of range"]})
        bin_kind(bin_)
        self.bins = self.bins[:index] + (bin_,) + self.bins[index + 1 :]

    def count_of(self, item_id: str) -> int:
        return sum(bin_.count_of(item_id) for bin_ in self.bins)


def _check_units(units, side: str) -> None:
    for unit in units:
        if not isinstance(unit, Unit):
            raise ValidationError({side: [f"Not a unit: {unit!r}"]})


@dataclass
class Aisle:
    left: tuple[Unit, ...]
    right: tuple[Unit, ...]

    def __post_init__(self):
        self.left = tuple(self.left)
        self.right = tuple(self.right)
        self._validate()

    def _validate(self):
        _check_units(self.left, "left")
        _check_units(self.right, "right")
        if not self.left or not self.right:
            raise ValidationError({"units": ["Both sides of an aisle need at least one unit"]})
        if len(self.left) != len(self.right):
            raise ValidationError(
                {"units": [f"Aisle sides differ in length ({len(self.left)} left, {len(self.right)} right)"]}
            )

    @property
    def length(self) -> int:
        return len(self.left)

    def units(self):
        yield from self.left
        yield from self.right

    def extend(self, left: Unit, right: Unit) -> None:
        """Add one unit to each side, keeping both sides the same length."""
        _check_units([left], "left")
        _check_units([right], "right")
        self.left += (left,)
        self.right += (right,)

    def shorten(self) -> None:
        if self.length == 1:
            raise ValidationError({"units": ["An aisle cannot lose its last units"]})
        self.left = self.left[:-1]
        self.right = self.right[:-1]

    def count_of(self, item_id: str) -> int:
        return sum(unit.count_of(item_id) for unit in self.units())


@dataclass
class Warehouse:
    aisles: tuple[Aisle, ...]
    home_aisle: int = 0

    def __post_init__(self):
        self.aisles = tuple(self.aisles)
        self._validate()

    def _validate(self):
        if not self.aisles:
            raise ValidationError({"aisles": ["A warehouse needs at least one aisle"]})
        for aisle in self.aisles:
            if not isinstance(aisle, Aisle):
                raise ValidationError({"aisles": [f"Not an aisle: {aisle!r}"]})
        if not 0 <= self.home_aisle < len(self.aisles):
            raise ValidationError(
                {"home_aisle": [f"Home aisle {self.home_aisle} is not one of {len(self.aisles)} aisles"]}
            )

    def add_aisle(self, aisle: Aisle) -> None:
        if not isinstance(aisle, Aisle):
            raise ValidationError({"aisles": [f"Not an aisle: {aisle!r}"]})
        self.aisles += (aisle,)

    def remove_aisle(self, index: int) -> None:
        if not 0 <= index < len(self.aisles):
            raise ValidationError({"aisles": [f"Aisle index {index} is out of range"]})
        if len(self.aisles) == 1:
            raise ValidationError({"aisles": ["A warehouse needs at least one aisle"]})
        if index == self.home_aisle:
            raise ValidationError({"home_aisle": ["Cannot remove the home aisle"]})
        self.aisles = self.aisles[:index] + self.aisles[index + 1 :]
        if index < self.home_aisle:
            self.home_aisle -= 1

    def set_home_aisle(self, index: int) -> None:
        previous = self.home_aisle
        self.home_aisle = index
        try:
            self._validate()
        except ValidationError:
            self.home_aisle = previous
            raise

    def count_of(self, item_id: str) -> int:
        return sum(aisle.count_of(item_id) for aisle in self.aisles)
