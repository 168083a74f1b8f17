"""Item and ItemStack value objects.

An item is identified by its game id plus optional tag data (``nbt``); two
stacks of the same id with different tag data are different items.
"""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Integer, String, Text, ValueObject

from storage.domain import storage


@storage.value_object
class Item:
    """An item kind as reported by the controller."""

    display_name = String(required=True, max_length=255, sanitize=False)
    item_id = String(required=True, max_length=255, sanitize=False)
    max_count = Integer(required=True, min_value=1)
    nbt = Text(sanitize=False)

    def matches(self, item_id, nbt=None, any_nbt=False):
        """True when this item has ``item_id`` (and, unless ``any_nbt``, the same tag data)."""
        if self.item_id != item_id:
            return False
        return any_nbt or self.nbt == nbt

    def __str__(self):
        return self.display_name


@storage.value_object
class ItemStack:
    """A quantity of one item occupying a single inventory slot."""

    item = ValueObject(Item, required=True)
    count = Integer(required=True, min_value=1)

    @invariant.post
    def count_must_fit_in_one_stack(self):
        if self.item is not None and self.count is not None and self.count > self.item.max_count:
            raise ValidationError(
                {"count": [f"{self.count} exceeds the stack size of {self.item.item_id} ({self.item.max_count})"]}
            )

    def with_count(self, count):
        """Return a stack of the same item holding ``count`` items."""
        return ItemStack(item=self.item, count=count)

    def __str__(self):
        return f"{self.count}x {self.item}"
