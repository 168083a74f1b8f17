"""Processing recipes. Pure configuration, never checked against the controller."""

from dataclasses import dataclass, field

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Integer, String, ValueObject

from storage.domain import storage


@storage.value_object
class RecipeItemSpecification:
    """An unresolved item reference: an item id and an amount."""

    item_id = String(required=True, max_length=255, sanitize=False)
    count = Integer(required=True, min_value=1)


@storage.value_object
class RecipeOutputSpecification:
    """What a recipe produces and the stock band that triggers it.

    Processing is due when stock falls below ``min_output_stock`` and aims
    to bring it back up to ``max_output_stock``.
    """

    output = ValueObject(RecipeItemSpecification, required=True)
    min_output_stock = Integer(default=0, min_value=0)
    max_output_stock = Integer(default=0, min_value=0)

    @invariant.post
    def stock_band_must_be_ordered(self):
        if self.min_output_stock > self.max_output_stock:
            raise ValidationError(
                {
                    "min_output_stock": [
                        f"Minimum stock {self.min_output_stock} is above maximum stock {self.max_output_stock}"
                    ]
                }
            )


@dataclass
class Recipe:
    process: str
    inputs: list[RecipeItemSpecification] = field(default_factory=list)
    outputs: list[RecipeOutputSpecification] = field(default_factory=list)
