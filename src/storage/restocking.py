"""Recipe restocking policy: which recipes are due on which processors.

A recipe is due on a processor of the same ``process`` when the stock of one
of its outputs in that processor's output buffer has fallen below the
output's minimum. How much to process and when a processor counts as busy
are not decided here; the triggers only report the gap up to the maximum.
"""

from dataclasses import dataclass

from storage.model.locations import Processor
from storage.model.recipes import Recipe
from storage.model.system import StorageSystem


@dataclass(frozen=True)
class RestockingTrigger:
    recipe_index: int
    process: str
    output_buffer: str
    item_id: str
    stock: int
    min_output_stock: int
    max_output_stock: int

    @property
    def deficit(self) -> int:
        return self.max_output_stock - self.stock


def recipe_triggers(recipe_index: int, recipe: Recipe, processor: Processor) -> list[RestockingTrigger]:
    if processor.process != recipe.process:
        return []

    triggers = []
    for spec in recipe.outputs:
        stock = processor.output_buffer.count_of(spec.output.item_id)
        if stock < spec.min_output_stock:
            triggers.append(
                RestockingTrigger(
                    recipe_index=recipe_index,
                    process=recipe.process,
                    output_buffer=processor.output_buffer.id,
                    item_id=spec.output.item_id,
                    stock=stock,
                    min_output_stock=spec.min_output_stock,
                    max_output_stock=spec.max_output_stock,
                )
            )
    return triggers


def find_triggered_recipes(system: StorageSystem) -> list[RestockingTrigger]:
    return [
        trigger
        for index, recipe in enumerate(system.recipes)
        for processor in system.processors
        for trigger in recipe_triggers(index, recipe, processor)
    ]
