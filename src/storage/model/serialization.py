"""JSON codec for the storage model.

The JSON form uses the controller's field names (``displayName``, ``maxCount``,
...) so stored files stay readable next to controller output. Loaders raise
``ValueError`` naming the path of the first bad value, including keys the
format does not define.
"""

from typing import Any

from protean.exceptions import ValidationError

from storage.model.items import Item, ItemStack
from storage.model.locations import Processor, StorageLocation, Terminal
from storage.model.recipes import Recipe, RecipeItemSpecification, RecipeOutputSpecification
from storage.model.system import StorageSystem


def _field(json: Any, key: str, path: str, kind: type | tuple[type, ...]):
    if not isinstance(json, dict):
        raise ValueError(f"{path}: expected an object")
    if key not in json:
        raise ValueError(f"{path}.{key}: missing")
    value = json[key]
    # bool is an int subclass; a count of `true` is still wrong
    if not isinstance(value, kind) or (isinstance(value, bool) and bool not in _as_tuple(kind)):
        raise ValueError(f"{path}.{key}: expected {_kind_name(kind)}, got {type(value).__name__}")
    return value


def _list(json: Any, key: str, path: str) -> list:
    return _field(json, key, path, list)


def _known_keys(json: Any, path: str, *keys: str) -> None:
    if not isinstance(json, dict):
        raise ValueError(f"{path}: expected an object")
    for key in json:
        if key not in keys:
            raise ValueError(f"{path}.{key}: unexpected key")


def _as_tuple(kind):
    return kind if isinstance(kind, tuple) else (kind,)


def _kind_name(kind) -> str:
    return " or ".join(k.__name__ for k in _as_tuple(kind))


def _build(path: str, factory, **kwargs):
    try:
        return factory(**kwargs)
    except ValidationError as exc:
        raise ValueError(f"{path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------
def dump_item(item: Item) -> dict:
    return {
        "displayName": item.display_name,
        "id": item.item_id,
        "maxCount": item.max_count,
        "nbt": item.nbt,
    }


def load_item(json: Any, path: str = "item") -> Item:
    _known_keys(json, path, "displayName", "id", "maxCount", "nbt")
    nbt = json.get("nbt") if isinstance(json, dict) else None
    if nbt is not None and not isinstance(nbt, str):
        raise ValueError(f"{path}.nbt: expected str or null")
    return _build(
        path,
        Item,
        display_name=_field(json, "displayName", path, str),
        item_id=_field(json, "id", path, str),
        max_count=_field(json, "maxCount", path, int),
        nbt=nbt,
    )


def dump_item_stack(stack: ItemStack) -> dict:
    return {"item": dump_item(stack.item), "count": stack.count}


def load_item_stack(json: Any, path: str = "stack") -> ItemStack:
    _known_keys(json, path, "item", "count")
    item = load_item(_field(json, "item", path, dict), f"{path}.item")
    return _build(path, ItemStack, item=item, count=_field(json, "count", path, int))


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------
def dump_storage_location(location: StorageLocation) -> dict:
    return {
        "id": location.id,
        "items": [None if stack is None else dump_item_stack(stack) for stack in location.items],
    }


def load_storage_location(json: Any, path: str = "location") -> StorageLocation:
    _known_keys(json, path, "id", "items")
    location_id = _field(json, "id", path, str)
    items = [
        None if stack is None else load_item_stack(stack, f"{path}.items[{index}]")
        for index, stack in enumerate(_list(json, "items", path))
    ]
    return StorageLocation(id=location_id, items=items)


def dump_processor(processor: Processor) -> dict:
    return {
        "process": processor.process,
        "inputBuffer": dump_storage_location(processor.input_buffer),
        "outputBuffer": dump_storage_location(processor.output_buffer),
    }


def load_processor(json: Any, path: str = "processor") -> Processor:
    _known_keys(json, path, "process", "inputBuffer", "outputBuffer")
    return _build(
        path,
        Processor,
        process=_field(json, "process", path, str),
        input_buffer=load_storage_location(_field(json, "inputBuffer", path, dict), f"{path}.inputBuffer"),
        output_buffer=load_storage_location(_field(json, "outputBuffer", path, dict), f"{path}.outputBuffer"),
    )


def dump_terminal(terminal: Terminal) -> dict:
    return {"name": terminal.name, "storage": dump_storage_location(terminal.storage)}


def load_terminal(json: Any, path: str = "terminal") -> Terminal:
    _known_keys(json, path, "name", "storage")
    return Terminal(
        name=_field(json, "name", path, str),
        storage=load_storage_location(_field(json, "storage", path, dict), f"{path}.storage"),
    )


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------
def dump_recipe_item(spec: RecipeItemSpecification) -> dict:
    return {"itemId": spec.item_id, "count": spec.count}


def load_recipe_item(json: Any, path: str = "spec") -> RecipeItemSpecification:
    _known_keys(json, path, "itemId", "count")
    return _build(
        path,
        RecipeItemSpecification,
        item_id=_field(json, "itemId", path, str),
        count=_field(json, "count", path, int),
    )


def dump_recipe_output(spec: RecipeOutputSpecification) -> dict:
    return {
        "output": dump_recipe_item(spec.output),
        "minOutputStock": spec.min_output_stock,
        "maxOutputStock": spec.max_output_stock,
    }


def load_recipe_output(json: Any, path: str = "output") -> RecipeOutputSpecification:
    _known_keys(json, path, "output", "minOutputStock", "maxOutputStock")
    return _build(
        path,
        RecipeOutputSpecification,
        output=load_recipe_item(_field(json, "output", path, dict), f"{path}.output"),
        min_output_stock=_field(json, "minOutputStock", path, int),
        max_output_stock=_field(json, "maxOutputStock", path, int),
    )


def dump_recipe(recipe: Recipe) -> dict:
    return {
        "process": recipe.process,
        "inputs": [dump_recipe_item(spec) for spec in recipe.inputs],
        "outputs": [dump_recipe_output(spec) for spec in recipe.outputs],
    }


def load_recipe(json: Any, path: str = "recipe") -> Recipe:
    _known_keys(json, path, "process", "inputs", "outputs")
    return Recipe(
        process=_field(json, "process", path, str),
        inputs=[load_recipe_item(spec, f"{path}.inputs[{i}]") for i, spec in enumerate(_list(json, "inputs", path))],
        outputs=[
            load_recipe_output(spec, f"{path}.outputs[{i}]") for i, spec in enumerate(_list(json, "outputs", path))
        ],
    )


# ---------------------------------------------------------------------------
# Systems
# ---------------------------------------------------------------------------
def dump_system(system: StorageSystem) -> dict:
    return {
        "name": system.name,
        "storage": [dump_storage_location(location) for location in system.storage],
        "processors": [dump_processor(processor) for processor in system.processors],
        "recipes": [dump_recipe(recipe) for recipe in system.recipes],
        "terminals": [dump_terminal(terminal) for terminal in system.terminals],
    }


def load_system(json: Any, path: str = "system") -> StorageSystem:
    name = _field(json, "name", path, str)
    path = f"{path}[{name!r}]"
    _known_keys(json, path, "name", "storage", "processors", "recipes", "terminals")
    return StorageSystem(
        name=name,
        storage=[
            load_storage_location(loc, f"{path}.storage[{i}]") for i, loc in enumerate(_list(json, "storage", path))
        ],
        processors=[
            load_processor(proc, f"{path}.processors[{i}]") for i, proc in enumerate(_list(json, "processors", path))
        ],
        recipes=[load_recipe(recipe, f"{path}.recipes[{i}]") for i, recipe in enumerate(_list(json, "recipes", path))],
        terminals=[
            load_terminal(term, f"{path}.terminals[{i}]") for i, term in enumerate(_list(json, "terminals", path))
        ],
    )
