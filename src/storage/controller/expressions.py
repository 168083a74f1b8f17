"""Lua expressions sent to the controller for evaluation."""


def lua_string(value: str) -> str:
    """Quote ``value`` as a Lua string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\0", "\\000")
    )
    return f'"{escaped}"'


def is_present(location_id: str) -> str:
    return f"peripheral.isPresent({lua_string(location_id)})"


def size(location_id: str) -> str:
    return f'peripheral.call({lua_string(location_id)}, "size")'


def item_detail(location_id: str, slot: int) -> str:
    """Detail query for one slot; ``slot`` is 1-based, as on the controller."""
    if slot < 1:
        raise ValueError(f"Slots are numbered from 1, got {slot}")
    return f'peripheral.call({lua_string(location_id)}, "getItemDetail", {slot})'
