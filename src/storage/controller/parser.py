"""Decoders for controller replies.

The controller answers every expression with text: ``true``/``false`` for
presence checks, a decimal number for sizes, and for slot details either
``nil`` or a serialized Lua table with one ``key = value`` pair per line::

    {
      count = 12,
      displayName = "Cobblestone",
      maxCount = 64,
      name = "minecraft:cobblestone",
      tags = {
        ["minecraft:stone"] = true,
      },
    }

Only top-level pairs are read. Anything missing or malformed raises
``MalformedReplyError``; no default is ever substituted.
"""

import re

from protean.exceptions import ValidationError

from storage.exceptions import MalformedReplyError
from storage.model.items import Item, ItemStack

_PAIR = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*?)\s*,?\s*$", re.DOTALL)
_INTEGER = re.compile(r"^-?[0-9]+$")

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "\n": "\n",
}

EMPTY_SLOT = "nil"


def parse_presence(reply: str) -> bool:
    value = reply.strip()
    if value == "true":
        return True
    if value == "false":
        return False
    raise MalformedReplyError(f"Expected true or false, got {value!r}", reply)


def parse_size(reply: str) -> int:
    value = reply.strip()
    if not (value.isascii() and value.isdigit()):
        raise MalformedReplyError(f"Expected a slot count, got {value!r}", reply)
    return int(value)


def parse_item_detail(reply: str) -> ItemStack | None:
    """Decode a slot detail reply into a stack, or ``None`` for an empty slot."""
    if reply.strip() == EMPTY_SLOT:
        return None

    fields = _top_level_pairs(reply)
    item = _build(
        reply,
        Item,
        display_name=_string(fields, "displayName", reply),
        item_id=_string(fields, "name", reply),
        max_count=_integer(fields, "maxCount", reply),
        nbt=_string(fields, "nbt", reply) if "nbt" in fields else None,
    )
    return _build(reply, ItemStack, item=item, count=_integer(fields, "count", reply))


def _build(reply, factory, **kwargs):
    try:
        return factory(**kwargs)
    except ValidationError as exc:
        raise MalformedReplyError(f"Item detail is inconsistent: {exc}", reply) from exc


def _top_level_pairs(reply: str) -> dict[str, str]:
    text = reply.strip()
    top = 1 if text.startswith("{") else 0
    depth = 0
    pairs: dict[str, str] = {}

    for line in _logical_lines(text):
        if depth == top:
            match = _PAIR.match(line)
            if match:
                key, raw = match.groups()
                if key in pairs:
                    raise MalformedReplyError(f"Field {key!r} appears twice", reply)
                # nested tables are skipped; their lines sit one level deeper
                if not raw.startswith("{"):
                    pairs[key] = raw
        depth += _brace_delta(line)
        if depth < 0:
            raise MalformedReplyError("Unbalanced braces in item detail", reply)

    if depth != 0:
        raise MalformedReplyError("Unbalanced braces in item detail", reply)
    return pairs


def _logical_lines(text: str):
    """Split ``text`` into lines, keeping an escaped newline inside its string."""
    pending: list[str] = []
    for line in text.split("\n"):
        pending.append(line)
        joined = "\n".join(pending)
        if _scan(joined)[1] is None:
            yield joined
            pending = []
    if pending:
        yield "\n".join(pending)


def _brace_delta(line: str) -> int:
    return _scan(line)[0]


def _scan(line: str) -> tuple[int, str | None]:
    """Net brace depth change of ``line`` and the quote still open at its end."""
    delta = 0
    quote = None
    escaped = False
    for ch in line:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "{":
            delta += 1
        elif ch == "}":
            delta -= 1
    return delta, quote


def _string(fields: dict[str, str], key: str, reply: str) -> str:
    if key not in fields:
        raise MalformedReplyError(f"Item detail has no {key!r}", reply)
    raw = fields[key]
    if len(raw) < 2 or raw[0] not in "\"'" or raw[-1] != raw[0]:
        raise MalformedReplyError(f"Field {key!r} is not a quoted string: {raw!r}", reply)
    try:
        return _unescape(raw[1:-1], raw[0])
    except ValueError as exc:
        raise MalformedReplyError(f"Field {key!r}: {exc}", reply) from exc


def _integer(fields: dict[str, str], key: str, reply: str) -> int:
    if key not in fields:
        raise MalformedReplyError(f"Item detail has no {key!r}", reply)
    raw = fields[key]
    if not _INTEGER.match(raw):
        raise MalformedReplyError(f"Field {key!r} is not an integer: {raw!r}", reply)
    return int(raw)


def _unescape(body: str, quote: str) -> str:
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == quote:
            raise ValueError("unescaped quote inside string")
        if ch != "\\":
            out.append(ch)
            i += 1
            continue

        i += 1
        if i >= len(body):
            raise ValueError("dangling escape at end of string")
        esc = body[i]
        if esc in "0123456789":
            digits = re.match(r"[0-9]{1,3}", body[i:]).group()
            code = int(digits)
            if code > 255:
                raise ValueError(f"escape \\{digits} is out of range")
            out.append(chr(code))
            i += len(digits)
        elif esc in _ESCAPES:
            out.append(_ESCAPES[esc])
            i += 1
        else:
            raise ValueError(f"unknown escape \\{esc}")
    return "".join(out)
