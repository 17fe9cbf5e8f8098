from __future__ import annotations

import math
import re
from typing import Dict, NamedTuple

from pydantic import BaseModel

SENTINEL = "!"
TOKENS_COMMAND = "!tokens"
TEMP_COMMAND = "!temp"

DEFAULT_MAX_TOKENS = 4096
MAX_ALLOWED_TOKENS = 8192
MIN_ALLOWED_TOKENS = 1
DEFAULT_TEMPERATURE = 1.0
MAX_TEMPERATURE = 2.0
MIN_TEMPERATURE = 0.0

_INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?))")


class DirectiveScan(NamedTuple):
    directives: Dict[str, str]
    end_cursor: int


class ChatSettings(BaseModel):
    content: str
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE


def parse_directives(content: str) -> DirectiveScan:
    """Scan the leading run of ``!name=value`` directives.

    Only a contiguous run at the very start counts; the first character that is
    not ``!`` (after optional spaces between directives) ends the scan. Values
    stop at a space or at the next ``!``, so ``!temp=1.5!tokens=2000`` yields
    two directives. A name without ``=`` is consumed and ignored.
    """
    directives: Dict[str, str] = {}
    cursor = 0
    length = len(content)

    while cursor < length and content[cursor] == SENTINEL:
        start = cursor
        cursor += 1
        while cursor < length and content[cursor] not in ("=", " ", SENTINEL):
            cursor += 1
        name = content[start:cursor]

        if cursor < length and content[cursor] == "=":
            cursor += 1
            value_start = cursor
            while cursor < length and content[cursor] not in (" ", SENTINEL):
                cursor += 1
            directives[name] = content[value_start:cursor]

        while cursor < length and content[cursor] == " ":
            cursor += 1

    return DirectiveScan(directives, cursor)


def parse_int_prefix(raw: str) -> int | None:
    m = _INT_PREFIX.match(raw)
    return int(m.group(1)) if m else None


def parse_float_prefix(raw: str) -> float | None:
    m = _FLOAT_PREFIX.match(raw)
    if not m:
        return None
    value = float(m.group(1))
    return None if math.isnan(value) else value


def _clamp(value, low, high):
    return max(low, min(high, value))


def parse_commands(content: str) -> ChatSettings:
    """Split directives from free text and resolve chat settings.

    Unparsable values fall back to the defaults before clamping; directives
    that are absent yield the defaults unchanged. Text glued to a value
    (``!tokens=2000Hello``) is part of that value, so only its numeric prefix
    survives and the rest is dropped.
    """
    directives, end_cursor = parse_directives(content)

    max_tokens = DEFAULT_MAX_TOKENS
    if TOKENS_COMMAND in directives:
        parsed = parse_int_prefix(directives[TOKENS_COMMAND])
        if parsed is None:
            parsed = DEFAULT_MAX_TOKENS
        max_tokens = _clamp(parsed, MIN_ALLOWED_TOKENS, MAX_ALLOWED_TOKENS)

    temperature = DEFAULT_TEMPERATURE
    if TEMP_COMMAND in directives:
        parsed_temp = parse_float_prefix(directives[TEMP_COMMAND])
        if parsed_temp is None:
            parsed_temp = DEFAULT_TEMPERATURE
        temperature = float(_clamp(parsed_temp, MIN_TEMPERATURE, MAX_TEMPERATURE))

    return ChatSettings(
        content=content[end_cursor:].strip(),
        max_tokens=max_tokens,
        temperature=temperature,
    )


__all__ = [
    "ChatSettings",
    "DirectiveScan",
    "parse_commands",
    "parse_directives",
    "DEFAULT_MAX_TOKENS",
    "MAX_ALLOWED_TOKENS",
    "MIN_ALLOWED_TOKENS",
    "DEFAULT_TEMPERATURE",
    "MAX_TEMPERATURE",
    "MIN_TEMPERATURE",
]
