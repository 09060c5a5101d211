"""
Lightweight scanning helpers for JavaScript/TypeScript source text.

Not a parser: the helpers only understand enough of the language to skip strings,
template literals and comments, match brackets, split object literal bodies at
their top level and render Python values as JS literals. That is all the
source-aware modifiers need to edit a module without disturbing unrelated code.
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from blueprintflow.exceptions import ModifierTransformError

_PAIRS = {"{": "}", "[": "]", "(": ")"}
_CLOSERS = set(_PAIRS.values())
_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")
_KEY_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")

# Marker for raw JS expressions in rendered values: {"$expr": "require('x')"}
RAW_EXPRESSION_KEY = "$expr"


def skip_non_code(text: str, i: int) -> int:
    """If a string, template literal or comment starts at i, return the index right after it, else i."""
    ch = text[i]
    if ch in "'\"":
        j = i + 1
        while j < len(text):
            if text[j] == "\\":
                j += 2
                continue
            if text[j] == ch:
                return j + 1
            if text[j] == "\n":
                # Unterminated quote, e.g. an apostrophe in JSX text.
                return j
            j += 1
        return len(text)
    if ch == "`":
        j = i + 1
        while j < len(text):
            if text[j] == "\\":
                j += 2
                continue
            if text[j] == "`":
                return j + 1
            if text.startswith("${", j):
                j = find_matching(text, j + 1) + 1
                continue
            j += 1
        return len(text)
    if text.startswith("//", i):
        end = text.find("\n", i)
        return len(text) if end == -1 else end
    if text.startswith("/*", i):
        end = text.find("*/", i + 2)
        return len(text) if end == -1 else end + 2
    return i


def find_matching(text: str, open_index: int) -> int:
    """
    Index of the bracket closing the one at open_index.

    Raises:
        ModifierTransformError: If the brackets are unbalanced.
    """
    stack: list[str] = []
    i = open_index
    while i < len(text):
        nxt = skip_non_code(text, i)
        if nxt != i:
            i = nxt
            continue
        ch = text[i]
        if ch in _PAIRS:
            stack.append(_PAIRS[ch])
        elif ch in _CLOSERS:
            if not stack or stack.pop() != ch:
                raise ModifierTransformError(f"Unbalanced '{ch}' at offset {i}")
            if not stack:
                return i
        i += 1
    raise ModifierTransformError(f"Unclosed '{text[open_index]}' at offset {open_index}")


def is_code_position(text: str, pos: int) -> bool:
    """True when pos is outside every string, template literal and comment."""
    i = 0
    while i < pos:
        nxt = skip_non_code(text, i)
        if nxt != i:
            if nxt > pos:
                return False
            i = nxt
            continue
        i += 1
    return True


def search_code(pattern: re.Pattern, text: str, start: int = 0) -> re.Match | None:
    """First match of pattern that starts in code rather than in a string or comment."""
    for match in pattern.finditer(text, start):
        if is_code_position(text, match.start()):
            return match
    return None


def code_end(text: str, start: int, end: int) -> int:
    """Index just past the last code character in text[start:end], ignoring whitespace and comments."""
    last = start
    i = start
    while i < end:
        if text.startswith("//", i) or text.startswith("/*", i):
            i = min(skip_non_code(text, i), end)
            continue
        nxt = skip_non_code(text, i)
        if nxt != i:
            i = min(nxt, end)
            last = i
            continue
        if not text[i].isspace():
            last = i + 1
        i += 1
    return last


def skip_trivia(text: str, i: int, end: int | None = None) -> int:
    """Skip whitespace and comments starting at i."""
    end = len(text) if end is None else end
    while i < end:
        if text[i].isspace():
            i += 1
        elif text.startswith("//", i) or text.startswith("/*", i):
            i = skip_non_code(text, i)
        else:
            break
    return min(i, end)


def split_top_level(text: str, start: int, end: int) -> list[tuple[int, int]]:
    """Spans of the comma separated items in text[start:end], ignoring empty or comment-only items."""
    spans: list[tuple[int, int]] = []
    depth = 0
    segment_start = start
    i = start
    while i < end:
        nxt = skip_non_code(text, i)
        if nxt != i:
            i = min(nxt, end)
            continue
        ch = text[i]
        if ch in _PAIRS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif ch == "," and depth == 0:
            spans.append((segment_start, i))
            segment_start = i + 1
        i += 1
    spans.append((segment_start, end))
    return [(s, e) for s, e in spans if code_end(text, s, e) > skip_trivia(text, s, e)]


@dataclass
class ObjectProperty:
    """One member of an object literal. ``key`` is None for spreads and computed keys."""

    key: str | None
    kind: str  # pair, shorthand, method, spread or computed
    start: int
    value_start: int
    value_end: int


def parse_property(text: str, start: int, end: int) -> ObjectProperty:
    i = skip_trivia(text, start, end)
    stop = code_end(text, i, end)

    if text.startswith("...", i):
        return ObjectProperty(None, "spread", i, i, stop)
    if text[i] == "[":
        return ObjectProperty(None, "computed", i, i, stop)

    if text[i] in "'\"":
        key_end = skip_non_code(text, i)
        key = text[i + 1 : key_end - 1]
    else:
        match = re.compile(r"[\w$]+").match(text, i)
        if not match:
            return ObjectProperty(None, "computed", i, i, stop)
        key = match.group(0)
        key_end = match.end()

    j = skip_trivia(text, key_end, end)
    if j < end and text[j] == ":":
        value_start = skip_trivia(text, j + 1, end)
        return ObjectProperty(key, "pair", i, value_start, stop)
    if j < end and text[j] in "(<":
        return ObjectProperty(key, "method", i, i, stop)
    # 'get x() {}' / 'async x() {}' style members
    if key in {"get", "set", "async"} and j < end and _IDENTIFIER.match(text, j):
        return ObjectProperty(None, "method", i, i, stop)
    return ObjectProperty(key, "shorthand", i, i, stop)


def parse_object(text: str, open_index: int) -> tuple[int, list[ObjectProperty]]:
    """Closing index and members of the object literal whose '{' is at open_index."""
    if text[open_index] != "{":
        raise ModifierTransformError(f"Expected an object literal at offset {open_index}")
    close = find_matching(text, open_index)
    return close, [parse_property(text, s, e) for s, e in split_top_level(text, open_index + 1, close)]


def line_indent(text: str, pos: int) -> str:
    line_start = text.rfind("\n", 0, pos) + 1
    match = re.compile(r"[ \t]*").match(text, line_start)
    return match.group(0)


def detect_indent_unit(text: str) -> str:
    """Guess the indentation unit of a file: a tab, or the smallest run of leading spaces."""
    widths = []
    for line in text.splitlines():
        if line.startswith("\t"):
            return "\t"
        stripped = len(line) - len(line.lstrip(" "))
        if stripped and line.strip():
            widths.append(stripped)
    return " " * min(widths) if widths else "  "


def format_key(key: str) -> str:
    return key if _KEY_IDENTIFIER.match(key) else quote_string(key)


def quote_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def to_js(value: Any, indent: str = "", unit: str = "  ") -> str:
    """Render a Python value as a JS literal, placing nested members one unit deeper than indent."""
    if isinstance(value, Mapping):
        if set(value) == {RAW_EXPRESSION_KEY}:
            return str(value[RAW_EXPRESSION_KEY])
        if not value:
            return "{}"
        inner = indent + unit
        members = ",\n".join(f"{inner}{format_key(str(k))}: {to_js(v, inner, unit)}" for k, v in value.items())
        return "{\n" + members + ",\n" + indent + "}"
    if isinstance(value, (list, tuple)):
        if any(isinstance(item, Mapping) for item in value):
            inner = indent + unit
            items = ",\n".join(f"{inner}{to_js(item, inner, unit)}" for item in value)
            return "[\n" + items + ",\n" + indent + "]"
        return "[" + ", ".join(to_js(item, indent, unit) for item in value) + "]"
    if isinstance(value, str):
        return quote_string(value)
    if value is None or isinstance(value, (bool, int, float)):
        return json.dumps(value)
    raise ModifierTransformError(f"Cannot render value of type {type(value).__name__} as JavaScript")


def strip_json_comments(text: str) -> str:
    """Remove comments and trailing commas so JSONC files (tsconfig.json) can be parsed as JSON."""
    out: list[str] = []
    i = 0
    while i < len(text):
        if text.startswith("//", i) or text.startswith("/*", i):
            i = skip_non_code(text, i)
            continue
        if text[i] == '"':
            end = skip_non_code(text, i)
            out.append(text[i:end])
            i = end
            continue
        out.append(text[i])
        i += 1
    return re.sub(r",(\s*[}\]])", r"\1", "".join(out))
