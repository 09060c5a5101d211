"""Merging of structured settings into the config object of a JavaScript/TypeScript module."""

import re
from collections.abc import Mapping
from typing import Any

from blueprintflow.constants import MergeStrategy
from blueprintflow.exceptions import ModifierTransformError
from blueprintflow.modifiers.base import Modifier
from blueprintflow.modifiers.source import (
    RAW_EXPRESSION_KEY,
    detect_indent_unit,
    find_matching,
    format_key,
    line_indent,
    parse_object,
    search_code,
    skip_trivia,
    to_js,
)

_EXPORT_DEFAULT = re.compile(r"\bexport\s+default\s+")
_MODULE_EXPORTS = re.compile(r"\bmodule\.exports\s*=\s*")
_CALLEE = re.compile(r"[A-Za-z_$][\w$.]*(?:\s*<[^>()]*>)?\s*\(")
_REFERENCE = re.compile(r"[A-Za-z_$][\w$]*")


def declaration_pattern(name: str) -> re.Pattern:
    """Matches ``[export] const|let|var NAME [: Type] =`` up to the start of the initializer."""
    return re.compile(rf"(?:\bexport\s+)?\b(?:const|let|var)\s+{re.escape(name)}\b\s*(?::[^=]+?)?=\s*")


def find_export_expression(text: str, export_name: str = "default") -> int | None:
    """Index where the exported expression starts, or None when the module has no such export."""
    patterns = [_EXPORT_DEFAULT, _MODULE_EXPORTS] if export_name == "default" else [declaration_pattern(export_name)]
    for pattern in patterns:
        match = search_code(pattern, text)
        if match:
            return match.end()
    return None


def find_config_object(text: str, export_name: str = "default") -> int | None:
    """Index of the '{' of the object literal exported as export_name, or None."""
    start = find_export_expression(text, export_name)
    if start is None:
        return None
    return _object_after(text, start, seen=set())


def _object_after(text: str, position: int, seen: set[str]) -> int | None:
    """Follows call wrappers (``defineConfig({...})``) and identifier references to an object literal."""
    position = skip_trivia(text, position)
    if position >= len(text):
        return None
    if text[position] == "{":
        return position

    call = _CALLEE.match(text, position)
    if call:
        return _object_after(text, call.end(), seen)

    reference = _REFERENCE.match(text, position)
    if reference and reference.group(0) not in seen:
        name = reference.group(0)
        seen.add(name)
        declaration = search_code(declaration_pattern(name), text)
        if declaration:
            return _object_after(text, declaration.end(), seen)
    return None


def _is_plain_mapping(value: Any) -> bool:
    return isinstance(value, Mapping) and set(value) != {RAW_EXPRESSION_KEY}


def merge_object_literal(
    text: str, open_index: int, properties: Mapping[str, Any], strategy: MergeStrategy, unit: str = "  "
) -> str:
    """
    Merge properties into the object literal starting at open_index and return the new text.

    Existing members keep their position, formatting and comments; only values that
    change are rewritten. New keys are appended after the last member, following the
    literal's layout (one member per line or inline) and its trailing comma style.
    """
    close, members = parse_object(text, open_index)
    base_indent = line_indent(text, open_index)

    if strategy is MergeStrategy.REPLACE:
        return text[:open_index] + to_js(dict(properties), base_indent, unit) + text[close + 1 :]

    multiline = "\n" in text[open_index:close]
    by_key = {member.key: member for member in members if member.key is not None}
    edits: list[tuple[int, int, str]] = []
    additions: dict[str, Any] = {}

    for key, value in properties.items():
        member = by_key.get(key)
        if member is None:
            additions[key] = value
            continue
        member_indent = line_indent(text, member.start)
        if (
            strategy is MergeStrategy.DEEP
            and member.kind == "pair"
            and _is_plain_mapping(value)
            and text[member.value_start] == "{"
        ):
            nested_close = find_matching(text, member.value_start)
            merged = merge_object_literal(text, member.value_start, value, strategy, unit)
            growth = len(merged) - len(text)
            edits.append((member.value_start, nested_close + 1, merged[member.value_start : nested_close + 1 + growth]))
        elif member.kind == "pair":
            edits.append((member.value_start, member.value_end, to_js(value, member_indent, unit)))
        else:
            edits.append((member.start, member.value_end, f"{format_key(key)}: {to_js(value, member_indent, unit)}"))

    if additions:
        if not members:
            return text[:open_index] + to_js(additions, base_indent, unit) + text[close + 1 :]
        edits.append(_insertion(text, close, members[-1], additions, base_indent, unit, multiline))

    return _apply(text, edits)


def _insertion(text, close, last, additions, base_indent, unit, multiline) -> tuple[int, int, str]:
    comma = skip_trivia(text, last.value_end, close)
    has_trailing_comma = comma < close and text[comma] == ","

    if multiline:
        line_start = text.rfind("\n", 0, last.start) + 1
        own_line = not text[line_start : last.start].strip()
        indent = line_indent(text, last.start) if own_line else base_indent + unit
        entries = [f"\n{indent}{format_key(k)}: {to_js(v, indent, unit)}" for k, v in additions.items()]
        if has_trailing_comma:
            newline = text.find("\n", comma + 1)
            position = newline if newline != -1 and newline < close else comma + 1
            return position, position, "".join(f"{entry}," for entry in entries)
        return last.value_end, last.value_end, "," + ",".join(entries)

    entries = [f"{format_key(k)}: {to_js(v, base_indent, unit)}" for k, v in additions.items()]
    if has_trailing_comma:
        return comma + 1, comma + 1, " " + ", ".join(entries) + ","
    return last.value_end, last.value_end, ", " + ", ".join(entries)


def _apply(text: str, edits: list[tuple[int, int, str]]) -> str:
    for start, end, replacement in sorted(edits, key=lambda edit: edit[0], reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


class ConfigMergeModifier(Modifier):
    """
    Merges ``properties`` into the config object literal exported by a module.

    Params:
        properties: mapping to merge. ``{"$expr": "..."}`` values are written as raw code.
        export_name: 'default' (``export default`` / ``module.exports``) or the name of a
            ``const`` holding the config. Defaults to 'default'.
        strategy: 'deep' (default), 'shallow' or 'replace'.
        config_template: module text used when the file does not exist yet.
    """

    name = "config-merge"
    description = "Merge properties into the exported config object of a JS/TS module"

    def validate_parameters(self, params: Any) -> bool:
        if not isinstance(params, Mapping) or not isinstance(params.get("properties"), Mapping):
            return False
        if not isinstance(params.get("export_name", params.get("exportName", "default")), str):
            return False
        template = params.get("config_template", params.get("configTemplate"))
        if template is not None and not isinstance(template, str):
            return False
        try:
            MergeStrategy(params.get("strategy", params.get("mergeStrategy", MergeStrategy.DEEP.value)))
        except ValueError:
            return False
        return True

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        export_name = params.get("export_name", params.get("exportName", "default"))
        strategy = MergeStrategy(params.get("strategy", params.get("mergeStrategy", MergeStrategy.DEEP.value)))
        text = existing if existing and existing.strip() else self._skeleton(params, export_name)

        open_index = find_config_object(text, export_name)
        if open_index is None:
            raise ModifierTransformError(f"No config object exported as '{export_name}'", self.name)
        return merge_object_literal(text, open_index, params["properties"], strategy, detect_indent_unit(text))

    @staticmethod
    def _skeleton(params: Mapping[str, Any], export_name: str) -> str:
        template = params.get("config_template", params.get("configTemplate"))
        if template:
            return template
        if export_name == "default":
            return "export default {};\n"
        return f"export const {export_name} = {{}};\n"
