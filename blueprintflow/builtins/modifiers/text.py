"""Plain-text and line-oriented modifiers."""

import re
from collections.abc import Mapping
from typing import Any

from blueprintflow.modifiers.base import Modifier

_ENV_LINE = re.compile(r"^(?P<prefix>\s*(?:export\s+)?)(?P<key>[A-Za-z_][A-Za-z0-9_.-]*)\s*=")


class AppendModifier(Modifier):
    """Concatenates ``content`` verbatim at the end of the file."""

    name = "append"
    description = "Append text verbatim at the end of a file"

    def validate_parameters(self, params: Any) -> bool:
        return isinstance(params, Mapping) and isinstance(params.get("content"), str)

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        return (existing or "") + params["content"]


class PrependModifier(AppendModifier):
    """Concatenates ``content`` verbatim at the start of the file."""

    name = "prepend"
    description = "Prepend text verbatim at the start of a file"

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        return params["content"] + (existing or "")


def _ensure_trailing_newline(text: str) -> str:
    return text if not text or text.endswith("\n") else text + "\n"


class LinesMergeModifier(Modifier):
    """
    Adds each of ``lines`` that is not already present (ignore-file style lists).

    Presence is checked on stripped lines; existing lines, comments and order are kept.
    """

    name = "lines-merge"
    description = "Append lines that are not already present in a line-based list"

    def validate_parameters(self, params: Any) -> bool:
        return (
            isinstance(params, Mapping)
            and isinstance(params.get("lines"), list)
            and all(isinstance(line, str) for line in params["lines"])
        )

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        content = _ensure_trailing_newline(existing or "")
        present = {line.strip() for line in content.splitlines()}
        for line in params["lines"]:
            if line.strip() and line.strip() not in present:
                content += line.rstrip("\n") + "\n"
                present.add(line.strip())
        return content


class EnvMergeModifier(Modifier):
    """
    Line-oriented merge of environment files.

    Params:
        variables: mapping of KEY to value, in the order new keys should be appended.
        descriptions: optional mapping of KEY to a comment written above newly added keys.

    A key that already has a ``KEY=...`` line gets its value replaced in place (every
    occurrence); other keys are appended. Comment and blank lines are left untouched.
    """

    name = "env-merge"
    description = "Set KEY=VALUE lines in an environment file, replacing existing keys in place"

    def validate_parameters(self, params: Any) -> bool:
        if not isinstance(params, Mapping) or not isinstance(params.get("variables"), Mapping):
            return False
        descriptions = params.get("descriptions", {})
        return isinstance(descriptions, Mapping) and all(
            isinstance(k, str) and _ENV_LINE.match(f"{k}=") for k in params["variables"]
        )

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        variables = {key: self._format_value(value) for key, value in params["variables"].items()}
        descriptions = params.get("descriptions", {})

        lines = (existing or "").splitlines(keepends=True)
        seen: set[str] = set()
        for index, line in enumerate(lines):
            match = _ENV_LINE.match(line)
            if not match or match.group("key") not in variables:
                continue
            key = match.group("key")
            ending = "\n" if line.endswith("\n") else ""
            lines[index] = f"{match.group('prefix')}{key}={variables[key]}{ending}"
            seen.add(key)

        content = _ensure_trailing_newline("".join(lines))
        for key, value in variables.items():
            if key in seen:
                continue
            description = descriptions.get(key)
            if description:
                content += f"# {description}\n"
            content += f"{key}={value}\n"
        return content

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        text = "" if value is None else str(value)
        if "\n" in text:
            return '"' + text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n") + '"'
        return text
