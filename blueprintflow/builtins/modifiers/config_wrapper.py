"""Wrapping of a module's exported config in a higher-order function such as ``withSentryConfig``."""

import re
from collections.abc import Mapping
from typing import Any

from blueprintflow.builtins.modifiers.config_merge import find_export_expression
from blueprintflow.builtins.modifiers.module_enhancer import ensure_imports, parse_imports
from blueprintflow.exceptions import ModifierTransformError
from blueprintflow.modifiers.base import Modifier
from blueprintflow.modifiers.source import (
    code_end,
    detect_indent_unit,
    find_matching,
    search_code,
    skip_non_code,
    skip_trivia,
    to_js,
)

_WRAPPER_NAME = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*$")
_CONTINUATION = re.compile(r"\s*(?!//|/\*)(?:[.?:+\-*/%&|^=<>,]|\(|\[|as\b|satisfies\b)")
_REQUIRE = re.compile(r"\brequire\s*\(")


def expression_end(text: str, start: int) -> int:
    """
    Index just past the expression starting at start.

    The expression ends at a ';' or at a line break outside brackets, unless the next
    line continues it (a leading operator, '.' or call).
    """
    i = start
    while i < len(text):
        nxt = skip_non_code(text, i)
        if nxt != i:
            i = nxt
            continue
        ch = text[i]
        if ch in "{[(":
            i = find_matching(text, i) + 1
            continue
        if ch == ";":
            break
        if ch == "\n" and not _CONTINUATION.match(text, i):
            break
        i += 1
    return code_end(text, start, i)


def is_wrapped(expression: str, wrapper: str) -> bool:
    return re.match(rf"{re.escape(wrapper)}\s*\(", expression) is not None


def _is_commonjs(text: str) -> bool:
    return not parse_imports(text) and search_code(_REQUIRE, text) is not None


def _ensure_require(text: str, binding: str, source: str) -> str:
    statement = f"const {{ {binding} }} = require('{source}');"
    if re.search(rf"\b{re.escape(binding)}\b[^\n]*=\s*require\(\s*['\"]{re.escape(source)}['\"]", text):
        return text
    return statement + "\n" + text


class ConfigWrapperModifier(Modifier):
    """
    Replaces the exported config expression ``expr`` with ``wrapper(expr, options)``.

    Params:
        wrapper: function name, possibly dotted (``nextIntl.withPlugin``).
        import_from: module providing the wrapper; an import (or ``require`` in
            CommonJS modules) is added for the wrapper's root name when given.
        options: optional mapping rendered as the wrapper's second argument.
        export_name: 'default' (default) or the name of an exported ``const``.

    A config already wrapped by the same function is left unchanged.
    """

    name = "config-wrapper"
    description = "Wrap the exported config of a JS/TS module in a higher-order function"

    def validate_parameters(self, params: Any) -> bool:
        if not isinstance(params, Mapping):
            return False
        wrapper = params.get("wrapper")
        if not isinstance(wrapper, str) or not _WRAPPER_NAME.match(wrapper):
            return False
        import_from = params.get("import_from", params.get("importFrom"))
        if import_from is not None and (not isinstance(import_from, str) or not import_from):
            return False
        options = params.get("options")
        return options is None or isinstance(options, Mapping)

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        if existing is None or not existing.strip():
            raise ModifierTransformError("Cannot wrap the config of an empty module", self.name)

        wrapper = params["wrapper"]
        export_name = params.get("export_name", params.get("exportName", "default"))
        start = find_export_expression(existing, export_name)
        if start is None:
            raise ModifierTransformError(f"No config exported as '{export_name}'", self.name)

        start = skip_trivia(existing, start)
        end = expression_end(existing, start)
        expression = existing[start:end]
        if not expression:
            raise ModifierTransformError(f"Empty expression exported as '{export_name}'", self.name)

        text = existing
        if not is_wrapped(expression, wrapper):
            arguments = expression
            options = params.get("options")
            if options:
                arguments += ", " + to_js(dict(options), "", detect_indent_unit(existing))
            text = existing[:start] + f"{wrapper}({arguments})" + existing[end:]

        import_from = params.get("import_from", params.get("importFrom"))
        if import_from:
            binding = wrapper.split(".")[0]
            if _is_commonjs(text):
                text = _ensure_require(text, binding, import_from)
            else:
                text = ensure_imports(text, [{"name": binding, "from": import_from, "type": "import"}])
        return text
