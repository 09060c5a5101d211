"""Wrapping of JSX elements (or a default-exported component) in a wrapper component such as a provider."""

import json
import re
from collections.abc import Mapping
from typing import Any

from blueprintflow.builtins.modifiers.config_merge import find_export_expression
from blueprintflow.builtins.modifiers.config_wrapper import expression_end, is_wrapped
from blueprintflow.builtins.modifiers.module_enhancer import ensure_imports
from blueprintflow.exceptions import ModifierTransformError
from blueprintflow.modifiers.base import Modifier
from blueprintflow.modifiers.source import (
    RAW_EXPRESSION_KEY,
    detect_indent_unit,
    find_matching,
    line_indent,
    quote_string,
    search_code,
    skip_non_code,
    skip_trivia,
    to_js,
)

WRAP_STRATEGIES = ("provider", "hoc", "wrapper")

_COMPONENT_NAME = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*$")
_PROP_NAME = re.compile(r"^[A-Za-z_$][\w$-]*$")


def _opening_tag(name: str) -> re.Pattern:
    return re.compile(rf"<{re.escape(name)}(?=[\s/>])")


def opening_tag_end(text: str, i: int) -> tuple[int, bool]:
    """
    Index just past the opening tag whose attributes start at i, and whether it self-closes.

    Raises:
        ModifierTransformError: If the tag is never closed.
    """
    while i < len(text):
        nxt = skip_non_code(text, i)
        if nxt != i:
            i = nxt
            continue
        if text[i] == "{":
            i = find_matching(text, i) + 1
            continue
        if text.startswith("/>", i):
            return i + 2, True
        if text[i] == ">":
            return i + 1, False
        i += 1
    raise ModifierTransformError("Unterminated JSX opening tag")


def element_end(text: str, name: str, start: int) -> int:
    """Index just past the JSX element named name whose '<' is at start, nested same-name elements included."""
    i, self_closing = opening_tag_end(text, start + 1 + len(name))
    if self_closing:
        return i

    tag = re.compile(rf"<(?P<closing>/?){re.escape(name)}(?=[\s/>])")
    depth = 1
    while True:
        match = tag.search(text, i)
        if match is None:
            raise ModifierTransformError(f"No closing tag for <{name}>")
        if match.group("closing"):
            close = text.find(">", match.end())
            if close == -1:
                raise ModifierTransformError(f"Unterminated closing tag </{name}>")
            i = close + 1
            depth -= 1
            if depth == 0:
                return i
        else:
            i, self_closing = opening_tag_end(text, match.end())
            if not self_closing:
                depth += 1


def render_props(props: Mapping[str, Any]) -> str:
    """Render a mapping as JSX attributes: strings as quoted values, anything else as an expression."""
    rendered = []
    for key, value in props.items():
        if not _PROP_NAME.match(str(key)):
            raise ModifierTransformError(f"Invalid JSX prop name '{key}'")
        if isinstance(value, str):
            attribute = f'"{value}"' if '"' not in value else "{" + quote_string(value) + "}"
        elif isinstance(value, Mapping) and set(value) == {RAW_EXPRESSION_KEY}:
            attribute = "{" + str(value[RAW_EXPRESSION_KEY]) + "}"
        elif isinstance(value, (Mapping, list, tuple)):
            attribute = "{" + json.dumps(value) + "}"
        else:
            attribute = "{" + to_js(value) + "}"
        rendered.append(f"{key}={attribute}")
    return " ".join(rendered)


class JsxWrapperModifier(Modifier):
    """
    Wraps a component in a wrapper component.

    Params:
        target_component: tag name of the element to wrap (``body``, ``Component``).
        wrapper_component: ``name`` (possibly dotted, ``Sentry.ErrorBoundary``),
            ``import_from`` (module providing it) and optional ``props``.
        wrap_strategy: 'provider' or 'wrapper' place every ``<target>`` element inside
            ``<Wrapper props>...</Wrapper>``; 'hoc' rewrites ``export default target``
            to ``export default Wrapper(target, props)``.

    camelCase spellings of the params are accepted. An import for the root name of
    the wrapper is added when missing, and targets already wrapped are left unchanged.
    """

    name = "jsx-wrapper"
    description = "Wrap JSX elements or a default-exported component in a wrapper component"

    def validate_parameters(self, params: Any) -> bool:
        if not isinstance(params, Mapping):
            return False
        target = params.get("target_component", params.get("targetComponent"))
        if not isinstance(target, str) or not _COMPONENT_NAME.match(target):
            return False
        wrapper = params.get("wrapper_component", params.get("wrapperComponent"))
        if not isinstance(wrapper, Mapping):
            return False
        name = wrapper.get("name")
        import_from = wrapper.get("import_from", wrapper.get("importFrom"))
        if not isinstance(name, str) or not _COMPONENT_NAME.match(name):
            return False
        if not isinstance(import_from, str) or not import_from.strip():
            return False
        props = wrapper.get("props")
        if props is not None and not isinstance(props, Mapping):
            return False
        return params.get("wrap_strategy", params.get("wrapStrategy")) in WRAP_STRATEGIES

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        if existing is None or not existing.strip():
            raise ModifierTransformError("Cannot wrap components in an empty module", self.name)

        target = params.get("target_component", params.get("targetComponent"))
        wrapper = params.get("wrapper_component", params.get("wrapperComponent"))
        strategy = params.get("wrap_strategy", params.get("wrapStrategy"))
        props = dict(wrapper.get("props") or {})

        if strategy == "hoc":
            text = self._wrap_default_export(existing, target, wrapper["name"], props)
        else:
            text = self._wrap_elements(existing, target, wrapper["name"], props)

        import_from = wrapper.get("import_from", wrapper.get("importFrom"))
        return ensure_imports(text, [{"name": wrapper["name"].split(".")[0], "from": import_from, "type": "import"}])

    def _wrap_elements(self, text: str, target: str, wrapper: str, props: dict[str, Any]) -> str:
        opening = f"<{wrapper} {render_props(props)}>" if props else f"<{wrapper}>"
        already_wrapped = re.compile(rf"<{re.escape(wrapper)}(?=[\s>])[^<>]*>\s*$")
        unit = detect_indent_unit(text)

        found = False
        position = 0
        while (match := search_code(_opening_tag(target), text, position)) is not None:
            found = True
            start = match.start()
            end = element_end(text, target, start)
            if already_wrapped.search(text, 0, start):
                position = end
                continue

            indent = line_indent(text, start)
            element = re.sub(r"\n(?=[^\n])", "\n" + unit, text[start:end])
            wrapped = f"{opening}\n{indent}{unit}{element}\n{indent}</{wrapper}>"
            text = text[:start] + wrapped + text[end:]
            position = start + len(wrapped)

        if not found:
            raise ModifierTransformError(f"No <{target}> element found", self.name)
        return text

    def _wrap_default_export(self, text: str, target: str, wrapper: str, props: dict[str, Any]) -> str:
        start = find_export_expression(text, "default")
        if start is None:
            raise ModifierTransformError("Module has no default export", self.name)
        start = skip_trivia(text, start)
        end = expression_end(text, start)
        expression = text[start:end]

        if is_wrapped(expression, wrapper):
            return text
        if expression != target:
            raise ModifierTransformError(f"Default export is '{expression}', not '{target}'", self.name)

        arguments = target
        if props:
            arguments += ", " + to_js(props, "", detect_indent_unit(text))
        return text[:start] + f"{wrapper}({arguments})" + text[end:]
