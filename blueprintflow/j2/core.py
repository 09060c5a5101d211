import json
from collections.abc import Mapping
from functools import lru_cache
from threading import Lock
from typing import Any

from jinja2 import ChainableUndefined, Environment, StrictUndefined, TemplateSyntaxError, UndefinedError

from blueprintflow.j2.constants import (
    CONDITIONAL_BLOCK_PATTERN,
    ELSE_MARKER,
    FALSY_STRING_VALUES,
    PLACEHOLDER_PATTERN,
    TEMPLATE_MARKERS,
    TRUTHY_STRING_VALUES,
)
from blueprintflow.j2.exceptions import TemplateError, TemplateServiceError
from blueprintflow.logger import logger

_MISSING = object()


class TemplateService:
    """Centralized template handling for BlueprintFlow.

    Blueprint content is mostly source code, so full Jinja2 rendering of whole files
    would mangle things like JSX object literals. The service therefore works in two
    narrow passes over a string:

    1. ``{{#if expr}}...{{else}}...{{/if}}`` blocks are resolved, innermost first;
    2. ``{{ dotted.path }}`` placeholders (optionally with Jinja2 filters) are
       substituted. A placeholder whose path is not in the context is left verbatim.

    Expressions (block guards and action conditions) are compiled by a shared Jinja2
    environment where missing values are falsy instead of errors. Filtered
    placeholders are rendered by a strict environment.

    This service is a singleton holding both environments and the expression cache.
    """

    _instance = None
    _lock = Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._initialize_environment(cls._instance)
        return cls._instance

    @classmethod
    def _initialize_environment(cls, instance: "TemplateService") -> None:
        # Autoescape disabled: output is source code and config, not HTML.
        instance._environment = Environment(undefined=StrictUndefined, autoescape=False)  # noqa: S701
        instance._expression_environment = Environment(
            undefined=ChainableUndefined, autoescape=False  # noqa: S701
        )

    @property
    def environment(self) -> Environment:
        """Strict environment used for filtered placeholders."""
        return self._environment

    @environment.setter
    def environment(self, value: Environment) -> None:
        if not isinstance(value, Environment):
            raise TemplateServiceError(f"Expected Environment instance, got {type(value).__name__}")
        self._environment = value

    # Safe despite B019: the service is a singleton, so the cache lives exactly as long as it does.
    @lru_cache(maxsize=256)  # noqa: B019
    def compile_expression(self, expression: str) -> Any:
        """Compile and cache a Jinja2 expression.

        Raises:
            TemplateError: If the expression has syntax errors.
        """
        try:
            compiled = self._expression_environment.compile_expression(expression, undefined_to_none=True)
            logger.debug(f"Compiled expression (length={len(expression)})")
            return compiled
        except TemplateSyntaxError as e:
            raise TemplateError(f"Invalid expression: {e}", template=expression) from e

    @lru_cache(maxsize=256)  # noqa: B019
    def compile_template(self, template_str: str) -> Any:
        """Compile and cache a template string with the strict environment."""
        try:
            return self._environment.from_string(template_str)
        except TemplateSyntaxError as e:
            raise TemplateError(f"Template syntax error: {e}", template=template_str) from e

    def is_template(self, value: str) -> bool:
        """Check if a string contains template markers."""
        return any(marker in value for marker in TEMPLATE_MARKERS)

    def evaluate_expression(self, expression: str, context: dict[str, Any]) -> Any:
        """Evaluate a Jinja2 expression against the context; missing values become None."""
        compiled = self.compile_expression(expression.strip())
        try:
            return compiled(**context)
        except Exception as e:
            raise TemplateError(f"Failed to evaluate expression: {e}", template=expression) from e

    def evaluate_condition(self, condition: Any, context: dict[str, Any]) -> bool:
        """Evaluate an action condition.

        Booleans and None pass through (None means no condition). Strings may be a
        boolean literal, a ``{{ expr }}`` wrapper, a ``{{#if expr}}`` guard or a bare
        expression such as ``module.parameters.typescript and project.framework == 'nextjs'``.

        Raises:
            TemplateError: If the expression cannot be compiled or evaluated.
        """
        if condition is None:
            return True
        if isinstance(condition, bool):
            return condition
        if not isinstance(condition, str):
            return bool(condition)

        expression = condition.strip()
        if expression.startswith("{{#if") and expression.endswith("}}"):
            expression = expression[len("{{#if") : -2]
        elif expression.startswith("{{") and expression.endswith("}}"):
            expression = expression[2:-2]
        expression = expression.strip()

        lowered = expression.lower()
        if lowered in TRUTHY_STRING_VALUES:
            return True
        if lowered in FALSY_STRING_VALUES:
            return False

        return self.to_bool(self.evaluate_expression(expression, context))

    def resolve_conditionals(self, text: str, context: dict[str, Any]) -> str:
        """Resolve ``{{#if expr}}body{{else}}alternative{{/if}}`` blocks, innermost first."""
        if "{{#if" not in text:
            return text

        def _replace(match) -> str:
            body = match.group("body")
            alternative = ""
            if ELSE_MARKER in body:
                body, alternative = body.split(ELSE_MARKER, 1)
            return body if self.to_bool(self.evaluate_expression(match.group("expr"), context)) else alternative

        previous = None
        while previous != text:
            previous = text
            text = CONDITIONAL_BLOCK_PATTERN.sub(_replace, text)
        return text

    def resolve_placeholders(self, text: str, context: dict[str, Any], error_context: str = "") -> str:
        """Substitute ``{{ dotted.path }}`` placeholders found in the context."""

        def _replace(match) -> str:
            value = self.lookup(context, match.group("path"))
            if value is _MISSING:
                return match.group(0)
            filters = match.group("filters").strip()
            if filters:
                return self._render_filtered(match.group(0), context, error_context)
            return self.stringify(value)

        return PLACEHOLDER_PATTERN.sub(_replace, text)

    def resolve_string(self, template_str: str, context: dict[str, Any], error_context: str = "") -> str:
        """Resolve conditional blocks, then placeholders.

        Raises:
            TemplateError: If resolution fails.
        """
        if not isinstance(template_str, str):
            raise TemplateError(f"Expected string for 'template_str', got {type(template_str).__name__}")

        if not self.is_template(template_str):
            return template_str

        resolved = self.resolve_conditionals(template_str, context)
        resolved = self.resolve_placeholders(resolved, context, error_context)
        logger.debug(f"Resolved template: input_len={len(template_str)}, output_len={len(resolved)}")
        return resolved

    def resolve_data(self, data: Any, context: dict[str, Any], error_context: str = "") -> Any:
        """Recursively resolve templates in string values of nested data structures."""
        if isinstance(data, str):
            return self.resolve_string(data, context, error_context)
        if isinstance(data, dict):
            return {k: self.resolve_data(v, context, error_context) for k, v in data.items()}
        # Handle both lists and tuples, and normalize to list.
        if isinstance(data, (list, tuple)):
            return [self.resolve_data(item, context, error_context) for item in data]
        return data

    def to_bool(self, value: Any) -> bool:
        """Convert value to boolean using BlueprintFlow conventions.

        Strings listed in FALSY_STRING_VALUES are false, any other string is true.
        """
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() not in FALSY_STRING_VALUES
        return bool(value)

    @staticmethod
    def lookup(context: dict[str, Any], path: str) -> Any:
        """Walk a dotted path through nested mappings and attributes."""
        current: Any = context
        for segment in path.split("."):
            if isinstance(current, Mapping):
                if segment not in current:
                    return _MISSING
                current = current[segment]
            elif hasattr(current, segment):
                current = getattr(current, segment)
            else:
                return _MISSING
        return current

    @staticmethod
    def stringify(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return ""
        if isinstance(value, (dict, list, tuple)):
            return json.dumps(value)
        return str(value)

    def _render_filtered(self, placeholder: str, context: dict[str, Any], error_context: str) -> str:
        context_info = f" ({error_context})" if error_context else ""
        try:
            return self.compile_template(placeholder).render(context)
        except UndefinedError as e:
            raise TemplateError(f"Undefined variable in template{context_info}: {e}", template=placeholder) from e
        except TemplateError:
            raise
        except Exception as e:
            raise TemplateError(f"Template rendering error{context_info}: {e}", template=placeholder) from e
