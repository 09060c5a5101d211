"""Unit tests for blueprintflow.j2.core module."""

import pytest
from jinja2 import Environment

from blueprintflow.j2 import TemplateError, TemplateService
from blueprintflow.j2.exceptions import TemplateServiceError


@pytest.fixture
def variables(context):
    return dict(context.template_vars())


class TestTemplateService:
    """Test suite for the TemplateService singleton."""

    def test_singleton_behavior(self):
        """Test that TemplateService is a singleton."""
        assert TemplateService() is TemplateService()

    def test_environment_setter_validates_type(self):
        """Test that only Environment instances can be assigned."""
        service = TemplateService()
        assert isinstance(service.environment, Environment)
        with pytest.raises(TemplateServiceError, match="Expected Environment instance"):
            service.environment = "not an environment"

    def test_is_template(self):
        service = TemplateService()
        assert service.is_template("{{ project.name }}")
        assert not service.is_template("plain text")


class TestPlaceholders:
    def test_dotted_paths_are_substituted(self, variables):
        """Test substitution across the project, module, env and extra namespaces."""
        template = "{{ project.name }}/{{module.id}}@{{ module.version }} {{ env.NODE_ENV }} {{ integration.name }}"
        result = TemplateService().resolve_string(template, variables)
        assert result == "demo-app/sentry@1.0.0 development sentry"

    def test_values_are_stringified(self, variables):
        """Test that booleans render in lower case."""
        assert TemplateService().resolve_string("ts={{ module.parameters.typescript }}", variables) == "ts=true"

    def test_unknown_placeholder_is_left_verbatim(self, variables):
        """Test that a path missing from the context stays in the output."""
        template = "key={{ module.parameters.apiKey }}"
        assert TemplateService().resolve_string(template, variables) == template

    def test_jsx_objects_are_not_placeholders(self, variables):
        """Test that double braces that are not dotted paths are left alone."""
        template = "<div style={{ color: 'red' }}>{{ project.name }}</div>"
        result = TemplateService().resolve_string(template, variables)
        assert result == "<div style={{ color: 'red' }}>demo-app</div>"

    def test_filters_are_rendered_by_jinja(self, variables):
        assert TemplateService().resolve_string("{{ project.name | upper }}", variables) == "DEMO-APP"

    def test_non_string_input_raises(self, variables):
        with pytest.raises(TemplateError, match="Expected string"):
            TemplateService().resolve_string(42, variables)

    def test_resolve_data_recurses(self, variables):
        """Test that nested structures are resolved and tuples become lists."""
        data = {"a": ["{{ project.name }}", 1], "b": ("{{ module.id }}",), "c": {"d": True}}
        assert TemplateService().resolve_data(data, variables) == {"a": ["demo-app", 1], "b": ["sentry"], "c": {"d": True}}


class TestConditionals:
    def test_if_else_blocks(self, variables):
        """Test that if/else blocks pick the branch matching the expression."""
        template = "ext={{#if module.parameters.typescript}}ts{{else}}js{{/if}}"
        assert TemplateService().resolve_string(template, variables) == "ext=ts"

    def test_nested_blocks_resolve_innermost_first(self, variables):
        template = "{{#if project.name}}A{{#if module.parameters.missing}}B{{/if}}C{{/if}}"
        assert TemplateService().resolve_string(template, variables) == "AC"

    def test_block_without_else_can_vanish(self, variables):
        template = "start{{#if project.framework == 'vite'}} vite{{/if}} end"
        assert TemplateService().resolve_string(template, variables) == "start end"


class TestConditions:
    @pytest.mark.parametrize(
        "condition, expected",
        [
            (None, True),
            (True, True),
            (False, False),
            ("true", True),
            ("no", False),
            ("module.parameters.typescript", True),
            ("{{ project.framework == 'nextjs' }}", True),
            ("{{#if project.framework == 'vite'}}", False),
            ("module.parameters.missing", False),
            ("module.parameters.typescript and project.framework == 'nextjs'", True),
        ],
    )
    def test_evaluate_condition(self, variables, condition, expected):
        """Test condition evaluation for literals, wrappers and bare expressions."""
        assert TemplateService().evaluate_condition(condition, variables) is expected

    def test_invalid_expression_raises(self, variables):
        with pytest.raises(TemplateError, match="Invalid expression"):
            TemplateService().evaluate_condition("project.name ==", variables)

    @pytest.mark.parametrize("value, expected", [("false", False), ("OFF", False), ("anything", True), (0, False)])
    def test_to_bool(self, value, expected):
        assert TemplateService().to_bool(value) is expected
