"""Template-related constants for BlueprintFlow."""

import re

# Template markers for detecting templates in action fields
TEMPLATE_MARKERS = ["{{"]

# Conditional text blocks, innermost first: {{#if expr}}body{{else}}alternative{{/if}}
CONDITIONAL_BLOCK_PATTERN = re.compile(
    r"\{\{#if\s+(?P<expr>(?:(?!\}\}).)+?)\s*\}\}(?P<body>(?:(?!\{\{#if\s).)*?)\{\{/if\}\}",
    re.DOTALL,
)
ELSE_MARKER = "{{else}}"

# Placeholders are dotted context paths with optional Jinja2 filters: {{ project.name | upper }}.
# Anything else between double braces (JSX style objects, for instance) is left untouched.
PLACEHOLDER_PATTERN = re.compile(
    r"\{\{\s*(?P<path>[A-Za-z_]\w*(?:\.[\w-]+)*)\s*(?P<filters>(?:\|\s*[A-Za-z_]\w*(?:\([^{}]*?\))?\s*)*)\}\}"
)

# Lower case string values that evaluate to True when converting to boolean.
TRUTHY_STRING_VALUES = ("true", "yes", "1", "on", "y", "t", "enabled")

# Lower case string values that evaluate to False. Other non-empty strings are truthy.
FALSY_STRING_VALUES = ("false", "no", "0", "off", "n", "f", "disabled", "none", "null", "")
