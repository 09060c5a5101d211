import pytest

from blueprintflow.exceptions import ModifierTransformError
from blueprintflow.modifiers.source import (
    detect_indent_unit,
    find_matching,
    is_code_position,
    parse_object,
    strip_json_comments,
    to_js,
)


class TestScanning:
    def test_find_matching_skips_strings_and_comments(self):
        """Test that brackets inside strings, templates and comments are ignored."""
        text = "{ a: '}', b: `${ {c: 1} }`, // }\n d: /* } */ 1 }"
        assert find_matching(text, 0) == len(text) - 1

    def test_unbalanced_brackets_raise(self):
        with pytest.raises(ModifierTransformError, match="Unclosed"):
            find_matching("{ a: [1, 2]", 0)

    def test_is_code_position(self):
        text = "const a = 'x'; // y\nb"
        assert is_code_position(text, 0)
        assert not is_code_position(text, text.index("x"))
        assert not is_code_position(text, text.index("y"))
        assert is_code_position(text, text.index("b"))

    def test_parse_object_members(self):
        """Test that object members are classified by kind."""
        text = "{ a: 1, 'b-c': [2, 3], d, e() {}, ...rest, [key]: 4, }"
        _, members = parse_object(text, 0)
        assert [(m.key, m.kind) for m in members] == [
            ("a", "pair"),
            ("b-c", "pair"),
            ("d", "shorthand"),
            ("e", "method"),
            (None, "spread"),
            (None, "computed"),
        ]

    def test_detect_indent_unit(self):
        assert detect_indent_unit("a\n    b\n        c\n") == "    "
        assert detect_indent_unit("a\n\tb\n") == "\t"
        assert detect_indent_unit("a\n") == "  "


class TestRendering:
    def test_to_js(self):
        """Test rendering of Python values as JavaScript literals."""
        value = {"name": "it's", "ok": True, "none": None, "list": [1, "a"], "my-key": {"$expr": "process.env.X"}}
        assert to_js(value) == (
            "{\n"
            "  name: 'it\\'s',\n"
            "  ok: true,\n"
            "  none: null,\n"
            "  list: [1, 'a'],\n"
            "  'my-key': process.env.X,\n"
            "}"
        )

    def test_unsupported_value(self):
        with pytest.raises(ModifierTransformError):
            to_js(object())

    def test_strip_json_comments_keeps_strings(self):
        """Test that comment markers inside strings survive."""
        text = '{"url": "http://x.io", /* c */ "a": [1,],}'
        assert strip_json_comments(text) == '{"url": "http://x.io",  "a": [1]}'
