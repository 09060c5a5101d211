import pytest

from blueprintflow.builtins.modifiers import JsxWrapperModifier
from blueprintflow.builtins.modifiers.jsx_wrapper import element_end, render_props
from blueprintflow.exceptions import ModifierParameterError, ModifierTransformError

ROOT_LAYOUT = """import type { Metadata } from "next";
import "./globals.css";

export default function RootLayout({
  children,
}: {
  children: React.ReactNode;
}) {
  return (
    <html lang="en">
      <body>{children}</body>
    </html>
  );
}
"""

SENTRY_PROVIDER = {
    "targetComponent": "body",
    "wrapperComponent": {
        "name": "Sentry.Provider",
        "importFrom": "@sentry/nextjs",
        "props": {"dsn": "https://example@sentry.io/123456"},
    },
    "wrapStrategy": "provider",
}


class TestElementEnd:
    def test_nested_same_name_elements(self):
        text = "<div><div>inner</div></div> tail"
        assert text[: element_end(text, "div", 0)] == "<div><div>inner</div></div>"

    def test_self_closing_with_expression_attribute(self):
        """Test that a '>' inside an attribute expression does not end the tag."""
        text = "<Chart filter={(a) => a > 1} /> tail"
        assert text[: element_end(text, "Chart", 0)] == "<Chart filter={(a) => a > 1} />"

    def test_unclosed_element(self):
        with pytest.raises(ModifierTransformError):
            element_end("<main><p>text</p>", "main", 0)


class TestRenderProps:
    def test_values(self):
        props = {
            "dsn": "https://key@sentry.io/1",
            "debug": True,
            "sampleRate": 0.5,
            "environment": {"$expr": "process.env.NODE_ENV"},
        }
        assert render_props(props) == (
            'dsn="https://key@sentry.io/1" debug={true} sampleRate={0.5} environment={process.env.NODE_ENV}'
        )

    def test_invalid_prop_name(self):
        with pytest.raises(ModifierTransformError):
            render_props({"not a prop": 1})


class TestJsxWrapperModifier:
    def test_provider_wraps_element_and_adds_import(self):
        result = JsxWrapperModifier().apply(ROOT_LAYOUT, SENTRY_PROVIDER)

        assert (
            '    <html lang="en">\n'
            '      <Sentry.Provider dsn="https://example@sentry.io/123456">\n'
            "        <body>{children}</body>\n"
            "      </Sentry.Provider>\n"
            "    </html>\n"
        ) in result
        assert 'import "./globals.css";\nimport { Sentry } from "@sentry/nextjs";\n' in result

    def test_repeated_runs_are_no_ops(self):
        modifier = JsxWrapperModifier()
        once = modifier.apply(ROOT_LAYOUT, SENTRY_PROVIDER)
        assert modifier.apply(once, SENTRY_PROVIDER) == once

    def test_multiline_element_is_reindented(self):
        """Test that every line of the wrapped element moves one indentation unit deeper."""
        source = (
            "export function App() {\n"
            "  return (\n"
            "    <main>\n"
            "      <Dashboard\n"
            '        title="Home"\n'
            "      />\n"
            "    </main>\n"
            "  );\n"
            "}\n"
        )
        params = {
            "target_component": "Dashboard",
            "wrapper_component": {"name": "ErrorBoundary", "import_from": "@sentry/react"},
            "wrap_strategy": "wrapper",
        }
        result = JsxWrapperModifier().apply(source, params)

        assert result == (
            "import { ErrorBoundary } from '@sentry/react';\n"
            "\n"
            "export function App() {\n"
            "  return (\n"
            "    <main>\n"
            "      <ErrorBoundary>\n"
            "        <Dashboard\n"
            '          title="Home"\n'
            "        />\n"
            "      </ErrorBoundary>\n"
            "    </main>\n"
            "  );\n"
            "}\n"
        )

    def test_hoc_wraps_default_export(self):
        source = "import App from './App';\n\nexport default App;\n"
        params = {
            "targetComponent": "App",
            "wrapperComponent": {"name": "withProfiler", "importFrom": "@sentry/react"},
            "wrapStrategy": "hoc",
        }
        modifier = JsxWrapperModifier()
        result = modifier.apply(source, params)

        assert result == (
            "import App from './App';\n"
            "import { withProfiler } from '@sentry/react';\n"
            "\n"
            "export default withProfiler(App);\n"
        )
        assert modifier.apply(result, params) == result

    def test_hoc_requires_target_as_default_export(self):
        params = {
            "targetComponent": "App",
            "wrapperComponent": {"name": "withProfiler", "importFrom": "@sentry/react"},
            "wrapStrategy": "hoc",
        }
        with pytest.raises(ModifierTransformError, match="Default export"):
            JsxWrapperModifier().apply("export default function Page() {}\n", params)

    def test_missing_target(self):
        with pytest.raises(ModifierTransformError, match="No <body> element"):
            JsxWrapperModifier().apply("export const a = 1;\n", SENTRY_PROVIDER)

    def test_empty_module(self):
        with pytest.raises(ModifierTransformError):
            JsxWrapperModifier().apply(None, SENTRY_PROVIDER)

    @pytest.mark.parametrize(
        "params",
        [
            {**SENTRY_PROVIDER, "wrapStrategy": "portal"},
            {**SENTRY_PROVIDER, "targetComponent": ""},
            {**SENTRY_PROVIDER, "wrapperComponent": {"name": "Sentry.Provider"}},
            {**SENTRY_PROVIDER, "wrapperComponent": {"name": "Sentry.Provider", "importFrom": "x", "props": [1]}},
        ],
    )
    def test_invalid_parameters(self, params):
        with pytest.raises(ModifierParameterError):
            JsxWrapperModifier().apply(ROOT_LAYOUT, params)
