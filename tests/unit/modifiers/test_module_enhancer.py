import pytest

from blueprintflow.builtins.modifiers import ModuleEnhancerModifier
from blueprintflow.builtins.modifiers.module_enhancer import ensure_imports, parse_imports
from blueprintflow.exceptions import ModifierParameterError, ModifierTransformError


class TestParseImports:
    def test_declaration_shapes(self):
        """Test that default, namespace, named and type-only declarations are recognized."""
        text = (
            "import React from 'react';\n"
            'import * as path from "path"\n'
            "import { a, b as c } from './lib';\n"
            "import type { Config } from 'types';\n"
            "import './styles.css';\n"
        )
        declarations = parse_imports(text)

        assert [d.spec for d in declarations] == ["react", "path", "./lib", "types", "./styles.css"]
        assert declarations[0].default == "React"
        assert declarations[1].namespace == "path"
        assert declarations[1].quote == '"'
        assert declarations[1].semi == ""
        assert declarations[2].named == ["a", "b as c"]
        assert declarations[3].type_only is True
        assert declarations[4].named is None

    def test_imports_inside_comments_are_ignored(self):
        """Test that commented-out imports are not treated as declarations."""
        text = "/*\nimport { x } from 'x';\n*/\nconst a = 1;\n"
        assert parse_imports(text) == []


class TestEnsureImports:
    def test_missing_binding_joins_existing_declaration(self):
        """Test that a new named binding is added to the declaration of the same module."""
        text = "import { a } from 'x';\n\nconsole.log(a);\n"
        result = ensure_imports(text, [{"name": ["b"], "from": "x"}])
        assert result == "import { a, b } from 'x';\n\nconsole.log(a);\n"

    def test_present_binding_is_a_no_op(self):
        """Test that requesting an existing binding leaves the text unchanged."""
        text = "import { a, b } from 'x';\n"
        assert ensure_imports(text, [{"name": "b", "from": "x", "type": "import"}]) == text

    def test_new_module_goes_after_last_import(self):
        """Test that a declaration for a new module follows the existing import block."""
        text = "import { a } from \"x\"\nimport b from \"y\"\n\nrun(a, b)\n"
        result = ensure_imports(text, [{"name": "z", "from": "zed"}])
        assert result == "import { a } from \"x\"\nimport b from \"y\"\nimport { z } from \"zed\"\n\nrun(a, b)\n"

    def test_first_import_of_a_module_without_imports(self):
        """Test that the first declaration is placed at the top, separated from the code."""
        result = ensure_imports("const x = 1;\n", [{"name": "y", "from": "y"}])
        assert result == "import { y } from 'y';\n\nconst x = 1;\n"

    def test_use_directive_stays_first(self):
        """Test that 'use client' directives stay above inserted imports."""
        result = ensure_imports("'use client';\n\nexport default function Page() {}\n", [{"name": "y", "from": "y"}])
        assert result.startswith("'use client';\n\nimport { y } from 'y';\n\nexport default")

    def test_default_and_namespace_kinds(self):
        """Test adding default and namespace imports."""
        result = ensure_imports("", [{"name": "React", "from": "react", "type": "default"}])
        result = ensure_imports(result, [{"name": "Sentry", "from": "@sentry/nextjs", "type": "import * as"}])
        assert result == "import React from 'react';\nimport * as Sentry from '@sentry/nextjs';\n"

    def test_default_joins_named_declaration(self):
        """Test that a default binding is added in front of existing named bindings."""
        result = ensure_imports("import { useState } from 'react';\n", [{"name": "React", "from": "react", "type": "default"}])
        assert result == "import React, { useState } from 'react';\n"

    def test_conflicting_default_raises(self):
        """Test that a second, different default import for one module is an error."""
        with pytest.raises(ModifierTransformError, match="already has default import"):
            ensure_imports("import A from 'a';\n", [{"name": "B", "from": "a", "type": "default"}])

    def test_namespace_next_to_named_imports_raises(self):
        """Test that a namespace import cannot join a declaration with named bindings."""
        with pytest.raises(ModifierTransformError, match="namespace import"):
            ensure_imports("import { a } from 'a';\n", [{"name": "all", "from": "a", "type": "import * as"}])

    def test_type_import_joins_value_declaration(self):
        """Test that type bindings join a value declaration with the inline 'type' marker."""
        result = ensure_imports("import { a } from 'a';\n", [{"name": "A", "from": "a", "type": "import type"}])
        assert result == "import { a, type A } from 'a';\n"


class TestModuleEnhancerModifier:
    def test_imports_statements_and_exports(self):
        """Test a full enhancement of a module."""
        params = {
            "imports": [{"name": ["pgTable", "text"], "from": "drizzle-orm/pg-core"}],
            "statements": ["const users = pgTable('users', { id: text('id') });"],
            "exports": [{"content": "{ users }"}],
        }
        result = ModuleEnhancerModifier().apply("", params)
        assert result == (
            "import { pgTable, text } from 'drizzle-orm/pg-core';\n"
            "\n"
            "const users = pgTable('users', { id: text('id') });\n"
            "\n"
            "export { users }\n"
        )

    def test_repeated_imports_are_idempotent(self):
        """Test that applying the same imports twice does not change the output."""
        modifier = ModuleEnhancerModifier()
        params = {"importsToAdd": [{"name": "withSentry", "from": "@sentry/nextjs"}]}
        once = modifier.apply("export default {};\n", params)
        assert modifier.apply(once, params) == once
        assert once.count("import") == 1

    @pytest.mark.parametrize(
        "params",
        [
            {"imports": [{"name": "a"}]},
            {"imports": [{"name": [], "from": "a"}]},
            {"imports": [{"name": ["a", "b"], "from": "a", "type": "default"}]},
            {"imports": [{"name": "a", "from": "a", "type": "require"}]},
            {"statements": [42]},
            {"exports": "x"},
        ],
    )
    def test_invalid_parameters(self, params):
        """Test that malformed parameters are rejected."""
        with pytest.raises(ModifierParameterError):
            ModuleEnhancerModifier().apply("", params)
