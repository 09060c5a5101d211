import json

import pytest

from blueprintflow.builtins.modifiers import JsonMergeModifier, ManifestMergeModifier
from blueprintflow.builtins.modifiers.json_merge import deep_merge
from blueprintflow.exceptions import ModifierParameterError, ModifierTransformError


class TestDeepMerge:
    def test_nested_mappings_merge(self):
        """Test that nested objects merge and existing keys keep their order."""
        existing = {"name": "app", "scripts": {"dev": "next dev"}}
        merged = deep_merge(existing, {"scripts": {"lint": "eslint ."}, "private": True})

        assert merged == {"name": "app", "scripts": {"dev": "next dev", "lint": "eslint ."}, "private": True}
        assert list(merged) == ["name", "scripts", "private"]
        assert existing == {"name": "app", "scripts": {"dev": "next dev"}}

    def test_lists_are_deduplicated_by_value(self):
        """Test that arrays concatenate without duplicates."""
        merged = deep_merge({"files": ["a", "b", {"x": 1}]}, {"files": ["b", "c", {"x": 1}]})
        assert merged == {"files": ["a", "b", {"x": 1}, "c"]}

    def test_scalars_are_replaced(self):
        """Test that a scalar payload value replaces the existing one."""
        assert deep_merge({"version": "1.0.0"}, {"version": "2.0.0"}) == {"version": "2.0.0"}


class TestManifestMergeModifier:
    def test_merge_into_existing_manifest(self):
        """Test merging dependencies into a package.json."""
        existing = json.dumps({"name": "demo", "dependencies": {"next": "14.0.0"}}, indent=2)
        result = ManifestMergeModifier().apply(existing, {"dependencies": {"left-pad": "^1.3.0"}})

        assert json.loads(result) == {"name": "demo", "dependencies": {"next": "14.0.0", "left-pad": "^1.3.0"}}
        assert result.endswith("}\n")
        assert '\n  "name": "demo"' in result

    def test_absent_file_starts_empty(self):
        """Test that a missing manifest is created from the payload."""
        result = ManifestMergeModifier().apply(None, {"scripts": {"dev": "vite"}})
        assert json.loads(result) == {"scripts": {"dev": "vite"}}

    def test_idempotent(self):
        """Test that applying the same payload twice yields the same document."""
        modifier = ManifestMergeModifier()
        payload = {"dependencies": {"zod": "^3.0.0"}, "keywords": ["a", "b"]}
        once = modifier.apply("{}", payload)
        assert modifier.apply(once, payload) == once

    def test_indent_is_configurable(self):
        """Test that the JSON indent comes from the modifier configuration."""
        result = ManifestMergeModifier(indent=4).apply(None, {"a": {"b": 1}})
        assert '\n    "a": {' in result

    def test_invalid_json_raises(self):
        """Test that unparsable content is reported as a transform error."""
        with pytest.raises(ModifierTransformError, match="not valid JSON"):
            ManifestMergeModifier().apply("{ not json", {"a": 1})

    def test_non_object_root_raises(self):
        """Test that a JSON array root is rejected."""
        with pytest.raises(ModifierTransformError, match="root must be an object"):
            ManifestMergeModifier().apply("[1, 2]", {"a": 1})

    def test_jsonc_content_is_accepted(self):
        """Test that comments and trailing commas do not prevent a merge."""
        existing = '{\n  // compiler options\n  "compilerOptions": {"strict": true,},\n}\n'
        result = ManifestMergeModifier().apply(existing, {"compilerOptions": {"baseUrl": "."}})
        assert json.loads(result) == {"compilerOptions": {"strict": True, "baseUrl": "."}}


class TestJsonMergeModifier:
    def test_merge_at_target_path(self):
        """Test merging properties into a nested object created on demand."""
        params = {"properties": {"paths": {"@/*": ["./src/*"]}}, "target_path": ["compilerOptions"]}
        result = JsonMergeModifier().apply('{"compilerOptions": {"strict": true}}', params)
        assert json.loads(result) == {"compilerOptions": {"strict": True, "paths": {"@/*": ["./src/*"]}}}

    def test_dotted_target_path_and_camel_case_params(self):
        """Test the dotted path spelling and camelCase parameter names."""
        params = {"properties": {"x": 1}, "targetPath": "a.b", "mergeStrategy": "deep-merge"}
        result = JsonMergeModifier().apply(None, params)
        assert json.loads(result) == {"a": {"b": {"x": 1}}}

    def test_shallow_strategy_replaces_nested_values(self):
        """Test that shallow merge replaces nested objects instead of merging them."""
        params = {"properties": {"opts": {"b": 2}}, "strategy": "shallow"}
        result = JsonMergeModifier().apply('{"opts": {"a": 1}, "keep": true}', params)
        assert json.loads(result) == {"opts": {"b": 2}, "keep": True}

    def test_replace_strategy(self):
        """Test that replace discards the existing object at the target."""
        params = {"properties": {"b": 2}, "strategy": "replace", "target_path": "opts"}
        result = JsonMergeModifier().apply('{"opts": {"a": 1}, "keep": true}', params)
        assert json.loads(result) == {"opts": {"b": 2}, "keep": True}

    def test_target_path_through_scalar_raises(self):
        """Test that a target path crossing a non-object fails."""
        with pytest.raises(ModifierTransformError, match="is not an object"):
            JsonMergeModifier().apply('{"a": 1}', {"properties": {"x": 1}, "target_path": "a.b"})

    @pytest.mark.parametrize(
        "params",
        [{}, {"properties": []}, {"properties": {}, "strategy": "sideways"}, {"properties": {}, "target_path": 3}],
    )
    def test_invalid_parameters(self, params):
        """Test that malformed parameters are rejected before transforming."""
        with pytest.raises(ModifierParameterError):
            JsonMergeModifier().apply("{}", params)
