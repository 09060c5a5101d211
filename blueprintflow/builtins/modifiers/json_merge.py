"""Modifiers that merge structured payloads into JSON documents."""

import json
from collections.abc import Mapping
from typing import Any

from blueprintflow.constants import MergeStrategy
from blueprintflow.exceptions import ModifierTransformError
from blueprintflow.modifiers.base import Modifier
from blueprintflow.modifiers.source import strip_json_comments


def deep_merge(existing: Any, payload: Any) -> Any:
    """
    Merge payload into existing without mutating either.

    Mappings merge recursively, keeping existing key order and appending new keys.
    Lists are concatenated with duplicates (by value) removed. Any other payload
    value replaces the existing one.
    """
    if isinstance(existing, Mapping) and isinstance(payload, Mapping):
        merged = dict(existing)
        for key, value in payload.items():
            merged[key] = deep_merge(merged[key], value) if key in merged else _copy(value)
        return merged
    if isinstance(existing, list) and isinstance(payload, list):
        merged_list: list[Any] = []
        for item in [*existing, *payload]:
            if not any(_same_value(item, seen) for seen in merged_list):
                merged_list.append(_copy(item))
        return merged_list
    return _copy(payload)


def _same_value(a: Any, b: Any) -> bool:
    # type check keeps 1 and True apart
    return type(a) is type(b) and a == b


def _copy(value: Any) -> Any:
    return json.loads(json.dumps(value))


class JsonDocumentModifier(Modifier):
    """Shared parsing and rendering for modifiers that operate on JSON files."""

    def __init__(self, indent: int = 2):
        self.indent = indent

    def load(self, existing: str | None) -> dict[str, Any]:
        if existing is None or not existing.strip():
            return {}
        try:
            document = json.loads(existing)
        except json.JSONDecodeError:
            try:
                document = json.loads(strip_json_comments(existing))
            except json.JSONDecodeError as e:
                raise ModifierTransformError(f"Existing content is not valid JSON: {e}", self.name) from e
        if not isinstance(document, dict):
            raise ModifierTransformError(
                f"Existing JSON root must be an object, got {type(document).__name__}", self.name
            )
        return document

    def dump(self, document: Any) -> str:
        return json.dumps(document, indent=self.indent, ensure_ascii=False) + "\n"


class ManifestMergeModifier(JsonDocumentModifier):
    """Deep-merges the parameters, taken as a whole, into a JSON manifest such as package.json."""

    name = "manifest-merge"
    description = "Deep-merge a JSON payload into a manifest; arrays are de-duplicated by value"

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        return self.dump(deep_merge(self.load(existing), dict(params)))


class JsonMergeModifier(JsonDocumentModifier):
    """
    Merges ``properties`` at ``target_path`` of a JSON document.

    Params:
        properties: mapping to merge.
        target_path: list of keys (or a dotted string) locating the object to merge into;
            missing objects along the path are created. Defaults to the root.
        strategy: 'deep' (default), 'shallow' or 'replace'.
    """

    name = "json-merge"
    description = "Merge properties into a JSON object at a target path (deep, shallow or replace)"

    def validate_parameters(self, params: Any) -> bool:
        if not isinstance(params, Mapping) or not isinstance(params.get("properties"), Mapping):
            return False
        target_path = params.get("target_path", params.get("targetPath", []))
        if not isinstance(target_path, (str, list)):
            return False
        try:
            MergeStrategy(params.get("strategy", params.get("mergeStrategy", MergeStrategy.DEEP.value)))
        except ValueError:
            return False
        return True

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        document = self.load(existing)
        properties = dict(params["properties"])
        strategy = MergeStrategy(params.get("strategy", params.get("mergeStrategy", MergeStrategy.DEEP.value)))
        target_path = params.get("target_path", params.get("targetPath", []))
        if isinstance(target_path, str):
            target_path = [part for part in target_path.split(".") if part]

        if not target_path:
            return self.dump(self._merge(document, properties, strategy))

        parent = document
        for key in target_path[:-1]:
            child = parent.setdefault(key, {})
            if not isinstance(child, dict):
                raise ModifierTransformError(f"'{key}' in target path is not an object", self.name)
            parent = child

        leaf = target_path[-1]
        current = parent.get(leaf, {})
        if not isinstance(current, dict):
            raise ModifierTransformError(f"'{leaf}' in target path is not an object", self.name)
        parent[leaf] = self._merge(current, properties, strategy)
        return self.dump(document)

    @staticmethod
    def _merge(current: dict[str, Any], properties: dict[str, Any], strategy: MergeStrategy) -> dict[str, Any]:
        if strategy is MergeStrategy.REPLACE:
            return _copy(properties)
        if strategy is MergeStrategy.SHALLOW:
            return {**current, **_copy(properties)}
        return deep_merge(current, properties)
