"""
Blueprint model.

A blueprint is read-only catalog data: an ordered list of actions that materialize
one installable technology into a project. Only the envelope is validated when a
blueprint is built; each action is validated right before it runs so one malformed
action is reported as an action-level error instead of rejecting the blueprint.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_serdes.utils import load_file_to_dict

from blueprintflow.exceptions import BlueprintError
from blueprintflow.models.actions import BaseAction


class BlueprintModel(BaseModel):
    """
    Model for blueprints, keeping actions in declaration order.

    Blueprints may be built from dicts (snake_case or camelCase keys) or loaded from
    YAML/JSON files with ``load``.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None
    version: str | None = None
    tags: list[str] = Field(default_factory=list)
    contextual_files: list[str] = Field(default_factory=list)
    actions: list[Any] = Field(default_factory=list)

    @field_validator("actions")
    @classmethod
    def validate_action_envelopes(cls, v: list[Any]) -> list[Any]:
        """Only check that every action is a mapping or an action model; fields are checked at run time."""
        for index, action in enumerate(v):
            if not isinstance(action, (Mapping, BaseAction)):
                raise ValueError(f"Action #{index} must be a mapping, got {type(action).__name__}")
        return [dict(action) if isinstance(action, Mapping) else action for action in v]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: str = "") -> "BlueprintModel":
        """
        Build a blueprint from a mapping, accepting an optional top-level 'blueprint' key.

        Raises:
            BlueprintError: If the envelope is invalid.
        """
        if isinstance(data, Mapping) and set(data) == {"blueprint"}:
            data = data["blueprint"]

        if not isinstance(data, Mapping):
            raise BlueprintError(f"Blueprint data must be a mapping, got {type(data).__name__}", source)

        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            name = str(data.get("id") or data.get("name") or source)
            raise BlueprintError(f"Invalid blueprint: {e}", blueprint_name=name) from e

    @classmethod
    def load(cls, blueprint_path: str | Path) -> "BlueprintModel":
        """
        Load a blueprint from a YAML or JSON file.

        Raises:
            BlueprintError: If the file cannot be read or is not a valid blueprint.
        """
        try:
            data = load_file_to_dict(blueprint_path)
        except Exception as e:
            raise BlueprintError(f"Failed to load blueprint file '{blueprint_path}': {e}") from e
        return cls.from_dict(data, source=str(blueprint_path))


def load_blueprint(blueprint_path: str | Path) -> BlueprintModel:
    """Shortcut for ``BlueprintModel.load``."""
    return BlueprintModel.load(blueprint_path)
