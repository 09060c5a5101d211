"""
Blueprint action models.

Actions are a tagged union keyed by ``type``. Field names accept both snake_case and
the camelCase spelling used by existing blueprint catalogs (``isDev``, ``workingDir``).
Blueprints keep actions as raw mappings until execution; ``parse_action`` turns one
into its model so a malformed action fails on its own instead of failing the load.
"""

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from blueprintflow.constants import ActionType, FallbackPolicy, ImportKind, MergeStrategy
from blueprintflow.exceptions import ActionValidationError

NonEmptyStr = Annotated[str, Field(min_length=1)]


class BlueprintFlowBaseModel(BaseModel):
    """Base model for action payloads: strict on unknown fields, camelCase aliases accepted."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BaseAction(BlueprintFlowBaseModel):
    """Fields shared by every action."""

    type: str
    condition: bool | str | None = None

    @property
    def action_type(self) -> ActionType:
        return ActionType(self.type)

    @property
    def target_path(self) -> str | None:
        """Primary file the action reads or writes, when it has one."""
        return getattr(self, "path", None)


class CreateFileAction(BaseAction):
    type: Literal["CREATE_FILE"] = "CREATE_FILE"
    path: NonEmptyStr
    content: str
    overwrite: bool = False


class AppendToFileAction(BaseAction):
    type: Literal["APPEND_TO_FILE"] = "APPEND_TO_FILE"
    path: NonEmptyStr
    content: str


class PrependToFileAction(BaseAction):
    type: Literal["PREPEND_TO_FILE"] = "PREPEND_TO_FILE"
    path: NonEmptyStr
    content: str


class InstallPackagesAction(BaseAction):
    type: Literal["INSTALL_PACKAGES"] = "INSTALL_PACKAGES"
    packages: Annotated[list[NonEmptyStr], Field(min_length=1)]
    is_dev: bool = False

    @field_validator("packages", mode="before")
    @classmethod
    def split_package_string(cls, v: Any) -> Any:
        """Accept 'a b@1.0' as shorthand for ['a', 'b@1.0']."""
        if isinstance(v, str):
            return v.split()
        return v


class AddScriptAction(BaseAction):
    type: Literal["ADD_SCRIPT"] = "ADD_SCRIPT"
    name: NonEmptyStr
    command: NonEmptyStr


class AddEnvVarAction(BaseAction):
    type: Literal["ADD_ENV_VAR"] = "ADD_ENV_VAR"
    key: Annotated[str, Field(pattern=r"^[A-Za-z_][A-Za-z0-9_.-]*$")]
    value: str
    description: str | None = None
    path: str | None = None

    @field_validator("value", mode="before")
    @classmethod
    def stringify_value(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v


class RunCommandAction(BaseAction):
    type: Literal["RUN_COMMAND"] = "RUN_COMMAND"
    command: NonEmptyStr
    working_dir: str | None = None


class EnhanceFileAction(BaseAction):
    type: Literal["ENHANCE_FILE"] = "ENHANCE_FILE"
    path: NonEmptyStr
    modifier: NonEmptyStr
    params: dict[str, Any] = Field(default_factory=dict)
    fallback: FallbackPolicy = FallbackPolicy.ERROR


class MergeJsonAction(BaseAction):
    type: Literal["MERGE_JSON"] = "MERGE_JSON"
    path: NonEmptyStr
    content: dict[str, Any] | str


class MergeConfigAction(BaseAction):
    type: Literal["MERGE_CONFIG"] = "MERGE_CONFIG"
    path: NonEmptyStr
    config: dict[str, Any]
    strategy: MergeStrategy = MergeStrategy.DEEP


class ImportSpec(BlueprintFlowBaseModel):
    """One import declaration to ensure in a source module."""

    module_specifier: NonEmptyStr
    named_imports: list[NonEmptyStr] = Field(default_factory=list)
    default_import: str | None = None
    namespace_import: str | None = None
    is_type_only: bool = False

    def to_modifier_params(self) -> list[dict[str, Any]]:
        """Expand into the 'imports' entries understood by the module-enhancer modifier."""
        entries: list[dict[str, Any]] = []
        if self.named_imports:
            kind = ImportKind.TYPE if self.is_type_only else ImportKind.NAMED
            entries.append({"name": list(self.named_imports), "from": self.module_specifier, "type": kind.value})
        if self.default_import:
            entries.append(
                {"name": self.default_import, "from": self.module_specifier, "type": ImportKind.DEFAULT.value}
            )
        if self.namespace_import:
            entries.append(
                {"name": self.namespace_import, "from": self.module_specifier, "type": ImportKind.NAMESPACE.value}
            )
        return entries


class AddTsImportAction(BaseAction):
    type: Literal["ADD_TS_IMPORT"] = "ADD_TS_IMPORT"
    path: NonEmptyStr
    imports: Annotated[list[ImportSpec], Field(min_length=1)]


class WrapConfigAction(BaseAction):
    type: Literal["WRAP_CONFIG"] = "WRAP_CONFIG"
    path: NonEmptyStr
    wrapper: NonEmptyStr
    import_from: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    export_name: str = "default"


class SchemaTable(BlueprintFlowBaseModel):
    name: NonEmptyStr
    definition: NonEmptyStr


class ExtendSchemaAction(BaseAction):
    type: Literal["EXTEND_SCHEMA"] = "EXTEND_SCHEMA"
    path: NonEmptyStr
    tables: Annotated[list[SchemaTable], Field(min_length=1)]
    additional_imports: list[ImportSpec] = Field(default_factory=list)


Action = Annotated[
    CreateFileAction
    | AppendToFileAction
    | PrependToFileAction
    | InstallPackagesAction
    | AddScriptAction
    | AddEnvVarAction
    | RunCommandAction
    | EnhanceFileAction
    | MergeJsonAction
    | MergeConfigAction
    | AddTsImportAction
    | WrapConfigAction
    | ExtendSchemaAction,
    Field(discriminator="type"),
]

_ACTION_ADAPTER: TypeAdapter = TypeAdapter(Action)


def raw_action_type(raw: Any) -> str:
    """Best-effort kind of a raw or parsed action, for error reporting."""
    if isinstance(raw, BaseAction):
        return raw.type
    if isinstance(raw, Mapping):
        value = raw.get("type")
        try:
            return ActionType(value).value
        except ValueError:
            return str(value) if value is not None else "UNKNOWN"
    return "UNKNOWN"


def raw_action_path(raw: Any) -> str:
    """Best-effort target path of a raw or parsed action, for error reporting."""
    if isinstance(raw, BaseAction):
        return raw.target_path or ""
    if isinstance(raw, Mapping):
        value = raw.get("path")
        return value if isinstance(value, str) else ""
    return ""


def parse_action(raw: Mapping[str, Any] | BaseAction) -> BaseAction:
    """
    Build the action model for a raw mapping.

    The ``type`` tag is normalized first so 'create-file' and 'create_file' both work.

    Raises:
        ActionValidationError: If the kind is unknown or a field is missing or malformed.
    """
    if isinstance(raw, BaseAction):
        return raw

    if not isinstance(raw, Mapping):
        raise ActionValidationError(f"Action must be a mapping, got {type(raw).__name__}")

    raw_type = raw.get("type")
    if raw_type is None:
        raise ActionValidationError("Action is missing its 'type'", path=raw_action_path(raw))

    try:
        action_type = ActionType(raw_type)
    except ValueError:
        raise ActionValidationError(
            f"Unknown action type '{raw_type}'. Valid types: {', '.join(t.value for t in ActionType)}",
            path=raw_action_path(raw),
        ) from None

    data = {**raw, "type": action_type.value}
    try:
        return _ACTION_ADAPTER.validate_python(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'][1:]) or 'action'}: {err['msg']}" for err in e.errors()
        )
        raise ActionValidationError(
            f"Invalid action: {problems}", action_type=action_type.value, path=raw_action_path(raw)
        ) from e
