"""BlueprintFlow models package for blueprints, actions, execution context and results."""

from .actions import (
    Action,
    AddEnvVarAction,
    AddScriptAction,
    AddTsImportAction,
    AppendToFileAction,
    BaseAction,
    CreateFileAction,
    EnhanceFileAction,
    ExtendSchemaAction,
    ImportSpec,
    InstallPackagesAction,
    MergeConfigAction,
    MergeJsonAction,
    PrependToFileAction,
    RunCommandAction,
    SchemaTable,
    WrapConfigAction,
    parse_action,
)
from .blueprint import BlueprintModel, load_blueprint
from .context import ExecutionContext, ModuleInfo, ProjectInfo
from .results import ActionOutcome, ErrorRecord, ExecutionResult

__all__ = [
    "Action",
    "ActionOutcome",
    "AddEnvVarAction",
    "AddScriptAction",
    "AddTsImportAction",
    "AppendToFileAction",
    "BaseAction",
    "BlueprintModel",
    "CreateFileAction",
    "EnhanceFileAction",
    "ErrorRecord",
    "ExecutionContext",
    "ExecutionResult",
    "ExtendSchemaAction",
    "ImportSpec",
    "InstallPackagesAction",
    "MergeConfigAction",
    "MergeJsonAction",
    "ModuleInfo",
    "PrependToFileAction",
    "ProjectInfo",
    "RunCommandAction",
    "SchemaTable",
    "WrapConfigAction",
    "load_blueprint",
    "parse_action",
]
