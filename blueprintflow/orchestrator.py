"""
Translation of blueprint actions into workspace operations.

Every action kind maps to a handler through a lookup table. A handler reads what it
needs from the workspace, runs the modifiers and returns its planned writes; the
writes are applied only once the whole action has succeeded, so a failing action
leaves the workspace as it found it.
"""

import json
import logging
import subprocess
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, NamedTuple

from blueprintflow.commands import CommandRunner, DryRunCommandRunner
from blueprintflow.constants import (
    DEFAULT_PACKAGE_VERSION,
    ActionType,
    ErrorCategory,
    FallbackPolicy,
    WriteMode,
)
from blueprintflow.exceptions import (
    ActionError,
    ActionValidationError,
    BlueprintFlowError,
    CommandError,
    FallbackPolicyError,
    ModifierError,
)
from blueprintflow.j2 import TemplateError, TemplateService
from blueprintflow.models import (
    ActionOutcome,
    AddEnvVarAction,
    AddScriptAction,
    AddTsImportAction,
    AppendToFileAction,
    BaseAction,
    CreateFileAction,
    EnhanceFileAction,
    ErrorRecord,
    ExecutionContext,
    ExtendSchemaAction,
    InstallPackagesAction,
    MergeConfigAction,
    MergeJsonAction,
    PrependToFileAction,
    RunCommandAction,
    WrapConfigAction,
    parse_action,
)
from blueprintflow.models.actions import raw_action_path, raw_action_type
from blueprintflow.modifiers import ModifierRegistry
from blueprintflow.settings import BlueprintFlowSettings
from blueprintflow.workspace import VirtualWorkspace

logger = logging.getLogger(__name__)


class PlannedWrite(NamedTuple):
    path: str
    content: str
    mode: WriteMode = WriteMode.OVERWRITE
    allow_overwrite: bool = True


Handler = Callable[[Any, VirtualWorkspace, ActionOutcome], list[PlannedWrite]]


def parse_package_spec(spec: str) -> tuple[str, str]:
    """
    Split 'name', 'name@version' or '@scope/name@version' into (name, version).

    The version defaults to 'latest'.
    """
    spec = spec.strip()
    at = spec.find("@", 1) if spec.startswith("@") else spec.find("@")
    if at == -1:
        return spec, DEFAULT_PACKAGE_VERSION
    return spec[:at], spec[at + 1 :] or DEFAULT_PACKAGE_VERSION


class ActionOrchestrator:
    """
    Executes one action at a time against a workspace.

    Args:
        registry: Modifiers available to ENHANCE_FILE and the structured action kinds.
        templates: Template service used for conditions and placeholders.
        settings: Provides the manifest and env file names and the encoding.
        command_runner: Receives RUN_COMMAND commands. Defaults to a dry-run recorder.
    """

    def __init__(
        self,
        registry: ModifierRegistry,
        templates: TemplateService | None = None,
        settings: BlueprintFlowSettings | None = None,
        command_runner: CommandRunner | None = None,
    ):
        self.registry = registry
        self.templates = templates or TemplateService()
        self.settings = settings or BlueprintFlowSettings()
        self.command_runner = command_runner or DryRunCommandRunner()
        self._handlers: dict[ActionType, Handler] = {
            ActionType.CREATE_FILE: self._create_file,
            ActionType.APPEND_TO_FILE: self._append_to_file,
            ActionType.PREPEND_TO_FILE: self._prepend_to_file,
            ActionType.INSTALL_PACKAGES: self._install_packages,
            ActionType.ADD_SCRIPT: self._add_script,
            ActionType.ADD_ENV_VAR: self._add_env_var,
            ActionType.RUN_COMMAND: self._run_command,
            ActionType.ENHANCE_FILE: self._enhance_file,
            ActionType.MERGE_JSON: self._merge_json,
            ActionType.MERGE_CONFIG: self._merge_config,
            ActionType.ADD_TS_IMPORT: self._add_ts_import,
            ActionType.WRAP_CONFIG: self._wrap_config,
            ActionType.EXTEND_SCHEMA: self._extend_schema,
        }

    @property
    def handlers(self) -> dict[ActionType, Handler]:
        return dict(self._handlers)

    def execute(
        self,
        action: Mapping[str, Any] | BaseAction,
        context: ExecutionContext,
        workspace: VirtualWorkspace,
        index: int = 0,
    ) -> ActionOutcome:
        """
        Run a single action and report what it did.

        Failures never raise: they come back as the outcome's ``error``, and the
        workspace is left untouched by the failed action.
        """
        outcome = ActionOutcome(action_index=index, action_type=raw_action_type(action))
        path = raw_action_path(action)
        variables = dict(context.template_vars())

        try:
            model = parse_action(action)
            if not self.templates.evaluate_condition(model.condition, variables):
                outcome.skipped = True
                logger.info(f"Action #{index} ({model.type}) skipped: condition is false")
                return outcome

            model = self._resolve(model, variables, index)
            path = model.target_path or path
            planned = self._handlers[model.action_type](model, workspace, outcome)
            for write in planned:
                written = workspace.write(write.path, write.content, write.mode, write.allow_overwrite)
                if written not in outcome.touched_paths:
                    outcome.touched_paths.append(written)

        except BlueprintFlowError as e:
            outcome.error = self._to_error_record(e, outcome, path)
            logger.warning(f"Action #{index} failed: {outcome.error}")
        except Exception as e:
            outcome.error = ErrorRecord(
                action_index=index,
                action_type=outcome.action_type,
                path=path,
                category=ErrorCategory.VALIDATION,
                message=f"Unexpected error: {e}",
            )
            logger.exception(f"Action #{index} raised an unexpected error")
        return outcome

    def _resolve(self, model: BaseAction, variables: dict[str, Any], index: int) -> BaseAction:
        """Resolve conditional blocks and placeholders in every string field, then revalidate."""
        data = model.model_dump(exclude={"type", "condition"})
        resolved = self.templates.resolve_data(data, variables, error_context=f"action #{index}")
        return parse_action({"type": model.type, **resolved})

    @staticmethod
    def _to_error_record(error: BlueprintFlowError, outcome: ActionOutcome, path: str) -> ErrorRecord:
        if isinstance(error, CommandError):
            category = ErrorCategory.COMMAND
        elif isinstance(error, FallbackPolicyError):
            category = ErrorCategory.FALLBACK
        elif isinstance(error, ModifierError):
            category = ErrorCategory.MODIFIER
        else:
            category = ErrorCategory.VALIDATION

        if isinstance(error, ActionError):
            message = error.message
            path = error.path or path
            outcome.action_type = error.action_type or outcome.action_type
        elif isinstance(error, TemplateError):
            message = f"Template resolution failed: {error}"
        else:
            message = str(error)
        return ErrorRecord(
            action_index=outcome.action_index,
            action_type=outcome.action_type,
            path=path,
            category=category,
            message=message,
        )

    def _modify(self, modifier_name: str, path: str, params: Mapping[str, Any], workspace: VirtualWorkspace) -> str:
        modifier = self.registry.get_modifier(modifier_name)
        return modifier.apply(workspace.read(path), params)

    def _require_existing(self, action: BaseAction, workspace: VirtualWorkspace) -> None:
        if not workspace.exists(action.target_path):
            raise ActionValidationError("Target file does not exist", action.type, action.target_path)

    ###########################################################################
    # HANDLERS
    ###########################################################################

    def _create_file(self, action: CreateFileAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        if not action.overwrite and workspace.exists(action.path):
            raise ActionValidationError(
                "File already exists; set overwrite to replace it", action.type, workspace.normalize(action.path)
            )
        return [PlannedWrite(action.path, action.content, WriteMode.CREATE, action.overwrite)]

    def _append_to_file(self, action: AppendToFileAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        return [PlannedWrite(action.path, action.content, WriteMode.APPEND, False)]

    def _prepend_to_file(self, action: PrependToFileAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        return [PlannedWrite(action.path, action.content, WriteMode.PREPEND, False)]

    def _install_packages(self, action: InstallPackagesAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        dependencies = dict(parse_package_spec(package) for package in action.packages)
        section = "devDependencies" if action.is_dev else "dependencies"
        manifest = self.settings.manifest_file
        return [PlannedWrite(manifest, self._modify("manifest-merge", manifest, {section: dependencies}, workspace))]

    def _add_script(self, action: AddScriptAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        manifest = self.settings.manifest_file
        payload = {"scripts": {action.name: action.command}}
        return [PlannedWrite(manifest, self._modify("manifest-merge", manifest, payload, workspace))]

    def _add_env_var(self, action: AddEnvVarAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        params: dict[str, Any] = {"variables": {action.key: action.value}}
        if action.description:
            params["descriptions"] = {action.key: action.description}

        env_file = workspace.normalize(action.path or self.settings.env_file)
        planned = [PlannedWrite(env_file, self._modify("env-merge", env_file, params, workspace))]

        example_file = workspace.normalize(self.settings.env_example_file)
        if example_file != env_file and workspace.exists(example_file):
            planned.append(PlannedWrite(example_file, self._modify("env-merge", example_file, params, workspace)))
        return planned

    def _run_command(self, action: RunCommandAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        cwd = workspace.project_root
        if action.working_dir and action.working_dir.strip() not in (".", "./"):
            cwd = workspace.project_root / workspace.normalize(action.working_dir)

        try:
            result = self.command_runner.run(action.command, Path(cwd))
        except (OSError, subprocess.SubprocessError) as e:
            raise CommandError(f"Command '{action.command}' could not be run: {e}", action_type=action.type) from e

        outcome.command_output = result.output or None
        if result.exit_code != 0:
            raise CommandError(
                f"Command '{action.command}' exited with code {result.exit_code}",
                exit_code=result.exit_code,
                output=result.output,
                action_type=action.type,
            )
        return []

    def _enhance_file(self, action: EnhanceFileAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        modifier = self.registry.get_modifier(action.modifier)
        existing = workspace.read(action.path)

        if existing is None:
            if action.fallback is FallbackPolicy.SKIP:
                message = f"Action #{outcome.action_index} (ENHANCE_FILE) skipped: '{action.path}' does not exist"
                outcome.warnings.append(message)
                logger.info(message)
                return []
            if action.fallback is FallbackPolicy.ERROR:
                raise FallbackPolicyError(
                    "Target file does not exist and fallback is 'error'",
                    action.type,
                    workspace.normalize(action.path),
                )

        return [PlannedWrite(action.path, modifier.apply(existing, action.params))]

    def _merge_json(self, action: MergeJsonAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        payload = action.content
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ActionValidationError(f"'content' is not valid JSON: {e}", action.type, action.path) from e
            if not isinstance(payload, dict):
                raise ActionValidationError("'content' must be a JSON object", action.type, action.path)
        return [PlannedWrite(action.path, self._modify("manifest-merge", action.path, payload, workspace))]

    def _merge_config(self, action: MergeConfigAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        params = {"properties": action.config, "strategy": action.strategy.value}
        return [PlannedWrite(action.path, self._modify("json-merge", action.path, params, workspace))]

    def _add_ts_import(self, action: AddTsImportAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        imports = [entry for spec in action.imports for entry in spec.to_modifier_params()]
        return [PlannedWrite(action.path, self._modify("module-enhancer", action.path, {"imports": imports}, workspace))]

    def _wrap_config(self, action: WrapConfigAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        self._require_existing(action, workspace)
        params: dict[str, Any] = {"wrapper": action.wrapper, "options": action.options, "export_name": action.export_name}
        if action.import_from:
            params["import_from"] = action.import_from
        return [PlannedWrite(action.path, self._modify("config-wrapper", action.path, params, workspace))]

    def _extend_schema(self, action: ExtendSchemaAction, workspace: VirtualWorkspace, outcome: ActionOutcome):
        self._require_existing(action, workspace)
        existing = workspace.read(action.path)
        # Tables whose definition is already in the schema are not added twice.
        statements = [table.definition for table in action.tables if table.definition.strip() not in existing]
        imports = [entry for spec in action.additional_imports for entry in spec.to_modifier_params()]
        params = {"imports": imports, "statements": statements}
        return [PlannedWrite(action.path, self._modify("module-enhancer", action.path, params, workspace))]
