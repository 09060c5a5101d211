"""
Blueprint execution.

A run walks the blueprint's actions strictly in order against a fresh virtual
workspace and then decides, based on the commit policy, whether the workspace is
committed to disk or discarded. The result is the only state that survives.
"""

import logging
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from blueprintflow.analyzer import BlueprintAnalyzer
from blueprintflow.commands import CommandRunner
from blueprintflow.constants import CommitPolicy, ErrorCategory, ExecutionState
from blueprintflow.exceptions import CommitError
from blueprintflow.j2 import TemplateService
from blueprintflow.logger import logger as run_logger
from blueprintflow.models import BlueprintModel, ErrorRecord, ExecutionContext, ExecutionResult
from blueprintflow.models.actions import raw_action_type
from blueprintflow.modifiers import ModifierRegistry
from blueprintflow.orchestrator import ActionOrchestrator
from blueprintflow.processors import BlueprintProcessor
from blueprintflow.settings import BlueprintFlowSettings
from blueprintflow.workspace import VirtualWorkspace

logger = logging.getLogger(__name__)


class BlueprintExecutor:
    """
    Runs blueprints against a project directory.

    One executor can serve many runs; every run gets its own workspace keyed by a
    fresh run id, so nothing leaks between runs.

    Args:
        settings: Default policies and file names. Defaults to ``BlueprintFlowSettings()``.
        registry: Modifier registry. Defaults to the built-ins plus ``settings.local_modifiers``.
        command_runner: Runner for RUN_COMMAND. Defaults to a dry-run recorder.
        processors: Observers notified as the run progresses.
    """

    def __init__(
        self,
        settings: BlueprintFlowSettings | None = None,
        registry: ModifierRegistry | None = None,
        command_runner: CommandRunner | None = None,
        processors: list[BlueprintProcessor] | None = None,
    ):
        self.settings = settings or BlueprintFlowSettings()
        self.registry = registry or ModifierRegistry.with_builtins(
            json_indent=self.settings.json_indent, local_modifiers=self.settings.local_modifiers
        )
        self.templates = TemplateService()
        self.analyzer = BlueprintAnalyzer(self.settings, self.templates)
        self.orchestrator = ActionOrchestrator(self.registry, self.templates, self.settings, command_runner)
        self.processors = list(processors or [])
        self.state = ExecutionState.IDLE

    def run(
        self,
        blueprint: BlueprintModel | Mapping[str, Any],
        context: ExecutionContext,
        project_root: str | Path,
        continue_on_error: bool | None = None,
        commit_policy: CommitPolicy | str | None = None,
        dry_run: bool | None = None,
    ) -> ExecutionResult:
        """
        Execute every action of a blueprint and commit or discard the outcome.

        Per-run arguments left as None fall back to the settings.

        Raises:
            BlueprintError: If blueprint is a mapping that does not describe a blueprint.
        """
        if not isinstance(blueprint, BlueprintModel):
            blueprint = BlueprintModel.from_dict(blueprint)
        continue_on_error = self.settings.continue_on_error if continue_on_error is None else continue_on_error
        commit_policy = CommitPolicy(commit_policy or self.settings.commit_policy)
        dry_run = self.settings.dry_run if dry_run is None else dry_run

        run_id = str(uuid.uuid4())
        if self.settings.log_dir:
            run_logger.set_execution_context(blueprint.id, "blueprint", self.settings.log_dir, self.settings.log_level)
        try:
            return self._run(blueprint, context, Path(project_root), run_id, continue_on_error, commit_policy, dry_run)
        finally:
            if self.settings.log_dir:
                run_logger.clear_execution_context()

    def _run(
        self,
        blueprint: BlueprintModel,
        context: ExecutionContext,
        project_root: Path,
        run_id: str,
        continue_on_error: bool,
        commit_policy: CommitPolicy,
        dry_run: bool,
    ) -> ExecutionResult:
        logger.info(
            f"Run {run_id}: blueprint '{blueprint.id}' with {len(blueprint.actions)} action(s) on '{project_root}'"
        )
        result = ExecutionResult(run_id=run_id, blueprint_id=blueprint.id, success=False, dry_run=dry_run)
        workspace = VirtualWorkspace(run_id, project_root, encoding=self.settings.encoding)
        self._notify("run_started", blueprint, run_id, len(blueprint.actions))

        try:
            self._set_state(result, ExecutionState.ANALYZING)
            analysis = self.analyzer.analyze(blueprint, context)

            self._set_state(result, ExecutionState.PRELOADING)
            workspace.preload(sorted(analysis.all_required_files))

            self._set_state(result, ExecutionState.EXECUTING)
            self._execute_actions(blueprint, context, workspace, result, continue_on_error)

            self._finish(workspace, result, commit_policy, dry_run)
        except BaseException:
            if not workspace.closed:
                workspace.discard()
            self._set_state(result, ExecutionState.DISCARDED)
            raise

        result.success = not result.errors
        logger.info(
            f"Run {run_id} finished: success={result.success}, files={len(result.files)}, "
            f"errors={len(result.errors)}, state={result.state.value}"
        )
        self._notify("run_completed", result)
        return result

    def _execute_actions(
        self,
        blueprint: BlueprintModel,
        context: ExecutionContext,
        workspace: VirtualWorkspace,
        result: ExecutionResult,
        continue_on_error: bool,
    ) -> None:
        for index, action in enumerate(blueprint.actions):
            self._notify("action_started", index, raw_action_type(action))
            outcome = self.orchestrator.execute(action, context, workspace, index)
            result.outcomes.append(outcome)
            result.warnings.extend(outcome.warnings)
            if outcome.error:
                result.errors.append(outcome.error)
            else:
                for path in outcome.touched_paths:
                    if path not in result.files:
                        result.files.append(path)
            self._notify("action_completed", outcome)

            if outcome.error and not continue_on_error:
                for skipped_index in range(index + 1, len(blueprint.actions)):
                    skipped_type = raw_action_type(blueprint.actions[skipped_index])
                    result.warnings.append(
                        f"Action #{skipped_index} ({skipped_type}) not executed: run stopped after an error"
                    )
                break

    def _finish(
        self, workspace: VirtualWorkspace, result: ExecutionResult, commit_policy: CommitPolicy, dry_run: bool
    ) -> None:
        if dry_run:
            logger.info(f"Run {result.run_id}: dry run, discarding {len(workspace.dirty_paths)} pending write(s)")
            workspace.discard()
            self._set_state(result, ExecutionState.DISCARDED)
            return

        if result.errors and commit_policy is CommitPolicy.ALL_OR_NOTHING:
            logger.warning(f"Run {result.run_id}: {len(result.errors)} error(s), discarding every change")
            workspace.discard()
            self._set_state(result, ExecutionState.DISCARDED)
            return

        self._set_state(result, ExecutionState.COMMITTING)
        try:
            result.committed_files = workspace.commit()
        except CommitError as e:
            result.committed_files = list(e.written_paths)
            result.errors.append(ErrorRecord(path=e.path, category=ErrorCategory.COMMIT, message=str(e)))
            self._set_state(result, ExecutionState.DISCARDED)
            return
        result.committed = True
        self._set_state(result, ExecutionState.COMMITTED)

    def _set_state(self, result: ExecutionResult, state: ExecutionState) -> None:
        logger.debug(f"Run {result.run_id}: {self.state.value} -> {state.value}")
        self.state = state
        result.state = state

    def _notify(self, hook: str, *args: Any) -> None:
        for processor in self.processors:
            getattr(processor, hook)(*args)


def run_blueprint(
    blueprint: BlueprintModel | Mapping[str, Any],
    context: ExecutionContext,
    project_root: str | Path,
    settings: BlueprintFlowSettings | None = None,
    **kwargs: Any,
) -> ExecutionResult:
    """Run a blueprint once with a throwaway executor."""
    return BlueprintExecutor(settings=settings).run(blueprint, context, project_root, **kwargs)


