"""
Static analysis of blueprints.

Works out, before anything runs, which existing files a blueprint will read or
modify so the executor can preload them into the workspace in one pass.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from blueprintflow.constants import ActionType
from blueprintflow.j2 import TemplateService
from blueprintflow.models import BlueprintModel, ExecutionContext
from blueprintflow.models.actions import BaseAction
from blueprintflow.settings import BlueprintFlowSettings

logger = logging.getLogger(__name__)

# Kinds whose 'path' is read and modified.
PATH_TARGETED_ACTIONS = frozenset(
    {
        ActionType.ENHANCE_FILE,
        ActionType.APPEND_TO_FILE,
        ActionType.PREPEND_TO_FILE,
        ActionType.MERGE_JSON,
        ActionType.MERGE_CONFIG,
        ActionType.ADD_TS_IMPORT,
        ActionType.WRAP_CONFIG,
        ActionType.EXTEND_SCHEMA,
    }
)
MANIFEST_ACTIONS = frozenset({ActionType.INSTALL_PACKAGES, ActionType.ADD_SCRIPT})


@dataclass
class AnalysisResult:
    required_files: set[str] = field(default_factory=set)
    contextual_files: set[str] = field(default_factory=set)
    all_required_files: set[str] = field(default_factory=set)

    def sorted_files(self) -> list[str]:
        return sorted(self.all_required_files)


class BlueprintAnalyzer:
    """
    Collects the files a blueprint needs without touching the filesystem.

    Actions are inspected leniently, from their raw fields, so an action that would
    fail validation still contributes its path. Paths holding template placeholders
    are resolved when a context is supplied and left out otherwise.
    """

    def __init__(self, settings: BlueprintFlowSettings | None = None, templates: TemplateService | None = None):
        self.settings = settings or BlueprintFlowSettings()
        self.templates = templates or TemplateService()

    def analyze(self, blueprint: BlueprintModel, context: ExecutionContext | None = None) -> AnalysisResult:
        try:
            variables = dict(context.template_vars()) if context is not None else None
            required: set[str] = set()
            for raw in blueprint.actions:
                for path in self._action_files(raw):
                    resolved = self._resolve(path, variables)
                    if resolved:
                        required.add(resolved)

            contextual = {
                resolved
                for path in blueprint.contextual_files
                if (resolved := self._resolve(path, variables))
            }
        except Exception as e:
            logger.warning(f"Analysis of blueprint '{blueprint.id}' failed, nothing will be preloaded: {e}")
            return AnalysisResult()

        logger.debug(
            f"Blueprint '{blueprint.id}' needs {len(required)} file(s), {len(contextual)} contextual file(s)"
        )
        return AnalysisResult(required, contextual, required | contextual)

    def _action_files(self, raw: Any) -> list[str]:
        if isinstance(raw, BaseAction):
            raw = raw.model_dump(by_alias=False)
        if not isinstance(raw, Mapping):
            return []
        try:
            action_type = ActionType(raw.get("type"))
        except ValueError:
            return []

        path = raw.get("path")
        if action_type in PATH_TARGETED_ACTIONS:
            return [path] if isinstance(path, str) and path else []
        if action_type is ActionType.CREATE_FILE:
            return [path] if raw.get("overwrite") is True and isinstance(path, str) and path else []
        if action_type in MANIFEST_ACTIONS:
            return [self.settings.manifest_file]
        if action_type is ActionType.ADD_ENV_VAR:
            env_file = path if isinstance(path, str) and path else self.settings.env_file
            return [env_file, self.settings.env_example_file]
        return []

    def _resolve(self, path: str, variables: dict[str, Any] | None) -> str | None:
        if not self.templates.is_template(path):
            return path
        if variables is None:
            return None
        resolved = self.templates.resolve_string(path, variables)
        # Placeholders the context could not fill stay unresolved.
        return None if self.templates.is_template(resolved) else resolved
