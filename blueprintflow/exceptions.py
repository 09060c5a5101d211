"""
BlueprintFlow exception hierarchy.

This module defines the core exceptions used throughout BlueprintFlow,
organized hierarchically with clear inheritance paths. Per-action failures
(validation, modifier, fallback and command errors) are caught by the
orchestrator and turned into ErrorRecords; only commit errors escape a run.
"""

from typing import Any

###############################################################################
# ROOT EXCEPTION
###############################################################################


class BlueprintFlowError(Exception):
    """
    Root exception class for all BlueprintFlow errors.

    This exception serves as the base class for the entire exception hierarchy.
    It should never be raised directly but rather inherited from.
    """


###############################################################################
# CORE EXCEPTIONS
###############################################################################


class CoreError(BlueprintFlowError):
    """
    Base exception class for core functionality errors.

    These relate to fundamental operations of BlueprintFlow itself.
    """

    def __init__(self, message: str = "", component: str = ""):
        prefix = f"{component}: " if component else ""
        super().__init__(f"{prefix}{message}")
        self.component = component


class CatalogError(CoreError):
    """Base for all catalog-related errors."""

    def __init__(self, message: str = "", catalog_name: str = ""):
        prefix = f"{catalog_name.capitalize()} catalog error: " if catalog_name else ""
        super().__init__(f"{prefix}{message}")
        self.catalog_name = catalog_name


class ResourceError(CoreError):
    """Raised when a file or directory BlueprintFlow depends on is missing or unreadable."""

    def __init__(self, message: str = "", resource_type: str = "", resource_name: str = ""):
        super().__init__(message, component="Resource")
        self.resource_type = resource_type
        self.resource_name = resource_name


###############################################################################
# WORKSPACE EXCEPTIONS
###############################################################################


class WorkspaceError(BlueprintFlowError):
    """
    Base exception class for virtual workspace errors.
    """

    def __init__(self, message: str = "", path: str = "", workspace_id: str = ""):
        self.path = path
        self.workspace_id = workspace_id
        prefix = f"Workspace path '{path}': " if path else "Workspace: "
        super().__init__(f"{prefix}{message}")


class PathOutsideRootError(WorkspaceError):
    """Raised when a path resolves outside the project root."""


class FileExistsInWorkspaceError(WorkspaceError):
    """Raised when a 'create' write targets a path that already exists."""


class WorkspaceClosedError(WorkspaceError):
    """Raised when a committed or discarded workspace is used again."""


class CommitError(WorkspaceError):
    """
    Raised when a real disk write fails during commit.

    Carries the paths that were already written before the failure so the caller can
    report them. Remaining writes are abandoned.
    """

    def __init__(
        self,
        message: str = "",
        path: str = "",
        workspace_id: str = "",
        written_paths: list[str] | None = None,
    ):
        super().__init__(message, path=path, workspace_id=workspace_id)
        self.written_paths = list(written_paths or [])


###############################################################################
# BLUEPRINT EXCEPTIONS
###############################################################################


class BlueprintError(BlueprintFlowError):
    """Base exception for all blueprint-related errors."""

    def __init__(self, message: str = "", blueprint_name: str = "", details: dict[str, Any] | None = None):
        self.blueprint_name = blueprint_name
        self.details = details or {}
        prefix = f"Blueprint '{blueprint_name}': " if blueprint_name else "Blueprint: "
        super().__init__(f"{prefix}{message}")


class ActionError(BlueprintError):
    """
    Base for errors raised while executing a single action.

    The orchestrator converts these into ErrorRecords; they never abort a run.
    """

    def __init__(
        self,
        message: str = "",
        action_type: str = "",
        path: str = "",
        **kwargs: Any,
    ):
        self.action_type = action_type
        self.path = path
        self.message = message
        prefix = f"{action_type}: " if action_type else ""
        suffix = f" (path: {path})" if path else ""
        super().__init__(f"{prefix}{message}{suffix}", **kwargs)


class ActionValidationError(ActionError):
    """Raised when an action has missing or malformed fields."""


class FallbackPolicyError(ActionError):
    """Raised when ENHANCE_FILE targets a missing file and its fallback is 'error'."""


class CommandError(ActionError):
    """Raised when RUN_COMMAND exits with a non-zero code or the runner fails."""

    def __init__(self, message: str = "", exit_code: int | None = None, output: str = "", **kwargs: Any):
        self.exit_code = exit_code
        self.output = output
        super().__init__(message, **kwargs)


###############################################################################
# MODIFIER EXCEPTIONS
###############################################################################


class ModifierError(BlueprintFlowError):
    """Base exception class for modifier errors."""

    def __init__(self, message: str = "", modifier_name: str = ""):
        self.modifier_name = modifier_name
        prefix = f"Modifier '{modifier_name}': " if modifier_name else "Modifier: "
        super().__init__(f"{prefix}{message}")


class ModifierNotFoundError(ModifierError):
    """Raised when an action references a modifier name that is not registered."""


class ModifierParameterError(ModifierError):
    """Raised when validate_parameters rejects the parameters given to a modifier."""


class ModifierTransformError(ModifierError):
    """Raised when existing content cannot be parsed or merged."""


###############################################################################
# SETTINGS EXCEPTIONS
###############################################################################


class SettingsError(BlueprintFlowError):
    """
    Base exception class for settings-related errors.

    These relate to configuration and settings management.
    """

    def __init__(self, message: str = "", setting: str = ""):
        prefix = f"Setting '{setting}': " if setting else ""
        super().__init__(f"{prefix}{message}")
        self.setting = setting


###############################################################################
# APPLICATION EXCEPTIONS
###############################################################################


class BlueprintFlowAppError(BlueprintFlowError):
    """Base for errors raised by application layers built on the engine (the CLI)."""
