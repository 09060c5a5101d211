from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from blueprintflow.constants import ErrorCategory, ExecutionState


class ErrorRecord(BaseModel):
    """One error recorded during a run, with enough context to fix the blueprint."""

    model_config = ConfigDict(frozen=True)

    action_index: int | None = None
    action_type: str = ""
    path: str = ""
    category: ErrorCategory = ErrorCategory.VALIDATION
    message: str

    def __str__(self) -> str:
        location = f"action #{self.action_index} " if self.action_index is not None else ""
        kind = f"{self.action_type} " if self.action_type else ""
        target = f"[{self.path}] " if self.path else ""
        return f"{location}{kind}{target}({self.category.value}): {self.message}"


class ActionOutcome(BaseModel):
    """What a single action did to the workspace."""

    action_index: int
    action_type: str = ""
    touched_paths: list[str] = Field(default_factory=list)
    error: ErrorRecord | None = None
    warnings: list[str] = Field(default_factory=list)
    skipped: bool = False
    command_output: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ExecutionResult(BaseModel):
    """
    Structured result of a blueprint run.

    ``files`` lists every path touched by a successful action, in first-touch order.
    ``committed_files`` lists the paths that actually reached the disk.
    """

    run_id: str
    blueprint_id: str
    success: bool
    files: list[str] = Field(default_factory=list)
    errors: list[ErrorRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    state: ExecutionState = ExecutionState.IDLE
    committed: bool = False
    committed_files: list[str] = Field(default_factory=list)
    dry_run: bool = False
    outcomes: list[ActionOutcome] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """The caller-facing result contract: success, files, errors and warnings."""
        return {
            "success": self.success,
            "files": list(self.files),
            "errors": [error.model_dump(mode="json") for error in self.errors],
            "warnings": list(self.warnings),
        }
