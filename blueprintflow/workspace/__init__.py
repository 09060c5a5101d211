"""Per-run virtual workspace: in-memory file map flushed to disk only at commit."""

from blueprintflow.workspace.core import VirtualWorkspace, WorkspaceEntry
from blueprintflow.workspace.paths import normalize_path

__all__ = [
    "VirtualWorkspace",
    "WorkspaceEntry",
    "normalize_path",
]
