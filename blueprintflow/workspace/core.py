import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from blueprintflow.constants import EntryOrigin, WriteMode
from blueprintflow.exceptions import (
    CommitError,
    FileExistsInWorkspaceError,
    WorkspaceClosedError,
    WorkspaceError,
)
from blueprintflow.utils import atomic_write_text
from blueprintflow.workspace.paths import normalize_path, resolve_on_disk

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceEntry:
    """In-memory state of one file: its content, where it came from and whether it must be written."""

    path: str
    content: str
    origin: EntryOrigin
    dirty: bool = False


class VirtualWorkspace:
    """
    Isolated in-memory file map for one blueprint run.

    Every read goes through the workspace (lazily reading through to disk and caching
    the result) and every write only touches memory. ``commit`` is the single point
    where the real filesystem is mutated; ``discard`` drops everything instead.
    A workspace is single use: after commit or discard it rejects further access.
    """

    def __init__(self, workspace_id: str, project_root: str | Path, encoding: str = "utf-8"):
        self.workspace_id = workspace_id
        self.project_root = Path(project_root)
        self.encoding = encoding
        self._entries: dict[str, WorkspaceEntry] = {}
        self._closed = False

    def __repr__(self) -> str:
        return f"VirtualWorkspace(id={self.workspace_id!r}, root={str(self.project_root)!r}, entries={len(self)})"

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        try:
            return self.normalize(path) in self._entries
        except WorkspaceError:
            return False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def entries(self) -> dict[str, WorkspaceEntry]:
        """Snapshot of the tracked entries, in insertion order."""
        return dict(self._entries)

    @property
    def dirty_paths(self) -> list[str]:
        """Paths that commit would write, in insertion order."""
        return [path for path, entry in self._entries.items() if entry.dirty]

    def normalize(self, path: str | Path) -> str:
        return normalize_path(path, self.project_root)

    def get_entry(self, path: str | Path) -> WorkspaceEntry | None:
        return self._entries.get(self.normalize(path))

    def preload(self, paths: Iterable[str | Path]) -> list[str]:
        """
        Insert existing, untracked files as 'preloaded' entries.

        Missing files are skipped silently. Paths outside the project root and files
        that cannot be read as text are skipped with a warning; an action touching them
        fails on its own when it runs.

        Returns:
            The normalized paths that were loaded.
        """
        self._ensure_open()
        loaded: list[str] = []
        for path in paths:
            try:
                normalized = self.normalize(path)
                if normalized in self._entries:
                    continue
                content = self._read_from_disk(normalized)
            except WorkspaceError as e:
                logger.warning(f"Workspace {self.workspace_id}: not preloading '{path}': {e}")
                continue
            if content is None:
                continue
            self._entries[normalized] = WorkspaceEntry(normalized, content, EntryOrigin.PRELOADED)
            loaded.append(normalized)
        logger.debug(f"Workspace {self.workspace_id}: preloaded {len(loaded)} file(s)")
        return loaded

    def read(self, path: str | Path) -> str | None:
        """Return the tracked content, else read through from disk and cache it, else None."""
        self._ensure_open()
        normalized = self.normalize(path)
        entry = self._entries.get(normalized)
        if entry is not None:
            return entry.content

        content = self._read_from_disk(normalized)
        if content is None:
            return None
        self._entries[normalized] = WorkspaceEntry(normalized, content, EntryOrigin.PRELOADED)
        logger.debug(f"Workspace {self.workspace_id}: lazily loaded '{normalized}'")
        return content

    def exists(self, path: str | Path) -> bool:
        return self.read(path) is not None

    def write(
        self,
        path: str | Path,
        content: str,
        mode: WriteMode | str = WriteMode.OVERWRITE,
        allow_overwrite: bool = False,
    ) -> str:
        """
        Upsert an entry in memory.

        Append and prepend on an absent file create it. ``create`` fails when the file
        already exists in the workspace or on disk unless ``allow_overwrite`` is set.

        Returns:
            The normalized path written.

        Raises:
            FileExistsInWorkspaceError: On a 'create' over an existing file without allow_overwrite.
        """
        self._ensure_open()
        mode = WriteMode(mode)
        if not isinstance(content, str):
            raise WorkspaceError(f"Content must be text, got {type(content).__name__}", path=str(path))

        normalized = self.normalize(path)
        existing = self.read(normalized)

        if mode is WriteMode.CREATE and existing is not None and not allow_overwrite:
            raise FileExistsInWorkspaceError(
                "File already exists; set overwrite to replace it", path=normalized, workspace_id=self.workspace_id
            )

        if mode is WriteMode.APPEND and existing is not None:
            new_content = existing + content
        elif mode is WriteMode.PREPEND and existing is not None:
            new_content = content + existing
        else:
            new_content = content

        entry = self._entries.get(normalized)
        if entry is None:
            self._entries[normalized] = WorkspaceEntry(normalized, new_content, EntryOrigin.CREATED, dirty=True)
        else:
            # An entry created during this run stays 'created' however often it is rewritten.
            if entry.origin is not EntryOrigin.CREATED:
                entry.origin = EntryOrigin.MODIFIED
            entry.content = new_content
            entry.dirty = True
        return normalized

    def commit(self) -> list[str]:
        """
        Write every dirty entry to disk in insertion order, creating parent directories.

        On the first failed write the remaining writes are abandoned and CommitError is
        raised with the paths already written. The workspace is closed either way.

        Returns:
            The paths written.
        """
        self._ensure_open()
        written: list[str] = []
        try:
            for normalized in self.dirty_paths:
                entry = self._entries[normalized]
                try:
                    target = resolve_on_disk(normalized, self.project_root)
                    atomic_write_text(target, entry.content, encoding=self.encoding)
                except (OSError, WorkspaceError) as e:
                    raise CommitError(
                        f"Failed to write file: {e}",
                        path=normalized,
                        workspace_id=self.workspace_id,
                        written_paths=written,
                    ) from e
                entry.dirty = False
                written.append(normalized)
        finally:
            self._closed = True
        logger.info(f"Workspace {self.workspace_id}: committed {len(written)} file(s)")
        return written

    def discard(self) -> None:
        """Drop every entry without touching disk. Safe to call more than once."""
        dropped = len(self.dirty_paths)
        self._entries.clear()
        self._closed = True
        logger.info(f"Workspace {self.workspace_id}: discarded ({dropped} pending write(s))")

    def _ensure_open(self) -> None:
        if self._closed:
            raise WorkspaceClosedError("Workspace was already committed or discarded", workspace_id=self.workspace_id)

    def _read_from_disk(self, normalized: str) -> str | None:
        target = resolve_on_disk(normalized, self.project_root)
        if not target.is_file():
            return None
        try:
            with target.open(encoding=self.encoding, newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise WorkspaceError(f"Failed to read file: {e}", path=normalized, workspace_id=self.workspace_id) from e
