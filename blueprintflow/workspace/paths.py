import posixpath
import re
from pathlib import Path, PurePosixPath

from blueprintflow.exceptions import PathOutsideRootError

_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:/")


def normalize_path(path: str | Path, project_root: str | Path) -> str:
    """
    Turn a blueprint path into a normalized, project-root-relative POSIX path.

    Backslashes become slashes, repeated slashes and '.' segments collapse and '..'
    segments are folded. Absolute paths are accepted when they point inside the
    project root.

    Raises:
        PathOutsideRootError: If the path is empty, is the root itself or escapes the root.
    """
    raw = str(path).strip().replace("\\", "/")
    if not raw:
        raise PathOutsideRootError("Empty path")

    root = PurePosixPath(str(Path(project_root).absolute()).replace("\\", "/"))

    if raw.startswith("/") or _WINDOWS_DRIVE.match(raw):
        absolute = PurePosixPath(posixpath.normpath(raw))
        try:
            relative = absolute.relative_to(root).as_posix()
        except ValueError:
            raise PathOutsideRootError("Path is outside the project root", path=raw) from None
    else:
        relative = raw

    normalized = posixpath.normpath(relative)
    if normalized in (".", "") or normalized == ".." or normalized.startswith("../"):
        raise PathOutsideRootError("Path does not point to a file inside the project root", path=raw)

    return normalized


def resolve_on_disk(normalized_path: str, project_root: str | Path) -> Path:
    """
    Map a normalized path to its location under the project root.

    Symlinks are followed so a link pointing outside the root is rejected as well.

    Raises:
        PathOutsideRootError: If the resolved location is outside the root.
    """
    root = Path(project_root).resolve()
    candidate = (root / normalized_path).resolve()
    if not candidate.is_relative_to(root):
        raise PathOutsideRootError("Path resolves outside the project root", path=normalized_path)
    return candidate
