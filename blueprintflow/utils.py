import contextlib
import importlib.util
import inspect
import logging
import os
import tempfile
from pathlib import Path
from types import ModuleType
from typing import Any

from blueprintflow.constants import BLUEPRINTFLOW_SUPPORTED_BLUEPRINT_EXTENSIONS
from blueprintflow.exceptions import CoreError

logger = logging.getLogger(__name__)


def import_module_from_path(module_name: str, module_path: str | Path) -> ModuleType:
    """
    Import a module from a given file path.

    Args:
        module_name: Name to assign to the module.
        module_path: Path to the module file.

    Returns:
        Imported module.

    Raises:
        CoreError: If there is an error importing the module.
    """
    try:
        spec = importlib.util.spec_from_file_location(module_name, str(module_path))
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
    except Exception as e:
        raise CoreError(
            f"Failed to import module '{module_name}' from '{module_path}': {e!s}",
            component="ModuleLoader",
        ) from e


def is_public_subclass(obj: Any, base: type) -> bool:
    """Check that obj is a concrete, public subclass of base (base itself excluded)."""
    return (
        inspect.isclass(obj)
        and issubclass(obj, base)
        and obj is not base
        and not inspect.isabstract(obj)
        and not obj.__name__.startswith("_")
    )


def is_blueprint_file(path: Path) -> bool:
    """Check if a file looks like a blueprint definition."""
    return path.suffix.lower() in BLUEPRINTFLOW_SUPPORTED_BLUEPRINT_EXTENSIONS


def atomic_write_text(path: str | Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to path atomically, creating missing parent directories.

    Content goes to a temp file in the destination directory which then replaces
    the target in a single step, so readers never see a half-written file.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as file_handle:
            file_handle.write(content)
            file_handle.flush()
            os.fsync(file_handle.fileno())
        # mkstemp creates 0600 files; keep the target's mode or use the usual 0644.
        mode = target.stat().st_mode & 0o777 if target.exists() else 0o644
        temp_path.chmod(mode)
        os.replace(temp_path, target)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise
