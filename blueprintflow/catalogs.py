import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from blueprintflow.exceptions import CatalogError, CoreError, ResourceError
from blueprintflow.utils import import_module_from_path, is_blueprint_file


class Catalog(ABC, dict[str, Any]):
    """Base catalog that provides core functionality for tracking items and their sources.

    This catalog extends dict while adding:
    - Source tracking for each item
    - Basic registration and query methods
    """

    def __init__(self, name: str):
        """Initialize an empty catalog with a name for error messages.

        Args:
            name: The name of this catalog.
        """
        super().__init__()
        self.name = name
        self.sources: dict[str, dict[str, Any]] = {}

    def __setitem__(self, key: str, value: Any, **kwargs) -> None:
        super().__setitem__(key, value)
        self.sources[key] = {"registered_at": datetime.now(), **kwargs}

    def register(self, name: str, item: Any, **kwargs) -> Any:
        """Registers an item in the catalog and stores its metadata.

        Args:
            name: The key for the item.
            item: The value to store.
            **kwargs: Arbitrary metadata to associate with the item.

        Returns:
            The registered value.
        """
        self.__setitem__(name, item, **kwargs)
        return item

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def get_item_info(self, name: str) -> dict[str, Any] | None:
        """Get detailed information about an item, or None if it is not registered."""
        if name not in self:
            return None
        return {"name": name, "type": type(self[name]).__name__, "value": self[name], **self.sources.get(name, {})}

    def get_builtin_items(self) -> dict[str, Any]:
        """Get all built-in items in the catalog."""
        return {name: self[name] for name in self if self.sources.get(name, {}).get("is_builtin", False)}

    def get_custom_items(self) -> dict[str, Any]:
        """Get all custom (non-builtin) items in the catalog."""
        return {name: self[name] for name in self if not self.sources.get(name, {}).get("is_builtin", False)}

    def discover_items_in_dir(self, dir_path: str, **kwargs) -> int:
        """Discover and register items from a directory.

        This implements the template method pattern, delegating specific behavior
        to _get_files_to_process and _process_file methods that subclasses must implement.

        Args:
            dir_path: Path to the directory to scan.
            **kwargs: Additional arguments for specific catalog types.

        Returns:
            Number of items discovered and registered.

        Raises:
            ResourceError: If directory doesn't exist.
        """
        path = Path(dir_path)
        if not path.is_dir():
            raise ResourceError(
                f"Directory not found: {dir_path}. Couldn't load {self.name}.",
                resource_type=self.name,
                resource_name=dir_path,
            )

        total_items = 0
        for file_path in self._get_files_to_process(path, **kwargs):
            total_items += self._process_file(file_path, **kwargs)
        return total_items

    @abstractmethod
    def _get_files_to_process(self, dir_path: Path, **kwargs) -> list[Path]:
        """Get list of files to process from a directory."""

    @abstractmethod
    def _process_file(self, file_path: Path, **kwargs) -> int:
        """Process a single file and return the number of items registered from it."""


class CallableCatalog(Catalog):
    """Catalog for Python objects discovered in modules, tracking built-in vs custom items.

    Items coming from ``blueprintflow.builtins`` are flagged as built-in and can never
    be overridden by custom items.
    """

    def register(
        self, name: str, item: Any, module_path: str | None = None, module_name: str | None = None, **kwargs
    ) -> Any:
        """Register a Python object with module tracking.

        Raises:
            CatalogError: If a custom item tries to override a built-in.
        """
        if module_name is None:
            module_name = getattr(item, "__module__", None) or getattr(type(item), "__module__", None)

        is_builtin = bool(module_name and module_name.startswith("blueprintflow.builtins"))

        if name in self and self.sources.get(name, {}).get("is_builtin", False):
            raise CatalogError(
                f"Cannot override built-in '{name}' with a custom implementation", catalog_name=self.name
            )

        return super().register(
            name, item, module_path=module_path, module_name=module_name, is_builtin=is_builtin, **kwargs
        )

    def register_from_module(
        self,
        module: Any,
        predicate: Callable[[Any], bool] | None = None,
        transform_item: Callable[[Any], Any] | None = None,
    ) -> int:
        """Register the members of a module that match the predicate.

        Only members defined in the module itself are considered, so imported helpers are skipped.

        Returns:
            Number of items registered.
        """
        module_path = getattr(module, "__file__", None)
        module_name = getattr(module, "__name__", None)
        predicate = predicate or callable

        count = 0
        for name, obj in inspect.getmembers(module, predicate):
            if getattr(obj, "__module__", module_name) != module_name:
                continue
            if transform_item:
                obj = transform_item(obj)
            self.register(self._item_name(name, obj), obj, module_path=module_path, module_name=module_name)
            count += 1
        return count

    def _item_name(self, attribute_name: str, item: Any) -> str:
        """Catalog key for a discovered item; subclasses may derive it from the item itself."""
        return attribute_name

    def _get_files_to_process(self, dir_path: Path, **kwargs) -> list[Path]:
        return sorted(py_file for py_file in dir_path.rglob("*.py") if not py_file.name.startswith("__"))

    def _process_file(self, file_path: Path, **kwargs) -> int:
        """Import a Python file and register its matching members.

        Raises:
            CoreError: If module import fails.
        """
        module_name = file_path.stem
        module_path = str(file_path)
        try:
            module = import_module_from_path(module_name, module_path)
        except Exception as e:
            raise CoreError(
                f"Failed to import module '{module_name}' from '{module_path}': {e!s}",
                component="ItemDiscovery",
            ) from e
        return self.register_from_module(module, kwargs.get("predicate"), kwargs.get("transform_item"))

    def discover_items_in_dir(
        self,
        dir_path: str,
        predicate: Callable[[Any], bool] | None = None,
        transform_item: Callable[[Any], Any] | None = None,
        **kwargs,
    ) -> int:
        return super().discover_items_in_dir(dir_path, predicate=predicate, transform_item=transform_item, **kwargs)


class FileCatalog(Catalog):
    """Catalog for file resources like blueprint definitions, keyed by file stem."""

    def _get_files_to_process(self, dir_path: Path, **kwargs) -> list[Path]:
        recursive = kwargs.get("recursive", True)
        glob_method = dir_path.rglob if recursive else dir_path.glob
        return sorted(glob_method("*"))

    def _process_file(self, file_path: Path, **kwargs) -> int:
        predicate = kwargs.get("predicate")
        if file_path.is_file() and predicate and predicate(file_path):
            self.register(name=file_path.stem, item=file_path, file_path=str(file_path))
            return 1
        return 0

    def discover_items_in_dir(
        self, dir_path: str, predicate: Callable[[Path], bool], recursive: bool = True, **kwargs
    ) -> int:
        return super().discover_items_in_dir(dir_path, predicate=predicate, recursive=recursive, **kwargs)


def build_blueprint_catalog(dir_paths: list[str]) -> FileCatalog:
    """File catalog of every blueprint file found in the existing directories of dir_paths."""
    catalog = FileCatalog("blueprints")
    for dir_path in dir_paths:
        if Path(dir_path).is_dir():
            catalog.discover_items_in_dir(dir_path, predicate=is_blueprint_file)
    return catalog
