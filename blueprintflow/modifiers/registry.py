import logging
from typing import Any

from blueprintflow.catalogs import CallableCatalog
from blueprintflow.exceptions import CatalogError, ModifierNotFoundError
from blueprintflow.modifiers.base import Modifier
from blueprintflow.utils import is_public_subclass

logger = logging.getLogger(__name__)


class ModifierRegistry(CallableCatalog):
    """
    Explicit registry of modifiers, keyed by modifier name.

    One registry is built per process (usually with ``with_builtins``) and handed to
    the orchestrator; nothing about it is global. Custom modifiers can be discovered
    from directories of Python files defining Modifier subclasses, but may not take
    over the name of a built-in.
    """

    def __init__(self, name: str = "modifiers"):
        super().__init__(name)

    @classmethod
    def with_builtins(cls, json_indent: int = 2, local_modifiers: list[str] | None = None) -> "ModifierRegistry":
        """Build a registry holding every built-in modifier plus any custom ones found in local_modifiers."""
        from blueprintflow.builtins.modifiers import build_builtin_modifiers  # noqa: PLC0415

        registry = cls()
        for modifier in build_builtin_modifiers(json_indent=json_indent):
            registry.add(modifier)
        for dir_path in local_modifiers or []:
            registry.discover_modifiers(dir_path)
        return registry

    def register(
        self, name: str, item: Any, module_path: str | None = None, module_name: str | None = None, **kwargs
    ) -> Any:
        """Register a Modifier instance under name.

        Raises:
            CatalogError: If item is not a Modifier or would override a built-in.
        """
        if not isinstance(item, Modifier):
            raise CatalogError(f"'{name}' is not a Modifier instance", catalog_name=self.name)
        if module_name is None:
            module_name = type(item).__module__
        return super().register(name, item, module_path=module_path, module_name=module_name, **kwargs)

    def add(self, modifier: Modifier) -> Modifier:
        """Register a modifier under its own name."""
        if not modifier.name:
            raise CatalogError(f"{type(modifier).__name__} has no name", catalog_name=self.name)
        return self.register(modifier.name, modifier)

    def get_modifier(self, name: str) -> Modifier:
        """
        Look up a modifier by name.

        Raises:
            ModifierNotFoundError: If no modifier is registered under name.
        """
        try:
            return self[name]
        except KeyError:
            available = ", ".join(sorted(self)) or "none"
            raise ModifierNotFoundError(f"Unknown modifier. Available: {available}", name) from None

    def discover_modifiers(self, dir_path: str) -> int:
        """Instantiate and register every public Modifier subclass defined in Python files under dir_path."""
        count = self.discover_items_in_dir(
            dir_path,
            predicate=lambda obj: is_public_subclass(obj, Modifier),
            transform_item=lambda cls: cls(),
        )
        logger.info(f"Discovered {count} custom modifier(s) in '{dir_path}'")
        return count

    def _item_name(self, attribute_name: str, item: Any) -> str:
        return getattr(item, "name", "") or attribute_name

    def describe(self) -> list[tuple[str, str, bool]]:
        """(name, description, is_builtin) for every modifier, built-ins first."""
        builtins = sorted(self.get_builtin_items())
        custom = sorted(self.get_custom_items())
        return [(name, self[name].description, name in builtins) for name in [*builtins, *custom]]
