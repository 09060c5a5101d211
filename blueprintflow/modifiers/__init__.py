from blueprintflow.modifiers.base import Modifier
from blueprintflow.modifiers.registry import ModifierRegistry

__all__ = ["Modifier", "ModifierRegistry"]
