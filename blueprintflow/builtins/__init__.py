"""
Built-in components for BlueprintFlow.

This package contains the default modifiers and processors included with BlueprintFlow.
"""

from blueprintflow.builtins.modifiers import build_builtin_modifiers
from blueprintflow.builtins.processors import DefaultBlueprintProcessor

__all__ = ["DefaultBlueprintProcessor", "build_builtin_modifiers"]
