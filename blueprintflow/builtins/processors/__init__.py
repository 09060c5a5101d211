"""BlueprintFlow built-in processors subpackage."""

from .default_processor import DefaultBlueprintProcessor

__all__ = ["DefaultBlueprintProcessor"]
