from blueprintflow.builtins.modifiers.config_merge import ConfigMergeModifier
from blueprintflow.builtins.modifiers.config_wrapper import ConfigWrapperModifier
from blueprintflow.builtins.modifiers.json_merge import JsonMergeModifier, ManifestMergeModifier
from blueprintflow.builtins.modifiers.jsx_wrapper import JsxWrapperModifier
from blueprintflow.builtins.modifiers.module_enhancer import ModuleEnhancerModifier
from blueprintflow.builtins.modifiers.text import (
    AppendModifier,
    EnvMergeModifier,
    LinesMergeModifier,
    PrependModifier,
)
from blueprintflow.modifiers.base import Modifier


def build_builtin_modifiers(json_indent: int = 2) -> list[Modifier]:
    """Fresh instances of every built-in modifier."""
    return [
        ManifestMergeModifier(indent=json_indent),
        JsonMergeModifier(indent=json_indent),
        ConfigMergeModifier(),
        ModuleEnhancerModifier(),
        ConfigWrapperModifier(),
        JsxWrapperModifier(),
        EnvMergeModifier(),
        LinesMergeModifier(),
        AppendModifier(),
        PrependModifier(),
    ]


__all__ = [
    "AppendModifier",
    "ConfigMergeModifier",
    "ConfigWrapperModifier",
    "EnvMergeModifier",
    "JsonMergeModifier",
    "JsxWrapperModifier",
    "LinesMergeModifier",
    "ManifestMergeModifier",
    "ModuleEnhancerModifier",
    "PrependModifier",
    "build_builtin_modifiers",
]
