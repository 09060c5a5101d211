"""BlueprintFlow: apply declarative blueprints to existing projects through a virtual workspace."""

from blueprintflow.executor import BlueprintExecutor, run_blueprint
from blueprintflow.models import BlueprintModel, ExecutionContext, ExecutionResult
from blueprintflow.modifiers import Modifier, ModifierRegistry
from blueprintflow.settings import BlueprintFlowSettings

__all__ = [
    "BlueprintExecutor",
    "BlueprintFlowSettings",
    "BlueprintModel",
    "ExecutionContext",
    "ExecutionResult",
    "Modifier",
    "ModifierRegistry",
    "run_blueprint",
]
