from blueprintflow.models import ActionOutcome, BlueprintModel, ExecutionResult


class BlueprintProcessor:
    """
    Observer of blueprint runs.

    The executor calls these hooks in order: ``run_started`` once, then
    ``action_started``/``action_completed`` for every action visited, then
    ``run_completed`` with the final result. Every hook is a no-op here, so
    subclasses only override what they need. Processors must not change the run.
    """

    def run_started(self, blueprint: BlueprintModel, run_id: str, total_actions: int) -> None:
        pass

    def action_started(self, index: int, action_type: str) -> None:
        pass

    def action_completed(self, outcome: ActionOutcome) -> None:
        pass

    def run_completed(self, result: ExecutionResult) -> None:
        pass
