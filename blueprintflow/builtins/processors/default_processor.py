# ruff: noqa: T201
from datetime import datetime

from colorama import Back, Fore, Style, init

from blueprintflow.models import ActionOutcome, BlueprintModel, ExecutionResult
from blueprintflow.processors import BlueprintProcessor

# Initialize colorama
init(autoreset=True)


def _clock(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S.%f")[:-3]


class DefaultBlueprintProcessor(BlueprintProcessor):
    """Default processor that prints a colored progress log and an execution summary."""

    def __init__(self):
        self.run_start_time = None
        self.blueprint_id = ""
        self.total_actions = 0
        self.start_times: dict[int, datetime] = {}
        self.actions_visited = 0
        self.successful_actions = 0
        self.failed_actions = 0
        self.skipped_actions = 0

    def run_started(self, blueprint: BlueprintModel, run_id: str, total_actions: int) -> None:
        self.run_start_time = datetime.now()
        self.blueprint_id = blueprint.id
        self.total_actions = total_actions
        print(
            f"\n{Fore.GREEN}{Style.BRIGHT}Blueprint '{blueprint.name}' ({blueprint.id}) started at: "
            f"{_clock(self.run_start_time)}{Style.RESET_ALL}"
        )
        print(f"{Fore.WHITE}Run id: {run_id} | Actions: {total_actions}")

    def action_started(self, index: int, action_type: str) -> None:
        self.start_times[index] = datetime.now()
        self.actions_visited += 1

    def action_completed(self, outcome: ActionOutcome) -> None:
        finish_time = datetime.now()
        start_time = self.start_times.pop(outcome.action_index, finish_time)
        duration_ms = (finish_time - start_time).total_seconds() * 1000

        if outcome.skipped:
            status, status_color = "Skipped", Fore.YELLOW
            self.skipped_actions += 1
        elif outcome.succeeded:
            status, status_color = "Success", Fore.GREEN
            self.successful_actions += 1
        else:
            status, status_color = "Failed", Fore.RED
            self.failed_actions += 1

        print(f"{Fore.WHITE}{'-' * 80}")
        print(
            f"{Style.BRIGHT}{Fore.CYAN}Action #{outcome.action_index}: {outcome.action_type} "
            f"{Fore.WHITE}| {status_color}Status: {status} "
            f"{Fore.BLUE}({duration_ms:.0f}ms)"
        )
        for path in outcome.touched_paths:
            print(f"  {Fore.WHITE}{path}")
        if outcome.error:
            print(f"  {Fore.RED}{outcome.error.message}")
        for warning in outcome.warnings:
            print(f"  {Fore.YELLOW}{warning}")
        if outcome.command_output:
            print(f"{Fore.WHITE}Output:\n{outcome.command_output}")

    def run_completed(self, result: ExecutionResult) -> None:
        self.print_summary(result)

    def print_summary(self, result: ExecutionResult) -> None:
        """Print timing, action statistics, file changes and a success bar for the run."""
        if not self.run_start_time:
            return

        end_time = datetime.now()
        duration = end_time - self.run_start_time
        visited = self.actions_visited

        success_percent = (self.successful_actions / visited * 100) if visited else 0
        failure_percent = (self.failed_actions / visited * 100) if visited else 0
        skipped_percent = (self.skipped_actions / visited * 100) if visited else 0

        bar_length = 40
        success_bars = int(bar_length * success_percent / 100)
        failure_bars = int(bar_length * failure_percent / 100)
        skipped_bars = int(bar_length * skipped_percent / 100)

        print("\n")
        print(f"{Fore.YELLOW}{Style.BRIGHT}━━━ EXECUTION SUMMARY ━━━{Style.RESET_ALL}")
        print()

        print(f"{Fore.WHITE}{Style.BRIGHT}Time Statistics:{Style.RESET_ALL}")
        print(f"  {Fore.WHITE}Started at:  {_clock(self.run_start_time)}")
        print(f"  {Fore.WHITE}Finished at: {_clock(end_time)}")
        print(
            f"  {Fore.WHITE}Duration:    {duration.total_seconds() * 1000:.0f}ms "
            f"({duration.total_seconds():.2f} seconds)"
        )
        print()

        print(f"{Fore.WHITE}{Style.BRIGHT}Action Results:{Style.RESET_ALL}")
        print(f"  {Fore.WHITE}Visited:     {Style.BRIGHT}{visited} of {self.total_actions}")
        print(f"  {Fore.GREEN}Successful:  {Style.BRIGHT}{self.successful_actions} ({success_percent:.1f}%)")
        print(f"  {Fore.RED}Failed:      {Style.BRIGHT}{self.failed_actions} ({failure_percent:.1f}%)")
        if self.skipped_actions > 0:
            print(f"  {Fore.YELLOW}Skipped:     {Style.BRIGHT}{self.skipped_actions} ({skipped_percent:.1f}%)")
        print()

        print(f"{Fore.WHITE}{Style.BRIGHT}Files:{Style.RESET_ALL}")
        if result.dry_run:
            print(f"  {Fore.YELLOW}Dry run, would write: {Style.BRIGHT}{len(result.files)}")
        elif result.committed:
            print(f"  {Fore.GREEN}Committed:   {Style.BRIGHT}{len(result.committed_files)}")
        else:
            print(f"  {Fore.RED}Discarded:   {Style.BRIGHT}{len(result.files)}")
        print()

        bar = (
            f"{Back.GREEN}{' ' * success_bars}"
            f"{Back.RED}{' ' * failure_bars}"
            f"{Back.YELLOW}{' ' * skipped_bars}"
            f"{Style.RESET_ALL}"
        )
        print(f"  {bar}")
        print()
