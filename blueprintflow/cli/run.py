import ast
import re
from pathlib import Path
from typing import Any

import typer

from blueprintflow.builtins.processors import DefaultBlueprintProcessor
from blueprintflow.catalogs import build_blueprint_catalog
from blueprintflow.cli.constants import (
    EXIT_BLUEPRINTFLOW_ERROR,
    EXIT_FILE_NOT_FOUND,
    EXIT_PERMISSION_DENIED,
    EXIT_RUN_FAILED,
    EXIT_UNEXPECTED_ERROR,
)
from blueprintflow.cli.exceptions import CLIRunError
from blueprintflow.commands import DryRunCommandRunner, SubprocessCommandRunner
from blueprintflow.constants import BLUEPRINTFLOW_SUPPORTED_BLUEPRINT_EXTENSIONS, CommitPolicy
from blueprintflow.exceptions import BlueprintFlowError
from blueprintflow.executor import BlueprintExecutor
from blueprintflow.models import BlueprintModel, ExecutionContext
from blueprintflow.settings import BlueprintFlowSettings

app = typer.Typer(help="Run BlueprintFlow blueprints")


def process_value(value_str: str) -> Any:
    """
    Process a string value into the appropriate Python type.

    Python literals are evaluated; otherwise comma separated values become a list and
    anything else stays a string.
    """
    try:
        return ast.literal_eval(value_str)
    except (ValueError, SyntaxError):
        if "," in value_str and not value_str.startswith(("{", "[", "(")):
            return [item.strip() for item in value_str.split(",")]
        return value_str


def parse_key_value_pairs(value: str | None, error_context: str) -> dict[str, Any]:
    """
    Parse a string of key=value pairs into a dictionary with intelligent value parsing.

    Pairs are split on commas that are outside quotes and brackets. Quoted values are
    kept as strings (quotes removed); unquoted values go through ``process_value``.

    Raises:
        CLIRunError: If a pair has no '='.

    Examples:
        - "typescript=True,port=3000" -> {"typescript": True, "port": 3000}
        - "name='my-app',features=['auth','db']" -> {"name": "my-app", "features": ["auth", "db"]}
    """
    if not value:
        return {}

    try:
        parsed_dict = {}
        pairs = re.split(
            r"""
            ,                           # Match a comma
            (?=                         # Followed by (positive lookahead)
                (?:                     # Non-capturing group
                    [^"'{}()[\]]*       # Any chars except quotes/brackets
                    (?:                 # Non-capturing group
                        "[^"]*"         # Double quoted content
                        |'[^']*'        # OR single quoted content
                        |{[^}]*}        # OR curly bracket content
                        |\([^)]*\)      # OR parentheses content
                        |\[[^\]]*\]     # OR square bracket content
                    )
                )*                      # Zero or more times
                [^"'{}()[\]]*           # Any chars except quotes/brackets
                $                       # Until end of string
            )
            """,
            value,
            flags=re.VERBOSE,
        )

        for pair in pairs:
            if "=" not in pair:
                raise CLIRunError(f"Invalid {error_context} format: {pair}.")

            k, v = pair.split("=", 1)
            k = k.strip().strip("'\"")
            v = v.strip()

            if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
                parsed_dict[k] = v[1:-1]
            else:
                parsed_dict[k] = process_value(v)

    except Exception as e:
        raise CLIRunError(
            f"{error_context.capitalize()} format examples:\n"
            f"- Simple values: \"key='value'\"\n"
            f"- Lists: \"key=['value1', 'value2']\" or \"key=value1,value2\"\n"
            f"- Dicts: \"key={{'inner_key': 'value'}}\"\n"
            f"Error: {e!s}"
        ) from e

    return parsed_dict


def load_settings(ctx: typer.Context | None) -> BlueprintFlowSettings:
    settings_file = (ctx.obj or {}).get("settings") if ctx is not None else None
    return BlueprintFlowSettings.load(settings_file or None)


def resolve_blueprint(target: str, settings: BlueprintFlowSettings) -> BlueprintModel:
    """
    Load a blueprint given as a file path or as the name of a cataloged blueprint.

    Raises:
        CLIRunError: If the target is neither an existing file nor a cataloged name.
    """
    target_path = Path(target)
    if target_path.suffix.lower() in BLUEPRINTFLOW_SUPPORTED_BLUEPRINT_EXTENSIONS and target_path.is_file():
        return BlueprintModel.load(target_path.resolve())

    catalog = build_blueprint_catalog(settings.local_blueprints)
    name = target_path.stem if target_path.suffix else target
    if name in catalog:
        return BlueprintModel.load(catalog[name])

    raise CLIRunError(
        f"Blueprint '{target}' not found",
        hint=f"Pass a blueprint file path or one of: {', '.join(sorted(catalog)) or 'no cataloged blueprints'}",
    )


def build_context(
    project_dir: Path,
    blueprint: BlueprintModel,
    name: str | None = None,
    framework: str | None = None,
    params: dict[str, Any] | None = None,
    extra_vars: dict[str, Any] | None = None,
) -> ExecutionContext:
    """Context for a CLI run: project info from the options, module info from the blueprint."""
    project = {
        "name": name or project_dir.resolve().name,
        "path": str(project_dir.resolve()),
        "framework": framework or "",
    }
    module = {"id": blueprint.id, "version": blueprint.version or "", "parameters": params or {}}
    return ExecutionContext.from_environ(project=project, module=module, extras=extra_vars)


PROJECT_OPTION = typer.Option(Path("."), "--project", "-p", help="Project root the blueprint is applied to")

NAME_OPTION = typer.Option(None, "--name", "-n", help="Project name [default: project directory name]")

FRAMEWORK_OPTION = typer.Option(None, "--framework", "-f", help="Project framework, e.g. 'nextjs'")

PARAMS_OPTION = typer.Option(
    None,
    "--params",
    help="Module parameters, exposed as module.parameters.*"
    "\nExamples:\n- \"typescript=True, styling='tailwind'\"\n- \"features=['auth','db']\"",
)

VARS_OPTION = typer.Option(
    None,
    "--vars",
    "-v",
    help="Extra template namespaces, e.g. \"integration={'name': 'sentry'}\"",
)

DRY_RUN_OPTION = typer.Option(False, "--dry-run", "-d", help="Never write to disk or run commands [default: False]")

FAIL_FAST_OPTION = typer.Option(False, "--fail-fast", help="Stop at the first failing action [default: False]")

ALL_OR_NOTHING_OPTION = typer.Option(
    False, "--all-or-nothing", help="Discard every change when any action fails [default: False]"
)


@app.command()
def run(
    ctx: typer.Context,
    blueprint: str = typer.Argument(..., help="Blueprint file, or the name of a cataloged blueprint"),
    project: Path = PROJECT_OPTION,
    name: str | None = NAME_OPTION,
    framework: str | None = FRAMEWORK_OPTION,
    params: str | None = PARAMS_OPTION,
    vars: str | None = VARS_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    fail_fast: bool = FAIL_FAST_OPTION,
    all_or_nothing: bool = ALL_OR_NOTHING_OPTION,
) -> None:
    """
    Applies a blueprint to a project.
    """
    try:
        if not project.is_dir():
            raise CLIRunError(f"Project directory '{project}' does not exist")

        settings = load_settings(ctx)
        loaded = resolve_blueprint(blueprint, settings)
        context = build_context(
            project,
            loaded,
            name=name,
            framework=framework,
            params=parse_key_value_pairs(params, "params"),
            extra_vars=parse_key_value_pairs(vars, "vars"),
        )

        dry_run = dry_run or settings.dry_run
        executor = BlueprintExecutor(
            settings=settings,
            command_runner=DryRunCommandRunner() if dry_run else SubprocessCommandRunner(),
            processors=[DefaultBlueprintProcessor()],
        )
        result = executor.run(
            loaded,
            context,
            project,
            continue_on_error=False if fail_fast else None,
            commit_policy=CommitPolicy.ALL_OR_NOTHING if all_or_nothing else None,
            dry_run=dry_run,
        )

    except CLIRunError as e:
        e.show()
        raise typer.Exit(code=EXIT_BLUEPRINTFLOW_ERROR) from None

    except BlueprintFlowError as e:
        CLIRunError(
            message=f"BlueprintFlow error while running {blueprint}: {e}",
            original_exception=e,
        ).show()
        raise typer.Exit(code=EXIT_BLUEPRINTFLOW_ERROR) from None

    except FileNotFoundError as e:
        CLIRunError(
            message=f"File not found: {e}",
            hint=f"Check that the file '{blueprint}' exists and is accessible.",
            original_exception=e,
        ).show()
        raise typer.Exit(code=EXIT_FILE_NOT_FOUND) from None

    except PermissionError as e:
        CLIRunError(
            message=f"Permission denied: {e}",
            hint="Check that you have sufficient permissions to access the project files.",
            original_exception=e,
        ).show()
        raise typer.Exit(code=EXIT_PERMISSION_DENIED) from None

    except Exception as e:
        CLIRunError(
            message=f"Unexpected error while running {blueprint}: {e}",
            hint="This may be a bug. Please report it if the issue persists.",
            original_exception=e,
        ).show()
        raise typer.Exit(code=EXIT_UNEXPECTED_ERROR) from None

    for error in result.errors:
        typer.secho(f"Error: {error}", fg=typer.colors.RED, err=True)
    for warning in result.warnings:
        typer.secho(f"Warning: {warning}", fg=typer.colors.YELLOW)

    if not result.success:
        raise typer.Exit(code=EXIT_RUN_FAILED)
