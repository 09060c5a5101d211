from pathlib import Path

import typer
from tabulate import tabulate
from termcolor import colored

from blueprintflow.analyzer import BlueprintAnalyzer
from blueprintflow.cli.exceptions import CLIRunError
from blueprintflow.cli.run import build_context, load_settings, parse_key_value_pairs, resolve_blueprint
from blueprintflow.cli.show import display_banner, get_colored_headers
from blueprintflow.exceptions import BlueprintFlowError
from blueprintflow.workspace import normalize_path

app = typer.Typer(help="Analyze BlueprintFlow blueprints")


def render_analysis_table_data(required: set[str], contextual: set[str], project: Path) -> list[list[str]]:
    table_data = []
    for path in sorted(required | contextual):
        kinds = [kind for kind, paths in (("required", required), ("contextual", contextual)) if path in paths]
        exists = (project / path).is_file()
        table_data.append(
            [
                colored(path, "cyan", attrs=["bold"]),
                colored(", ".join(kinds), "yellow"),
                colored("yes", "green") if exists else colored("no", "red"),
            ]
        )
    return table_data


@app.command()
def analyze(
    ctx: typer.Context,
    blueprint: str = typer.Argument(..., help="Blueprint file, or the name of a cataloged blueprint"),
    project: Path = typer.Option(Path("."), "--project", "-p", help="Project root the blueprint targets"),
    params: str | None = typer.Option(None, "--params", help="Module parameters used to resolve templated paths"),
) -> None:
    """
    Lists the files a blueprint will read or modify, without running it.
    """
    try:
        settings = load_settings(ctx)
        loaded = resolve_blueprint(blueprint, settings)
        context = build_context(project, loaded, params=parse_key_value_pairs(params, "params"))
        result = BlueprintAnalyzer(settings).analyze(loaded, context)
        required = {normalize_path(path, project) for path in result.required_files}
        contextual = {normalize_path(path, project) for path in result.contextual_files}

    except CLIRunError as e:
        e.show()
        raise typer.Exit(code=2) from None

    except BlueprintFlowError as e:
        CLIRunError(
            message=f"BlueprintFlow error while analyzing {blueprint}: {e}",
            hint="Check the blueprint file and the project directory.",
            original_exception=e,
        ).show()
        raise typer.Exit(code=2) from None

    if not required and not contextual:
        typer.secho(f"Blueprint '{loaded.id}' does not read or modify existing files.", fg=typer.colors.GREEN)
        return

    headers = get_colored_headers(["File", "Kind", "Exists"], "blue")
    table = tabulate(
        render_analysis_table_data(required, contextual, project),
        headers=headers,
        tablefmt="rounded_grid",
        colalign=["left", "center", "center"],
    )
    display_banner(f"FILES USED BY '{loaded.id}'", table)
    typer.echo(table)
