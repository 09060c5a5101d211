import json
import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Any

import typer
import yaml
from tabulate import tabulate
from termcolor import colored

from blueprintflow.catalogs import Catalog, build_blueprint_catalog
from blueprintflow.cli.constants import CWD, DESCRIPTION_FIRST_SENTENCE_LENGTH
from blueprintflow.cli.exceptions import CLIShowError
from blueprintflow.exceptions import BlueprintFlowError
from blueprintflow.modifiers import ModifierRegistry
from blueprintflow.settings import BlueprintFlowSettings

app = typer.Typer()


@app.command()
def show(
    ctx: typer.Context,
    modifiers: bool = typer.Option(False, "--modifiers", "-m", help="Display the modifier registry"),
    blueprints: bool = typer.Option(False, "--blueprints", "-b", help="Display the blueprint catalog"),
    settings: bool = typer.Option(False, "--settings", "-s", help="Display current BlueprintFlow settings"),
    all: bool = typer.Option(False, "--all", "-a", help="Display all information"),
) -> None:
    """
    Displays summary info about BlueprintFlow.
    """
    if not any([modifiers, blueprints, settings, all]):
        raise typer.BadParameter("You must provide at least one option: --modifiers, --blueprints, --settings, or --all.")

    try:
        settings_file = (ctx.obj or {}).get("settings")
        loaded_settings = BlueprintFlowSettings.load(settings_file or None)

        if modifiers or all:
            registry = ModifierRegistry.with_builtins(
                json_indent=loaded_settings.json_indent, local_modifiers=loaded_settings.local_modifiers
            )
            show_formatted_table(
                "MODIFIERS",
                lambda: render_modifiers_table_data(registry),
                ["Modifier Name", "Description", "Source (python module)"],
            )
        if blueprints or all:
            catalog = build_blueprint_catalog(loaded_settings.local_blueprints)
            show_formatted_table(
                "BLUEPRINTS CATALOG",
                lambda: render_blueprints_catalog_table_data(catalog),
                ["Blueprint Name", "Description", "Source (file path)"],
            )
        if settings or all:
            show_formatted_table(
                "BLUEPRINTFLOW SETTINGS",
                lambda: render_table_data(loaded_settings.as_dict),
                ["Setting", "Value"],
            )

    except BlueprintFlowError as e:
        CLIShowError(
            message=f"BlueprintFlow configuration error: {e}",
            hint="Check your BlueprintFlow settings and verify that the configured directories exist.",
            original_exception=e,
        ).show()
        raise typer.Exit(code=2) from None

    except (FileNotFoundError, PermissionError) as e:
        CLIShowError(
            message=f"File system error: {e}",
            hint="Check file permissions and ensure all referenced files exist.",
            original_exception=e,
        ).show()
        raise typer.Exit(code=2) from None

    except Exception as e:
        CLIShowError(
            message=f"Failed to show requested information: {e}",
            hint="Check your configuration and try again.",
            original_exception=e,
        ).show()
        raise typer.Exit(code=2) from None


def show_formatted_table(banner_text: str, table_data_renderer: Callable[[], list[list[str]]], headers: list[str]) -> None:
    """Display information in a formatted table, preceded by a banner."""
    table_data = table_data_renderer()

    if not table_data:
        typer.secho(f"{banner_text}: nothing to show", fg=typer.colors.YELLOW)
        return

    colored_headers = get_colored_headers(headers, "blue")
    colalign = ["center"] + ["left"] * (len(headers) - 1)
    table = tabulate(table_data, headers=colored_headers, tablefmt="rounded_grid", colalign=colalign)
    display_banner(banner_text, table)
    typer.echo(table)


def get_source_from_catalog(catalog: Catalog, item_name: str) -> str:
    """Get a displayable source (module name or relative file path) from catalog metadata."""
    item_info = catalog.get_item_info(item_name)

    if not item_info:
        return "Unknown"

    if item_info.get("module_path"):
        module_path = Path(item_info["module_path"])
        try:
            relative_path = module_path.relative_to(CWD)
            parts = relative_path.parts
            if parts[-1].endswith(".py"):
                parts = [*list(parts[:-1]), parts[-1][:-3]]
            return ".".join(parts)
        except ValueError:
            return str(module_path)

    if item_info.get("module_name"):
        return item_info["module_name"]

    if item_info.get("file_path"):
        file_path = Path(item_info["file_path"])
        try:
            return f"./{file_path.relative_to(CWD)}"
        except ValueError:
            return str(file_path)

    return "Unknown"


def render_modifiers_table_data(registry: ModifierRegistry) -> list[list[str]]:
    """Render the modifier registry, built-ins first."""
    return [
        get_colored_row(name, extract_first_sentence(description), get_source_from_catalog(registry, name))
        for name, description, _ in registry.describe()
    ]


def render_blueprints_catalog_table_data(catalog: Catalog) -> list[list[str]]:
    table_data = []
    for item_name, item_path in sorted(catalog.items()):
        description = textwrap.fill(get_blueprint_description(item_path), width=60)
        table_data.append(get_colored_row(item_name, description, get_source_from_catalog(catalog, item_name)))
    return table_data


def get_blueprint_description(blueprint_path: Path) -> str:
    """Get the description of a blueprint file, at the top level or under a 'blueprint' key."""
    try:
        with blueprint_path.open() as f:
            blueprint_dict = yaml.safe_load(f)
        return blueprint_dict.get(
            "description",
            blueprint_dict.get("blueprint", {}).get("description", "No description available"),
        )
    except Exception:
        return "Could not load description from file"


def render_table_data(
    data: dict[str, Any], key_color: str = "cyan", value_color: str = "yellow"
) -> list[list[str]]:
    """Render a dictionary as a list of colored [key, value] rows."""
    table_data = []
    for key, value in data.items():
        colored_key = colored(key, key_color, attrs=["bold"])
        table_data.append([colored_key, format_value(value, value_color)])
    return table_data


def format_value(value: Any, color: str = "yellow") -> str:
    """Format the value for display in the table."""
    if isinstance(value, dict):
        value_str = json.dumps(value, indent=2)
        value_str = value_str[1:-1].strip()
    else:
        value_str = str(value)
    return colored(value_str, color)


def get_colored_headers(headers: list[str], color: str) -> list[str]:
    return [colored(header, color, attrs=["bold"]) for header in headers]


def get_colored_row(name: str, desc: str, source: str) -> list[str]:
    return [
        colored(name, "cyan", attrs=["bold"]),
        colored(desc, "yellow"),
        colored(source, "light_green"),
    ]


def display_banner(banner_text: str, table: str) -> None:
    """Display a banner centered over the given table."""
    banner = colored(banner_text, "magenta", attrs=["bold", "underline"])

    table_width = len(table.split("\n")[0])
    centered_banner = banner.center(table_width + 5)

    typer.echo("\n\n" + centered_banner)


def extract_first_sentence(text: str) -> str:
    """Extract and truncate the first sentence of a description."""
    first_sentence = text.split(".")[0].strip()
    if len(first_sentence) > DESCRIPTION_FIRST_SENTENCE_LENGTH:
        first_sentence = first_sentence[:97] + "..."
    return first_sentence
