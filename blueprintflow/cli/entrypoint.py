import typer

from blueprintflow.cli import analyze, run, show

app = typer.Typer(
    help="BlueprintFlow applies declarative blueprints to existing projects, all-or-nothing per file.",
    add_completion=False,
)


def settings_callback(ctx: typer.Context, settings: str | None = None) -> None:
    """
    Priority order (highest to lowest):
    1. --settings CLI argument
    2. BLUEPRINTFLOW_SETTINGS environment variable (handled by BlueprintFlowSettings.load)
    3. Default blueprintflow.yaml (handled by BlueprintFlowSettings.load)
    """
    ctx.obj = {"settings": settings if settings else ""}


@app.callback()
def main(
    ctx: typer.Context,
    settings: str | None = typer.Option(None, "--settings", "-s", help="Specify a path to a custom settings file."),
) -> None:
    settings_callback(ctx, settings)


app.command()(run.run)
app.command()(analyze.analyze)
app.command()(show.show)

if __name__ == "__main__":
    app()
