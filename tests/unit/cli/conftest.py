import pytest
import yaml
from typer.testing import CliRunner


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every CLI test from an empty directory so no blueprintflow.yaml is picked up."""
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    monkeypatch.delenv("BLUEPRINTFLOW_SETTINGS", raising=False)
    return cwd


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def write_blueprint(tmp_path):
    """Write a blueprint dict as YAML and return its path."""

    def _write(data, name="blueprint.yaml", directory=None):
        target_dir = directory or tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    return _write


@pytest.fixture
def blueprints_settings(tmp_path, write_blueprint):
    """Settings file whose blueprint catalog holds a single 'left-pad' blueprint."""
    blueprints_dir = tmp_path / "blueprints"
    write_blueprint(
        {
            "id": "left-pad",
            "name": "Left Pad",
            "description": "Installs left-pad. Nothing else.",
            "actions": [{"type": "INSTALL_PACKAGES", "packages": ["left-pad@^1.3.0"]}],
        },
        name="left-pad.yaml",
        directory=blueprints_dir,
    )
    settings_file = tmp_path / "blueprintflow.yaml"
    settings_file.write_text(yaml.safe_dump({"local_blueprints": [str(blueprints_dir)]}))
    return settings_file
