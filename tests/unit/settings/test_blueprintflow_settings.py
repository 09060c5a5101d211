import pytest
import yaml

from blueprintflow.constants import CommitPolicy
from blueprintflow.exceptions import SettingsError
from blueprintflow.settings import BlueprintFlowSettings


def test_defaults():
    """Test the default policies and file names."""
    settings = BlueprintFlowSettings()
    assert settings.continue_on_error is True
    assert settings.commit_policy is CommitPolicy.COMMIT_SUCCEEDED
    assert settings.dry_run is False
    assert settings.manifest_file == "package.json"
    assert settings.env_file == ".env"
    assert settings.env_example_file == ".env.example"
    assert settings.json_indent == 2


def test_settings_load_successful_load(tmp_path):
    """Load from YAML and ensure relative directories resolve against the file's directory."""
    settings_file = tmp_path / "blueprintflow.yaml"
    settings_file.write_text(
        yaml.dump(
            {
                "commit_policy": "all_or_nothing",
                "local_modifiers": "modifiers",
                "local_blueprints": ["blueprints", "/abs/blueprints"],
                "log_dir": "logs",
                "json_indent": 4,
            }
        )
    )

    settings = BlueprintFlowSettings.load(str(settings_file))

    assert settings.commit_policy is CommitPolicy.ALL_OR_NOTHING
    assert settings.local_modifiers == [str(tmp_path / "modifiers")]
    assert settings.local_blueprints == [str(tmp_path / "blueprints"), "/abs/blueprints"]
    assert settings.log_dir == str(tmp_path / "logs")
    assert settings.json_indent == 4
    assert settings.base_dir == tmp_path


def test_settings_load_file_not_found(tmp_path):
    """Test error when an explicit settings file doesn't exist."""
    with pytest.raises(SettingsError, match="Settings file not found"):
        BlueprintFlowSettings.load(str(tmp_path / "missing.yaml"))


def test_settings_load_without_default_file(tmp_path, monkeypatch):
    """Test that a missing default file falls back to defaults."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BLUEPRINTFLOW_SETTINGS", raising=False)
    settings = BlueprintFlowSettings.load()
    assert settings.base_dir is None
    assert settings.local_blueprints == ["blueprints"]


def test_settings_env_var_points_to_file(tmp_path, monkeypatch):
    settings_file = tmp_path / "custom.yaml"
    settings_file.write_text(yaml.dump({"dry_run": True}))
    monkeypatch.setenv("BLUEPRINTFLOW_SETTINGS", str(settings_file))
    assert BlueprintFlowSettings.load().dry_run is True


def test_environment_variables_fill_unset_keys(tmp_path, monkeypatch):
    """Test that BLUEPRINTFLOW_SETTINGS_* variables apply to keys the YAML file leaves out."""
    settings_file = tmp_path / "blueprintflow.yaml"
    settings_file.write_text(yaml.dump({"dry_run": True, "json_indent": 4}))
    monkeypatch.setenv("BLUEPRINTFLOW_SETTINGS_CONTINUE_ON_ERROR", "false")
    monkeypatch.setenv("BLUEPRINTFLOW_SETTINGS_JSON_INDENT", "8")

    settings = BlueprintFlowSettings.load(str(settings_file))

    assert settings.continue_on_error is False
    assert settings.json_indent == 4


def test_overrides_win(tmp_path):
    settings_file = tmp_path / "blueprintflow.yaml"
    settings_file.write_text(yaml.dump({"dry_run": False}))
    assert BlueprintFlowSettings.load(str(settings_file), dry_run=True).dry_run is True


@pytest.mark.parametrize(
    "content, message",
    [
        ("- a\n- b\n", "must contain a YAML dictionary"),
        ("commit_policy: sometimes\n", "Invalid settings"),
        ("unknown_option: 1\n", "Invalid settings"),
        ("log_level: LOUD\n", "Invalid settings"),
        ("key: [unclosed\n", "Failed to load settings"),
    ],
)
def test_invalid_settings_files(tmp_path, content, message):
    settings_file = tmp_path / "blueprintflow.yaml"
    settings_file.write_text(content)
    with pytest.raises(SettingsError, match=message):
        BlueprintFlowSettings.load(str(settings_file))
