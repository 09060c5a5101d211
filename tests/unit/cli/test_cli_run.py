import json

import pytest

from blueprintflow.cli.entrypoint import app
from blueprintflow.cli.exceptions import CLIRunError
from blueprintflow.cli.run import build_context, parse_key_value_pairs, process_value, resolve_blueprint
from blueprintflow.models import BlueprintModel
from blueprintflow.settings import BlueprintFlowSettings


@pytest.fixture
def scaffold_blueprint(write_blueprint):
    return write_blueprint(
        {
            "id": "scaffold",
            "name": "Scaffold",
            "actions": [
                {"type": "CREATE_FILE", "path": "a.txt", "content": "a\n"},
                {"type": "CREATE_FILE", "path": "package.json", "content": "{}"},
                {"type": "CREATE_FILE", "path": "b.txt", "content": "b\n"},
            ],
        }
    )


class TestProcessValue:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("True", True),
            ("3000", 3000),
            ("['auth', 'db']", ["auth", "db"]),
            ("auth,db", ["auth", "db"]),
            ("tailwind", "tailwind"),
        ],
    )
    def test_process_value(self, raw, expected):
        assert process_value(raw) == expected


class TestParseKeyValuePairs:
    def test_mixed_values(self):
        parsed = parse_key_value_pairs("typescript=True, styling='tailwind', features=['auth','db']", "params")
        assert parsed == {"typescript": True, "styling": "tailwind", "features": ["auth", "db"]}

    def test_nested_dict(self):
        assert parse_key_value_pairs("integration={'name': 'sentry'}", "vars") == {"integration": {"name": "sentry"}}

    def test_empty(self):
        assert parse_key_value_pairs(None, "params") == {}

    def test_missing_equals(self):
        with pytest.raises(CLIRunError, match="Invalid params format: oops"):
            parse_key_value_pairs("oops", "params")


class TestHelpers:
    def test_build_context(self, tmp_path):
        blueprint = BlueprintModel.from_dict({"id": "sentry", "name": "Sentry", "version": "2.0.0"})
        context = build_context(tmp_path, blueprint, framework="nextjs", params={"dsn": "x"}, extra_vars={"db": {}})

        assert context.project.name == tmp_path.name
        assert context.project.framework == "nextjs"
        assert context.module.id == "sentry"
        assert context.module.version == "2.0.0"
        assert context.module.parameters == {"dsn": "x"}
        assert context.extras == {"db": {}}

    def test_resolve_blueprint_by_path(self, scaffold_blueprint):
        assert resolve_blueprint(str(scaffold_blueprint), BlueprintFlowSettings()).id == "scaffold"

    def test_resolve_blueprint_by_name(self, blueprints_settings):
        settings = BlueprintFlowSettings.load(str(blueprints_settings))
        assert resolve_blueprint("left-pad", settings).name == "Left Pad"

    def test_resolve_unknown_blueprint(self):
        with pytest.raises(CLIRunError, match="Blueprint 'nope' not found"):
            resolve_blueprint("nope", BlueprintFlowSettings(local_blueprints=[]))


class TestRunCommand:
    def test_run_blueprint_file(self, cli_runner, project_dir, write_blueprint):
        """Test that 'run' applies a blueprint file to the project."""
        blueprint = write_blueprint(
            {
                "id": "left-pad",
                "name": "Left Pad",
                "actions": [{"type": "INSTALL_PACKAGES", "packages": ["left-pad@^1.3.0"]}],
            }
        )
        result = cli_runner.invoke(app, ["run", str(blueprint), "--project", str(project_dir)])

        assert result.exit_code == 0, result.output
        data = json.loads((project_dir / "package.json").read_text())
        assert data["dependencies"]["left-pad"] == "^1.3.0"

    def test_run_cataloged_blueprint(self, cli_runner, project_dir, blueprints_settings):
        result = cli_runner.invoke(
            app, ["--settings", str(blueprints_settings), "run", "left-pad", "-p", str(project_dir)]
        )
        assert result.exit_code == 0, result.output
        assert "left-pad" in json.loads((project_dir / "package.json").read_text())["dependencies"]

    def test_params_reach_templates(self, cli_runner, project_dir, write_blueprint):
        blueprint = write_blueprint(
            {
                "id": "region",
                "name": "Region",
                "actions": [
                    {
                        "type": "CREATE_FILE",
                        "path": "region.txt",
                        "content": "{{ module.parameters.region }} {{ project.name }} {{ deploy.target }}\n",
                    }
                ],
            }
        )
        result = cli_runner.invoke(
            app,
            [
                "run",
                str(blueprint),
                "-p",
                str(project_dir),
                "--name",
                "shop",
                "--params",
                "region='eu-west-1'",
                "--vars",
                "deploy={'target': 'vercel'}",
            ],
        )

        assert result.exit_code == 0, result.output
        assert (project_dir / "region.txt").read_text() == "eu-west-1 shop vercel\n"

    def test_dry_run(self, cli_runner, project_dir, scaffold_blueprint):
        result = cli_runner.invoke(app, ["run", str(scaffold_blueprint), "-p", str(project_dir), "--dry-run"])

        assert result.exit_code == 1
        assert not (project_dir / "a.txt").exists()
        assert not (project_dir / "b.txt").exists()

    def test_failed_action_exit_code(self, cli_runner, project_dir, scaffold_blueprint):
        """Test that a run with errors commits what succeeded and exits with 1."""
        result = cli_runner.invoke(app, ["run", str(scaffold_blueprint), "-p", str(project_dir)])

        assert result.exit_code == 1
        assert (project_dir / "a.txt").exists()
        assert (project_dir / "b.txt").exists()

    def test_fail_fast(self, cli_runner, project_dir, scaffold_blueprint):
        result = cli_runner.invoke(app, ["run", str(scaffold_blueprint), "-p", str(project_dir), "--fail-fast"])

        assert result.exit_code == 1
        assert (project_dir / "a.txt").exists()
        assert not (project_dir / "b.txt").exists()
        assert "Action #2 (CREATE_FILE) not executed" in result.output

    def test_all_or_nothing(self, cli_runner, project_dir, scaffold_blueprint):
        result = cli_runner.invoke(
            app, ["run", str(scaffold_blueprint), "-p", str(project_dir), "--all-or-nothing"]
        )

        assert result.exit_code == 1
        assert not (project_dir / "a.txt").exists()

    def test_missing_project_dir(self, cli_runner, tmp_path, scaffold_blueprint):
        result = cli_runner.invoke(app, ["run", str(scaffold_blueprint), "-p", str(tmp_path / "missing")])
        assert result.exit_code == 102

    def test_unknown_blueprint(self, cli_runner, project_dir):
        result = cli_runner.invoke(app, ["run", "does-not-exist", "-p", str(project_dir)])
        assert result.exit_code == 102

    def test_invalid_blueprint_file(self, cli_runner, project_dir, tmp_path):
        broken = tmp_path / "broken.yaml"
        broken.write_text("- just\n- a list\n")

        result = cli_runner.invoke(app, ["run", str(broken), "-p", str(project_dir)])
        assert result.exit_code == 102

    def test_missing_settings_file(self, cli_runner, project_dir, scaffold_blueprint, tmp_path):
        result = cli_runner.invoke(
            app, ["--settings", str(tmp_path / "nope.yaml"), "run", str(scaffold_blueprint), "-p", str(project_dir)]
        )
        assert result.exit_code == 102
