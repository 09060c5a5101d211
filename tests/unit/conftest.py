import json

import pytest

from blueprintflow.executor import BlueprintExecutor
from blueprintflow.models import ExecutionContext
from blueprintflow.modifiers import ModifierRegistry
from blueprintflow.settings import BlueprintFlowSettings
from blueprintflow.workspace import VirtualWorkspace


@pytest.fixture
def project_dir(tmp_path):
    """Create a small project with a manifest, an env file and a Next.js style config."""
    project = tmp_path / "project"
    project.mkdir()
    (project / "package.json").write_text(
        json.dumps({"name": "demo-app", "version": "1.0.0", "dependencies": {"next": "14.0.0"}}, indent=2) + "\n"
    )
    (project / ".env").write_text("# Local settings\nNODE_ENV=development\n")
    (project / "next.config.mjs").write_text(
        "/** @type {import('next').NextConfig} */\n"
        "const nextConfig = {\n"
        "  reactStrictMode: true,\n"
        "};\n"
        "\n"
        "export default nextConfig;\n"
    )
    return project


@pytest.fixture
def settings():
    """Settings with defaults only, independent of any blueprintflow.yaml around the test run."""
    return BlueprintFlowSettings()


@pytest.fixture
def registry():
    return ModifierRegistry.with_builtins()


@pytest.fixture
def workspace(project_dir):
    return VirtualWorkspace("test-run", project_dir)


@pytest.fixture
def context(project_dir):
    """Execution context for a TypeScript Next.js project."""
    return ExecutionContext(
        project={"name": "demo-app", "path": str(project_dir), "framework": "nextjs"},
        module={"id": "sentry", "version": "1.0.0", "parameters": {"typescript": True, "dsn": "https://key@sentry.io/1"}},
        env={"NODE_ENV": "development"},
        extras={"integration": {"name": "sentry"}},
    )


@pytest.fixture
def executor(settings):
    return BlueprintExecutor(settings=settings)


@pytest.fixture
def left_pad_blueprint():
    """Blueprint installing a single dependency."""
    return {
        "id": "left-pad",
        "name": "Left Pad",
        "description": "Installs left-pad",
        "actions": [{"type": "INSTALL_PACKAGES", "packages": ["left-pad@^1.3.0"]}],
    }
