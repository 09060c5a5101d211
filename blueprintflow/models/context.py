import os
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from blueprintflow.constants import (
    BLUEPRINTFLOW_VAR_PREFIX,
    DEFAULT_ENV_VALUES,
    DEFAULT_PROJECT_LICENSE,
    DEFAULT_PROJECT_VERSION,
)


class ProjectInfo(BaseModel):
    """Project metadata exposed to templates as ``project.*``. Extra keys are allowed."""

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = ""
    path: str = ""
    framework: str = ""
    description: str = ""
    author: str = ""
    version: str = DEFAULT_PROJECT_VERSION
    license: str = DEFAULT_PROJECT_LICENSE


class ModuleInfo(BaseModel):
    """The invoking module, exposed to templates as ``module.*``."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = ""
    category: str = ""
    version: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)


class ExecutionContext(BaseModel):
    """
    Immutable snapshot used to resolve templates and conditions for one blueprint run.

    ``extras`` holds additional top-level namespaces (for example ``integration``).
    """

    model_config = ConfigDict(frozen=True)

    project: ProjectInfo = Field(default_factory=ProjectInfo)
    module: ModuleInfo = Field(default_factory=ModuleInfo)
    env: dict[str, str] = Field(default_factory=dict)
    extras: dict[str, Any] = Field(default_factory=dict)

    @field_validator("extras")
    @classmethod
    def validate_extras(cls, v: dict[str, Any]) -> dict[str, Any]:
        reserved = {"project", "module", "env"} & set(v)
        if reserved:
            raise ValueError(f"extras cannot redefine reserved namespaces: {', '.join(sorted(reserved))}")
        return v

    def template_vars(self) -> Mapping[str, Any]:
        """Read-only mapping of every namespace available to templates."""
        return MappingProxyType(
            {
                **self.extras,
                "project": self.project.model_dump(),
                "module": self.module.model_dump(),
                "env": dict(self.env),
            }
        )

    @classmethod
    def from_environ(
        cls,
        project: ProjectInfo | Mapping[str, Any] | None = None,
        module: ModuleInfo | Mapping[str, Any] | None = None,
        extras: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "ExecutionContext":
        """
        Build a context whose ``env`` namespace is taken from the process environment.

        Only variables prefixed with BLUEPRINTFLOW_VAR_ (prefix stripped) are exposed,
        plus NODE_ENV and USER, which fall back to defaults when unset.
        """
        environ = os.environ if environ is None else environ
        env = {key: environ.get(key, default) for key, default in DEFAULT_ENV_VALUES.items()}
        for key, value in environ.items():
            if key.startswith(BLUEPRINTFLOW_VAR_PREFIX) and len(key) > len(BLUEPRINTFLOW_VAR_PREFIX):
                env[key[len(BLUEPRINTFLOW_VAR_PREFIX) :]] = value

        return cls(
            project=dict(project) if isinstance(project, Mapping) else (project or ProjectInfo()),
            module=dict(module) if isinstance(module, Mapping) else (module or ModuleInfo()),
            env=env,
            extras=dict(extras or {}),
        )
