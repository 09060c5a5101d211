import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from blueprintflow.constants import (
    BLUEPRINTFLOW_DEFAULT_BLUEPRINTS_DIR,
    BLUEPRINTFLOW_DEFAULT_ENV_EXAMPLE_FILE,
    BLUEPRINTFLOW_DEFAULT_ENV_FILE,
    BLUEPRINTFLOW_DEFAULT_MANIFEST_FILE,
    BLUEPRINTFLOW_DEFAULT_MODIFIERS_DIR,
    BLUEPRINTFLOW_DEFAULT_SETTINGS_FILE,
    CommitPolicy,
)
from blueprintflow.exceptions import SettingsError


class BlueprintFlowSettings(BaseSettings):
    """
    BlueprintFlow settings management using Pydantic.

    Settings are loaded with the following priority (highest to lowest):
    1. Overrides passed to ``load``
    2. Values from settings YAML file
    3. Environment variables (prefixed with BLUEPRINTFLOW_SETTINGS_)
    4. Default values defined in the model

    Per-run arguments given to BlueprintExecutor.run override all of the above.

    Environment variable examples:
    - BLUEPRINTFLOW_SETTINGS_CONTINUE_ON_ERROR=false
    - BLUEPRINTFLOW_SETTINGS_COMMIT_POLICY=all-or-nothing
    - BLUEPRINTFLOW_SETTINGS_LOCAL_MODIFIERS=["modifiers", "custom_modifiers"]
    """

    model_config = SettingsConfigDict(
        env_prefix="BLUEPRINTFLOW_SETTINGS_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="forbid",
    )

    continue_on_error: bool = Field(
        default=True, description="Keep executing later actions after an action records an error"
    )
    commit_policy: CommitPolicy = Field(
        default=CommitPolicy.COMMIT_SUCCEEDED,
        description="Whether a run with errors commits what succeeded or discards everything",
    )
    dry_run: bool = Field(default=False, description="Never commit; report the files that would change")
    manifest_file: str = Field(
        default=BLUEPRINTFLOW_DEFAULT_MANIFEST_FILE,
        description="Project manifest touched by INSTALL_PACKAGES and ADD_SCRIPT",
    )
    env_file: str = Field(default=BLUEPRINTFLOW_DEFAULT_ENV_FILE, description="Environment file for ADD_ENV_VAR")
    env_example_file: str = Field(
        default=BLUEPRINTFLOW_DEFAULT_ENV_EXAMPLE_FILE,
        description="Example environment file, updated by ADD_ENV_VAR only when it already exists",
    )
    encoding: str = Field(default="utf-8", description="Text encoding for every read and write")
    json_indent: int = Field(default=2, ge=0, description="Indentation of JSON files written by modifiers")
    local_modifiers: list[str] = Field(
        default_factory=list, description="Directories scanned for custom Modifier subclasses"
    )
    local_blueprints: list[str] = Field(
        default=[BLUEPRINTFLOW_DEFAULT_BLUEPRINTS_DIR],
        description="Directories scanned for blueprint files (CLI catalog)",
    )
    log_dir: str | None = Field(default=None, description="When set, each run logs to a file in this directory")
    log_level: str = Field(default="INFO", description="Level used for the per-run log file")

    _base_dir: Path | None = PrivateAttr(default=None)
    _settings_file: str | None = PrivateAttr(default=None)

    @field_validator("commit_policy", mode="before")
    @classmethod
    def validate_commit_policy(cls, v: Any) -> CommitPolicy:
        """Convert string to CommitPolicy enum."""
        if isinstance(v, str):
            try:
                return CommitPolicy(v)
            except ValueError as e:
                raise ValueError(
                    f"Invalid commit policy: {v}. Must be one of: {', '.join(p.value for p in CommitPolicy)}"
                ) from e
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("local_modifiers", "local_blueprints", mode="before")
    @classmethod
    def validate_dir_list(cls, v: Any) -> list[str]:
        """Accept a single directory as a string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    def resolve_relative_paths(self) -> "BlueprintFlowSettings":
        """Resolve relative directory settings against the base directory."""
        base_dir = self.base_dir
        if not base_dir:
            return self

        for field_name in ("local_modifiers", "local_blueprints"):
            resolved: list[str] = []
            for dir_path in getattr(self, field_name):
                path = Path(dir_path)
                resolved.append(str(path if path.is_absolute() else base_dir / path))
            setattr(self, field_name, resolved)

        if self.log_dir and not Path(self.log_dir).is_absolute():
            self.log_dir = str(base_dir / self.log_dir)

        return self

    @classmethod
    def load(
        cls, settings_file: str | None = None, base_dir: Path | None = None, **overrides: Any
    ) -> "BlueprintFlowSettings":
        """
        Load settings from a YAML file with automatic resolution and overrides.

        Settings file resolution priority (highest to lowest):
        1. Explicit settings_file parameter
        2. BLUEPRINTFLOW_SETTINGS environment variable
        3. Default "blueprintflow.yaml" in the current directory

        Unlike an explicitly requested file, a missing default file is not an error:
        defaults (plus environment variables and overrides) are used instead.

        Args:
            settings_file: Path to settings YAML file.
            base_dir: Base directory for resolving relative paths. If None, uses the
                directory containing the resolved settings file.
            **overrides: Additional settings to override YAML values. Example: dry_run=True

        Returns:
            BlueprintFlowSettings instance with all paths resolved.

        Raises:
            SettingsError: If an explicit settings file is missing or contains invalid data.
        """
        explicit_file = settings_file or os.getenv("BLUEPRINTFLOW_SETTINGS")
        resolved_file = explicit_file or BLUEPRINTFLOW_DEFAULT_SETTINGS_FILE
        settings_path = Path(resolved_file).resolve()

        yaml_data: Any = {}
        if settings_path.exists():
            try:
                with settings_path.open() as f:
                    yaml_data = yaml.safe_load(f) or {}
            except Exception as e:
                raise SettingsError(f"Failed to load settings from {resolved_file}: {e}") from e

            if not isinstance(yaml_data, dict):
                raise SettingsError(
                    f"Settings file must contain a YAML dictionary, got {type(yaml_data).__name__}"
                )
        elif explicit_file:
            raise SettingsError(
                f"Settings file not found: {resolved_file}\n"
                f"Resolved to absolute path: {settings_path}\n"
                f"Current working directory: {Path.cwd()}"
            )

        try:
            instance = cls(**{**yaml_data, **overrides})
        except ValueError as e:
            raise SettingsError(f"Invalid settings in {resolved_file}: {e}") from e

        if settings_path.exists():
            instance._settings_file = str(settings_path)
        instance._base_dir = base_dir or (settings_path.parent if settings_path.exists() else None)

        return instance.resolve_relative_paths()

    @property
    def as_dict(self) -> dict[str, Any]:
        """Get settings as a dictionary."""
        return self.model_dump()

    @property
    def base_dir(self) -> Path | None:
        """Get the base directory for resolving relative paths if available."""
        if self._base_dir:
            return self._base_dir
        if self._settings_file:
            return Path(self._settings_file).parent
        return None

    @property
    def settings_file(self) -> str | None:
        return self._settings_file

    def __str__(self) -> str:
        return str(self.as_dict)
