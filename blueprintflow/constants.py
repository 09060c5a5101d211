from enum import StrEnum


class _NormalizedStrEnum(StrEnum):
    @classmethod
    def _missing_(cls, value: object) -> "StrEnum | None":
        """Handle underscore/hyphen and case variations for flexibility."""
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        return None


class ActionType(StrEnum):
    """
    Closed set of action kinds a blueprint may declare.

    Every member must have a handler registered in the ActionOrchestrator dispatch table.
    """

    CREATE_FILE = "CREATE_FILE"
    APPEND_TO_FILE = "APPEND_TO_FILE"
    PREPEND_TO_FILE = "PREPEND_TO_FILE"
    INSTALL_PACKAGES = "INSTALL_PACKAGES"
    ADD_SCRIPT = "ADD_SCRIPT"
    ADD_ENV_VAR = "ADD_ENV_VAR"
    RUN_COMMAND = "RUN_COMMAND"
    ENHANCE_FILE = "ENHANCE_FILE"
    MERGE_JSON = "MERGE_JSON"
    MERGE_CONFIG = "MERGE_CONFIG"
    ADD_TS_IMPORT = "ADD_TS_IMPORT"
    WRAP_CONFIG = "WRAP_CONFIG"
    EXTEND_SCHEMA = "EXTEND_SCHEMA"

    @classmethod
    def _missing_(cls, value: object) -> "ActionType | None":
        """Accept lower case and hyphenated spellings (e.g. 'create-file')."""
        if isinstance(value, str):
            normalized = value.strip().upper().replace("-", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class FallbackPolicy(_NormalizedStrEnum):
    """
    What ENHANCE_FILE does when its target exists neither in the workspace nor on disk.

    Attributes:
        CREATE: Run the modifier against absent input and write the output as a new file.
        SKIP: Do nothing and record a warning.
        ERROR: Fail the action without touching the workspace.
    """

    CREATE = "create"
    SKIP = "skip"
    ERROR = "error"


class WriteMode(_NormalizedStrEnum):
    """Workspace write primitives."""

    CREATE = "create"
    OVERWRITE = "overwrite"
    APPEND = "append"
    PREPEND = "prepend"


class EntryOrigin(_NormalizedStrEnum):
    """Where a workspace entry's current content came from."""

    PRELOADED = "preloaded"
    CREATED = "created"
    MODIFIED = "modified"


class CommitPolicy(_NormalizedStrEnum):
    """
    Decides whether a run that recorded errors still commits its workspace.

    Attributes:
        COMMIT_SUCCEEDED: Commit every file produced by the actions that did succeed.
        ALL_OR_NOTHING: Discard the whole workspace as soon as one error was recorded.
    """

    COMMIT_SUCCEEDED = "commit-succeeded"
    ALL_OR_NOTHING = "all-or-nothing"


class ExecutionState(_NormalizedStrEnum):
    """States a blueprint run moves through."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    PRELOADING = "preloading"
    EXECUTING = "executing"
    COMMITTING = "committing"
    COMMITTED = "committed"
    DISCARDED = "discarded"


class ErrorCategory(_NormalizedStrEnum):
    """Categories recorded on ErrorRecord. Only COMMIT is fatal for a run."""

    VALIDATION = "validation"
    MODIFIER = "modifier"
    FALLBACK = "fallback"
    COMMAND = "command"
    COMMIT = "commit"


class MergeStrategy(_NormalizedStrEnum):
    """Strategies understood by the json-merge modifier and MERGE_CONFIG."""

    DEEP = "deep"
    SHALLOW = "shallow"
    REPLACE = "replace"

    @classmethod
    def _missing_(cls, value: object) -> "MergeStrategy | None":
        """Also accept the 'deep-merge' / 'shallow-merge' spellings."""
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-").removesuffix("-merge")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class ImportKind(_NormalizedStrEnum):
    """Kinds of import declarations the module-enhancer modifier can add."""

    NAMED = "import"
    TYPE = "import type"
    NAMESPACE = "import * as"
    DEFAULT = "default"

    @classmethod
    def _missing_(cls, value: object) -> "ImportKind | None":
        if isinstance(value, str):
            normalized = " ".join(value.strip().lower().replace("_", " ").split())
            aliases = {"named": cls.NAMED, "type": cls.TYPE, "namespace": cls.NAMESPACE}
            if normalized in aliases:
                return aliases[normalized]
            for member in cls:
                if member.value == normalized:
                    return member
        return None


# Well-known files implied by semantic actions
BLUEPRINTFLOW_DEFAULT_MANIFEST_FILE = "package.json"
BLUEPRINTFLOW_DEFAULT_ENV_FILE = ".env"
BLUEPRINTFLOW_DEFAULT_ENV_EXAMPLE_FILE = ".env.example"

BLUEPRINTFLOW_DEFAULT_BLUEPRINTS_DIR = "blueprints"
BLUEPRINTFLOW_DEFAULT_MODIFIERS_DIR = "modifiers"
BLUEPRINTFLOW_DEFAULT_LOG_DIR = ".blueprintflow/logs"
BLUEPRINTFLOW_DEFAULT_SETTINGS_FILE = "blueprintflow.yaml"

# Supported blueprint file extensions
BLUEPRINTFLOW_SUPPORTED_BLUEPRINT_EXTENSIONS = (".yaml", ".yml", ".json")

# Version used for INSTALL_PACKAGES entries without an explicit '@version'
DEFAULT_PACKAGE_VERSION = "latest"

# Defaults applied to the execution context when the caller leaves them out
DEFAULT_PROJECT_VERSION = "0.1.0"
DEFAULT_PROJECT_LICENSE = "MIT"
DEFAULT_ENV_VALUES = {"NODE_ENV": "development", "USER": "user"}

# Prefix for environment variables exposed to templates through ExecutionContext.from_environ
BLUEPRINTFLOW_VAR_PREFIX = "BLUEPRINTFLOW_VAR_"

# Keywords in variable names that should be masked in logs and display
PROTECTED_KEYWORDS = [
    # Authentication
    "password",
    "passwd",
    "pwd",
    "secret",
    "token",
    "apikey",
    "api_key",
    "access_token",
    "auth_token",
    "authorization",
    "jwt",
    "bearer",
    "sessionid",
    "session_id",
    # Cloud credentials
    "aws_access_key_id",
    "aws_secret_access_key",
    "azure_client_secret",
    "gcp_credentials",
    "gcp_private_key",
    # Database
    "db_password",
    "db_pass",
    "database_url",
    "db_connection_string",
    # TLS / keys
    "private_key",
    "signing_key",
    "encryption_key",
    "client_secret",
    "webhook_secret",
    # Generic
    "credentials",
]
