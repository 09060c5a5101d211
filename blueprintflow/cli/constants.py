from pathlib import Path

# Directory where the user is running the CLI from
CWD = Path.cwd()

# Table rendering parameters
DESCRIPTION_FIRST_SENTENCE_LENGTH = 100

# Exit codes of 'blueprintflow run'
EXIT_RUN_FAILED = 1
EXIT_BLUEPRINTFLOW_ERROR = 102
EXIT_FILE_NOT_FOUND = 103
EXIT_PERMISSION_DENIED = 104
EXIT_UNEXPECTED_ERROR = 105
