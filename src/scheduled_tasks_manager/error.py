# scheduled_tasks_manager/error.py
"""Custom exceptions for the Scheduled Tasks Manager.

All application errors derive from `STMError` so callers can catch the whole
family with a single clause. The history and result-code engines never raise
these for data-quality problems; they are raised by the collaborators that
talk to the operating system, by the configuration layer, and by the API
layer's argument validation.
"""


class STMError(Exception):
    """Base class for all Scheduled Tasks Manager errors."""

    pass


class ConfigurationError(STMError):
    """Raised when the configuration file cannot be read, written or created."""

    pass


class UserInputError(STMError, ValueError):
    """Raised when a caller supplies an invalid value."""

    pass


class MissingArgumentError(UserInputError):
    """Raised when a required argument is empty or missing."""

    pass


class FileOperationError(STMError):
    """Raised when a file cannot be read or written."""

    pass


class AppFileNotFoundError(FileOperationError, FileNotFoundError):
    """Raised when an expected file does not exist."""

    def __init__(self, file_path: str, description: str = "Required file"):
        self.file_path = file_path
        self.description = description
        super().__init__(f"{description} not found at path: {file_path}")


class CommandNotFoundError(STMError):
    """Raised when a required system command is not available."""

    def __init__(self, command_name: str, message: str = "Command not found"):
        self.command_name = command_name
        self.message = message
        super().__init__(f"{message}: {command_name}")


class SystemError(STMError):
    """Raised when an operation is not supported on the current platform."""

    pass


class EventLogError(STMError):
    """Raised when the task event log cannot be queried or parsed."""

    pass


class TaskQueryError(STMError):
    """Raised when querying a scheduled task's status fails."""

    pass
