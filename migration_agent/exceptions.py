"""
Custom exceptions for the migration agent.

Cursor operations never raise for missing or empty state; these exceptions
cover failures of the collaborators the agent talks to (state stores,
query engines) and invalid configuration.
"""


class MigrationAgentError(Exception):
    """Base exception for all migration agent errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StateStoreError(MigrationAgentError):
    """Raised when a state store read, write or decode fails."""

    def __init__(
        self,
        operation: str,
        key: str | None = None,
        path: str | None = None,
        cause: Exception | None = None,
    ):
        details = {"operation": operation}
        if key:
            details["key"] = key
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"State store error during {operation}"
        if key:
            message += f" ({key})"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.key = key
        self.path = path
        self.cause = cause


class ItemQueryError(MigrationAgentError):
    """Raised when the item selection query cannot be executed."""

    def __init__(self, reason: str, cause: Exception | None = None):
        details: dict = {"reason": reason}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Item query failed: {reason}", details)
        self.reason = reason
        self.cause = cause


class ConfigurationError(MigrationAgentError):
    """Raised when configuration or migration options are invalid."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Invalid configuration for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value
