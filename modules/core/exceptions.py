"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
Library code raises these; CLI commands turn them into an error line on
stderr and a non-zero exit.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class UsageError(ApplicationError):
    """Raised when command-line input is malformed or contradictory."""

    def __init__(self, message: str = "Invalid usage") -> None:
        super().__init__(message, code="CLI_USAGE_ERROR")


class ConfigurationError(ApplicationError):
    """Raised when configuration needed by a command is missing."""

    def __init__(self, message: str = "Configuration error") -> None:
        super().__init__(message, code="SYS_CONFIGURATION_ERROR")


class QueryResponseError(ApplicationError):
    """Raised when a query response carries a request-level error."""

    def __init__(self, message: str = "Query failed") -> None:
        super().__init__(message, code="QRY_RESPONSE_ERROR")


class ExternalServiceError(ApplicationError):
    """Raised when an external service call fails."""

    def __init__(self, message: str = "External service error") -> None:
        super().__init__(message, code="SYS_EXTERNAL_SERVICE_ERROR")
