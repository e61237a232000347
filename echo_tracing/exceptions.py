"""Exceptions that end the process.

Client-facing HTTP errors are plain Starlette ``HTTPException``s; the classes
here cover the failures the entry point turns into a non-zero exit status.
"""


class EchoTracingError(Exception):
    """Base exception for fatal service errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ExporterConfigError(EchoTracingError):
    """Raised when the span exporter cannot be built from the environment."""


class ServerError(EchoTracingError):
    """Raised when the HTTP listener stops without a shutdown request."""
