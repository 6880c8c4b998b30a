"""Domain errors raised by devrun operations."""


class RunError(Exception):
    """Raised when an orchestrated operation cannot complete.

    Attributes:
        message: Short human-readable description
        details: Optional extra context (usually captured stderr)
    """

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class MetaConfigError(RunError):
    """Raised when a meta.json file is unreadable or fails validation."""
