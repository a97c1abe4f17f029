"""cfize exceptions."""

from typing import List, Optional
from dataclasses import dataclass


@dataclass
class ValidationError:
    """Single configuration problem."""
    message: str
    path: str = ""


class CfizeError(Exception):
    """Base class for every error raised by cfize."""


class InputTypeError(CfizeError, TypeError):
    """Raised when template text or a join element has the wrong type."""


class ConfigurationError(CfizeError, ValueError):
    """Raised when a capture pattern or builder option is invalid or missing.

    Carries the individual validation errors so callers loading options
    from files can report all of them at once.
    """

    def __init__(self, message: Optional[str] = None, errors: Optional[List[ValidationError]] = None):
        self.errors = list(errors or [])
        if message is None:
            message = "\n".join(
                f"Configuration error: {error.message}" for error in self.errors
            )
        super().__init__(message)


class EvaluationError(CfizeError):
    """Raised when an embedded directive cannot be parsed or evaluated."""

    def __init__(self, message: str, directive: Optional[str] = None):
        self.directive = directive
        if directive is not None:
            message = f"{message} (in directive {directive!r})"
        super().__init__(message)
