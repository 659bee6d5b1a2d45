"""
Unified exception hierarchy for the household budget engine.

This module defines the exception hierarchy with HouseholdBudgetError as the
base exception, allowing callers to catch every engine failure in one place
while still distinguishing caller bugs (invalid windows) from storage or
configuration problems.
"""

from typing import Optional


class HouseholdBudgetError(Exception):
    """
    Base exception class for all household budget errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ) -> None:
        """
        Initialize HouseholdBudgetError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class ConfigError(HouseholdBudgetError):
    """Raised when configuration loading or validation fails."""
    pass


class DatabaseError(HouseholdBudgetError):
    """Raised when the data-access layer cannot load or store records."""
    pass


class BudgetError(HouseholdBudgetError):
    """Raised when a budget computation cannot produce a result."""
    pass


class InvalidWindowError(BudgetError):
    """
    Raised for malformed reporting windows.

    Covers zero or negative window lengths, non-integer lengths, unknown
    window modes and month keys that cannot be parsed.
    """
    pass


class ReportError(HouseholdBudgetError):
    """Raised when report formatting or export fails."""
    pass
