"""Exception types raised by the household finance engine."""

from __future__ import annotations

from typing import Optional


class FinanceError(Exception):
    """Base class for every error the dashboard surfaces to the user."""

    user_message = "Something went wrong. Please try again."


class ValidationError(FinanceError, ValueError):
    """A record was rejected before reaching the store."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return str(self)


class PersistenceError(FinanceError):
    """The record store failed to read or write."""

    user_message = "Could not save your changes. Check the connection and try again."


class ProtectedCategoryError(FinanceError):
    """System categories cannot be deleted."""

    user_message = "System categories cannot be deleted."


class AdviceError(FinanceError):
    """Base class for advice generator failures."""

    user_message = "The financial advice could not be generated right now. Try again later."


class AdviceConfigurationError(AdviceError):
    user_message = (
        "The advice generator is not configured. Set GEMINI_API_KEY to enable weekly reports."
    )


class AdviceCredentialError(AdviceError):
    user_message = (
        "The advice generator rejected the API key. Check that GEMINI_API_KEY is valid."
    )


class AdviceTimeoutError(AdviceError):
    user_message = "The advice generator took too long to answer. Try again in a moment."


class AdviceGenerationError(AdviceError):
    pass
