# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Errors raised by the proposal token engine.

Every error is raised synchronously at the point of violation and is never
retried internally. Callers decide whether to correct input, fall back to
another flow, or issue a fresh token.
"""


class ProposalError(Exception):
    """Base class for proposal token errors."""


class ValidationFailed(ProposalError):
    """One or more fields failed validation.

    Attributes:
        errors: (field, message) pairs in the order they were found.
    """

    def __init__(self, errors: list[tuple[str, str]]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.full_messages) or "validation failed")

    @property
    def messages(self) -> list[str]:
        return [message for _, message in self.errors]

    @property
    def full_messages(self) -> list[str]:
        """Messages prefixed with their field name, e.g. "arguments is missing b"."""
        return [f"{field} {message}" for field, message in self.errors]

    def for_field(self, field: str) -> list[str]:
        return [message for name, message in self.errors if name == field]


class TargetRecordNotFound(ProposalError):
    """No record of the proposable type matches the token's email."""


class TokenExpired(ProposalError):
    """Strict accept attempted at or after expires_at."""

    def __init__(self, message: str = "token has expired") -> None:
        super().__init__(message)


class TokenAlreadyAccepted(ProposalError):
    """Strict accept attempted on a token that was already accepted."""

    def __init__(self, message: str = "token has been used") -> None:
        super().__init__(message)


class ReminderNotApplicable(ProposalError):
    """Strict remind attempted when the token's action is not remind."""

    def __init__(self, message: str = "proposal has not been made") -> None:
        super().__init__(message)


class InvalidExpiryInput(ProposalError, TypeError):
    """A non-callable was given where an expiry callable is required."""


class UnknownProposableType(ProposalError, LookupError):
    """The registry or repository has no lookup for this type name."""
