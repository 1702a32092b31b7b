"""
Invitation error taxonomy.

Validation, permission, not-found and conflict errors are surfaced to the
caller verbatim. Provider and persistence errors wrap transport or store
failures.
"""

from __future__ import annotations


class InvitationError(Exception):
    """Base error for the invitation subsystem."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(InvitationError):
    """Malformed email address or role."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class PermissionDeniedError(InvitationError):
    """Caller cannot manage the board's invitations."""


class NotFoundError(InvitationError):
    """Invitation, board or user does not exist."""

    def __init__(self, resource: str, identifier: str | None = None) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found")


class ConflictError(InvitationError):
    """
    Invitation is in a state that forbids the requested transition.

    reason is one of "used", "expired" or "cooldown". For cooldown the
    remaining wait is carried in cooldown_remaining.
    """

    MESSAGES = {
        "used": "invitation has already been used",
        "expired": "invitation has expired",
    }

    def __init__(self, reason: str, cooldown_remaining: int | None = None) -> None:
        self.reason = reason
        self.cooldown_remaining = cooldown_remaining
        if reason == "cooldown":
            message = f"please wait {cooldown_remaining} seconds before resending"
        else:
            message = self.MESSAGES.get(reason, reason)
        super().__init__(message)


class ProviderError(InvitationError):
    """Mail transport failure."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class EmailNotConfiguredError(ProviderError):
    """No provider or sender address is available."""

    def __init__(self, message: str = "email service not configured") -> None:
        super().__init__(message)


class PersistenceError(InvitationError):
    """Store failure."""


class GenerationError(InvitationError):
    """Secure randomness source unavailable."""
