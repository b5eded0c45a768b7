class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when an owner acts on something that is not theirs."""


class InfrastructureError(Exception):
    """Raised when the database (or another shared resource) is unreachable.

    The only failure that aborts a whole batch.
    """


class NotificationError(Exception):
    """Base class for per-recipient delivery problems."""


class ProviderUnavailable(NotificationError):
    """The channel is not configured (or its credentials are rejected)."""


class SendFailure(NotificationError):
    """A provider accepted the call but the message was not delivered."""


class TransientSendFailure(SendFailure):
    """Timeout, rate limit, 5xx: the next scheduled pass may succeed."""


class PermanentSendFailure(SendFailure):
    """Invalid recipient, 4xx: retrying the same contact will not help."""


class TemplateNotFound(NotificationError):
    """No stored template for a type; callers fall back to the built-in one."""


class RecipientUnusable(NotificationError):
    """A guardian has no contact for the preferred channel."""
