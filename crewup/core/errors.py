"""
Error taxonomy shared by the cron, webhook and settings handlers.

Routes translate these into HTTP responses; services raise them and never
return error dictionaries.
"""


class CrewUpError(Exception):
    """Base class for every error raised by CrewUp services."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthorizationError(CrewUpError):
    """Missing or wrong shared secret, signature, or entitlement."""


class ValidationError(CrewUpError):
    """Input is well-formed but not acceptable (missing metadata, unknown price ID, bad radius)."""


class NotFoundError(CrewUpError):
    """A row the operation depends on does not exist."""


class TransportError(CrewUpError):
    """An upstream datastore or payment-provider call failed."""
