from __future__ import annotations


class ScreenerError(Exception):
    """Base class for errors the application reports to the user."""


class ExtractionError(ScreenerError):
    """The PDF could not be read or holds too little text to evaluate."""


class GatewayError(ScreenerError):
    """The LLM call failed or produced no usable result."""


class ShapeError(GatewayError):
    """The LLM returned content that does not decode into an analysis result."""


class PersistenceError(ScreenerError):
    """A write or read against the remote store failed."""


class AuthError(ScreenerError):
    """Unknown username or wrong password."""


class AccessDeniedError(ScreenerError):
    """The signed-in user lacks the role the operation requires."""
