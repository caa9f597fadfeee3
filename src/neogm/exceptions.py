# src/neogm/exceptions.py
"""
neogm Exceptions

Every error raised by the mapping layer derives from ``OGMError`` so callers
can catch the whole family at once, or pick the precise failure they care
about.
"""

from typing import Optional


class OGMError(Exception):
    """Base class for all neogm errors."""


class GraphConnectionError(OGMError, ConnectionError):
    """
    Session or transaction setup failed.

    Raised when the engine is not connected, the server is unreachable, the
    session expired, or authentication was rejected. neogm does not retry it.
    """


class QueryError(OGMError):
    """
    The graph engine rejected a statement.

    The engine's message and status code are kept verbatim; the original
    driver exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class InvalidIdentifierError(QueryError):
    """A label, relationship type or property key is not safe to interpolate."""


class MappingError(OGMError):
    """A graph node could not be mapped onto an entity class."""


class NotFoundError(OGMError):
    """A single-entity read matched nothing."""


class MultipleResultsError(NotFoundError):
    """A single-entity read matched more than one root entity."""


class ModelRegistrationError(OGMError, TypeError):
    """The model registry was configured with an invalid entity."""
