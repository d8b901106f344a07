"""
Error taxonomy for the question-to-SQL pipeline.

Every stage raises a subclass of Text2SQLError. Errors reported by the
database while executing generated SQL are not exceptions; they travel as
``DatabaseError`` data inside an ``ExecutionResult``.
"""


class Text2SQLError(RuntimeError):
    """Base class for pipeline failures."""


class ConfigurationError(Text2SQLError):
    """A required setting (usually an API key) is missing."""


class CatalogError(Text2SQLError):
    """Live schema introspection failed."""


class EmbeddingError(Text2SQLError):
    """The embedding service did not return a vector."""


class RetrievalError(Text2SQLError):
    """Similarity search over the schema documentation failed."""


class GenerationError(Text2SQLError):
    """The completion service returned no usable text."""


class ExecutionError(Text2SQLError):
    """The database could not be reached to execute a statement."""


class GatewayUnavailableError(Text2SQLError):
    """Transport-level database failure (connection refused, timeout, ...)."""
