"""Exception hierarchy for the indexing, retrieval and prompting pipelines.

Service failures (``ServiceError`` subclasses) are transient and reported to
the caller without retry. Data errors (``EmptyDocument``, ``NoMatch``,
``MalformedPayload``, ``EmptyCompletion``) are always raised, never replaced
by an empty value.
"""


class RagError(Exception):
    """Base class for every error raised by tablerag."""


class ConfigurationError(RagError):
    """Missing credentials, unknown backend, or vector settings mismatch."""


class DocumentLoadError(RagError, OSError):
    """A source document could not be read."""


class DocumentNotFound(DocumentLoadError):
    """The source document path does not exist."""


class ServiceError(RagError):
    """An external service call failed or timed out."""


class EmbeddingFailed(ServiceError):
    pass


class StoreWriteFailed(ServiceError):
    pass


class StoreSearchFailed(ServiceError):
    pass


class CollectionInitFailed(ServiceError):
    pass


class CompletionFailed(ServiceError):
    pass


class EmptyDocument(RagError):
    """A document with no rows cannot be indexed."""


class NoMatch(RagError):
    """The similarity search returned no points."""


class MalformedPayload(RagError):
    """A stored payload lacks the expected fields."""


class EmptyCompletion(RagError):
    """The completion service returned no usable text."""
