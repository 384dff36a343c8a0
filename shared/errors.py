"""Error taxonomy of the retrieval and caching pipeline.

Scorer- and cache-level errors are absorbed close to where they occur and
degrade functionality. Chunking, sync and retrieval errors are surfaced to
the caller of the current request.
"""


class BridgeError(Exception):
    """Base class for all errors raised by this application."""


class InvalidConfig(BridgeError):
    """Raised for invalid chunking or retrieval parameters."""


class InvalidDocument(BridgeError):
    """Raised when an uploaded file is rejected (type, size, encoding)."""


class DocumentNotFound(BridgeError):
    """Raised when a document is not present in storage."""


class ScorerUnavailable(BridgeError):
    """Raised by a single ranking source (lexical or semantic) that failed."""


class RetrievalUnavailable(BridgeError):
    """Raised when no ranking source could produce a result."""


class SyncFailed(BridgeError):
    """Raised when the vector index could not be made consistent with a document."""


class CacheUnavailable(BridgeError):
    """Raised by cache engines when the backing store cannot be reached."""


class AnswerGenerationFailed(BridgeError):
    """Raised when the language model could not produce an answer."""
