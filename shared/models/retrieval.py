"""Pydantic models for ranked retrieval results."""

from enum import Enum

from pydantic import BaseModel

from shared.models.document import Chunk


class RetrieverMode(str, Enum):
    """Which ranking sources feed the result list."""

    LEXICAL = "lexical"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class FusionWeights(BaseModel):
    """Linear weights applied to the normalised lexical and semantic scores."""

    lexical: float = 0.5
    semantic: float = 0.5


class ScoredChunk(BaseModel):
    """A chunk with the scores it received for a single query.

    Attributes:
        chunk:          The scored chunk.
        lexical_score:  Raw BM25 score, None if the lexical scorer did not rank it.
        semantic_score: Raw similarity score, None if the semantic scorer did not rank it.
        fused_score:    The ranking key of the final list.
    """

    chunk: Chunk
    lexical_score: float | None = None
    semantic_score: float | None = None
    fused_score: float = 0.0


class RetrievalResult(BaseModel):
    """Outcome of a retrieval run.

    effective_mode differs from mode when hybrid retrieval degraded to a
    single source because the other one was unavailable.
    """

    mode: RetrieverMode
    effective_mode: RetrieverMode
    chunks: list[ScoredChunk]
    lexical_available: bool = True
    semantic_available: bool = True
