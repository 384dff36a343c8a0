"""Mode dispatch between the lexical and semantic scorers."""

import asyncio

from services.retrieval.FusionRanker import FusionRanker
from services.retrieval.LexicalScorer import LexicalScorer
from services.retrieval.SemanticScorer import SemanticScorer
from shared.errors import ScorerUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import ChunkSet
from shared.models.retrieval import RetrievalResult, RetrieverMode, ScoredChunk


class HybridRetriever:
    """Runs the scorers a mode needs and hands their results to the FusionRanker.

    A failing scorer is recorded as unavailable instead of failing the
    request; only when nothing usable is left does RetrievalUnavailable
    reach the caller.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        lexical_scorer: LexicalScorer,
        semantic_scorer: SemanticScorer,
        ranker: FusionRanker,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._lexical_scorer = lexical_scorer
        self._semantic_scorer = semantic_scorer
        self._ranker = ranker
        self.default_mode = RetrieverMode(
            helper_config.get_choice_val("RETRIEVAL_MODE", [m.value for m in RetrieverMode], default="hybrid")
        )

    async def _lexical(self, query: str, chunk_set: ChunkSet, k: int) -> list[ScoredChunk] | None:
        try:
            return self._lexical_scorer.score(query, chunk_set.chunks, k)
        except ScorerUnavailable as exc:
            self.logging.warning("Lexical scorer unavailable for '%s': %s", chunk_set.document_id, exc)
            return None

    async def _semantic(self, query: str, chunk_set: ChunkSet, k: int) -> list[ScoredChunk] | None:
        try:
            return await self._semantic_scorer.score(query, chunk_set.document_id, k, content_hash=chunk_set.content_hash)
        except ScorerUnavailable as exc:
            self.logging.warning("Semantic scorer unavailable for '%s': %s", chunk_set.document_id, exc)
            return None

    async def retrieve(
        self,
        query: str,
        chunk_set: ChunkSet,
        mode: RetrieverMode | None = None,
        top_k: int | None = None,
    ) -> RetrievalResult:
        """Retrieve the chunks of chunk_set most relevant to query.

        Args:
            query (str): The user question.
            chunk_set (ChunkSet): The current chunks of the document.
            mode (RetrieverMode | None): Retrieval mode, RETRIEVAL_MODE if None.
            top_k (int | None): Maximum number of chunks, RETRIEVAL_TOP_K if None.

        Returns:
            RetrievalResult: The ranked chunks and which sources contributed.

        Raises:
            RetrievalUnavailable: If no scorer required by the mode produced a result.
        """
        mode = mode or self.default_mode
        top_k = self._ranker.top_k if top_k is None else top_k

        lexical: list[ScoredChunk] | None = []
        semantic: list[ScoredChunk] | None = []
        if mode == RetrieverMode.HYBRID:
            lexical, semantic = await asyncio.gather(
                self._lexical(query, chunk_set, top_k),
                self._semantic(query, chunk_set, top_k),
            )
        elif mode == RetrieverMode.LEXICAL:
            lexical = await self._lexical(query, chunk_set, top_k)
        else:
            semantic = await self._semantic(query, chunk_set, top_k)

        effective_mode, chunks = self._ranker.rank(mode, lexical, semantic, top_k=top_k)
        self.logging.debug(
            "Retrieved %d chunks for '%s' (mode=%s, effective=%s).",
            len(chunks), chunk_set.document_id, mode.value, effective_mode.value,
        )
        return RetrievalResult(
            mode=mode,
            effective_mode=effective_mode,
            chunks=chunks,
            lexical_available=lexical is not None,
            semantic_available=semantic is not None,
        )
