"""Score fusion of lexical and semantic rankings.

Each source is normalised independently by its maximum, then combined
linearly with fixed weights. Chunks are merged by (document_id, index),
never by their text, so two chunks with identical text stay distinct.
"""

from shared.errors import RetrievalUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.retrieval import FusionWeights, RetrieverMode, ScoredChunk


def normalize(scores: list[float]) -> list[float]:
    """Divide every score by the maximum.

    A non-positive maximum leaves the scores unchanged, which avoids a
    division by zero and keeps the order of negative similarities.
    """
    if not scores:
        return []
    top = max(scores)
    if top <= 0:
        return list(scores)
    return [score / top for score in scores]


def _order(results: list[ScoredChunk]) -> list[ScoredChunk]:
    return sorted(results, key=lambda s: (-s.fused_score, s.chunk.index))


class FusionRanker:
    """Turns the outputs of the two scorers into one ordered result list."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.top_k = int(helper_config.get_number_val("RETRIEVAL_TOP_K", default=8))
        self.weights = FusionWeights(
            lexical=float(helper_config.get_number_val("RETRIEVAL_LEXICAL_WEIGHT", default=0.5)),
            semantic=float(helper_config.get_number_val("RETRIEVAL_SEMANTIC_WEIGHT", default=0.5)),
        )

    ##########################################
    ################ FUSION ##################
    ##########################################

    def fuse(
        self,
        lexical: list[ScoredChunk],
        semantic: list[ScoredChunk],
        top_k: int | None = None,
        weights: FusionWeights | None = None,
    ) -> list[ScoredChunk]:
        """Normalise, merge and weight both result lists.

        Args:
            lexical (list[ScoredChunk]): Lexical results with lexical_score set.
            semantic (list[ScoredChunk]): Semantic results with semantic_score set.
            top_k (int | None): Maximum number of results, configured value if None.
            weights (FusionWeights | None): Fusion weights, configured values if None.

        Returns:
            list[ScoredChunk]: Merged results ordered by fused_score desc, then chunk index.
        """
        top_k = self.top_k if top_k is None else top_k
        weights = weights or self.weights

        merged: dict[tuple[str, int], ScoredChunk] = {}
        norm_lexical = normalize([s.lexical_score or 0.0 for s in lexical])
        for item, norm in zip(lexical, norm_lexical):
            if item.chunk.key in merged:
                continue
            merged[item.chunk.key] = ScoredChunk(
                chunk=item.chunk,
                lexical_score=item.lexical_score,
                fused_score=norm * weights.lexical,
            )

        norm_semantic = normalize([s.semantic_score or 0.0 for s in semantic])
        seen_semantic: set[tuple[str, int]] = set()
        for item, norm in zip(semantic, norm_semantic):
            key = item.chunk.key
            if key in seen_semantic:
                continue
            seen_semantic.add(key)
            entry = merged.get(key)
            if entry is None:
                merged[key] = ScoredChunk(
                    chunk=item.chunk,
                    semantic_score=item.semantic_score,
                    fused_score=norm * weights.semantic,
                )
            else:
                entry.semantic_score = item.semantic_score
                entry.fused_score += norm * weights.semantic

        return _order(list(merged.values()))[:max(top_k, 0)]

    def single_source(self, results: list[ScoredChunk], mode: RetrieverMode, top_k: int | None = None) -> list[ScoredChunk]:
        """Order the results of one scorer by its raw score."""
        top_k = self.top_k if top_k is None else top_k
        ranked = []
        seen: set[tuple[str, int]] = set()
        for item in results:
            if item.chunk.key in seen:
                continue
            seen.add(item.chunk.key)
            raw = item.lexical_score if mode == RetrieverMode.LEXICAL else item.semantic_score
            ranked.append(item.model_copy(update={"fused_score": raw or 0.0}))
        return _order(ranked)[:max(top_k, 0)]

    ##########################################
    ################ RANKING #################
    ##########################################

    def rank(
        self,
        mode: RetrieverMode,
        lexical: list[ScoredChunk] | None,
        semantic: list[ScoredChunk] | None,
        top_k: int | None = None,
        weights: FusionWeights | None = None,
    ) -> tuple[RetrieverMode, list[ScoredChunk]]:
        """Rank the scorer outputs for the requested mode.

        None marks a scorer as unavailable, an empty list means it found nothing.
        In hybrid mode a single unavailable scorer degrades the ranking to the
        other one, using its raw scores.

        Returns:
            tuple[RetrieverMode, list[ScoredChunk]]: The mode actually applied and the ranked chunks.

        Raises:
            RetrievalUnavailable: If no scorer needed by the mode is available.
        """
        if mode == RetrieverMode.LEXICAL:
            if lexical is None:
                raise RetrievalUnavailable("Lexical scorer unavailable.")
            return RetrieverMode.LEXICAL, self.single_source(lexical, RetrieverMode.LEXICAL, top_k)

        if mode == RetrieverMode.SEMANTIC:
            if semantic is None:
                raise RetrievalUnavailable("Semantic scorer unavailable.")
            return RetrieverMode.SEMANTIC, self.single_source(semantic, RetrieverMode.SEMANTIC, top_k)

        if lexical is None and semantic is None:
            raise RetrievalUnavailable("Both lexical and semantic scorers are unavailable.")
        if semantic is None:
            self.logging.warning("Hybrid retrieval degraded to lexical ranking (semantic scorer unavailable).")
            return RetrieverMode.LEXICAL, self.single_source(lexical, RetrieverMode.LEXICAL, top_k)
        if lexical is None:
            self.logging.warning("Hybrid retrieval degraded to semantic ranking (lexical scorer unavailable).")
            return RetrieverMode.SEMANTIC, self.single_source(semantic, RetrieverMode.SEMANTIC, top_k)
        return RetrieverMode.HYBRID, self.fuse(lexical, semantic, top_k, weights)
