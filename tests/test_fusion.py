"""Unit tests for score normalisation and fusion ranking."""
import pytest

from services.retrieval.FusionRanker import FusionRanker, normalize
from shared.errors import RetrievalUnavailable
from shared.models.document import Chunk
from shared.models.retrieval import FusionWeights, RetrieverMode, ScoredChunk


def _chunk(index: int, text: str | None = None, document_id: str = "a.txt") -> Chunk:
    text = text if text is not None else f"chunk {index}"
    return Chunk(document_id=document_id, index=index, text=text, start_offset=index * 10, end_offset=index * 10 + len(text))


def lex(index: int, score: float, text: str | None = None) -> ScoredChunk:
    return ScoredChunk(chunk=_chunk(index, text), lexical_score=score)


def sem(index: int, score: float, text: str | None = None) -> ScoredChunk:
    return ScoredChunk(chunk=_chunk(index, text), semantic_score=score)


@pytest.fixture
def ranker(helper_config) -> FusionRanker:
    return FusionRanker(helper_config)


def test_normalize_scales_max_to_one():
    assert normalize([10.0, 5.0, 2.5]) == [1.0, 0.5, 0.25]
    assert max(normalize([0.3, 0.9, 0.6])) == pytest.approx(1.0)


def test_normalize_leaves_zero_and_negative_maxima_unchanged():
    assert normalize([0.0, 0.0]) == [0.0, 0.0]
    assert normalize([-0.2, -0.5]) == [-0.2, -0.5]
    assert normalize([]) == []


def test_fusion_scenario(ranker):
    lexical = [lex(1, 10.0), lex(2, 5.0)]
    semantic = [sem(2, 0.9), sem(3, 0.9)]
    result = ranker.fuse(lexical, semantic, top_k=2, weights=FusionWeights(lexical=0.5, semantic=0.5))
    assert [s.chunk.index for s in result] == [2, 1]
    assert result[0].fused_score == pytest.approx(0.75)
    assert result[1].fused_score == pytest.approx(0.5)
    assert result[0].lexical_score == 5.0
    assert result[0].semantic_score == 0.9


def test_fusion_ties_broken_by_ascending_index(ranker):
    result = ranker.fuse([lex(7, 1.0)], [sem(3, 1.0)], top_k=5, weights=FusionWeights())
    assert [s.chunk.index for s in result] == [3, 7]


def test_identical_text_at_different_positions_stays_distinct(ranker):
    lexical = [lex(0, 2.0, text="same text"), lex(4, 2.0, text="same text")]
    semantic = [sem(4, 0.8, text="same text")]
    result = ranker.fuse(lexical, semantic, top_k=10)
    assert [s.chunk.index for s in result] == [4, 0]
    assert len(result) == 2


def test_fusion_truncates_to_top_k(ranker):
    lexical = [lex(i, float(10 - i)) for i in range(6)]
    assert len(ranker.fuse(lexical, [], top_k=3)) == 3
    assert ranker.fuse(lexical, [], top_k=0) == []


def test_raising_lexical_weight_never_demotes_lexical_leader(ranker):
    lexical = [lex(5, 9.0), lex(1, 3.0), lex(2, 1.0)]
    semantic = [sem(5, 0.6), sem(1, 0.6), sem(2, 0.6)]
    previous_rank = None
    for weight in [0.0, 0.1, 0.5, 1.0, 3.0]:
        result = ranker.fuse(lexical, semantic, top_k=3, weights=FusionWeights(lexical=weight, semantic=0.5))
        rank = [s.chunk.index for s in result].index(5)
        if previous_rank is not None:
            assert rank <= previous_rank
        previous_rank = rank
    assert previous_rank == 0


def test_lexical_mode_sorts_by_raw_score(ranker):
    mode, result = ranker.rank(RetrieverMode.LEXICAL, [lex(1, 2.0), lex(0, 7.5)], None, top_k=5)
    assert mode == RetrieverMode.LEXICAL
    assert [s.chunk.index for s in result] == [0, 1]
    assert result[0].fused_score == 7.5


def test_semantic_mode_sorts_by_raw_score(ranker):
    mode, result = ranker.rank(RetrieverMode.SEMANTIC, None, [sem(1, 0.2), sem(2, 0.9)], top_k=5)
    assert mode == RetrieverMode.SEMANTIC
    assert [s.chunk.index for s in result] == [2, 1]


def test_hybrid_degrades_to_available_side_without_fusion_weights(ranker):
    mode, result = ranker.rank(RetrieverMode.HYBRID, [lex(0, 4.0), lex(1, 8.0)], None, top_k=5)
    assert mode == RetrieverMode.LEXICAL
    assert [s.fused_score for s in result] == [8.0, 4.0]

    mode, result = ranker.rank(RetrieverMode.HYBRID, None, [sem(3, 0.4)], top_k=5)
    assert mode == RetrieverMode.SEMANTIC
    assert result[0].fused_score == 0.4


def test_both_sides_unavailable_raises(ranker):
    with pytest.raises(RetrievalUnavailable):
        ranker.rank(RetrieverMode.HYBRID, None, None)
    with pytest.raises(RetrievalUnavailable):
        ranker.rank(RetrieverMode.LEXICAL, None, [sem(0, 1.0)])


def test_empty_results_are_not_unavailable(ranker):
    mode, result = ranker.rank(RetrieverMode.HYBRID, [], [])
    assert mode == RetrieverMode.HYBRID
    assert result == []


def test_weights_and_top_k_come_from_configuration(helper_config, monkeypatch):
    monkeypatch.setenv("RETRIEVAL_LEXICAL_WEIGHT", "0.2")
    monkeypatch.setenv("RETRIEVAL_SEMANTIC_WEIGHT", "0.8")
    monkeypatch.setenv("RETRIEVAL_TOP_K", "1")
    ranker = FusionRanker(helper_config)
    result = ranker.fuse([lex(0, 1.0)], [sem(1, 1.0)])
    assert len(result) == 1
    assert result[0].chunk.index == 1
    assert result[0].fused_score == pytest.approx(0.8)
