"""Tests for vector synchronisation and semantic scoring against the in-memory Qdrant."""
import asyncio

import pytest

from services.chunking.TextChunker import chunk_text
from services.retrieval.SemanticScorer import SemanticScorer
from services.vector_sync.VectorSyncService import VectorSyncService
from shared.clients.rag.models.VectorPoint import make_point_id
from shared.errors import ScorerUnavailable, SyncFailed

OLD_TEXT = "Cats sleep most of the day.\n\nCats chase mice at night.\n\nCats purr when happy."
NEW_TEXT = "Dogs bark at strangers.\n\nDogs fetch sticks."


@pytest.fixture
def sync_service(helper_config, rag_client, embed_client) -> VectorSyncService:
    return VectorSyncService(helper_config, rag_client=rag_client, embed_client=embed_client)


@pytest.fixture
def semantic_scorer(helper_config, rag_client, embed_client) -> SemanticScorer:
    return SemanticScorer(helper_config, rag_client=rag_client, embed_client=embed_client)


def test_point_ids_are_deterministic_per_document_and_index():
    assert make_point_id("a.txt", 0) == make_point_id("a.txt", 0)
    assert make_point_id("a.txt", 0) != make_point_id("a.txt", 1)
    assert make_point_id("a.txt", 1) != make_point_id("b.txt", 1)


@pytest.mark.asyncio
async def test_sync_creates_collection_and_upserts_one_point_per_chunk(sync_service, backends):
    chunks = chunk_text(OLD_TEXT, 30, 5, document_id="a.txt")
    written = await sync_service.sync("a.txt", chunks, content_hash="h1")

    assert written == len(chunks)
    collection = backends.qdrant.collections["documents"]
    assert collection["size"] == 32
    assert collection["distance"] == "Cosine"
    assert sorted(p["chunk_index"] for p in backends.qdrant.payloads()) == list(range(len(chunks)))
    assert set(collection["points"]) == {make_point_id("a.txt", c.index) for c in chunks}


@pytest.mark.asyncio
async def test_embedding_is_batched(sync_service, backends):
    chunks = chunk_text("word " * 400, 50, 10, document_id="a.txt")
    await sync_service.sync("a.txt", chunks, content_hash="h1")
    assert len(chunks) > 4
    assert all(len(batch) <= 4 for batch in backends.embed.embed_calls)
    assert sum(len(batch) for batch in backends.embed.embed_calls) == len(chunks)


@pytest.mark.asyncio
async def test_resync_deletes_before_upsert_and_leaves_no_stale_points(sync_service, semantic_scorer, backends):
    old_chunks = chunk_text(OLD_TEXT, 30, 5, document_id="a.txt")
    new_chunks = chunk_text(NEW_TEXT, 30, 5, document_id="a.txt")
    assert len(old_chunks) > len(new_chunks)

    await sync_service.sync("a.txt", old_chunks, content_hash="old")
    await sync_service.sync("a.txt", new_chunks, content_hash="new")

    payloads = backends.qdrant.payloads()
    assert len(payloads) == len(new_chunks)
    assert {p["content_hash"] for p in payloads} == {"new"}

    methods = [(m, p.rsplit("/", 1)[-1]) for m, p in backends.qdrant.requests]
    last_delete = max(i for i, r in enumerate(methods) if r == ("POST", "delete"))
    last_upsert = max(i for i, r in enumerate(methods) if r == ("PUT", "points"))
    assert last_delete < last_upsert

    results = await semantic_scorer.score("cats sleep", "a.txt", k=10)
    new_texts = {c.text for c in new_chunks}
    assert results
    assert all(r.chunk.text in new_texts for r in results)


@pytest.mark.asyncio
async def test_semantic_search_never_leaks_other_documents(sync_service, semantic_scorer):
    await sync_service.sync("a.txt", chunk_text(NEW_TEXT, 30, 5, document_id="a.txt"), content_hash="ha")
    await sync_service.sync("b.txt", chunk_text(OLD_TEXT, 30, 5, document_id="b.txt"), content_hash="hb")

    # b.txt is a far better match for this query
    results = await semantic_scorer.score("cats chase mice at night", "a.txt", k=10)
    assert results
    assert all(r.chunk.document_id == "a.txt" for r in results)
    assert all(r.lexical_score is None for r in results)


@pytest.mark.asyncio
async def test_semantic_search_filters_on_content_hash(sync_service, semantic_scorer):
    await sync_service.sync("a.txt", chunk_text(OLD_TEXT, 30, 5, document_id="a.txt"), content_hash="v1")
    assert await semantic_scorer.score("cats", "a.txt", k=5, content_hash="v1")
    # v2 was never synced
    with pytest.raises(ScorerUnavailable):
        await semantic_scorer.score("cats", "a.txt", k=5, content_hash="v2")


@pytest.mark.asyncio
async def test_document_without_vectors_is_unavailable(sync_service, semantic_scorer, backends):
    await sync_service.sync("b.txt", chunk_text(NEW_TEXT, 30, 5, document_id="b.txt"), content_hash="hb")
    with pytest.raises(ScorerUnavailable):
        await semantic_scorer.score("cats", "a.txt", k=5, content_hash="ha")
    assert ("POST", "/collections/documents/points/count") in backends.qdrant.requests


@pytest.mark.asyncio
async def test_semantic_results_sorted_by_similarity(sync_service, semantic_scorer):
    await sync_service.sync("a.txt", chunk_text(OLD_TEXT, 30, 5, document_id="a.txt"), content_hash="h")
    results = await semantic_scorer.score("cats purr when happy", "a.txt", k=5)
    scores = [r.semantic_score for r in results]
    assert scores == sorted(scores, reverse=True)
    assert "purr" in results[0].chunk.text


@pytest.mark.asyncio
async def test_search_failure_raises_scorer_unavailable(sync_service, semantic_scorer, backends):
    await sync_service.sync("a.txt", chunk_text(OLD_TEXT, 30, 5, document_id="a.txt"), content_hash="h")
    backends.qdrant.fail_search = True
    with pytest.raises(ScorerUnavailable):
        await semantic_scorer.score("cats", "a.txt", k=5)


@pytest.mark.asyncio
async def test_embedding_failure_raises_scorer_unavailable(semantic_scorer, backends):
    backends.embed.fail = True
    with pytest.raises(ScorerUnavailable):
        await semantic_scorer.score("cats", "a.txt", k=5)


@pytest.mark.asyncio
async def test_upsert_failure_raises_sync_failed(sync_service, backends):
    backends.qdrant.fail_upsert = True
    with pytest.raises(SyncFailed):
        await sync_service.sync("a.txt", chunk_text(OLD_TEXT, 30, 5, document_id="a.txt"), content_hash="h")


@pytest.mark.asyncio
async def test_delete_failure_raises_sync_failed_without_upsert(sync_service, backends):
    backends.qdrant.fail_delete = True
    with pytest.raises(SyncFailed):
        await sync_service.sync("a.txt", chunk_text(OLD_TEXT, 30, 5, document_id="a.txt"), content_hash="h")
    assert backends.qdrant.payloads() == []


@pytest.mark.asyncio
async def test_collection_with_wrong_dimension_raises_sync_failed(sync_service, backends):
    backends.qdrant.collections["documents"] = {"size": 8, "distance": "Cosine", "points": {}}
    with pytest.raises(SyncFailed):
        await sync_service.sync("a.txt", chunk_text(OLD_TEXT, 30, 5, document_id="a.txt"), content_hash="h")


@pytest.mark.asyncio
async def test_lost_create_race_is_tolerated(sync_service, rag_client, backends, monkeypatch):
    original_check = rag_client.do_existence_check
    calls = {"n": 0}

    async def racing_check():
        calls["n"] += 1
        if calls["n"] == 1:
            # another worker creates the collection right after our check
            backends.qdrant.collections["documents"] = {"size": 32, "distance": "Cosine", "points": {}}
            return False
        return await original_check()

    monkeypatch.setattr(rag_client, "do_existence_check", racing_check)
    written = await sync_service.sync("a.txt", chunk_text(OLD_TEXT, 30, 5, document_id="a.txt"), content_hash="h")
    assert written > 0
    assert backends.qdrant.create_calls == 1


@pytest.mark.asyncio
async def test_remove_and_list_points(sync_service, backends):
    chunks = chunk_text(OLD_TEXT, 30, 5, document_id="a.txt")
    await sync_service.sync("a.txt", chunks, content_hash="h")
    await sync_service.sync("b.txt", chunk_text(NEW_TEXT, 30, 5, document_id="b.txt"), content_hash="h")

    points = await sync_service.list_points("a.txt")
    assert [p.chunk_index for p in points] == [c.index for c in chunks]
    assert await sync_service.count_points("a.txt") == len(chunks)

    await sync_service.remove("a.txt")
    assert await sync_service.list_points("a.txt") == []
    assert await sync_service.count_points("b.txt") > 0


@pytest.mark.asyncio
async def test_list_points_pages_through_results(sync_service, monkeypatch):
    monkeypatch.setattr("services.vector_sync.VectorSyncService.SCROLL_PAGE_SIZE", 2)
    chunks = chunk_text("word " * 200, 50, 10, document_id="a.txt")
    await sync_service.sync("a.txt", chunks, content_hash="h")
    points = await sync_service.list_points("a.txt")
    assert len(points) == len(chunks)


@pytest.mark.asyncio
async def test_document_locks_are_released_after_use(sync_service):
    chunks = chunk_text(OLD_TEXT, 30, 5, document_id="a.txt")
    await asyncio.gather(
        sync_service.sync("a.txt", chunks, content_hash="h1"),
        sync_service.sync("a.txt", chunks, content_hash="h2"),
    )
    await sync_service.remove("a.txt")
    assert len(sync_service._locks) == 0
