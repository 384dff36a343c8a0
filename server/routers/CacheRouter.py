from fastapi import APIRouter, Request

from server.models.responses import CacheStats, CacheStatsResponse, ClearCacheResponse, DocumentCacheStatsResponse

router = APIRouter(tags=["cache"])


@router.get("/cache-stats")
async def cache_stats(request: Request) -> CacheStatsResponse:
    stats = await request.app.state.cache.stats()
    return CacheStatsResponse(message="Cache stats", stats=CacheStats(**stats))


@router.get("/cache-stats/{filename}")
async def document_cache_stats(request: Request, filename: str) -> DocumentCacheStatsResponse:
    """Count the cached chunk set and answers of one document."""
    document_id = request.app.state.storage.resolve_document_id(filename)
    stats = await request.app.state.cache.document_stats(document_id)
    return DocumentCacheStatsResponse(message="Document cache stats", filename=document_id, **stats)


@router.delete("/clear-cache/{filename}")
async def clear_cache(request: Request, filename: str) -> ClearCacheResponse:
    """Drop all cached data of one document. Vectors are left untouched."""
    document_id = request.app.state.storage.resolve_document_id(filename)
    removed = await request.app.state.cache.invalidate_document(document_id)
    return ClearCacheResponse(message="Cache cleared", filename=document_id, removed=removed)
