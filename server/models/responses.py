from pydantic import BaseModel

from shared.clients.rag.models.VectorPoint import VectorPayload
from shared.models.retrieval import RetrieverMode


class MessageResponse(BaseModel):
    message: str


class UploadResponse(BaseModel):
    message: str
    filename: str
    size: int
    chunks: int
    points: int
    hybrid_ready: bool
    invalidated_cache_entries: int


class SourceItem(BaseModel):
    index: int
    text: str
    start_offset: int
    end_offset: int
    lexical_score: float | None
    semantic_score: float | None
    fused_score: float


class AskResponse(BaseModel):
    message: str
    filename: str
    question: str
    answer: str
    cached: bool
    mode: RetrieverMode | None = None
    effective_mode: RetrieverMode | None = None
    sources: list[SourceItem] = []


class CacheStats(BaseModel):
    total_keys: int
    memory_usage: str
    engine: str


class CacheStatsResponse(BaseModel):
    message: str
    stats: CacheStats


class DocumentCacheStatsResponse(BaseModel):
    message: str
    filename: str
    chunks: int
    answers: int
    total: int


class ClearCacheResponse(BaseModel):
    message: str
    filename: str
    removed: int


class DeleteDocumentResponse(BaseModel):
    message: str
    filename: str
    removed_cache_entries: int
    vectors_removed: bool


class PointsResponse(BaseModel):
    message: str
    filename: str
    total: int
    points: list[VectorPayload]
