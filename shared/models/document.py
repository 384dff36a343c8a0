"""Pydantic models for documents and their chunks.

Hierarchy:
  StoredDocument: a document as persisted by the storage layer.
  Chunk:          a bounded substring of a document with a stable index.
  ChunkSet:       all chunks of one document version, as held in the chunk cache.
"""

from pydantic import BaseModel, Field


class StoredDocument(BaseModel):
    """A document persisted by DocumentStorage.

    The document_id is the stable key of the document (the sanitised file
    name), so re-uploading a file with the same name supersedes the previous
    version. The content_hash identifies the concrete version.
    """

    document_id: str
    original_name: str
    content_hash: str
    size: int


class Chunk(BaseModel):
    """A bounded substring of a document, the unit of retrieval.

    Invariant: text == source_text[start_offset:end_offset]. The pair
    (document_id, index) identifies the chunk in caches and in the vector index.
    """

    document_id: str
    index: int = Field(ge=0)
    text: str
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)

    @property
    def key(self) -> tuple[str, int]:
        return (self.document_id, self.index)


class ChunkSet(BaseModel):
    """All chunks derived from one version of a document."""

    document_id: str
    content_hash: str
    chunks: list[Chunk] = []
