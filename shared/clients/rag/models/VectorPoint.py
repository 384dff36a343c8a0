"""VectorPoint models, the persisted unit of the vector index."""

import uuid

from pydantic import BaseModel

from shared.models.document import Chunk

# Fixed namespace for deterministic UUIDv5 point IDs.
# Changing this value would invalidate all existing point IDs in the collection.
POINT_ID_NAMESPACE = uuid.UUID("3b0e9f51-8c2d-4a7e-9d16-5f4c2a8e7b90")


def make_point_id(document_id: str, chunk_index: int) -> str:
    """Build the deterministic point ID of a chunk.

    The same (document_id, chunk_index) always maps to the same ID, so a
    retried sync overwrites instead of duplicating.

    Args:
        document_id (str): The document key.
        chunk_index (int): Zero-based chunk index within the document.

    Returns:
        str: UUID string usable as a point ID.
    """
    return str(uuid.uuid5(POINT_ID_NAMESPACE, f"{document_id}:{chunk_index}"))


class VectorPayload(BaseModel):
    """Metadata stored alongside each vector.

    Attributes:
        document_id:   MANDATORY, key of the owning document; every search and
                       delete filters on it.
        chunk_index:   Zero-based position of this chunk within the document.
        chunk_text:    Raw text content of this chunk.
        start_offset:  Offset of the chunk's first character in the document.
        end_offset:    Offset one past the chunk's last character.
        content_hash:  SHA-256 hex digest of the document version the chunk
                       was cut from. Identical across all chunks of a version.
    """

    document_id: str
    chunk_index: int
    chunk_text: str
    start_offset: int
    end_offset: int
    content_hash: str

    @classmethod
    def from_chunk(cls, chunk: Chunk, content_hash: str) -> "VectorPayload":
        return cls(
            document_id=chunk.document_id,
            chunk_index=chunk.index,
            chunk_text=chunk.text,
            start_offset=chunk.start_offset,
            end_offset=chunk.end_offset,
            content_hash=content_hash,
        )

    def to_chunk(self) -> Chunk:
        return Chunk(
            document_id=self.document_id,
            index=self.chunk_index,
            text=self.chunk_text,
            start_offset=self.start_offset,
            end_offset=self.end_offset,
        )


class VectorPoint(BaseModel):
    """A vector together with its identifying payload."""

    id: str
    vector: list[float]
    payload: VectorPayload

    @classmethod
    def from_chunk(cls, chunk: Chunk, vector: list[float], content_hash: str) -> "VectorPoint":
        return cls(
            id=make_point_id(chunk.document_id, chunk.index),
            vector=vector,
            payload=VectorPayload.from_chunk(chunk, content_hash),
        )
