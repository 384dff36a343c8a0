"""Deterministic text chunking.

Splits a document into overlapping chunks, preferring to cut at paragraph,
line, sentence and word boundaries (in that order) before falling back to a
hard split. The same (text, chunk_size, overlap) always yields the same
chunks with the same indices and offsets.
"""

from shared.errors import InvalidConfig
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Chunk

SEPARATORS = ["\n\n", "\n", ".", " "]  # hard split when none qualifies


def _validate(chunk_size: int, overlap: int) -> None:
    if chunk_size <= 0:
        raise InvalidConfig(f"chunk_size must be positive, got {chunk_size}.")
    if overlap < 0 or overlap >= chunk_size:
        raise InvalidConfig(f"overlap must be in [0, chunk_size), got overlap={overlap} chunk_size={chunk_size}.")


def _find_split(text: str, start: int, chunk_size: int, overlap: int) -> int:
    """Return the end offset of the chunk that starts at start.

    The separator stays with the chunk it terminates. A split point is only
    accepted if the chunk is longer than the overlap, so the following chunk
    always starts after start.
    """
    limit = start + chunk_size
    for separator in SEPARATORS:
        pos = text.rfind(separator, start, limit)
        if pos == -1:
            continue
        end = pos + len(separator)
        if end - start > overlap:
            return end
    return limit


def chunk_text(text: str, chunk_size: int, overlap: int, document_id: str = "") -> list[Chunk]:
    """Split text into overlapping chunks.

    Args:
        text (str): The full document text.
        chunk_size (int): Maximum number of characters per chunk.
        overlap (int): Number of characters shared by consecutive chunks.
        document_id (str): Key of the document, copied onto every chunk.

    Returns:
        list[Chunk]: Ordered chunks, empty for empty text.

    Raises:
        InvalidConfig: If chunk_size <= 0 or overlap is not in [0, chunk_size).
    """
    _validate(chunk_size, overlap)

    chunks: list[Chunk] = []
    start = 0
    length = len(text)
    while start < length:
        if length - start <= chunk_size:
            end = length
        else:
            end = _find_split(text, start, chunk_size, overlap)
        chunks.append(
            Chunk(
                document_id=document_id,
                index=len(chunks),
                text=text[start:end],
                start_offset=start,
                end_offset=end,
            )
        )
        if end >= length:
            break
        start = end - overlap
    return chunks


class TextChunker:
    """Chunker bound to the configured CHUNK_SIZE and CHUNK_OVERLAP."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.chunk_size = int(helper_config.get_number_val("CHUNK_SIZE", default=500))
        self.overlap = int(helper_config.get_number_val("CHUNK_OVERLAP", default=150))
        _validate(self.chunk_size, self.overlap)

    def chunk(self, text: str, document_id: str) -> list[Chunk]:
        chunks = chunk_text(text, self.chunk_size, self.overlap, document_id=document_id)
        self.logging.debug(
            "Chunked document '%s' (%d chars) into %d chunks (size=%d, overlap=%d).",
            document_id, len(text), len(chunks), self.chunk_size, self.overlap,
        )
        return chunks
