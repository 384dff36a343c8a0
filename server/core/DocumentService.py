"""Upload and deletion of documents, including their derived data."""

from services.cache.DerivedDataCache import DerivedDataCache
from services.chunking.TextChunker import TextChunker
from services.storage.DocumentStorage import DocumentStorage
from services.vector_sync.VectorSyncService import VectorSyncService
from shared.errors import InvalidDocument, SyncFailed
from shared.helper.HelperConfig import HelperConfig
from server.models.responses import DeleteDocumentResponse, UploadResponse

ALLOWED_CONTENT_TYPES = ("text/plain",)
ENCODING_SAMPLE_SIZE = 1024


class DocumentService:
    """Keeps storage, cache and vector index in step for a document."""

    def __init__(
        self,
        helper_config: HelperConfig,
        storage: DocumentStorage,
        cache: DerivedDataCache,
        chunker: TextChunker,
        vector_sync: VectorSyncService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._storage = storage
        self._cache = cache
        self._chunker = chunker
        self._vector_sync = vector_sync
        self.max_file_size = int(helper_config.get_number_val("MAX_FILE_SIZE", default=5 * 1024 * 1024))

    ##########################################
    ############### VALIDATION ###############
    ##########################################

    def validate(self, original_name: str, data: bytes, content_type: str | None = None) -> None:
        """Reject anything but small UTF-8 plain text files.

        Raises:
            InvalidDocument: If name, type, size or encoding are not acceptable.
        """
        if not original_name or not original_name.lower().endswith(".txt"):
            raise InvalidDocument("Only plain-text (.txt) files allowed")
        if content_type and content_type.split(";")[0].strip().lower() not in ALLOWED_CONTENT_TYPES:
            raise InvalidDocument("Only plain-text (.txt) files allowed")
        if len(data) > self.max_file_size:
            raise InvalidDocument(f"File too large (max {self.max_file_size // (1024 * 1024)} MB)")
        sample = data[:ENCODING_SAMPLE_SIZE]
        try:
            sample.decode("utf-8")
        except UnicodeDecodeError as exc:
            # a multi-byte sequence cut at the sample boundary is still valid
            truncated = len(data) > len(sample) and exc.reason == "unexpected end of data"
            if not truncated:
                raise InvalidDocument("File contains invalid UTF-8") from exc

    ##########################################
    ################# UPLOAD #################
    ##########################################

    async def upload(self, original_name: str, data: bytes, content_type: str | None = None) -> UploadResponse:
        """Store a document and rebuild its derived data.

        Derived data of a previous version is dropped before the new version
        is chunked. The chunk cache is filled lazily by the first question.
        A failed vector sync leaves the document usable for lexical retrieval.

        Args:
            original_name (str): The client supplied file name.
            data (bytes): The raw file content.
            content_type (str | None): The declared media type, if any.

        Returns:
            UploadResponse: Summary of the stored document.

        Raises:
            InvalidDocument: If the file is rejected.
        """
        self.validate(original_name, data, content_type)
        document = await self._storage.save(original_name, data)
        invalidated = await self._cache.invalidate_document(document.document_id)

        text = data.decode("utf-8", errors="replace")
        chunks = self._chunker.chunk(text, document.document_id)

        hybrid_ready = True
        points = 0
        try:
            points = await self._vector_sync.sync(document.document_id, chunks, document.content_hash)
        except SyncFailed as exc:
            hybrid_ready = False
            self.logging.warning(
                "Document '%s' stored without vectors, only lexical retrieval is available: %s",
                document.document_id, exc,
            )

        self.logging.info(
            "Uploaded '%s': %d chunks, %d points, %d cache entries invalidated.",
            document.document_id, len(chunks), points, invalidated, color="green",
        )
        return UploadResponse(
            message="File uploaded successfully",
            filename=document.document_id,
            size=document.size,
            chunks=len(chunks),
            points=points,
            hybrid_ready=hybrid_ready,
            invalidated_cache_entries=invalidated,
        )

    ##########################################
    ################# DELETE #################
    ##########################################

    async def delete(self, filename: str) -> DeleteDocumentResponse:
        """Delete a document together with its cache entries and vectors.

        Raises:
            DocumentNotFound: If the document does not exist.
        """
        document_id = self._storage.resolve_document_id(filename)
        await self._storage.delete(document_id)
        removed = await self._cache.invalidate_document(document_id)
        vectors_removed = True
        try:
            await self._vector_sync.remove(document_id)
        except SyncFailed as exc:
            vectors_removed = False
            self.logging.warning("Vectors of deleted document '%s' remain in the index: %s", document_id, exc)
        return DeleteDocumentResponse(
            message="Document deleted",
            filename=document_id,
            removed_cache_entries=removed,
            vectors_removed=vectors_removed,
        )
