"""Vector store synchronisation.

Keeps the vector index consistent with the current chunk set of a document:
all points of the document are deleted before the new ones are upserted, so
a re-upload never leaves stale or duplicate vectors behind.
"""

import asyncio
from weakref import WeakValueDictionary

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPayload, VectorPoint
from shared.errors import SyncFailed
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Chunk

SCROLL_PAGE_SIZE = 256


class VectorSyncService:
    """Writes and removes the vectors of single documents."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        # a lock lives only while some sync or remove of its document holds or awaits it
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()
        self._collection_ready = False

    def _lock_for(self, document_id: str) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        return lock

    def _document_filter(self, document_id: str) -> list[dict]:
        return [self._rag_client.get_match_condition("document_id", document_id)]

    ##########################################
    ############### COLLECTION ###############
    ##########################################

    async def ensure_collection(self) -> None:
        """Create the collection if missing, sized for the configured embedding model.

        Raises:
            SyncFailed: If the collection cannot be created or was created with a
                different vector size.
        """
        if self._collection_ready:
            return
        vector_size, distance = await self._embed_client.do_fetch_embedding_vector_size()
        collection = self._rag_client.get_collection_name()

        if not await self._rag_client.do_existence_check():
            self.logging.info("Creating collection '%s' (size=%d, distance=%s).", collection, vector_size, distance)
            response = await self._rag_client.do_create_collection(vector_size, distance)
            if response.status_code >= 300:
                # another worker may have created it in the meantime
                if not await self._rag_client.do_existence_check():
                    raise SyncFailed(
                        f"Could not create collection '{collection}': status {response.status_code}, {response.text[:200]}"
                    )
                self.logging.info("Collection '%s' was created concurrently.", collection)

        existing_size = await self._rag_client.do_fetch_collection_vector_size()
        if existing_size is not None and existing_size != vector_size:
            raise SyncFailed(
                f"Collection '{collection}' has vector size {existing_size}, embedding model produces {vector_size}."
            )
        self._collection_ready = True

    ##########################################
    ################# SYNC ###################
    ##########################################

    async def sync(self, document_id: str, chunks: list[Chunk], content_hash: str) -> int:
        """Replace all vectors of a document with vectors of the given chunks.

        Args:
            document_id (str): The document key.
            chunks (list[Chunk]): The current chunk set of the document.
            content_hash (str): Version of the document the chunks were cut from.

        Returns:
            int: The number of points written.

        Raises:
            SyncFailed: If any step fails. The document may then have no vectors.
        """
        async with self._lock_for(document_id):
            try:
                await self.ensure_collection()

                await self._rag_client.do_delete_points_by_filter(self._document_filter(document_id))
                if not chunks:
                    self.logging.info("Document '%s' has no chunks, removed its vectors.", document_id)
                    return 0

                vectors = await self._embed_client.do_embed([chunk.text for chunk in chunks])
                points = [
                    VectorPoint.from_chunk(chunk, vector, content_hash).model_dump()
                    for chunk, vector in zip(chunks, vectors)
                ]
                await self._rag_client.do_upsert_points(points)
            except SyncFailed:
                raise
            except Exception as exc:
                self.logging.error("Vector sync failed for document '%s': %s", document_id, exc)
                raise SyncFailed(f"Vector sync failed for '{document_id}': {exc}") from exc

        self.logging.info("Synced document '%s': %d points upserted.", document_id, len(points))
        return len(points)

    async def remove(self, document_id: str) -> None:
        """Delete all vectors of a document.

        Raises:
            SyncFailed: If the delete request fails.
        """
        async with self._lock_for(document_id):
            try:
                if not await self._rag_client.do_existence_check():
                    return
                await self._rag_client.do_delete_points_by_filter(self._document_filter(document_id))
            except Exception as exc:
                self.logging.error("Removing vectors of document '%s' failed: %s", document_id, exc)
                raise SyncFailed(f"Removing vectors of '{document_id}' failed: {exc}") from exc
        self.logging.info("Removed vectors of document '%s'.", document_id)

    ##########################################
    ############### INSPECTION ###############
    ##########################################

    async def list_points(self, document_id: str) -> list[VectorPayload]:
        """Return the payloads of all points of a document, ordered by chunk index."""
        payloads: list[VectorPayload] = []
        offset: str | int | None = None
        if not await self._rag_client.do_existence_check():
            return payloads
        while True:
            page = await self._rag_client.do_scroll(
                filters=self._document_filter(document_id),
                with_payload=True,
                with_vector=False,
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
            )
            payloads.extend(VectorPayload(**point["payload"]) for point in page.result)
            offset = page.next_page_offset
            if offset is None:
                break
        return sorted(payloads, key=lambda p: p.chunk_index)

    async def count_points(self, document_id: str) -> int:
        if not await self._rag_client.do_existence_check():
            return 0
        return await self._rag_client.do_count(self._document_filter(document_id))
