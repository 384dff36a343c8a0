"""Cache of data derived from a document: its chunk set and answered questions.

Key layout (prefix from CACHE_PREFIX, default "rag"):
  {prefix}:chunks:{document_id}
  {prefix}:answer:{document_id}:{mode}:{version}:{question_hash}

An answer is only ever served for the retrieval mode and the document
version (first 16 hex chars of its content hash) it was generated for.

Every entry expires after CACHE_TTL_SECONDS even if an invalidation is
missed. Engine failures never fail a request: reads turn into misses and
writes are skipped.
"""

import hashlib
import re
import unicodedata

from pydantic import ValidationError

from shared.clients.cache.CacheClientInterface import CacheClientInterface
from shared.errors import CacheUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import ChunkSet

QUESTION_HASH_LENGTH = 32  # hex chars, 128 bits of SHA-256
VERSION_LENGTH = 16
ANY_VERSION = "-"


def normalize_question(question: str) -> str:
    return re.sub(r"\s+", " ", unicodedata.normalize("NFC", question)).strip()


def question_hash(question: str) -> str:
    """Collision resistant key of a question, insensitive to whitespace differences."""
    digest = hashlib.sha256(normalize_question(question).encode("utf-8")).hexdigest()
    return digest[:QUESTION_HASH_LENGTH]


class DerivedDataCache:
    def __init__(self, helper_config: HelperConfig, cache_client: CacheClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._client = cache_client
        self.ttl = int(helper_config.get_number_val("CACHE_TTL_SECONDS", default=86400))
        self.prefix = helper_config.get_string_val("CACHE_PREFIX", default="rag")

    ##########################################
    ################# KEYS ###################
    ##########################################

    def chunks_key(self, document_id: str) -> str:
        return f"{self.prefix}:chunks:{document_id}"

    def answer_key(self, document_id: str, q_hash: str, mode: str = "hybrid", content_hash: str | None = None) -> str:
        version = content_hash[:VERSION_LENGTH] if content_hash else ANY_VERSION
        return f"{self.prefix}:answer:{document_id}:{mode}:{version}:{q_hash}"

    def _answer_pattern(self, document_id: str) -> str:
        return f"{self.prefix}:answer:{self._client.escape_pattern(document_id)}:*"

    @staticmethod
    def question_hash(question: str) -> str:
        return question_hash(question)

    ##########################################
    ################ CHUNKS ##################
    ##########################################

    async def get_chunks(self, document_id: str) -> ChunkSet | None:
        """Return the cached chunk set of a document, None on a miss.

        An undecodable entry is treated as a miss.
        """
        try:
            raw = await self._client.get(self.chunks_key(document_id))
        except CacheUnavailable as exc:
            self.logging.warning("Chunk cache read skipped for '%s': %s", document_id, exc)
            return None
        if raw is None:
            return None
        try:
            return ChunkSet.model_validate_json(raw)
        except ValidationError as exc:
            self.logging.warning("Discarding malformed chunk cache entry for '%s': %s", document_id, exc)
            return None

    async def put_chunks(self, document_id: str, chunk_set: ChunkSet, ttl: int | None = None) -> None:
        try:
            await self._client.set(self.chunks_key(document_id), chunk_set.model_dump_json(), ttl or self.ttl)
        except CacheUnavailable as exc:
            self.logging.warning("Chunk cache write skipped for '%s': %s", document_id, exc)

    ##########################################
    ################ ANSWERS #################
    ##########################################

    async def get_answer(self, document_id: str, q_hash: str, mode: str = "hybrid", content_hash: str | None = None) -> str | None:
        try:
            return await self._client.get(self.answer_key(document_id, q_hash, mode, content_hash))
        except CacheUnavailable as exc:
            self.logging.warning("Answer cache read skipped for '%s': %s", document_id, exc)
            return None

    async def put_answer(
        self,
        document_id: str,
        q_hash: str,
        answer: str,
        ttl: int | None = None,
        mode: str = "hybrid",
        content_hash: str | None = None,
    ) -> None:
        try:
            await self._client.set(self.answer_key(document_id, q_hash, mode, content_hash), answer, ttl or self.ttl)
        except CacheUnavailable as exc:
            self.logging.warning("Answer cache write skipped for '%s': %s", document_id, exc)

    ##########################################
    ############# INVALIDATION ###############
    ##########################################

    async def invalidate_document(self, document_id: str) -> int:
        """Remove the chunk set and all answers of a document.

        Args:
            document_id (str): The document whose derived data is dropped.

        Returns:
            int: The number of removed entries, 0 if the cache is unreachable.
        """
        try:
            keys = [self.chunks_key(document_id)]
            keys.extend(await self._client.scan_keys(self._answer_pattern(document_id)))
            removed = await self._client.delete(keys)
        except CacheUnavailable as exc:
            self.logging.error("Cache invalidation failed for '%s': %s", document_id, exc)
            return 0
        self.logging.info("Invalidated %d cache entries for '%s'.", removed, document_id)
        return removed

    ##########################################
    ################# STATS ##################
    ##########################################

    async def document_stats(self, document_id: str) -> dict:
        """Count the live entries of a document.

        Returns:
            dict: {"chunks": int, "answers": int, "total": int}
        """
        try:
            chunks = 1 if await self._client.get(self.chunks_key(document_id)) is not None else 0
            answers = len(await self._client.scan_keys(self._answer_pattern(document_id)))
        except CacheUnavailable as exc:
            self.logging.warning("Cache stats unavailable for '%s': %s", document_id, exc)
            chunks, answers = 0, 0
        return {"chunks": chunks, "answers": answers, "total": chunks + answers}

    async def stats(self) -> dict:
        """Return engine wide statistics.

        Returns:
            dict: {"total_keys": int, "memory_usage": str, "engine": str}
        """
        try:
            stats = await self._client.stats()
        except CacheUnavailable as exc:
            self.logging.warning("Cache stats unavailable: %s", exc)
            stats = {"total_keys": 0, "memory_usage": "unavailable"}
        return {**stats, "engine": self._client.get_engine_name()}
