from services.answer.AnswerGenerator import AnswerGenerator
from services.cache.DerivedDataCache import DerivedDataCache
from services.chunking.TextChunker import TextChunker
from services.retrieval.HybridRetriever import HybridRetriever
from services.storage.DocumentStorage import DocumentStorage, content_hash
from shared.errors import DocumentNotFound
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import ChunkSet
from server.models.requests import AskRequest
from server.models.responses import AskResponse, SourceItem


class QueryService:
    """Answers questions about a document: cache -> chunks -> retrieval -> LLM -> cache."""

    def __init__(
        self,
        helper_config: HelperConfig,
        storage: DocumentStorage,
        cache: DerivedDataCache,
        chunker: TextChunker,
        retriever: HybridRetriever,
        answer_generator: AnswerGenerator,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._storage = storage
        self._cache = cache
        self._chunker = chunker
        self._retriever = retriever
        self._answer_generator = answer_generator

    ##########################################
    ############### CHUNKS ###################
    ##########################################

    async def get_chunk_set(self, document_id: str, data: bytes | None = None) -> ChunkSet:
        """Return the chunk set of the stored version of a document.

        A cached chunk set is only used if it was derived from the stored
        content, otherwise the document is chunked again and re-cached.

        Args:
            document_id (str): The document key.
            data (bytes | None): The stored content if already loaded.

        Raises:
            DocumentNotFound: If the document does not exist.
        """
        if data is None:
            data = await self._storage.load(document_id)
        current_hash = content_hash(document_id, data)

        cached = await self._cache.get_chunks(document_id)
        if cached is not None and cached.content_hash == current_hash:
            return cached
        if cached is not None:
            self.logging.warning("Discarding stale chunk cache entry for '%s'.", document_id)

        text = data.decode("utf-8", errors="replace")
        chunk_set = ChunkSet(
            document_id=document_id,
            content_hash=current_hash,
            chunks=self._chunker.chunk(text, document_id),
        )
        await self._cache.put_chunks(document_id, chunk_set)
        return chunk_set

    ##########################################
    ############### CORE #####################
    ##########################################

    async def ask(self, request: AskRequest) -> AskResponse:
        """Answer a question about one document.

        Args:
            request (AskRequest): File name, question and optional retrieval mode.

        Returns:
            AskResponse: The answer, whether it came from the cache, and its sources.

        Raises:
            DocumentNotFound: If the document does not exist.
            RetrievalUnavailable: If no retrieval source is available.
            AnswerGenerationFailed: If the LLM could not answer.
        """
        document_id = self._storage.resolve_document_id(request.filename)
        if not await self._storage.exists(document_id):
            raise DocumentNotFound(f"Document '{request.filename}' not found.")

        mode = request.mode or self._retriever.default_mode
        data = await self._storage.load(document_id)
        version = content_hash(document_id, data)
        q_hash = self._cache.question_hash(request.question)

        cached_answer = await self._cache.get_answer(document_id, q_hash, mode=mode.value, content_hash=version)
        if cached_answer is not None:
            self.logging.info("Answer cache hit for '%s' (%s, mode=%s).", document_id, q_hash, mode.value)
            return AskResponse(
                message="From cache",
                filename=document_id,
                question=request.question,
                answer=cached_answer,
                cached=True,
                mode=mode,
                effective_mode=mode,
            )

        chunk_set = await self.get_chunk_set(document_id, data)
        result = await self._retriever.retrieve(request.question, chunk_set, mode=mode)

        answer = await self._answer_generator.generate(
            request.question, [scored.chunk.text for scored in result.chunks]
        )
        if result.effective_mode == result.mode:
            await self._cache.put_answer(document_id, q_hash, answer, mode=mode.value, content_hash=version)
        else:
            self.logging.warning(
                "Not caching answer for '%s': retrieval degraded from %s to %s.",
                document_id, result.mode.value, result.effective_mode.value,
            )

        self.logging.info(
            "Answered question for '%s' from %d chunks (mode=%s).",
            document_id, len(result.chunks), result.effective_mode.value,
        )
        return AskResponse(
            message="Generated",
            filename=document_id,
            question=request.question,
            answer=answer,
            cached=False,
            mode=result.mode,
            effective_mode=result.effective_mode,
            sources=[
                SourceItem(
                    index=scored.chunk.index,
                    text=scored.chunk.text,
                    start_offset=scored.chunk.start_offset,
                    end_offset=scored.chunk.end_offset,
                    lexical_score=scored.lexical_score,
                    semantic_score=scored.semantic_score,
                    fused_score=scored.fused_score,
                )
                for scored in result.chunks
            ],
        )
