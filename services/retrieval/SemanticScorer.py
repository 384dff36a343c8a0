"""Vector similarity scoring, restricted to one document by a payload filter."""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPayload
from shared.errors import ScorerUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.retrieval import ScoredChunk


class SemanticScorer:
    """Embeds the query and searches the vector index of a single document."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client

    def get_filters(self, document_id: str, content_hash: str | None = None) -> list[dict]:
        """Build the equality conditions every hit must satisfy.

        The content_hash condition excludes points left over from a previous
        version of the document.
        """
        filters = [self._rag_client.get_match_condition("document_id", document_id)]
        if content_hash:
            filters.append(self._rag_client.get_match_condition("content_hash", content_hash))
        return filters

    async def score(self, query: str, document_id: str, k: int, content_hash: str | None = None) -> list[ScoredChunk]:
        """Return the k chunks of document_id most similar to query.

        Args:
            query (str): The user question.
            document_id (str): The document to search in.
            k (int): Maximum number of results.
            content_hash (str | None): Version of the document the hits must belong to.

        Returns:
            list[ScoredChunk]: Results with semantic_score set, best first.

        Raises:
            ScorerUnavailable: If embedding or the vector search fails, or the
                document has no vectors for this version (e.g. after a failed sync).
        """
        if k <= 0:
            return []
        try:
            vectors = await self._embed_client.do_embed([query])
            filters = self.get_filters(document_id, content_hash)
            hits = await self._rag_client.do_search(vector=vectors[0], filters=filters, limit=k)
            results = [
                ScoredChunk(
                    chunk=VectorPayload(**hit["payload"]).to_chunk(),
                    semantic_score=hit["score"],
                )
                for hit in hits
            ]
            indexed = bool(results) or await self._rag_client.do_count(filters) > 0
        except Exception as exc:
            # transport errors, timeouts, non-2xx responses and malformed payloads alike
            self.logging.error("Semantic search failed for document '%s': %s", document_id, exc)
            raise ScorerUnavailable(f"Semantic scoring failed: {exc}") from exc

        if not indexed:
            self.logging.warning("Document '%s' has no vectors for its current version.", document_id)
            raise ScorerUnavailable(f"Document '{document_id}' is not indexed.")

        results.sort(key=lambda s: (-s.semantic_score, s.chunk.index))
        return results[:k]
