"""BM25 keyword scoring over the chunks of one document."""

import re

from rank_bm25 import BM25Plus

from shared.errors import ScorerUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Chunk
from shared.models.retrieval import ScoredChunk

TOKEN_PATTERN = re.compile(r"[^\W_]+")


def sanitize_query(query: str) -> str:
    """Escape every character with a meaning in regular expression syntax."""
    return re.escape(query)


def tokenize(text: str) -> list[str]:
    return [token.lower() for token in TOKEN_PATTERN.findall(text)]


class LexicalScorer:
    """Ranks chunks by BM25+ relevance to a query.

    BM25+ keeps every idf positive, so a document of one or two chunks still
    ranks its matching chunks.
    """

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()

    def score(self, query: str, corpus: list[Chunk], k: int) -> list[ScoredChunk]:
        """Score every chunk of corpus against query and return the best k.

        Only chunks sharing at least one token with the query are returned.
        Ties are broken by ascending chunk index.

        Args:
            query (str): The user question.
            corpus (list[Chunk]): The chunks of the document being asked about.
            k (int): Maximum number of results.

        Returns:
            list[ScoredChunk]: Results with lexical_score set, best first.

        Raises:
            ScorerUnavailable: If scoring fails for any reason.
        """
        if not corpus or k <= 0:
            return []

        try:
            query_tokens = tokenize(sanitize_query(query))
            if not query_tokens:
                return []
            documents = [tokenize(chunk.text) for chunk in corpus]
            if not any(documents):
                return []
            scores = BM25Plus(documents).get_scores(query_tokens)
        except Exception as e:
            self.logging.error("BM25 scoring failed for query '%s': %s", query, e)
            raise ScorerUnavailable(f"Lexical scoring failed: {e}") from e

        wanted = set(query_tokens)
        # BM25+ credits every chunk with a floor per query term, matched or not
        scored = [
            ScoredChunk(chunk=chunk, lexical_score=float(s))
            for chunk, tokens, s in zip(corpus, documents, scores)
            if wanted.intersection(tokens) and s > 0
        ]
        scored.sort(key=lambda s: (-s.lexical_score, s.chunk.index))
        return scored[:k]
