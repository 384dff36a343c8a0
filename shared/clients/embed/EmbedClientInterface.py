from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    """Turns texts into vectors for the semantic scorer and the vector sync.

    Settings shared by all engines: EMBED_MODEL (required), EMBED_DISTANCE
    (default "Cosine") and EMBED_BATCH_SIZE (default 64 texts per request).
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        prefix = self.get_client_type().upper()
        self.embed_model: str = helper_config.get_string_val(f"{prefix}_MODEL")
        self.embed_distance: str = helper_config.get_string_val(f"{prefix}_DISTANCE", default="Cosine")
        self.embed_batch_size = max(1, int(helper_config.get_number_val(f"{prefix}_BATCH_SIZE", default=64)))
        self._vector_size: int | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "embed"

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        pass

    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Request body embedding all texts in one call."""
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    async def _fetch_vector_size(self) -> int:
        """Ask the backend for the dimension of the configured model."""
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Vectors of a response, reordered to match the request where needed.

        Raises:
            ValueError: If the response carries no usable vectors.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> tuple[int, str]:
        """Return (dimension, distance) of the model, asking the backend only once."""
        if self._vector_size is None:
            self._vector_size = await self._fetch_vector_size()
        return self._vector_size, self.embed_distance

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Embed texts in batches of embed_batch_size.

        Returns:
            list[list[float]]: One vector per text, in input order.

        Raises:
            Exception: If a batch request is answered with an error status.
            ValueError: If a batch comes back with the wrong number of vectors.
        """
        if isinstance(texts, str):
            texts = [texts]
        size = self.embed_batch_size
        vectors: list[list[float]] = []
        for batch in (texts[i:i + size] for i in range(0, len(texts), size)):
            vectors.extend(await self._embed_batch(batch))
        return vectors

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        response = await self.do_request(
            method="POST", endpoint=self.get_endpoint_embedding(), json=self.get_embed_payload(batch)
        )
        if response.status_code != 200:
            self.logging.error("Embedding %d texts failed with status %d: %s", len(batch), response.status_code, response.text[:200])
            raise Exception(f"Embedding request failed with status {response.status_code}.")
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(batch):
            raise ValueError(f"Embedding backend returned {len(vectors)} vectors for {len(batch)} texts.")
        return vectors
