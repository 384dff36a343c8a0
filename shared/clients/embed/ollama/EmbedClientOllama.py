from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    """Embeddings from a local Ollama server.

    Reads EMBED_OLLAMA_BASE_URL and, for proxied deployments,
    EMBED_OLLAMA_API_KEY. The vector size is taken from the model card
    returned by /api/show.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url: str = self.get_config_val("BASE_URL")
        self._token: str = self.get_config_val("API_KEY", default="")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [EnvConfig(env_key="BASE_URL"), EnvConfig(env_key="API_KEY", default="")]

    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # the server root answers "Ollama is running"
        return ""

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    async def _fetch_vector_size(self) -> int:
        response = await self.do_request(
            method="POST", endpoint="/api/show", json={"model": self.embed_model}, raise_on_error=True
        )
        card: dict = response.json().get("model_info") or {}
        # keyed by architecture, e.g. "nomic-bert.embedding_length"
        sizes = [int(value) for key, value in card.items() if key.endswith(".embedding_length")]
        if not sizes:
            raise ValueError(f"Model card of '{self.embed_model}' has no embedding_length.")
        return sizes[0]

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Return response_data["embeddings"], which Ollama keeps in input order.

        Raises:
            ValueError: If the list is missing or its first vector is empty.
        """
        vectors = response_data.get("embeddings") or []
        if not vectors or not vectors[0]:
            raise ValueError(f"Ollama returned no embeddings (keys: {sorted(response_data)}).")
        return vectors
