from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperEngine import load_engine_class


class EmbedClientManager:
    """Instantiates the embedding client named by EMBED_ENGINE ("Ollama" or "Openai").

    Chunks and queries must be embedded by the same model, so the
    application holds exactly one instance.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        engine = helper_config.get_string_val("EMBED_ENGINE")
        client_class = load_engine_class("shared.clients.embed", "EmbedClient", engine)
        self.client: EmbedClientInterface = client_class(helper_config=helper_config)
        self.logging.debug("Instantiated embed client %s (model %s).", client_class.__name__, self.client.embed_model)

    def get_client(self) -> EmbedClientInterface:
        return self.client
