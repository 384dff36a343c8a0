from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperEngine import load_engine_class


class LLMClientManager:
    """Instantiates the chat client named by LLM_ENGINE ("Ollama" or "Anthropic")."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        engine = helper_config.get_string_val("LLM_ENGINE")
        client_class = load_engine_class("shared.clients.llm", "LLMClient", engine)
        self.client: LLMClientInterface = client_class(helper_config=helper_config)
        self.logging.debug("Instantiated LLM client %s (model %s).", client_class.__name__, self.client.chat_model)

    def get_client(self) -> LLMClientInterface:
        return self.client
