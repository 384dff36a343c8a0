from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    """Non-streaming chat against Ollama's /api/chat."""

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
        return ""

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    def get_chat_payload(self, messages: list[dict], system: str | None = None) -> dict:
        # Ollama has no top-level system field, the prompt leads the message list
        lead = [{"role": "system", "content": system}] if system else []
        return {
            "model": self.chat_model,
            "messages": lead + list(messages),
            "stream": False,
            "options": {"num_predict": self.max_tokens},
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        content = (response_data.get("message") or {}).get("content")
        if content is None:
            raise ValueError(f"Ollama chat response carries no message (keys: {sorted(response_data)}).")
        return content
