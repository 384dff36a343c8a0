from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientAnthropic(LLMClientInterface):
    """Anthropic Messages API backend."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.anthropic.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._api_version = self.get_config_val("VERSION", default="2023-06-01", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Anthropic"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.anthropic.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="VERSION", val_type="string", default="2023-06-01"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-api-key": self._api_key, "anthropic-version": self._api_version}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1/models"

    def _get_endpoint_chat(self) -> str:
        return "/v1/messages"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], system: str | None = None) -> dict:
        # the messages API takes the system prompt as a top-level field, not as a message
        payload = {
            "model": self.chat_model,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if system:
            payload["system"] = system
        return payload

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the reply from a /v1/messages response.

        Only text blocks are considered; they are concatenated in order.

        Raises:
            ValueError: If the response contains no text block.
        """
        blocks = response_data.get("content") or []
        texts = [block.get("text", "") for block in blocks if block.get("type") == "text"]
        if not texts:
            raise ValueError(
                "Anthropic response does not contain a text block. "
                "Response keys: %s" % list(response_data.keys())
            )
        return "".join(texts)
