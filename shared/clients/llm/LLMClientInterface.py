from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    """Chat completion client used to phrase answers from retrieved context.

    Reads LLM_CHAT_MODEL (required) and LLM_MAX_TOKENS (default 1024).
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.chat_model: str = helper_config.get_string_val("LLM_CHAT_MODEL")
        self.max_tokens = int(helper_config.get_number_val("LLM_MAX_TOKENS", default=1024))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        pass

    @abstractmethod
    def get_chat_payload(self, messages: list[dict], system: str | None = None) -> dict:
        """Request body for one completion.

        Args:
            messages (list[dict]): {"role", "content"} dicts, without the system prompt.
            system (str | None): System prompt, placed wherever the backend expects it.
        """
        pass

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """Reply text of a completion response.

        Raises:
            ValueError: If the response holds no reply.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict], system: str | None = None) -> str:
        """Run one completion and return the reply text.

        Raises:
            Exception: On an error status from the backend.
            ValueError: If the response holds no reply.
        """
        response = await self.do_request(
            method="POST",
            json=self.get_chat_payload(messages, system=system),
            endpoint=self._get_endpoint_chat(),
            raise_on_error=True,
        )
        return self.extract_chat_response(response.json())
