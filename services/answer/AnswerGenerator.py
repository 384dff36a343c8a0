from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.errors import AnswerGenerationFailed
from shared.helper.HelperConfig import HelperConfig

SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question using only the provided context. "
    "If the answer isn't in the context, say you don't have the information. "
    "If the question is not related to the context, say you don't have the information.\n\n"
    "Context:\n{context}"
)


class AnswerGenerator:
    """Phrases an answer to a question from the retrieved chunk texts."""

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client

    def build_system_prompt(self, chunk_texts: list[str]) -> str:
        return SYSTEM_PROMPT.format(context="\n\n".join(chunk_texts))

    async def generate(self, question: str, chunk_texts: list[str]) -> str:
        """Ask the LLM to answer question from the given context, in ranking order.

        Raises:
            AnswerGenerationFailed: If the LLM request fails or returns no text.
        """
        try:
            answer = await self._llm_client.do_chat(
                messages=[{"role": "user", "content": question}],
                system=self.build_system_prompt(chunk_texts),
            )
        except Exception as exc:
            self.logging.error("Answer generation failed: %s", exc)
            raise AnswerGenerationFailed(f"Answer generation failed: {exc}") from exc
        if not answer.strip():
            raise AnswerGenerationFailed("The language model returned an empty answer.")
        return answer.strip()
