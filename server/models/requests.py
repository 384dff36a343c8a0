from pydantic import BaseModel, Field

from shared.models.retrieval import RetrieverMode


class AskRequest(BaseModel):
    filename: str = Field(min_length=1)
    question: str = Field(min_length=1)
    mode: RetrieverMode | None = None
