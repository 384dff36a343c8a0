from fastapi import APIRouter, Request

from server.models.requests import AskRequest
from server.models.responses import AskResponse

router = APIRouter(tags=["query"])


@router.post("/ask-question")
async def ask_question(request: Request, body: AskRequest) -> AskResponse:
    """Answer a question about an uploaded document.

    Args:
        request (Request): FastAPI request (provides app.state.query_service).
        body (AskRequest): JSON body with filename, question and optional mode.

    Returns:
        AskResponse: The answer, the cache flag and the ranked sources.
    """
    query_service = request.app.state.query_service
    return await query_service.ask(body)
