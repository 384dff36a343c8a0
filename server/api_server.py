"""FastAPI application entry point for doc_qa_bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.errors import (
    AnswerGenerationFailed,
    BridgeError,
    DocumentNotFound,
    InvalidDocument,
    RetrievalUnavailable,
    SyncFailed,
)
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.cache.CacheClientManager import CacheClientManager
from services.answer.AnswerGenerator import AnswerGenerator
from services.cache.DerivedDataCache import DerivedDataCache
from services.chunking.TextChunker import TextChunker
from services.retrieval.FusionRanker import FusionRanker
from services.retrieval.HybridRetriever import HybridRetriever
from services.retrieval.LexicalScorer import LexicalScorer
from services.retrieval.SemanticScorer import SemanticScorer
from services.storage.DocumentStorage import DocumentStorage
from services.vector_sync.VectorSyncService import VectorSyncService
from server.core.DocumentService import DocumentService
from server.core.QueryService import QueryService
from server.routers.CacheRouter import router as cache_router
from server.routers.DocumentRouter import router as document_router
from server.routers.QueryRouter import router as query_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")
API_PREFIX = "/api/v1"

ERROR_STATUS: dict[type[BridgeError], int] = {
    InvalidDocument: 400,
    DocumentNotFound: 404,
    AnswerGenerationFailed: 502,
    SyncFailed: 502,
    RetrievalUnavailable: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)
    helper_config = app.state.helper_config

    # an httpx transport may be placed on app.state before startup to redirect all backends
    transport: httpx.AsyncBaseTransport | None = getattr(app.state, "transport", None)

    rag_client = RAGClientManager(helper_config=helper_config).get_client()
    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()
    cache_client = CacheClientManager(helper_config=helper_config).get_client()

    logging.info("Booting all clients...")
    for client in [rag_client, embed_client, llm_client]:
        await client.boot(transport=transport)
    await cache_client.boot()
    logging.info("All clients booted successfully.")

    storage = DocumentStorage(helper_config=helper_config)
    cache = DerivedDataCache(helper_config=helper_config, cache_client=cache_client)
    chunker = TextChunker(helper_config=helper_config)
    vector_sync = VectorSyncService(helper_config=helper_config, rag_client=rag_client, embed_client=embed_client)
    retriever = HybridRetriever(
        helper_config=helper_config,
        lexical_scorer=LexicalScorer(helper_config=helper_config),
        semantic_scorer=SemanticScorer(helper_config=helper_config, rag_client=rag_client, embed_client=embed_client),
        ranker=FusionRanker(helper_config=helper_config),
    )

    app.state.storage = storage
    app.state.cache = cache
    app.state.vector_sync = vector_sync
    app.state.document_service = DocumentService(
        helper_config=helper_config,
        storage=storage,
        cache=cache,
        chunker=chunker,
        vector_sync=vector_sync,
    )
    app.state.query_service = QueryService(
        helper_config=helper_config,
        storage=storage,
        cache=cache,
        chunker=chunker,
        retriever=retriever,
        answer_generator=AnswerGenerator(helper_config=helper_config, llm_client=llm_client),
    )

    await check_connections(rag_client, embed_client, llm_client)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [rag_client, embed_client, llm_client, cache_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="doc_qa_bridge",
    description=(
        "Question answering over uploaded plain-text documents. "
        "Passages are retrieved by fusing BM25 keyword ranking with vector similarity search, "
        "chunk sets and answers are cached per document and invalidated on re-upload."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(document_router, prefix=API_PREFIX)
app.include_router(query_router, prefix=API_PREFIX)
app.include_router(cache_router, prefix=API_PREFIX)


@app.get(f"{API_PREFIX}/")
async def root() -> dict:
    return {"message": "doc_qa_bridge is running", "version": app_version}


##########################################
############ ERROR HANDLERS ##############
##########################################

@app.exception_handler(BridgeError)
async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logging.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"message": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    fields = ", ".join(".".join(str(part) for part in err.get("loc", ())[1:]) for err in errors)
    return JSONResponse(status_code=400, content={"message": f"Invalid request: {fields or 'body'}"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logging.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


async def check_connections(
    rag_client: RAGClientInterface,
    embed_client: EmbedClientInterface,
    llm_client: LLMClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    Embedding and LLM failures are non-fatal: retrieval degrades to lexical
    ranking and questions fail individually. The vector store is required.

    Raises:
        Exception: If the vector store is not reachable.
    """
    result: httpx.Response = await rag_client.do_healthcheck()
    if not result.is_success:
        raise Exception(
            f"RAG client '{rag_client.__class__.__name__}' is not reachable "
            f"(status {result.status_code}). Cannot index documents."
        )

    for client in [embed_client, llm_client]:
        try:
            result = await client.do_healthcheck()
            reachable = result.is_success
        except httpx.HTTPError as exc:
            logging.warning("Healthcheck of '%s' failed: %s", client.__class__.__name__, exc)
            reachable = False
        if not reachable:
            logging.warning(
                "%s client '%s' is not reachable. Requests depending on it will fail or degrade.",
                client.get_client_type().upper(),
                client.__class__.__name__,
            )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting doc_qa_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
