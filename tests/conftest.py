"""Pytest fixtures: environment, in-memory backends and booted clients.

All HTTP backends are simulated behind one httpx.MockTransport, routed by host:
  qdrant.test -> FakeQdrant  (collections, points, payload filters, cosine search)
  embed.test  -> FakeOllamaEmbed (deterministic bag-of-words vectors)
  llm.test    -> FakeOllamaChat  (echoes the first context chunk)
"""
import hashlib
import json
import logging
import math
import os
import re
import tempfile

import httpx
import pytest
import pytest_asyncio

# log files of modules that configure logging at import time go to a scratch dir
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="doc_qa_bridge_"))

from shared.helper.HelperConfig import HelperConfig  # noqa: E402
from shared.logging.logging_setup import ColorLogger  # noqa: E402

EMBED_DIM = 32


##########################################
############## FAKE QDRANT ###############
##########################################

class FakeQdrant:
    """Subset of the Qdrant REST API used by RAGClientQdrant."""

    def __init__(self) -> None:
        self.collections: dict[str, dict] = {}
        self.fail_search = False
        self.fail_upsert = False
        self.fail_delete = False
        self.create_calls = 0
        self.requests: list[tuple[str, str]] = []

    @staticmethod
    def _matches(payload: dict, body_filter: dict | None) -> bool:
        for cond in (body_filter or {}).get("must", []):
            if payload.get(cond["key"]) != cond["match"]["value"]:
                return False
        return True

    @staticmethod
    def _cosine(a: list[float], b: list[float]) -> float:
        dot = sum(x * y for x, y in zip(a, b))
        norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
        return dot / norm if norm else 0.0

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        method = request.method
        self.requests.append((method, path))
        body = json.loads(request.content) if request.content else {}

        if path == "/healthz":
            return httpx.Response(200, text="healthz check passed")

        m = re.fullmatch(r"/collections/([^/]+)(/.*)?", path)
        if not m:
            return httpx.Response(404, json={"status": {"error": "not found"}})
        name, rest = m.group(1), m.group(2) or ""
        collection = self.collections.get(name)

        if rest == "/exists" and method == "GET":
            return httpx.Response(200, json={"result": {"exists": collection is not None}, "status": "ok"})
        if rest == "" and method == "GET":
            if collection is None:
                return httpx.Response(404, json={"status": {"error": "Collection not found"}})
            params = {"vectors": {"size": collection["size"], "distance": collection["distance"]}}
            return httpx.Response(200, json={"result": {"config": {"params": params}}, "status": "ok"})
        if rest == "" and method == "PUT":
            self.create_calls += 1
            if collection is not None:
                return httpx.Response(409, json={"status": {"error": "Collection already exists"}})
            self.collections[name] = {
                "size": body["vectors"]["size"],
                "distance": body["vectors"]["distance"],
                "points": {},
            }
            return httpx.Response(200, json={"result": True, "status": "ok"})

        if collection is None:
            return httpx.Response(404, json={"status": {"error": "Collection not found"}})
        points: dict = collection["points"]

        if rest == "/points" and method == "PUT":
            if self.fail_upsert:
                return httpx.Response(500, json={"status": {"error": "upsert failed"}})
            for point in body["points"]:
                if len(point["vector"]) != collection["size"]:
                    return httpx.Response(400, json={"status": {"error": "wrong vector size"}})
                points[point["id"]] = point
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})
        if rest == "/points/delete" and method == "POST":
            if self.fail_delete:
                return httpx.Response(500, json={"status": {"error": "delete failed"}})
            for pid in [pid for pid, p in points.items() if self._matches(p["payload"], body.get("filter"))]:
                del points[pid]
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})
        if rest == "/points/search" and method == "POST":
            if self.fail_search:
                return httpx.Response(500, json={"status": {"error": "search failed"}})
            hits = [
                {"id": p["id"], "score": self._cosine(body["vector"], p["vector"]), "payload": p["payload"]}
                for p in points.values()
                if self._matches(p["payload"], body.get("filter"))
            ]
            hits.sort(key=lambda h: h["score"], reverse=True)
            return httpx.Response(200, json={"result": hits[: body.get("limit", 10)], "status": "ok", "time": 0.001})
        if rest == "/points/scroll" and method == "POST":
            matching = sorted(
                (p for p in points.values() if self._matches(p["payload"], body.get("filter"))),
                key=lambda p: p["id"],
            )
            start = int(body.get("offset") or 0)
            limit = body.get("limit") or 10
            page = matching[start:start + limit]
            next_offset = start + limit if start + limit < len(matching) else None
            result = [{"id": p["id"], "payload": p["payload"]} for p in page]
            return httpx.Response(
                200,
                json={"result": {"points": result, "next_page_offset": next_offset}, "status": "ok", "time": 0.001},
            )
        if rest == "/points/count" and method == "POST":
            count = sum(1 for p in points.values() if self._matches(p["payload"], body.get("filter")))
            return httpx.Response(200, json={"result": {"count": count}, "status": "ok"})

        return httpx.Response(404, json={"status": {"error": f"unsupported {method} {path}"}})

    def payloads(self, name: str = "documents") -> list[dict]:
        collection = self.collections.get(name) or {"points": {}}
        return [p["payload"] for p in collection["points"].values()]


##########################################
########### FAKE OLLAMA EMBED ############
##########################################

def fake_embedding(text: str, dim: int = EMBED_DIM) -> list[float]:
    """Bag-of-words vector: every lower-cased word adds 1 to a hashed bucket."""
    vector = [0.0] * dim
    for token in re.findall(r"[^\W_]+", text.lower()):
        bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % dim
        vector[bucket] += 1.0
    return vector


class FakeOllamaEmbed:
    def __init__(self) -> None:
        self.fail = False
        self.embed_calls: list[list[str]] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path in ("", "/"):
            return httpx.Response(200, text="Ollama is running")
        if self.fail:
            return httpx.Response(503, json={"error": "model unavailable"})
        body = json.loads(request.content) if request.content else {}
        if path == "/api/show":
            return httpx.Response(200, json={"model_info": {"fake.embedding_length": EMBED_DIM}})
        if path == "/api/embed":
            self.embed_calls.append(list(body["input"]))
            return httpx.Response(200, json={"embeddings": [fake_embedding(t) for t in body["input"]]})
        return httpx.Response(404, json={"error": "not found"})


##########################################
############ FAKE OLLAMA CHAT ############
##########################################

class FakeOllamaChat:
    def __init__(self) -> None:
        self.fail = False
        self.calls: list[dict] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path in ("", "/"):
            return httpx.Response(200, text="Ollama is running")
        if path != "/api/chat":
            return httpx.Response(404, json={"error": "not found"})
        if self.fail:
            return httpx.Response(500, json={"error": "boom"})
        body = json.loads(request.content)
        self.calls.append(body)
        system = next((m["content"] for m in body["messages"] if m["role"] == "system"), "")
        context = system.split("Context:\n", 1)[-1]
        first_chunk = context.split("\n\n", 1)[0]
        return httpx.Response(
            200,
            json={"message": {"role": "assistant", "content": f"Answer #{len(self.calls)}: {first_chunk[:60]}"}},
        )


class FakeBackends:
    def __init__(self) -> None:
        self.qdrant = FakeQdrant()
        self.embed = FakeOllamaEmbed()
        self.llm = FakeOllamaChat()
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "qdrant.test":
            return self.qdrant.handle(request)
        if host == "embed.test":
            return self.embed.handle(request)
        if host == "llm.test":
            return self.llm.handle(request)
        return httpx.Response(502, text=f"unknown host {host}")


##########################################
################ FIXTURES ################
##########################################

@pytest.fixture
def env(monkeypatch, tmp_path) -> dict:
    values = {
        "ROOT_DIR": str(tmp_path),
        "UPLOAD_DIR": str(tmp_path / "uploads"),
        "CHUNK_SIZE": "500",
        "CHUNK_OVERLAP": "150",
        "RETRIEVAL_TOP_K": "8",
        "RETRIEVAL_MODE": "hybrid",
        "CACHE_ENGINE": "Memory",
        "CACHE_TTL_SECONDS": "86400",
        "CACHE_PREFIX": "rag",
        "RAG_ENGINE": "Qdrant",
        "RAG_QDRANT_BASE_URL": "http://qdrant.test",
        "RAG_QDRANT_COLLECTION": "documents",
        "EMBED_ENGINE": "Ollama",
        "EMBED_MODEL": "fake-embed",
        "EMBED_BATCH_SIZE": "4",
        "EMBED_OLLAMA_BASE_URL": "http://embed.test",
        "LLM_ENGINE": "Ollama",
        "LLM_CHAT_MODEL": "fake-chat",
        "LLM_OLLAMA_BASE_URL": "http://llm.test",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    return values


@pytest.fixture
def helper_config(env) -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("doc_qa_bridge.tests")))


@pytest.fixture
def backends() -> FakeBackends:
    return FakeBackends()


@pytest_asyncio.fixture
async def rag_client(helper_config, backends):
    from shared.clients.rag.RAGClientManager import RAGClientManager

    client = RAGClientManager(helper_config=helper_config).get_client()
    await client.boot(transport=backends.transport)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def embed_client(helper_config, backends):
    from shared.clients.embed.EmbedClientManager import EmbedClientManager

    client = EmbedClientManager(helper_config=helper_config).get_client()
    await client.boot(transport=backends.transport)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def llm_client(helper_config, backends):
    from shared.clients.llm.LLMClientManager import LLMClientManager

    client = LLMClientManager(helper_config=helper_config).get_client()
    await client.boot(transport=backends.transport)
    yield client
    await client.close()


@pytest.fixture
def clock() -> list[float]:
    """Mutable fake time for the memory cache; advance with clock[0] += seconds."""
    return [1000.0]


@pytest_asyncio.fixture
async def cache_client(helper_config, clock):
    from shared.clients.cache.memory.CacheClientMemory import CacheClientMemory

    client = CacheClientMemory(helper_config=helper_config, clock=lambda: clock[0])
    await client.boot()
    yield client
    await client.close()
