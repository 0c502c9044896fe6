"""
Pytest configuration and shared fixtures.

Backends are replaced by httpx.MockTransport handlers: FakeChroma keeps
collections in memory and speaks the subset of the Chroma REST API the RAG
client uses; FakeChatBackend answers OpenAI-style chat completions, streamed
or not.
"""

from contextlib import asynccontextmanager
import asyncio
import json
import logging
import math
import re

from fastapi import FastAPI
from fastapi.testclient import TestClient
import httpx
import pytest

from server.core.ChatAgent import ChatAgent, load_agent_config
from server.core.ContextRetriever import ContextRetriever
from server.core.DocumentService import DocumentService
from server.core.RAGOrchestrator import RAGOrchestrator
from server.handlers.error_handlers import register_exception_handlers
from server.routers.ChatRouter import router as chat_router
from server.routers.DocumentRouter import router as document_router
from server.routers.HealthRouter import router as health_router
from shared.clients.embed.local.EmbedClientLocal import EmbedClientLocal
from shared.clients.llm.deepseek.LLMClientDeepseek import LLMClientDeepseek
from shared.clients.rag.chroma.RAGClientChroma import RAGClientChroma
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger

_ENV_TO_CLEAR = [
    "API_SERVER_API_KEY",
    "EMBED_ENGINE",
    "LLM_ENGINE",
    "RAG_ENGINE",
    "RAG_TIMEOUT",
    "LLM_TIMEOUT",
    "EMBED_LOCAL_DIMENSION",
    "LLM_AGENT_PROFILE",
    "LLM_SYSTEM_PROMPT",
    "LLM_CHAT_MODEL",
    "LLM_TEMPERATURE",
    "LLM_MAX_TOKENS",
    "RAG_CHROMA_API_KEY",
]


class FakeChroma:
    """In-memory stand-in for a Chroma server."""

    def __init__(self, latency: float = 0.0) -> None:
        self.collections: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.latency = latency
        self.down = False
        self.failing_actions: set[str] = set()
        self.fail_create = False
        self._next_id = 1

    def count_calls(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call == (method, path))

    def _by_id(self, collection_id: str) -> dict | None:
        for collection in self.collections.values():
            if collection["id"] == collection_id:
                return collection
        return None

    @staticmethod
    def _describe(collection: dict) -> dict:
        return {"id": collection["id"], "name": collection["name"], "metadata": collection["metadata"]}

    @staticmethod
    def _distance(a: list[float], b: list[float]) -> float:
        dot = sum(x * y for x, y in zip(a, b))
        norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
        return 1.0 - (dot / norm if norm else 0.0)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.calls.append((method, path))
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        body = json.loads(request.content) if request.content else {}

        if path == "/api/v1/heartbeat":
            return httpx.Response(200, json={"nanosecond heartbeat": 1})

        if path == "/api/v1/collections":
            if method == "GET":
                return httpx.Response(200, json=[self._describe(c) for c in self.collections.values()])
            if self.fail_create:
                return httpx.Response(500, json={"error": "create exploded"})
            name = body["name"]
            if name in self.collections:
                return httpx.Response(409, json={"error": f"Collection {name} already exists"})
            collection = {"id": f"col-{self._next_id}", "name": name, "metadata": body.get("metadata") or {}, "records": {}}
            self._next_id += 1
            self.collections[name] = collection
            return httpx.Response(200, json=self._describe(collection))

        match = re.fullmatch(r"/api/v1/collections/([^/]+)", path)
        if match:
            name = match.group(1)
            if name not in self.collections:
                return httpx.Response(404, json={"error": f"Collection {name} does not exist"})
            if method == "DELETE":
                del self.collections[name]
                return httpx.Response(200, json=None)
            return httpx.Response(200, json=self._describe(self.collections[name]))

        match = re.fullmatch(r"/api/v1/collections/([^/]+)/(\w+)", path)
        if not match:
            return httpx.Response(404, json={"error": "unknown route"})
        collection = self._by_id(match.group(1))
        action = match.group(2)
        if collection is None:
            return httpx.Response(404, json={"error": "unknown collection"})
        if action in self.failing_actions:
            return httpx.Response(500, json={"error": f"{action} exploded"})
        records: dict = collection["records"]

        if action in ("add", "update"):
            for i, record_id in enumerate(body["ids"]):
                if action == "update" and record_id not in records:
                    continue
                records[record_id] = {
                    "document": body["documents"][i],
                    "metadata": body["metadatas"][i],
                    "embedding": body["embeddings"][i],
                }
            return httpx.Response(201 if action == "add" else 200, json=True)

        if action == "get":
            if body.get("ids") is not None:
                ids = [record_id for record_id in body["ids"] if record_id in records]
            else:
                offset = body.get("offset") or 0
                limit = body.get("limit")
                ids = list(records)[offset:offset + limit if limit is not None else None]
            return httpx.Response(200, json={
                "ids": ids,
                "documents": [records[i]["document"] for i in ids],
                "metadatas": [records[i]["metadata"] for i in ids],
            })

        if action == "query":
            query_embedding = body["query_embeddings"][0]
            ranked = sorted(records, key=lambda i: self._distance(query_embedding, records[i]["embedding"]))
            ids = ranked[:body["n_results"]]
            return httpx.Response(200, json={
                "ids": [ids],
                "documents": [[records[i]["document"] for i in ids]],
                "metadatas": [[records[i]["metadata"] for i in ids]],
                "distances": [[self._distance(query_embedding, records[i]["embedding"]) for i in ids]],
            })

        if action == "delete":
            for record_id in body.get("ids") or []:
                records.pop(record_id, None)
            return httpx.Response(200, json=body.get("ids") or [])

        if action == "count":
            return httpx.Response(200, json=len(records))

        return httpx.Response(404, json={"error": "unknown action"})


class FakeChatBackend:
    """OpenAI-compatible /chat/completions stand-in."""

    def __init__(self, tokens: list[str] | None = None) -> None:
        self.tokens = tokens if tokens is not None else ["Hello", " there", "!"]
        self.requests: list[dict] = []
        self.status_code = 200
        self.fail_after: int | None = None

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/models"):
            return httpx.Response(200, json={"data": [{"id": "deepseek-chat"}]})
        body = json.loads(request.content)
        self.requests.append(body)
        if self.status_code >= 300:
            return httpx.Response(self.status_code, json={"error": {"message": "upstream unavailable"}})
        if not body.get("stream"):
            return httpx.Response(200, json={
                "choices": [{"index": 0, "message": {"role": "assistant", "content": "".join(self.tokens)}}],
            })

        lines = [": keep-alive", "", 'data: {"choices":[{"index":0,"delta":{"role":"assistant"}}]}', ""]
        for i, token in enumerate(self.tokens):
            if self.fail_after is not None and i == self.fail_after:
                lines.append('data: {"error": {"message": "stream broke"}}')
                lines.append("")
                break
            lines.append("data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": token}}]}))
            lines.append("")
        else:
            lines.append("data: [DONE]")
            lines.append("")
        return httpx.Response(
            200,
            content="\n".join(lines).encode("utf-8"),
            headers={"content-type": "text/event-stream"},
        )


@pytest.fixture
def helper_config(monkeypatch) -> HelperConfig:
    for key in _ENV_TO_CLEAR:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("RAG_CHROMA_BASE_URL", "http://chroma.test")
    monkeypatch.setenv("RAG_CHROMA_COLLECTION", "documents")
    monkeypatch.setenv("LLM_DEEPSEEK_BASE_URL", "http://llm.test/v1")
    monkeypatch.setenv("LLM_DEEPSEEK_API_KEY", "test-key")
    return HelperConfig(logger=ColorLogger(logging.getLogger("docrag.tests")))


@pytest.fixture
def fake_chroma() -> FakeChroma:
    return FakeChroma()


@pytest.fixture
async def rag_client(helper_config, fake_chroma):
    client = RAGClientChroma(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(fake_chroma))
    yield client
    await client.close()


@pytest.fixture
def embed_client(helper_config) -> EmbedClientLocal:
    return EmbedClientLocal(helper_config=helper_config)


@pytest.fixture
def document_service(helper_config, rag_client, embed_client) -> DocumentService:
    return DocumentService(helper_config=helper_config, rag_client=rag_client, embed_client=embed_client)


@pytest.fixture
def fake_chat_backend() -> FakeChatBackend:
    return FakeChatBackend()


@pytest.fixture
async def llm_client(helper_config, fake_chat_backend):
    client = LLMClientDeepseek(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(fake_chat_backend))
    yield client
    await client.close()


@pytest.fixture
def client(helper_config, fake_chroma, fake_chat_backend):
    """TestClient for an app wired like server.api_server, with both backends mocked.

    Clients are booted inside the app lifespan so they live on the TestClient event loop.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        rag_client = RAGClientChroma(helper_config=helper_config)
        llm_client = LLMClientDeepseek(helper_config=helper_config)
        await rag_client.boot(transport=httpx.MockTransport(fake_chroma))
        await llm_client.boot(transport=httpx.MockTransport(fake_chat_backend))

        document_service = DocumentService(
            helper_config=helper_config,
            rag_client=rag_client,
            embed_client=EmbedClientLocal(helper_config=helper_config),
        )
        agent = ChatAgent(helper_config=helper_config, llm_client=llm_client, config=load_agent_config(helper_config, llm_client))
        app.state.logging = helper_config.get_logger()
        app.state.helper_config = helper_config
        app.state.document_service = document_service
        app.state.rag_orchestrator = RAGOrchestrator(
            helper_config=helper_config,
            retriever=ContextRetriever(helper_config=helper_config, document_service=document_service),
            agent=agent,
        )
        yield
        await rag_client.close()
        await llm_client.close()

    app = FastAPI(lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(chat_router)
    app.include_router(document_router)
    app.include_router(health_router)

    with TestClient(app) as test_client:
        yield test_client
