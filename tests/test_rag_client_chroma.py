import asyncio

import httpx
import pytest

from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.chroma.RAGClientChroma import RAGClientChroma
from shared.clients.rag.models.CollectionState import CollectionHandle, CollectionStatus
from shared.errors.AppErrors import StoreUnavailableError

COLLECTIONS_PATH = "/api/v1/collections"


class TestEnsureCollection:
    async def test_creates_missing_collection(self, rag_client, fake_chroma):
        handle = await rag_client.ensure_collection()

        assert handle.name == "documents"
        assert "documents" in fake_chroma.collections
        assert fake_chroma.collections["documents"]["metadata"]["description"] == "Document embeddings for docrag"
        assert rag_client.is_collection_ready()

    async def test_uses_existing_collection(self, rag_client, fake_chroma):
        fake_chroma.collections["documents"] = {"id": "existing", "name": "documents", "metadata": {"a": 1}, "records": {}}

        handle = await rag_client.ensure_collection()

        assert handle.id == "existing"
        assert fake_chroma.count_calls("POST", COLLECTIONS_PATH) == 0

    async def test_second_call_reuses_handle(self, rag_client, fake_chroma):
        first = await rag_client.ensure_collection()
        calls = len(fake_chroma.calls)

        second = await rag_client.ensure_collection()

        assert first == second
        assert len(fake_chroma.calls) == calls

    async def test_concurrent_callers_share_one_initialization(self, rag_client, fake_chroma):
        fake_chroma.latency = 0.01

        handles = await asyncio.gather(*(rag_client.ensure_collection() for _ in range(5)))

        assert fake_chroma.count_calls("POST", COLLECTIONS_PATH) == 1
        assert fake_chroma.count_calls("GET", "/api/v1/heartbeat") == 1
        assert len({handle.id for handle in handles}) == 1

    async def test_cancelled_caller_does_not_cancel_shared_initialization(self, rag_client, fake_chroma):
        fake_chroma.latency = 0.02

        first = asyncio.create_task(rag_client.ensure_collection())
        await asyncio.sleep(0)
        second = asyncio.create_task(rag_client.ensure_collection())
        await asyncio.sleep(0)
        first.cancel()

        handle = await second

        assert handle.name == "documents"
        assert fake_chroma.count_calls("POST", COLLECTIONS_PATH) == 1

    async def test_failed_initialization_is_retried(self, rag_client, fake_chroma):
        fake_chroma.down = True
        with pytest.raises(StoreUnavailableError) as exc_info:
            await rag_client.ensure_collection()

        assert exc_info.value.code == "VECTOR_STORE_HEARTBEAT_ERROR"
        assert rag_client.get_collection_state().status == CollectionStatus.FAILED

        fake_chroma.down = False
        handle = await rag_client.ensure_collection()

        assert handle.name == "documents"
        assert rag_client.is_collection_ready()

    async def test_reset_forces_new_initialization(self, rag_client, fake_chroma):
        await rag_client.ensure_collection()
        rag_client.reset_collection_state()

        assert rag_client.get_collection_state().status == CollectionStatus.UNINITIALIZED
        await rag_client.ensure_collection()
        assert fake_chroma.count_calls("GET", "/api/v1/heartbeat") == 2


class TestRecordOperations:
    async def test_add_query_get_count(self, rag_client):
        collection = await rag_client.ensure_collection()
        await rag_client.do_add(
            collection,
            ids=["a", "b"],
            embeddings=[[1.0, 0.0], [0.0, 1.0]],
            metadatas=[{"n": 1}, {"n": 2}],
            documents=["alpha", "beta"],
        )

        result = await rag_client.do_query(collection, [[1.0, 0.1]], n_results=1, include=["documents", "metadatas", "distances"])
        assert result.ids == ["a"]
        assert result.documents == ["alpha"]
        assert len(result.distances) == 1

        fetched = await rag_client.do_get(collection, include=["documents", "metadatas"], ids=["b", "missing"])
        assert fetched.ids == ["b"]
        assert fetched.metadatas == [{"n": 2}]

        assert await rag_client.do_count(collection) == 2

    async def test_store_error_status_maps_to_operation_code(self, rag_client, fake_chroma):
        collection = await rag_client.ensure_collection()
        fake_chroma.failing_actions = {"query"}

        with pytest.raises(StoreUnavailableError) as exc_info:
            await rag_client.do_query(collection, [[1.0]], n_results=3, include=["documents"])

        assert exc_info.value.code == "VECTOR_STORE_QUERY_ERROR"
        assert exc_info.value.status_code == 500
        assert exc_info.value.message.startswith("Vector store query failed:")

    async def test_heartbeat_reports_unreachable_store(self, rag_client, fake_chroma):
        assert await rag_client.do_heartbeat() is True
        fake_chroma.down = True
        assert await rag_client.do_heartbeat() is False

    async def test_requests_before_boot_fail(self, helper_config):
        client = RAGClientChroma(helper_config=helper_config)
        with pytest.raises(StoreUnavailableError):
            await client.do_list_collections()


class TestChromaPayloads:
    def test_query_payload_omits_empty_filter(self, helper_config):
        client = RAGClientChroma(helper_config=helper_config)
        assert "where" not in client.get_query_payload([[0.1]], 3, ["documents"], where={})
        assert client.get_query_payload([[0.1]], 3, ["documents"], where={"tag": "x"})["where"] == {"tag": "x"}

    def test_extract_collection_names_accepts_both_formats(self, helper_config):
        client = RAGClientChroma(helper_config=helper_config)
        assert client.extract_collection_names(["a", {"name": "b", "id": "1"}]) == {"a", "b"}

    def test_extract_query_result_handles_empty_rows(self, helper_config):
        client = RAGClientChroma(helper_config=helper_config)
        result = client.extract_query_result({"ids": [], "documents": [[]]})
        assert result.ids == []
        assert result.documents == []

    def test_extract_collection_rejects_garbage(self, helper_config):
        client = RAGClientChroma(helper_config=helper_config)
        with pytest.raises(ValueError):
            client.extract_collection({"error": "nope"})

    def test_endpoints_use_v1_api(self, helper_config):
        client = RAGClientChroma(helper_config=helper_config)
        handle = CollectionHandle(id="col-1", name="documents")

        assert client._get_endpoint_healthcheck() == "/api/v1/heartbeat"
        assert client._get_endpoint_collections() == "/api/v1/collections"
        assert client._get_endpoint_collection("documents") == "/api/v1/collections/documents"
        assert client._get_endpoint_records(handle, "query") == "/api/v1/collections/col-1/query"

    async def test_initialization_only_touches_v1_routes(self, rag_client, fake_chroma):
        await rag_client.ensure_collection()

        assert fake_chroma.calls
        assert all(path.startswith("/api/v1/") for _, path in fake_chroma.calls)

    async def test_token_header_is_sent_when_configured(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_CHROMA_API_KEY", "secret")
        seen: list[httpx.Headers] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers)
            return httpx.Response(200, json={"nanosecond heartbeat": 1})

        client = RAGClientChroma(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(handler))
        try:
            assert await client.do_heartbeat()
        finally:
            await client.close()

        assert seen[0]["X-Chroma-Token"] == "secret"


class TestRAGClientManager:
    def test_default_engine_is_chroma(self, helper_config):
        assert isinstance(RAGClientManager(helper_config=helper_config).get_client(), RAGClientChroma)

    def test_unknown_engine(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_ENGINE", "nope")
        with pytest.raises(ValueError, match="Unsupported RAG engine"):
            RAGClientManager(helper_config=helper_config)
