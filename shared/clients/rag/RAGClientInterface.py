from abc import abstractmethod
from datetime import datetime, timezone
from typing import Any
import asyncio

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.CollectionState import CollectionHandle, CollectionState, CollectionStatus
from shared.clients.rag.models.QueryResult import GetResult, QueryResult
from shared.errors.AppErrors import BackendRequestError, StoreUnavailableError
from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._collection_state = CollectionState()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def is_collection_ready(self) -> bool:
        return self._collection_state.status == CollectionStatus.READY

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    @abstractmethod
    def get_collection_name(self) -> str:
        """Returns the name of the collection this client works on."""
        pass

    def get_collection_metadata(self) -> dict[str, Any]:
        """Metadata attached to the collection when it is created."""
        return {
            "description": "Document embeddings for docrag",
            "created": datetime.now(timezone.utc).isoformat(),
        }

    def get_collection_state(self) -> CollectionState:
        return self._collection_state

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collections(self) -> str:
        """
        Returns the endpoint path for listing and creating collections.

        Returns:
            str: The endpoint path (e.g. "/api/v1/collections")
        """
        pass

    @abstractmethod
    def _get_endpoint_collection(self, name: str) -> str:
        """
        Returns the endpoint path for fetching or deleting a collection by name.

        Args:
            name (str): The collection name.

        Returns:
            str: The endpoint path (e.g. "/api/v1/collections/documents")
        """
        pass

    @abstractmethod
    def _get_endpoint_records(self, collection: CollectionHandle, action: str) -> str:
        """
        Returns the endpoint path for a record operation on a collection.

        Args:
            collection (CollectionHandle): The resolved collection.
            action (str): One of "add", "query", "get", "update", "delete", "count".

        Returns:
            str: The endpoint path (e.g. "/api/v1/collections/<id>/query")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_collection_payload(self, name: str, metadata: dict[str, Any]) -> dict:
        """Build the backend-specific body for a create collection request."""
        pass

    @abstractmethod
    def get_add_payload(self, ids: list[str], embeddings: list[list[float]], metadatas: list[dict], documents: list[str]) -> dict:
        """Build the backend-specific body for an add or update request.

        Args:
            ids (list[str]): Record ids.
            embeddings (list[list[float]]): One embedding per record.
            metadatas (list[dict]): One metadata mapping per record.
            documents (list[str]): The raw text of each record.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    @abstractmethod
    def get_query_payload(self, query_embeddings: list[list[float]], n_results: int, include: list[str], where: dict | None = None) -> dict:
        """Build the backend-specific body for a similarity query.

        Args:
            query_embeddings (list[list[float]]): The query vectors.
            n_results (int): Maximum number of neighbours per query vector.
            include (list[str]): Fields to return (e.g. ["documents", "metadatas", "distances"]).
            where (dict | None): Optional metadata filter.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    @abstractmethod
    def get_get_payload(self, ids: list[str] | None, limit: int | None, offset: int | None, include: list[str]) -> dict:
        """Build the backend-specific body for fetching records by id or by page."""
        pass

    @abstractmethod
    def get_delete_payload(self, ids: list[str]) -> dict:
        """Build the backend-specific body for deleting records by id."""
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_collection(self, raw_response: Any) -> CollectionHandle:
        """Parse a collection description returned by the backend."""
        pass

    @abstractmethod
    def extract_collection_names(self, raw_response: Any) -> set[str]:
        """Parse the collection listing returned by the backend."""
        pass

    @abstractmethod
    def extract_query_result(self, raw_response: Any) -> QueryResult:
        """Parse the first result row of a similarity query."""
        pass

    @abstractmethod
    def extract_get_result(self, raw_response: Any) -> GetResult:
        """Parse the records returned by a get request."""
        pass

    @abstractmethod
    def extract_count(self, raw_response: Any) -> int:
        """Parse the record count of a collection."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_store_request(self, operation: str, method: str, endpoint: str, json: Any = None) -> Any:
        """Send a request to the RAG backend and return the decoded JSON body.

        Raises:
            StoreUnavailableError: On transport errors, non-2xx statuses or an undecodable body.
        """
        try:
            response = await self.do_request(method=method, endpoint=endpoint, json=json, raise_on_error=True)
            return response.json() if response.content else None
        except (httpx.HTTPError, BackendRequestError, RuntimeError, ValueError) as e:
            raise StoreUnavailableError(operation, str(e)) from e

    async def do_heartbeat(self) -> bool:
        """Return True if the RAG backend answers its heartbeat."""
        try:
            await self._do_store_request("heartbeat", "GET", self._get_endpoint_healthcheck())
            return True
        except StoreUnavailableError as e:
            self.logging.error("%s health check failed: %s", self.get_engine_name(), e)
            return False

    async def do_list_collections(self) -> set[str]:
        raw = await self._do_store_request("list_collections", "GET", self._get_endpoint_collections())
        return self.extract_collection_names(raw)

    async def do_create_collection(self, name: str, metadata: dict[str, Any]) -> CollectionHandle:
        raw = await self._do_store_request(
            "create_collection",
            "POST",
            self._get_endpoint_collections(),
            json=self.get_create_collection_payload(name, metadata),
        )
        return self.extract_collection(raw)

    async def do_get_collection(self, name: str) -> CollectionHandle:
        raw = await self._do_store_request("get_collection", "GET", self._get_endpoint_collection(name))
        return self.extract_collection(raw)

    async def do_delete_collection(self, name: str) -> None:
        await self._do_store_request("delete_collection", "DELETE", self._get_endpoint_collection(name))

    async def do_add(self, collection: CollectionHandle, ids: list[str], embeddings: list[list[float]], metadatas: list[dict], documents: list[str]) -> None:
        await self._do_store_request(
            "add",
            "POST",
            self._get_endpoint_records(collection, "add"),
            json=self.get_add_payload(ids, embeddings, metadatas, documents),
        )

    async def do_update(self, collection: CollectionHandle, ids: list[str], embeddings: list[list[float]], metadatas: list[dict], documents: list[str]) -> None:
        await self._do_store_request(
            "update",
            "POST",
            self._get_endpoint_records(collection, "update"),
            json=self.get_add_payload(ids, embeddings, metadatas, documents),
        )

    async def do_query(self, collection: CollectionHandle, query_embeddings: list[list[float]], n_results: int, include: list[str], where: dict | None = None) -> QueryResult:
        raw = await self._do_store_request(
            "query",
            "POST",
            self._get_endpoint_records(collection, "query"),
            json=self.get_query_payload(query_embeddings, n_results, include, where),
        )
        return self.extract_query_result(raw)

    async def do_get(self, collection: CollectionHandle, include: list[str], ids: list[str] | None = None, limit: int | None = None, offset: int | None = None) -> GetResult:
        raw = await self._do_store_request(
            "get",
            "POST",
            self._get_endpoint_records(collection, "get"),
            json=self.get_get_payload(ids, limit, offset, include),
        )
        return self.extract_get_result(raw)

    async def do_delete(self, collection: CollectionHandle, ids: list[str]) -> None:
        await self._do_store_request(
            "delete",
            "POST",
            self._get_endpoint_records(collection, "delete"),
            json=self.get_delete_payload(ids),
        )

    async def do_count(self, collection: CollectionHandle) -> int:
        raw = await self._do_store_request("count", "GET", self._get_endpoint_records(collection, "count"))
        return self.extract_count(raw)

    ##########################################
    ############## COLLECTION ################
    ##########################################

    async def ensure_collection(self) -> CollectionHandle:
        """Return the collection handle, initialising it on first use.

        Concurrent callers that arrive while an initialisation is in flight
        await the same pending task instead of starting another one. A failed
        initialisation is recorded and retried by the next caller.

        Raises:
            StoreUnavailableError: If the initialisation failed.
        """
        state = self._collection_state
        if state.status == CollectionStatus.READY and state.handle is not None:
            return state.handle

        if state.status == CollectionStatus.INITIALIZING and state.pending is not None:
            pending = state.pending
        else:
            pending = asyncio.ensure_future(self._initialize_collection())
            self._collection_state = CollectionState(status=CollectionStatus.INITIALIZING, pending=pending)

        # shield: a cancelled caller must not cancel the init other callers wait on
        try:
            handle = await asyncio.shield(pending)
        except Exception as e:
            if self._collection_state.pending is pending:
                self._collection_state = CollectionState(status=CollectionStatus.FAILED, error=str(e))
            self.logging.error("%s initialization failed: %s", self.get_engine_name(), e)
            if isinstance(e, StoreUnavailableError):
                raise
            raise StoreUnavailableError("initialize", str(e)) from e

        if self._collection_state.pending is pending:
            self._collection_state = CollectionState(status=CollectionStatus.READY, handle=handle)
        return handle

    def reset_collection_state(self) -> None:
        """Forget the resolved collection so the next use initialises again."""
        self._collection_state = CollectionState()

    async def _initialize_collection(self) -> CollectionHandle:
        name = self.get_collection_name()
        await self._do_store_request("heartbeat", "GET", self._get_endpoint_healthcheck())
        self.logging.info("%s connection successful", self.get_engine_name())

        if name not in await self.do_list_collections():
            handle = await self.do_create_collection(name, self.get_collection_metadata())
            self.logging.info("Created collection: %s", name, color="green")
        else:
            handle = await self.do_get_collection(name)
            self.logging.info("Using existing collection: %s", name)
        return handle
