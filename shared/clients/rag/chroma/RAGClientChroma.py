"""Chroma vector store over its v1 REST API.

Targets Chroma servers that expose /api/v1 (the 0.4.x and 0.5.x lines).
Chroma 1.x only serves the tenant/database scoped /api/v2 routes and is not
supported by this engine.
"""

from typing import Any

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.CollectionState import CollectionHandle
from shared.clients.rag.models.QueryResult import GetResult, QueryResult
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class RAGClientChroma(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:8000", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="documents", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Chroma"

    def get_collection_name(self) -> str:
        return self._collection_name

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:8000"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="documents"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"X-Chroma-Token": self._api_key}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/v1/heartbeat"

    def _get_endpoint_collections(self) -> str:
        return "/api/v1/collections"

    def _get_endpoint_collection(self, name: str) -> str:
        return f"/api/v1/collections/{name}"

    def _get_endpoint_records(self, collection: CollectionHandle, action: str) -> str:
        return f"/api/v1/collections/{collection.id}/{action}"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_collection_payload(self, name: str, metadata: dict[str, Any]) -> dict:
        return {"name": name, "metadata": metadata, "get_or_create": False}

    def get_add_payload(self, ids: list[str], embeddings: list[list[float]], metadatas: list[dict], documents: list[str]) -> dict:
        return {
            "ids": ids,
            "embeddings": embeddings,
            "metadatas": metadatas,
            "documents": documents,
        }

    def get_query_payload(self, query_embeddings: list[list[float]], n_results: int, include: list[str], where: dict | None = None) -> dict:
        payload: dict = {
            "query_embeddings": query_embeddings,
            "n_results": n_results,
            "include": include,
        }
        if where:
            payload["where"] = where
        return payload

    def get_get_payload(self, ids: list[str] | None, limit: int | None, offset: int | None, include: list[str]) -> dict:
        payload: dict = {"include": include}
        if ids is not None:
            payload["ids"] = ids
        if limit is not None:
            payload["limit"] = limit
        if offset is not None:
            payload["offset"] = offset
        return payload

    def get_delete_payload(self, ids: list[str]) -> dict:
        return {"ids": ids}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_collection(self, raw_response: Any) -> CollectionHandle:
        if not isinstance(raw_response, dict) or "id" not in raw_response:
            raise ValueError("Chroma response does not describe a collection: %r" % (raw_response,))
        return CollectionHandle(
            id=str(raw_response["id"]),
            name=raw_response.get("name", self._collection_name),
            metadata=raw_response.get("metadata") or {},
        )

    def extract_collection_names(self, raw_response: Any) -> set[str]:
        # older servers list plain names, newer ones full collection objects
        names: set[str] = set()
        for entry in raw_response or []:
            names.add(entry["name"] if isinstance(entry, dict) else str(entry))
        return names

    def extract_query_result(self, raw_response: Any) -> QueryResult:
        raw_response = raw_response or {}

        def first_row(key: str) -> list:
            rows = raw_response.get(key) or []
            return (rows[0] or []) if rows else []

        return QueryResult(
            ids=first_row("ids"),
            documents=first_row("documents"),
            metadatas=first_row("metadatas"),
            distances=first_row("distances"),
        )

    def extract_get_result(self, raw_response: Any) -> GetResult:
        raw_response = raw_response or {}
        return GetResult(
            ids=raw_response.get("ids") or [],
            documents=raw_response.get("documents") or [],
            metadatas=raw_response.get("metadatas") or [],
        )

    def extract_count(self, raw_response: Any) -> int:
        return int(raw_response or 0)
