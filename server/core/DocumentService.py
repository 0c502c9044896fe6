"""Document service: CRUD and similarity search over the vector store.

Every operation resolves the collection lazily through the RAG client, embeds
text with the configured embedding client and maps raw store records to
Document / SearchResult models. The store is the single source of truth;
nothing is cached here.
"""

from datetime import datetime, timezone
from typing import Any
import secrets
import string
import time

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.QueryResult import GetResult, QueryResult
from shared.errors.AppErrors import DocumentConflictError, DocumentNotFoundError, ServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import CollectionStats, Document, DocumentInput, SearchResult

QUERY_INCLUDE = ["documents", "metadatas", "distances"]
GET_INCLUDE = ["documents", "metadatas"]

_ID_ALPHABET = string.ascii_lowercase + string.digits


class DocumentService:
    """Stores, fetches and searches documents in the configured collection."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag = rag_client
        self._embed = embed_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def add_document(self, content: str, metadata: dict[str, Any] | None = None, document_id: str | None = None) -> Document:
        """Store a single document and return it as read back from the store.

        Raises:
            DocumentConflictError: If a caller-provided id is already taken.
            StoreUnavailableError: If the store fails.
        """
        if document_id is not None and await self.get_document(document_id) is not None:
            raise DocumentConflictError(document_id)

        ids = await self.add_documents([DocumentInput(id=document_id, content=content, metadata=metadata)])
        created = await self.get_document(ids[0])
        if created is None:
            raise ServiceError("Failed to retrieve created document", code="DOCUMENT_RETRIEVAL_ERROR")
        return created

    async def add_documents(self, items: list[DocumentInput]) -> list[str]:
        """Embed and store several documents in one request.

        Returns:
            list[str]: The ids of the stored documents, in input order.
        """
        if not items:
            return []

        timestamp = self._now()
        documents = [
            Document(
                id=item.id or self.generate_document_id(),
                content=item.content,
                metadata={**(item.metadata or {}), "timestamp": timestamp},
            )
            for item in items
        ]

        collection = await self._rag.ensure_collection()
        contents = [document.content for document in documents]
        embeddings = await self._embed.embed_documents(contents)
        await self._rag.do_add(
            collection,
            ids=[document.id for document in documents],
            embeddings=embeddings,
            metadatas=[document.metadata for document in documents],
            documents=contents,
        )
        self.logging.info("Added %d documents to collection", len(documents))
        return [document.id for document in documents]

    async def get_document(self, document_id: str) -> Document | None:
        collection = await self._rag.ensure_collection()
        result = await self._rag.do_get(collection, include=GET_INCLUDE, ids=[document_id])
        documents = self._build_documents(result)
        return documents[0] if documents else None

    async def update_document(self, document_id: str, content: str | None = None, metadata: dict[str, Any] | None = None) -> Document:
        """Replace content and/or merge metadata of an existing document.

        The content is re-embedded and an "updated" timestamp is added.

        Raises:
            DocumentNotFoundError: If no document has this id.
        """
        existing = await self.get_document(document_id)
        if existing is None:
            raise DocumentNotFoundError(document_id)

        new_content = content or existing.content
        new_metadata = {**existing.metadata, **(metadata or {}), "updated": self._now()}

        collection = await self._rag.ensure_collection()
        embeddings = await self._embed.embed_documents([new_content])
        await self._rag.do_update(
            collection,
            ids=[document_id],
            embeddings=embeddings,
            metadatas=[new_metadata],
            documents=[new_content],
        )
        self.logging.info("Updated document: %s", document_id)

        updated = await self.get_document(document_id)
        if updated is None:
            raise ServiceError("Failed to retrieve updated document", code="DOCUMENT_RETRIEVAL_ERROR")
        return updated

    async def delete_document(self, document_id: str) -> None:
        """Raises DocumentNotFoundError if no document has this id."""
        if await self.get_document(document_id) is None:
            raise DocumentNotFoundError(document_id)
        await self.delete_documents([document_id])

    async def delete_documents(self, document_ids: list[str]) -> None:
        collection = await self._rag.ensure_collection()
        await self._rag.do_delete(collection, ids=document_ids)
        self.logging.info("Deleted %d documents", len(document_ids))

    async def search(self, query: str, limit: int = 5, where: dict | None = None) -> list[SearchResult]:
        """Return up to limit documents nearest to query, best match first.

        Raises:
            StoreUnavailableError: If the store fails.
        """
        collection = await self._rag.ensure_collection()
        query_embedding = await self._embed.embed_query(query)
        result = await self._rag.do_query(
            collection,
            query_embeddings=[query_embedding],
            n_results=limit,
            include=QUERY_INCLUDE,
            where=where,
        )
        return self._build_search_results(result)

    async def list_documents(self, limit: int = 100, offset: int = 0) -> list[Document]:
        collection = await self._rag.ensure_collection()
        result = await self._rag.do_get(collection, include=GET_INCLUDE, limit=limit, offset=offset)
        return self._build_documents(result)

    async def get_stats(self) -> CollectionStats:
        collection = await self._rag.ensure_collection()
        count = await self._rag.do_count(collection)
        return CollectionStats(name=collection.name, count=count, metadata=collection.metadata)

    async def clear_collection(self) -> None:
        """Drop and recreate the collection. The next operation resolves it again."""
        collection = await self._rag.ensure_collection()
        await self._rag.do_delete_collection(collection.name)
        try:
            self.logging.info("Cleared collection: %s", collection.name, color="yellow")
            metadata = self._rag.get_collection_metadata()
            metadata["cleared"] = self._now()
            await self._rag.do_create_collection(collection.name, metadata)
        finally:
            # the old handle points at a deleted collection either way
            self._rag.reset_collection_state()

    async def health_check(self) -> bool:
        return await self._rag.do_heartbeat()

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def generate_document_id() -> str:
        """Return an id of the form doc_<epoch-ms>_<9 base36 chars>."""
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
        return f"doc_{int(time.time() * 1000)}_{suffix}"

    @staticmethod
    def clamp_score(distance: float | None) -> float:
        """Convert a store distance into a similarity score within [0, 1]."""
        score = 1.0 - (distance or 0.0)
        return max(0.0, min(1.0, score))

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _build_documents(self, result: GetResult) -> list[Document]:
        documents: list[Document] = []
        for index, content in enumerate(result.documents):
            if not content:
                continue
            documents.append(
                Document(
                    id=result.ids[index] if index < len(result.ids) else f"unknown_{index}",
                    content=content,
                    metadata=(result.metadatas[index] if index < len(result.metadatas) else None) or {},
                )
            )
        return documents

    def _build_search_results(self, result: QueryResult) -> list[SearchResult]:
        """Convert a raw query row into SearchResult models, skipping records without content."""
        items: list[SearchResult] = []
        for index, content in enumerate(result.documents):
            if not content:
                continue
            distance = result.distances[index] if index < len(result.distances) else None
            items.append(
                SearchResult(
                    document=Document(
                        id=result.ids[index] if index < len(result.ids) else f"unknown_{index}",
                        content=content,
                        metadata=(result.metadatas[index] if index < len(result.metadatas) else None) or {},
                    ),
                    score=self.clamp_score(distance),
                )
            )
        return items
