from typing import Any

from pydantic import BaseModel

from shared.models.document import Document


class DocumentResponse(BaseModel):
    id: str
    content: str
    metadata: dict[str, Any]
    created: str | None = None
    updated: str | None = None

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        created = document.metadata.get("timestamp")
        updated = document.metadata.get("updated")
        return cls(
            id=document.id,
            content=document.content,
            metadata=document.metadata,
            created=str(created) if created is not None else None,
            updated=str(updated) if updated is not None else None,
        )


class DocumentBatchResponse(BaseModel):
    ids: list[str]
    count: int


class DocumentSearchResultItem(BaseModel):
    document: DocumentResponse
    score: float


class DocumentSearchResponse(BaseModel):
    results: list[DocumentSearchResultItem]
    query: str
    total: int


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]
    total: int
    limit: int
    offset: int


class CollectionStatsResponse(BaseModel):
    name: str
    count: int
    metadata: dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    service: str
    error: str | None = None


class LivenessResponse(BaseModel):
    status: str
    timestamp: str
