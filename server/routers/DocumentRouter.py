from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request, Response

from server.dependencies.auth import verify_api_key
from server.models.requests import DocumentCreateRequest, DocumentSearchRequest, DocumentUpdateRequest
from server.models.responses import (
    CollectionStatsResponse,
    DocumentBatchResponse,
    DocumentListResponse,
    DocumentResponse,
    DocumentSearchResponse,
    DocumentSearchResultItem,
    HealthResponse,
)
from shared.errors.AppErrors import DocumentNotFoundError, ServiceError
from shared.models.document import DocumentInput

router = APIRouter(prefix="/api/documents", tags=["documents"], dependencies=[Depends(verify_api_key)])

# fixed paths are declared before "/{document_id}" so they are not captured by it


@router.post("", status_code=201)
async def create_document(request: Request, body: DocumentCreateRequest) -> DocumentResponse:
    document = await request.app.state.document_service.add_document(
        body.content, metadata=body.metadata, document_id=body.id
    )
    return DocumentResponse.from_document(document)


@router.post("/batch", status_code=201)
async def create_documents(request: Request, body: list[DocumentCreateRequest]) -> DocumentBatchResponse:
    items = [DocumentInput(id=item.id, content=item.content, metadata=item.metadata) for item in body]
    ids = await request.app.state.document_service.add_documents(items)
    return DocumentBatchResponse(ids=ids, count=len(ids))


@router.post("/search")
async def search_documents(request: Request, body: DocumentSearchRequest) -> DocumentSearchResponse:
    """Similarity search. Scores come from the placeholder embedding unless a real engine is configured."""
    results = await request.app.state.document_service.search(body.query, body.limit, body.filter)
    return DocumentSearchResponse(
        results=[
            DocumentSearchResultItem(document=DocumentResponse.from_document(result.document), score=result.score)
            for result in results
        ],
        query=body.query,
        total=len(results),
    )


@router.get("")
async def list_documents(
    request: Request,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> DocumentListResponse:
    service = request.app.state.document_service
    documents = await service.list_documents(limit=limit, offset=offset)
    stats = await service.get_stats()
    return DocumentListResponse(
        documents=[DocumentResponse.from_document(document) for document in documents],
        total=stats.count,
        limit=limit,
        offset=offset,
    )


@router.get("/stats")
async def get_stats(request: Request) -> CollectionStatsResponse:
    stats = await request.app.state.document_service.get_stats()
    return CollectionStatsResponse(name=stats.name, count=stats.count, metadata=stats.metadata)


@router.get("/health")
async def documents_health(request: Request) -> HealthResponse:
    if not await request.app.state.document_service.health_check():
        raise ServiceError("Vector store health check failed", code="VECTOR_STORE_HEALTH_CHECK_ERROR")
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        service="vector-store",
    )


@router.delete("", status_code=204)
async def clear_documents(request: Request) -> Response:
    await request.app.state.document_service.clear_collection()
    return Response(status_code=204)


@router.get("/{document_id}")
async def get_document(request: Request, document_id: str) -> DocumentResponse:
    document = await request.app.state.document_service.get_document(document_id)
    if document is None:
        raise DocumentNotFoundError(document_id)
    return DocumentResponse.from_document(document)


@router.put("/{document_id}")
async def update_document(request: Request, document_id: str, body: DocumentUpdateRequest) -> DocumentResponse:
    document = await request.app.state.document_service.update_document(
        document_id, content=body.content, metadata=body.metadata
    )
    return DocumentResponse.from_document(document)


@router.delete("/{document_id}", status_code=204)
async def delete_document(request: Request, document_id: str) -> Response:
    await request.app.state.document_service.delete_document(document_id)
    return Response(status_code=204)
