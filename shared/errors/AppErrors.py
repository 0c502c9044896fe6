"""Application error taxonomy.

Every error that should reach a caller as a structured error envelope derives
from AppError and carries its HTTP status, a stable machine-readable code and
optional details. Vector store failures during RAG context lookup never use
this path: the retriever logs them and carries on without context.
"""

from typing import Any


class AppError(Exception):
    """Base class for errors rendered as {"error": {message, code, details}}."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details


class InvalidRequestError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class DocumentNotFoundError(AppError):
    status_code = 404
    code = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document with id {document_id} not found")
        self.document_id = document_id


class DocumentConflictError(AppError):
    status_code = 409
    code = "DOCUMENT_CONFLICT"

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document with id {document_id} already exists")
        self.document_id = document_id


class ServiceError(AppError):
    status_code = 500
    code = "SERVICE_ERROR"


class StoreUnavailableError(ServiceError):
    """The vector store could not serve a direct operation."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(
            f"Vector store {operation} failed: {detail}",
            code=f"VECTOR_STORE_{operation.upper()}_ERROR",
        )
        self.operation = operation


class ChatBackendError(ServiceError):
    """The hosted chat-completion backend failed. Terminal for the request."""

    code = "LLM_SERVICE_ERROR"

    def __init__(self, detail: str) -> None:
        super().__init__(f"LLM service error: {detail}")
        self.detail = detail


class BackendRequestError(Exception):
    """Raised by HTTP clients when a backend answers with a non-2xx status."""

    def __init__(self, url: str, status_code: int, body: str = "") -> None:
        super().__init__(f"Request to {url} failed with status {status_code}")
        self.url = url
        self.status_code = status_code
        self.body = body
