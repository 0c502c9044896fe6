"""Lazy collection state held by a RAG client."""

import asyncio
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class CollectionHandle(BaseModel):
    """Resolved reference to a collection in the RAG backend.

    Attributes:
        id:       Backend-assigned collection id, used in per-collection endpoints.
        name:     Human-readable collection name from config.
        metadata: Collection metadata as stored by the backend.
    """

    id: str
    name: str
    metadata: dict[str, Any] = {}


class CollectionStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class CollectionState(BaseModel):
    """Snapshot of the lazy collection initialisation.

    Exactly one field beside status is meaningful per status:
    INITIALIZING carries the shared pending task, READY the handle and
    FAILED the error message of the last attempt.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: CollectionStatus = CollectionStatus.UNINITIALIZED
    pending: asyncio.Future | None = None
    handle: CollectionHandle | None = None
    error: str | None = None
