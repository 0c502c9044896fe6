"""Pydantic models for stored documents.

Hierarchy:
  Document        : one text record in the vector store, with its metadata.
  SearchResult    : a Document paired with its similarity score for one query.
  CollectionStats : name, size and metadata of the backing collection.
  DocumentInput   : content, metadata and optional id of a document to store.
"""

from typing import Any

from pydantic import BaseModel, Field


class Document(BaseModel):
    """A text record owned by the vector store.

    The metadata always carries a "timestamp" creation field and, once the
    document was modified, an "updated" field. Both are ISO-8601 strings.
    """

    id: str
    content: str = Field(min_length=1)
    metadata: dict[str, Any] = {}


class SearchResult(BaseModel):
    """A document matched by a similarity query. score = 1 - distance, clamped to [0, 1]."""

    document: Document
    score: float = Field(ge=0.0, le=1.0)


class CollectionStats(BaseModel):
    name: str
    count: int
    metadata: dict[str, Any] = {}


class DocumentInput(BaseModel):
    """A document to be stored. Without an id one is generated on insert."""

    content: str = Field(min_length=1)
    metadata: dict[str, Any] | None = None
    id: str | None = None
