from typing import Any

from pydantic import BaseModel


class QueryResult(BaseModel):
    """Nearest-neighbour result of a single query embedding.

    The RAG backend answers with one row per query embedding; only the first
    row is kept since every query sends exactly one embedding. The lists are
    parallel and ordered nearest first.
    """

    ids: list[str] = []
    documents: list[str | None] = []
    metadatas: list[dict[str, Any] | None] = []
    distances: list[float | None] = []


class GetResult(BaseModel):
    """Records fetched by id or by page. The lists are parallel."""

    ids: list[str] = []
    documents: list[str | None] = []
    metadatas: list[dict[str, Any] | None] = []
