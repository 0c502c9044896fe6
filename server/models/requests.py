from typing import Any

from pydantic import BaseModel, Field, field_validator

MetadataValue = str | int | float | bool


class DocumentCreateRequest(BaseModel):
    id: str | None = Field(default=None, min_length=1)
    content: str = Field(min_length=1)
    metadata: dict[str, MetadataValue] | None = None


class DocumentUpdateRequest(BaseModel):
    content: str | None = Field(default=None, min_length=1)
    metadata: dict[str, MetadataValue] | None = None


class DocumentSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    limit: int = Field(default=5, ge=1, le=100)
    filter: dict[str, Any] | None = None

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value
