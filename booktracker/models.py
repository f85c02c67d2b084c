"""
Book schema, request validation and response models for the Book Tracker API.
"""

import math
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as SchemaValidationError

from booktracker.errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 50
MAX_INT64 = 2 ** 63 - 1


class BookStatus(str, Enum):
    """Reading status of a book."""
    TO_READ = "to-read"
    READING = "reading"
    FINISHED = "finished"


def _strip_required_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class BookCreate(BaseModel):
    """Fields accepted when creating a book."""
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    status: BookStatus = Field(BookStatus.TO_READ, description="Reading status")
    rating: Optional[float] = Field(None, ge=0, le=5, description="Rating (0-5)")
    notes: str = Field("", description="Personal notes")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")

    @field_validator("title", "author")
    @classmethod
    def strip_text(cls, v):
        return _strip_required_text(v)

    def to_document(self) -> Dict[str, Any]:
        """Convert to a MongoDB document, without timestamps."""
        return self.model_dump(mode="json")


class BookUpdate(BaseModel):
    """
    Fields accepted by a partial update.

    Only fields present in the request are applied. Every field except
    rating must be non-null when given; a null rating clears it.
    """
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    author: Optional[str] = None
    status: Optional[BookStatus] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    notes: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("title", "author")
    @classmethod
    def strip_text(cls, v):
        return _strip_required_text(v)

    @model_validator(mode="after")
    def reject_nulls(self):
        for name in self.model_fields_set:
            if name != "rating" and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def to_changes(self) -> Dict[str, Any]:
        """Return the `$set` document for the fields given in the request."""
        return self.model_dump(mode="json", exclude_unset=True)


def _describe(exc: SchemaValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_create(payload: Any) -> BookCreate:
    """Validate a create request body or raise ValidationError."""
    if not isinstance(payload, Mapping):
        raise ValidationError("request body must be a JSON object")
    if _is_blank(payload.get("title")) or _is_blank(payload.get("author")):
        raise ValidationError("title and author are required")
    try:
        return BookCreate.model_validate(payload)
    except SchemaValidationError as e:
        raise ValidationError(_describe(e)) from e


def validate_update(payload: Any) -> BookUpdate:
    """Validate a partial update body or raise ValidationError."""
    if not isinstance(payload, Mapping):
        raise ValidationError("request body must be a JSON object")
    try:
        return BookUpdate.model_validate(payload)
    except SchemaValidationError as e:
        raise ValidationError(_describe(e)) from e


def parse_positive_int(raw: Optional[str], default: int) -> int:
    """
    Parse a page/limit query value.

    Anything that is not a finite positive integer falls back to `default`.
    Values beyond what MongoDB can encode are clamped to MAX_INT64.
    """
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        # Integral floats such as "3.0" or "1e3"
        try:
            number = float(raw)
        except (TypeError, ValueError):
            return default
        if not math.isfinite(number) or not number.is_integer():
            return default
        value = int(number)
    if value <= 0:
        return default
    return min(value, MAX_INT64)


class BookListQuery(BaseModel):
    """Parsed filter and pagination for the book listing."""
    q: Optional[str] = Field(None, description="Search in title and author")
    status: Optional[str] = Field(None, description="Filter by exact status")
    tag: Optional[str] = Field(None, description="Filter by tag")
    page: int = Field(DEFAULT_PAGE, ge=1, description="Page number (1-based)")
    limit: int = Field(DEFAULT_LIMIT, ge=1, description="Items per page")

    @classmethod
    def from_params(
        cls,
        q: Optional[str] = None,
        status: Optional[str] = None,
        tag: Optional[str] = None,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: Optional[int] = None,
    ) -> "BookListQuery":
        """Build a query from raw query-string values."""
        page_number = parse_positive_int(page, DEFAULT_PAGE)
        page_size = parse_positive_int(limit, default_limit)
        if max_limit is not None:
            page_size = min(page_size, max_limit)
        return cls(q=q, status=status, tag=tag, page=page_number, limit=page_size)

    @property
    def skip(self) -> int:
        return min((self.page - 1) * self.limit, MAX_INT64)

    def to_filter(self) -> Dict[str, Any]:
        """Build the MongoDB filter; all given conditions must match."""
        filter_query: Dict[str, Any] = {}

        if self.q:
            pattern = {"$regex": re.escape(self.q), "$options": "i"}
            filter_query["$or"] = [{"title": pattern}, {"author": pattern}]

        if self.status:
            filter_query["status"] = self.status

        # Matches arrays containing the value
        if self.tag:
            filter_query["tags"] = self.tag

        return filter_query


class BookResponse(BaseModel):
    """Book record as returned by the API."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    status: BookStatus = Field(..., description="Reading status")
    rating: Optional[float] = Field(None, description="Rating (0-5)")
    notes: str = Field("", description="Personal notes")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last update timestamp")

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "BookResponse":
        data = dict(document)
        data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


class BookListResponse(BaseModel):
    """Response model for a page of books."""
    total: int = Field(..., description="Number of books matching the filter")
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Page size")
    items: List[BookResponse] = Field(..., description="Books on this page")


class AckResponse(BaseModel):
    """Plain success acknowledgment."""
    ok: bool = Field(True, description="Always true")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")
