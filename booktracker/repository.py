"""
Book repository: the CRUD operations behind the API, on top of a motor collection.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING, ReturnDocument

from booktracker.errors import NotFoundError
from booktracker.models import (
    BookListQuery, BookListResponse, BookResponse,
    validate_create, validate_update
)

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

# Newest first; _id breaks ties between books created in the same millisecond
LIST_SORT = [("createdAt", DESCENDING), ("_id", DESCENDING)]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_id(book_id: str) -> ObjectId:
    if not ObjectId.is_valid(book_id):
        raise NotFoundError()
    return ObjectId(book_id)


class BookRepository:
    """Book operations against the books collection."""

    def __init__(self, collection: AsyncIOMotorCollection, clock: Optional[Clock] = None):
        self.collection = collection
        self.clock = clock or utc_now

    def _now(self, after: Optional[datetime] = None) -> datetime:
        # MongoDB keeps millisecond precision; truncate so responses match stored values
        now = self.clock()
        now = now.replace(microsecond=now.microsecond // 1000 * 1000)
        if after is not None and now <= after:
            now = after + timedelta(milliseconds=1)
        return now

    async def create_book(self, payload: Any) -> BookResponse:
        """
        Validate and insert a new book.

        Args:
            payload: Decoded JSON request body

        Returns:
            The stored book

        Raises:
            ValidationError: if title/author are missing or a field is invalid
        """
        book = validate_create(payload)
        document = book.to_document()
        now = self._now()
        document["createdAt"] = now
        document["updatedAt"] = now

        try:
            result = await self.collection.insert_one(document)
        except Exception as e:
            logger.error("Failed to insert book", title=book.title, error=str(e))
            raise

        document["_id"] = result.inserted_id
        logger.info("Book created", book_id=str(result.inserted_id), title=book.title)
        return BookResponse.from_document(document)

    async def list_books(self, query: BookListQuery) -> BookListResponse:
        """
        Get books with filtering and pagination.

        Args:
            query: Parsed filter and pagination parameters

        Returns:
            BookListResponse with the requested page and the unpaginated total
        """
        filter_query = query.to_filter()

        try:
            cursor = (
                self.collection.find(filter_query)
                .sort(LIST_SORT)
                .skip(query.skip)
                .limit(query.limit)
            )
            documents = await cursor.to_list(length=query.limit)
            total = await self.collection.count_documents(filter_query)
        except Exception as e:
            logger.error("Failed to list books", error=str(e), query=query.model_dump())
            raise

        return BookListResponse(
            total=total,
            page=query.page,
            limit=query.limit,
            items=[BookResponse.from_document(document) for document in documents],
        )

    async def get_book(self, book_id: str) -> BookResponse:
        """
        Get a single book by ID.

        Raises:
            NotFoundError: if the id is malformed or no book has it
        """
        object_id = _parse_id(book_id)
        document = await self.collection.find_one({"_id": object_id})
        if document is None:
            raise NotFoundError()
        return BookResponse.from_document(document)

    async def update_book(self, book_id: str, payload: Any) -> BookResponse:
        """
        Apply a partial update and return the book as stored afterwards.

        Args:
            book_id: Book identifier
            payload: Decoded JSON request body with the fields to change

        Raises:
            NotFoundError: if the id is malformed or no book has it
            ValidationError: if any given field is invalid; nothing is written
        """
        object_id = _parse_id(book_id)
        changes = validate_update(payload).to_changes()

        current = await self.collection.find_one({"_id": object_id}, {"createdAt": 1})
        if current is None:
            raise NotFoundError()
        # updatedAt stays strictly after createdAt even within the same millisecond
        changes["updatedAt"] = self._now(after=current.get("createdAt"))

        document = await self.collection.find_one_and_update(
            {"_id": object_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise NotFoundError()

        logger.info("Book updated", book_id=book_id, fields=sorted(changes))
        return BookResponse.from_document(document)

    async def delete_book(self, book_id: str) -> None:
        """
        Permanently delete a book.

        Raises:
            NotFoundError: if the id is malformed or no book has it
        """
        object_id = _parse_id(book_id)
        document = await self.collection.find_one_and_delete({"_id": object_id})
        if document is None:
            raise NotFoundError()
        logger.info("Book deleted", book_id=book_id)
