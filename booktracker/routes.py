"""
HTTP routes for the Book Tracker API.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request, status

from booktracker.config import config
from booktracker.models import (
    AckResponse, BookListQuery, BookListResponse, BookResponse
)
from booktracker.repository import BookRepository

router = APIRouter(prefix="/api")


def get_book_repository(request: Request) -> BookRepository:
    """Repository bound to the connection opened at startup."""
    return BookRepository(request.app.state.mongo.books)


@router.get("/health", response_model=AckResponse, tags=["Health"])
async def health_check():
    """Liveness check; does not touch the database."""
    return AckResponse()


@router.post(
    "/books",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Books"],
)
async def create_book(
    payload: Any = Body(None),
    repository: BookRepository = Depends(get_book_repository),
):
    """
    Create a book.

    - **title**, **author**: required, trimmed
    - **status**: to-read (default), reading or finished
    - **rating**: 0-5, optional
    - **notes**, **tags**: optional
    """
    return await repository.create_book(payload)


@router.get("/books", response_model=BookListResponse, tags=["Books"])
async def list_books(
    q: Optional[str] = None,
    status: Optional[str] = None,
    tag: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    repository: BookRepository = Depends(get_book_repository),
):
    """
    List books, newest first.

    - **q**: case-insensitive text search in title and author
    - **status**: exact status filter
    - **tag**: books carrying this tag
    - **page**: page number (starts from 1)
    - **limit**: items per page (default 50)

    Invalid page/limit values fall back to their defaults.
    """
    query = BookListQuery.from_params(
        q=q,
        status=status,
        tag=tag,
        page=page,
        limit=limit,
        default_limit=config.default_page_size,
        max_limit=config.max_page_size,
    )
    return await repository.list_books(query)


@router.get("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def get_book(
    book_id: str,
    repository: BookRepository = Depends(get_book_repository),
):
    """Get a single book by ID."""
    return await repository.get_book(book_id)


@router.patch("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def update_book(
    book_id: str,
    payload: Any = Body(None),
    repository: BookRepository = Depends(get_book_repository),
):
    """Partially update a book; returns the updated record."""
    return await repository.update_book(book_id, payload)


@router.delete("/books/{book_id}", response_model=AckResponse, tags=["Books"])
async def delete_book(
    book_id: str,
    repository: BookRepository = Depends(get_book_repository),
):
    """Delete a book permanently."""
    await repository.delete_book(book_id)
    return AckResponse()
