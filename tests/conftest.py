"""
Pytest configuration and shared fixtures.
"""

import copy
import re
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo import ReturnDocument

from booktracker.main import app
from booktracker.repository import BookRepository
from booktracker.routes import get_book_repository


def _matches(document, filter_query):
    """Evaluate the subset of MongoDB filters the repository builds."""
    for key, condition in filter_query.items():
        if key == "$or":
            if not any(_matches(document, sub) for sub in condition):
                return False
            continue

        value = document.get(key)
        if isinstance(condition, dict) and "$regex" in condition:
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(condition["$regex"], value, flags):
                return False
        elif isinstance(value, list):
            if condition not in value:
                return False
        elif value != condition:
            return False
    return True


class InMemoryCursor:
    """Chainable stand-in for a motor cursor."""

    def __init__(self, documents):
        self.documents = documents

    def sort(self, keys):
        # Sort by the last key first so earlier keys take precedence
        for field, direction in reversed(keys):
            self.documents.sort(key=lambda doc: doc[field], reverse=direction < 0)
        return self

    def skip(self, count):
        self.documents = self.documents[count:]
        return self

    def limit(self, count):
        if count:
            self.documents = self.documents[:count]
        return self

    async def to_list(self, length=None):
        return [copy.deepcopy(doc) for doc in self.documents[:length]]


class InMemoryCollection:
    """Async stand-in for the motor collection methods the repository calls."""

    def __init__(self):
        self.documents = []

    def _find_index(self, filter_query):
        for index, document in enumerate(self.documents):
            if _matches(document, filter_query):
                return index
        return None

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    def find(self, filter_query):
        return InMemoryCursor([doc for doc in self.documents if _matches(doc, filter_query)])

    async def count_documents(self, filter_query):
        return sum(1 for doc in self.documents if _matches(doc, filter_query))

    async def find_one(self, filter_query, projection=None):
        index = self._find_index(filter_query)
        return None if index is None else copy.deepcopy(self.documents[index])

    async def find_one_and_update(self, filter_query, update, return_document=ReturnDocument.BEFORE):
        index = self._find_index(filter_query)
        if index is None:
            return None
        before = copy.deepcopy(self.documents[index])
        self.documents[index].update(copy.deepcopy(update.get("$set", {})))
        if return_document == ReturnDocument.AFTER:
            return copy.deepcopy(self.documents[index])
        return before

    async def find_one_and_delete(self, filter_query):
        index = self._find_index(filter_query)
        if index is None:
            return None
        return self.documents.pop(index)


class TickingClock:
    """Clock that advances one second per reading."""

    def __init__(self, start=datetime(2026, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        now = self.current
        self.current += timedelta(seconds=1)
        return now


@pytest.fixture
def collection():
    """Empty in-memory books collection."""
    return InMemoryCollection()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def repository(collection, clock):
    """Repository bound to the in-memory collection."""
    return BookRepository(collection, clock=clock)


@pytest.fixture
def client(repository):
    """Test client whose routes use the in-memory repository."""
    app.dependency_overrides[get_book_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_book_payload():
    """Create request body for a typical book."""
    return {
        "title": "  Dune ",
        "author": " Frank Herbert",
        "status": "reading",
        "rating": 4.5,
        "notes": "Re-read before the film",
        "tags": ["sci-fi", "classic"]
    }
