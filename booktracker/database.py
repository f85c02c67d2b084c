"""
MongoDB connection management for the Book Tracker API.
Owns the single motor client shared by all requests.
"""

from typing import Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import ConfigurationError, PyMongoError

logger = structlog.get_logger(__name__)

BOOKS_COLLECTION = "books"


class MongoConnection:
    """
    Process-scoped MongoDB connection.

    Created once at startup, shared read-only across requests and closed on
    shutdown.
    """

    def __init__(self, uri: str, database_name: str, timeout_ms: int = 5000):
        """
        Initialize the connection settings.

        Args:
            uri: MongoDB connection string
            database_name: Database to use when the URI does not name one
            timeout_ms: Server selection timeout in milliseconds
        """
        self.uri = uri
        self.database_name = database_name
        self.timeout_ms = timeout_ms
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """Connect, verify the server is reachable and ensure indexes."""
        try:
            self.client = AsyncIOMotorClient(
                self.uri,
                tz_aware=True,
                serverSelectionTimeoutMS=self.timeout_ms,
            )
            try:
                self.database = self.client.get_default_database()
            except ConfigurationError:
                self.database = self.client[self.database_name]

            # Test connection
            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB", database=self.database.name)

            await self._create_indexes()

        except PyMongoError as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            await self.disconnect()
            raise

    async def disconnect(self) -> None:
        """Close the MongoDB client."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create indexes for the listing's sort and filters."""
        books = self.books
        await books.create_index([("createdAt", DESCENDING), ("_id", DESCENDING)])
        await books.create_index("status")
        await books.create_index("tags")
        logger.info("Successfully created MongoDB indexes")

    @property
    def is_connected(self) -> bool:
        return self.database is not None

    @property
    def books(self) -> AsyncIOMotorCollection:
        """The books collection."""
        if self.database is None:
            raise RuntimeError("MongoDB is not connected")
        return self.database[BOOKS_COLLECTION]
