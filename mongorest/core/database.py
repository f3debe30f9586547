"""Database connectivity layer for mongorest."""

from __future__ import annotations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from mongorest.core.config import Settings, settings
from mongorest.core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the MongoDB client used by collection routers.

    One manager is created per application and handed to the routers that
    need it, so tests and multi-tenant deployments can supply their own.
    """

    def __init__(self, config: Optional[Settings] = None) -> None:
        self.config = config or settings
        self.client: Optional[AsyncIOMotorClient] = None

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self.client is None:
            raise StoreUnavailableError(
                "Document store is unavailable. Ensure MongoDB is configured."
            )
        return self.client[self.config.MONGODB_DATABASE]

    def collection(self, name: str) -> AsyncIOMotorCollection:
        return self.database[name]

    async def initialize(self) -> None:
        """Connect to MongoDB unless already connected."""

        if self.client is not None:
            return
        logger.info("Initializing MongoDB client for database %s", self.config.MONGODB_DATABASE)
        self.client = AsyncIOMotorClient(
            str(self.config.MONGODB_URL),
            serverSelectionTimeoutMS=self.config.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        )

    async def reset(self) -> None:
        """Drop the current client so the next request reconnects."""

        logger.warning("Resetting MongoDB client after an unexpected error")
        await self.close()
        await self.initialize()

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
        except PyMongoError:
            logger.exception("MongoDB ping failed")
            return False
        return True

    async def close(self) -> None:
        """Tear down the connection gracefully."""

        if self.client is not None:
            logger.info("Closing MongoDB client")
            self.client.close()
            self.client = None


database_manager = DatabaseManager()
