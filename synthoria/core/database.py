"""
MongoDB database configuration using Motor and Beanie.

A single ``Database`` handle is created at process start and injected into the
stores that need it. The connection is memoized: concurrent callers share one
connection attempt, and a failed attempt is forgotten so the next call retries.
"""

import asyncio
from typing import Optional

import structlog
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.server_api import ServerApi

from .config import Settings, get_settings
from .exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class Database:
    """MongoDB connection handle"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._lock = asyncio.Lock()

    @property
    def database_name(self) -> str:
        name = self.settings.mongodb_url.rsplit("/", 1)[-1].split("?")[0]
        return name or "synthoria"

    async def connect_to_mongo(self) -> None:
        """Create database connection and initialize Beanie."""
        settings = self.settings

        logger.info("Connecting to MongoDB", url=settings.mongodb_url.split("@")[-1])

        client = AsyncIOMotorClient(
            settings.mongodb_url,
            minPoolSize=settings.db_min_pool_size,
            maxPoolSize=settings.db_max_pool_size,
            connectTimeoutMS=settings.db_connect_timeout_ms,
            serverSelectionTimeoutMS=settings.db_server_selection_timeout_ms,
            server_api=ServerApi('1')
        )
        database = client[self.database_name]

        try:
            await client.admin.command('ping')

            from ..models import get_document_models
            await init_beanie(
                database=database,
                document_models=get_document_models()
            )
        except Exception as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            client.close()
            raise

        self.client = client
        self.database = database
        logger.info("Successfully connected to MongoDB", database=self.database_name)

    async def ensure_connected(self) -> AsyncIOMotorDatabase:
        """
        Return the live database, connecting on first use.

        Raises:
            DatabaseError: if the connection attempt fails; the next call retries
        """
        if self.database is not None:
            return self.database

        async with self._lock:
            if self.database is None:
                try:
                    await self.connect_to_mongo()
                except Exception as e:
                    raise DatabaseError("Database connection failed") from e

        return self.database

    async def close_mongo_connection(self) -> None:
        """Close database connection"""
        if self.client:
            logger.info("Closing MongoDB connection")
            self.client.close()
            self.client = None
            self.database = None

    async def ping(self) -> bool:
        """Check database connection"""
        if not self.client:
            return False
        try:
            await self.client.admin.command('ping')
            return True
        except Exception as e:
            logger.warning("MongoDB ping failed", error=str(e))
            return False
