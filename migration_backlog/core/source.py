"""
Source Database Client Framework
Discovery of collections and their sub-collections, and per-job document counts
"""
import fnmatch
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from .errors import ConfigurationError, SourceQueryError

logger = logging.getLogger(__name__)

# Databases a wildcard never matches; they can still be named explicitly
SYSTEM_DATABASES = ("admin", "config", "local")

IndexNames = Union[str, Sequence[str]]


@dataclass
class IndexDescriptor:
    """A discovered collection and the names of its sub-collections"""
    name: str
    subcollections: List[str] = field(default_factory=list)


@dataclass
class SourceSettings:
    """Source database connection settings"""
    connection_string: str
    max_pool_size: int = 10
    min_pool_size: int = 0
    max_idle_time_ms: int = 300000
    socket_timeout_ms: int = 30000
    connect_timeout_ms: int = 20000
    server_selection_timeout_ms: int = 30000


def split_index_names(names: IndexNames) -> List[str]:
    """
    Normalise a name specification into a list of name patterns

    Accepts a single name, a wildcard pattern, a comma separated string of
    them, or a list.
    """
    if isinstance(names, str):
        names = names.split(",")
    return [name.strip() for name in names if name and name.strip()]


def match_index_names(available: Sequence[str], names: IndexNames) -> List[str]:
    """Match name patterns against the available names, in pattern order"""
    matched = []
    for pattern in split_index_names(names):
        if any(char in pattern for char in "*?["):
            candidates = [
                name for name in available
                if name not in SYSTEM_DATABASES and fnmatch.fnmatchcase(name, pattern)
            ]
        else:
            candidates = [name for name in available if name == pattern]

        for name in candidates:
            if name not in matched:
                matched.append(name)
    return matched


class BaseSourceClient(ABC):
    """
    Abstract base class for the system jobs are discovered in

    Implementations raise SourceQueryError when a query fails.
    """

    async def connect(self):
        pass

    async def disconnect(self):
        pass

    @abstractmethod
    async def get_indices(self, names: IndexNames) -> List[IndexDescriptor]:
        """List collections matching ``names`` with their sub-collection names"""
        pass

    @abstractmethod
    async def count(self, collection: str, subcollection: str) -> int:
        """Exact number of documents in ``collection`` restricted to ``subcollection``"""
        pass


class MongoSourceClient(BaseSourceClient):
    """
    MongoDB source

    A collection of the backlog model is a MongoDB database, a sub-collection
    is a MongoDB collection inside it.
    """

    def __init__(self, settings: SourceSettings, client: Optional[AsyncIOMotorClient] = None):
        self.settings = settings
        self.client = client

    async def connect(self):
        """Connect to the source database"""
        if self.client is not None:
            return

        logger.info("Connecting to source database...")
        self.client = AsyncIOMotorClient(
            self.settings.connection_string,
            maxPoolSize=self.settings.max_pool_size,
            minPoolSize=self.settings.min_pool_size,
            maxIdleTimeMS=self.settings.max_idle_time_ms,
            socketTimeoutMS=self.settings.socket_timeout_ms,
            connectTimeoutMS=self.settings.connect_timeout_ms,
            serverSelectionTimeoutMS=self.settings.server_selection_timeout_ms
        )

        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"❌ Failed to connect to source database: {e}")
            raise SourceQueryError(f"Failed to connect to source database: {e}") from e

        logger.info("✅ Connected to source database")

    async def disconnect(self):
        if self.client:
            self.client.close()
            self.client = None
            logger.info("Disconnected from source database")

    def _require_client(self) -> AsyncIOMotorClient:
        if self.client is None:
            raise SourceQueryError("Source client is not connected. Call connect() first.")
        return self.client

    async def get_indices(self, names: IndexNames) -> List[IndexDescriptor]:
        client = self._require_client()

        try:
            available = await client.list_database_names()
            indices = []
            # One database at a time
            for name in match_index_names(available, names):
                collections = await client[name].list_collection_names()
                indices.append(IndexDescriptor(
                    name=name,
                    subcollections=sorted(c for c in collections if not c.startswith("system."))
                ))
        except PyMongoError as e:
            logger.error(f"❌ Discovery of '{names}' failed: {e}")
            raise SourceQueryError(f"Discovery of '{names}' failed: {e}") from e

        logger.debug(f"Discovered {len(indices)} databases matching '{names}'")
        return indices

    async def count(self, collection: str, subcollection: str) -> int:
        client = self._require_client()

        try:
            return await client[collection][subcollection].count_documents({})
        except PyMongoError as e:
            logger.error(f"❌ Counting {collection}.{subcollection} failed: {e}")
            raise SourceQueryError(f"Counting {collection}.{subcollection} failed: {e}") from e


def create_source_client(settings: SourceSettings) -> MongoSourceClient:
    """Factory function to create the source client"""
    if not settings.connection_string:
        raise ConfigurationError("Source connection string is required")
    return MongoSourceClient(settings)
