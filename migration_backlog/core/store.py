"""
Queue Store Client Framework
Atomic list and hash primitives over a shared key-value store (Redis)
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from .errors import StoreUnavailableError

logger = logging.getLogger(__name__)

BACKLOG_QUEUE_KEY = "backlog_queue"
BACKLOG_HSET_KEY = "backlog_hset"
COMPLETED_KEY = "completed"


@dataclass
class RedisSettings:
    """Redis connection settings"""
    url: str = "redis://localhost:6379/0"
    key_prefix: str = ""
    socket_timeout: Optional[float] = None
    socket_connect_timeout: Optional[float] = None


def _decode(value: Union[str, bytes, None]) -> Optional[str]:
    if isinstance(value, bytes):
        return value.decode()
    return value


class BaseQueueStore(ABC):
    """
    Abstract shared store contract

    Every operation must be atomic with respect to every other operation
    on the same key. Implementations raise StoreUnavailableError on failure.
    """

    def __init__(self, key_prefix: str = ""):
        self.key_prefix = key_prefix

    def key(self, logical_key: str) -> str:
        """Map a logical key to the physical store key"""
        return f"{self.key_prefix}:{logical_key}" if self.key_prefix else logical_key

    @abstractmethod
    async def list_pop_front(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def list_push_back(self, key: str, value: str) -> int:
        pass

    @abstractmethod
    async def list_length(self, key: str) -> int:
        pass

    @abstractmethod
    async def hash_set(self, key: str, field: str, value: Union[str, int]) -> int:
        """Set a hash field, returning the number of newly created fields"""
        pass

    @abstractmethod
    async def hash_get(self, key: str, field: str) -> Optional[str]:
        pass

    @abstractmethod
    async def hash_delete(self, key: str, field: str) -> int:
        pass

    @abstractmethod
    async def hash_get_all(self, key: str) -> Dict[str, str]:
        pass

    @abstractmethod
    async def hash_values(self, key: str) -> List[str]:
        pass

    @abstractmethod
    async def delete_key(self, key: str) -> int:
        pass

    async def close(self):
        pass


class RedisQueueStore(BaseQueueStore):
    """Queue store backed by redis-py's asyncio client"""

    def __init__(self, client: aioredis.Redis, key_prefix: str = ""):
        super().__init__(key_prefix)
        self.client = client

    async def _call(self, operation: str, *args):
        try:
            return await getattr(self.client, operation)(*args)
        except RedisError as e:
            logger.error(f"❌ Redis {operation.upper()} {args[0] if args else ''} failed: {e}")
            raise StoreUnavailableError(f"Redis {operation.upper()} failed: {e}") from e

    async def list_pop_front(self, key: str) -> Optional[str]:
        return _decode(await self._call("lpop", self.key(key)))

    async def list_push_back(self, key: str, value: str) -> int:
        return int(await self._call("rpush", self.key(key), value))

    async def list_length(self, key: str) -> int:
        return int(await self._call("llen", self.key(key)))

    async def hash_set(self, key: str, field: str, value: Union[str, int]) -> int:
        return int(await self._call("hset", self.key(key), field, value))

    async def hash_get(self, key: str, field: str) -> Optional[str]:
        return _decode(await self._call("hget", self.key(key), field))

    async def hash_delete(self, key: str, field: str) -> int:
        return int(await self._call("hdel", self.key(key), field))

    async def hash_get_all(self, key: str) -> Dict[str, str]:
        result = await self._call("hgetall", self.key(key))
        return {_decode(k): _decode(v) for k, v in (result or {}).items()}

    async def hash_values(self, key: str) -> List[str]:
        result = await self._call("hvals", self.key(key))
        return [_decode(v) for v in (result or [])]

    async def delete_key(self, key: str) -> int:
        return int(await self._call("delete", self.key(key)))

    async def close(self):
        await self.client.aclose()
        logger.info("Disconnected from Redis")


def create_queue_store(settings: RedisSettings) -> RedisQueueStore:
    """Factory function to create a Redis backed queue store"""
    client = aioredis.from_url(
        settings.url,
        decode_responses=True,
        socket_timeout=settings.socket_timeout,
        socket_connect_timeout=settings.socket_connect_timeout,
    )
    logger.info(f"Using Redis queue store (key prefix: {settings.key_prefix or '<none>'})")
    return RedisQueueStore(client, key_prefix=settings.key_prefix)
