"""
Shared fixtures: in-memory queue store and source client
"""
import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from migration_backlog import (
    BaseQueueStore,
    BaseSourceClient,
    IndexDescriptor,
    Manager,
    SourceQueryError
)
from migration_backlog.core.source import match_index_names

PROJECT_ROOT = Path(__file__).parent.parent
USER_DEFINED = PROJECT_ROOT / "user_defined"


class InMemoryQueueStore(BaseQueueStore):
    """
    Store double with Redis semantics

    Each operation yields to the event loop once before running, so concurrent
    callers interleave between operations but never inside one.
    """

    def __init__(self, key_prefix: str = ""):
        super().__init__(key_prefix)
        self.lists: Dict[str, List[str]] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}

    async def list_pop_front(self, key):
        await asyncio.sleep(0)
        items = self.lists.get(self.key(key))
        if not items:
            return None
        return items.pop(0)

    async def list_push_back(self, key, value):
        await asyncio.sleep(0)
        items = self.lists.setdefault(self.key(key), [])
        items.append(str(value))
        return len(items)

    async def list_length(self, key):
        await asyncio.sleep(0)
        return len(self.lists.get(self.key(key), []))

    async def hash_set(self, key, field, value):
        await asyncio.sleep(0)
        fields = self.hashes.setdefault(self.key(key), {})
        created = 0 if field in fields else 1
        fields[field] = str(value)
        return created

    async def hash_get(self, key, field):
        await asyncio.sleep(0)
        return self.hashes.get(self.key(key), {}).get(field)

    async def hash_delete(self, key, field):
        await asyncio.sleep(0)
        return 1 if self.hashes.get(self.key(key), {}).pop(field, None) is not None else 0

    async def hash_get_all(self, key):
        await asyncio.sleep(0)
        return dict(self.hashes.get(self.key(key), {}))

    async def hash_values(self, key):
        await asyncio.sleep(0)
        return list(self.hashes.get(self.key(key), {}).values())

    async def delete_key(self, key):
        await asyncio.sleep(0)
        physical = self.key(key)
        existed = physical in self.lists or physical in self.hashes
        self.lists.pop(physical, None)
        self.hashes.pop(physical, None)
        return 1 if existed else 0

    def queue(self, key: str) -> List[str]:
        return list(self.lists.get(self.key(key), []))


class InMemorySourceClient(BaseSourceClient):
    """Source double: database name -> {collection name: document count}"""

    def __init__(self, databases: Optional[Dict[str, Dict[str, int]]] = None):
        self.databases = databases or {}
        self.count_calls: List[tuple] = []
        self.failing_counts = set()
        self.fail_discovery = False

    async def get_indices(self, names):
        if self.fail_discovery:
            raise SourceQueryError("source unavailable")
        return [
            IndexDescriptor(name=name, subcollections=list(self.databases[name]))
            for name in match_index_names(list(self.databases), names)
        ]

    async def count(self, collection, subcollection):
        self.count_calls.append((collection, subcollection))
        if (collection, subcollection) in self.failing_counts:
            raise SourceQueryError(f"count of {collection}.{subcollection} failed")
        return self.databases[collection][subcollection]


@pytest.fixture
def store():
    return InMemoryQueueStore()


@pytest.fixture
def source():
    return InMemorySourceClient({
        "A": {"t1": 3, "t2": 7},
        "B": {"t1": 5},
    })


@pytest.fixture
def manager(source, store):
    return Manager(source, store)
