from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

try:
    from pymongo import ASCENDING, MongoClient
except ImportError:  # pragma: no cover - optional during local dev
    MongoClient = None


@dataclass
class MongoClientFactory:
    uri: str
    db_name: str
    _client: Optional[Any] = field(default=None, init=False, repr=False)

    def _database(self):
        if MongoClient is None:
            raise RuntimeError("pymongo package is required for MongoDB access")
        if self._client is None:
            self._client = MongoClient(self.uri, tz_aware=True)
        return self._client[self.db_name]

    def get_collection(self, collection_name: str, unique_key: Optional[str] = None):
        collection = self._database()[collection_name]
        if unique_key:
            collection.create_index([(unique_key, ASCENDING)], unique=True)
        return collection
