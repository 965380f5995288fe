"""Account-scoped access to the hosted document store.

``Store`` is the application-state handle every business operation receives.
It pins the owning account, stamps ids and timestamps on writes, and turns
driver failures into :class:`PersistenceError` so callers only ever see the
billing error taxonomy.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from hourbook.core.errors import ConflictError, PersistenceError


logger = logging.getLogger(__name__)

COUNTERS = "counters"
SortSpec = Sequence[tuple[str, int]]


def utcnow() -> datetime:
    # Naive UTC, matching what the driver hands back on reads
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def _translate(action: str, collection: str) -> Iterator[None]:
    try:
        yield
    except DuplicateKeyError as exc:
        raise ConflictError(f"{action} on {collection} conflicts with an existing document") from exc
    except PyMongoError as exc:
        logger.error("Store %s on %s failed: %s", action, collection, exc)
        raise PersistenceError(f"{action} on {collection} failed: {exc}") from exc


class Store:
    def __init__(self, db: AsyncIOMotorDatabase, account_id: str) -> None:
        self.db = db
        self.account_id = account_id

    def _scoped(self, query: Optional[dict] = None) -> dict:
        q = dict(query or {})
        q["account_id"] = self.account_id
        return q

    def _stamp(self, doc: dict) -> dict:
        now = utcnow()
        stamped = dict(doc)
        stamped.setdefault("_id", new_id())
        stamped["account_id"] = self.account_id
        stamped.setdefault("created_at", now)
        stamped["updated_at"] = now
        return stamped

    async def insert(self, collection: str, doc: dict) -> dict:
        stamped = self._stamp(doc)
        with _translate("insert", collection):
            await self.db[collection].insert_one(stamped)
        return stamped

    async def insert_many(self, collection: str, docs: Sequence[dict]) -> list[dict]:
        stamped = [self._stamp(d) for d in docs]
        if not stamped:
            return []
        with _translate("insert", collection):
            await self.db[collection].insert_many(stamped)
        return stamped

    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return await self.find_one(collection, {"_id": doc_id})

    async def find_one(self, collection: str, query: dict) -> Optional[dict]:
        with _translate("select", collection):
            return await self.db[collection].find_one(self._scoped(query))

    async def find(
        self,
        collection: str,
        query: Optional[dict] = None,
        sort: Optional[SortSpec] = None,
        projection: Optional[dict] = None,
    ) -> list[dict]:
        with _translate("select", collection):
            cursor = self.db[collection].find(self._scoped(query), projection)
            if sort:
                cursor = cursor.sort(list(sort))
            return [doc async for doc in cursor]

    async def count(self, collection: str, query: Optional[dict] = None) -> int:
        with _translate("count", collection):
            return await self.db[collection].count_documents(self._scoped(query))

    async def update(
        self,
        collection: str,
        doc_id: str,
        fields: Optional[dict] = None,
        *,
        push: Optional[dict] = None,
        inc: Optional[dict] = None,
    ) -> bool:
        """Partially update one document. Returns False when nothing matched."""
        update: dict[str, Any] = {"$set": {**(fields or {}), "updated_at": utcnow()}}
        if push:
            update["$push"] = push
        if inc:
            update["$inc"] = inc
        with _translate("update", collection):
            res = await self.db[collection].update_one(self._scoped({"_id": doc_id}), update)
        return res.matched_count > 0

    async def update_many(self, collection: str, query: dict, fields: dict) -> int:
        with _translate("update", collection):
            res = await self.db[collection].update_many(
                self._scoped(query), {"$set": {**fields, "updated_at": utcnow()}}
            )
        return res.modified_count

    async def upsert(self, collection: str, query: dict, fields: dict) -> dict:
        now = utcnow()
        q = self._scoped(query)
        with _translate("upsert", collection):
            await self.db[collection].update_one(
                q,
                {"$set": {**fields, "updated_at": now}, "$setOnInsert": {"_id": new_id(), "created_at": now}},
                upsert=True,
            )
            return await self.db[collection].find_one(q)

    async def next_sequence(self, name: str) -> int:
        """Next value of a per-account counter, starting at 1."""
        with _translate("increment", COUNTERS):
            doc = await self.db[COUNTERS].find_one_and_update(
                self._scoped({"name": name}),
                {"$inc": {"value": 1}, "$setOnInsert": {"_id": new_id()}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        return doc["value"]

    async def delete(self, collection: str, doc_id: str) -> bool:
        with _translate("delete", collection):
            res = await self.db[collection].delete_one(self._scoped({"_id": doc_id}))
        return res.deleted_count > 0

    async def delete_many(self, collection: str, query: dict) -> int:
        with _translate("delete", collection):
            res = await self.db[collection].delete_many(self._scoped(query))
        return res.deleted_count
