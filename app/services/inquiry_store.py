"""
Inquiry Store - persistence for inquiries held locally.

Only inquiries that were submitted directly or assigned to an agent live
here; unassigned external inquiries are never written.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.config import get_settings
from app.core.errors import ConflictError, PersistenceError
from app.models.identity import InquiryRef, LocalRef, looks_like_local_id
from app.models.inquiry import InquiryDocument, InquiryResponseEntry

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(action: str):
    """Translate driver failures into PersistenceError."""
    try:
        yield
    except PyMongoError as e:
        logger.error(f"MongoDB {action} failed: {e}", exc_info=True)
        raise PersistenceError(f"Failed to {action}") from e


def agent_match(agent_id: str) -> Dict[str, Any]:
    """Filter value matching an agent id stored either as string or ObjectId."""
    if looks_like_local_id(agent_id):
        return {"$in": [agent_id, ObjectId(agent_id)]}
    return agent_id


class InquiryStore:
    """MongoDB-backed inquiry collection."""

    def __init__(self, db: AsyncIOMotorDatabase):
        settings = get_settings()
        self.collection = db[settings.mongo_inquiries_collection]

    async def find(self, ref: InquiryRef) -> Optional[Dict[str, Any]]:
        """
        Locate an inquiry by reference.

        Local references are tried against ``_id`` first; every reference
        then falls back to ``externalId``.
        """
        with store_errors("load inquiry"):
            if isinstance(ref, LocalRef):
                doc = await self.collection.find_one({"_id": ref.object_id})
                if doc:
                    return doc
            return await self.collection.find_one({"externalId": ref.value})

    async def list_assigned(self, agent_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Assigned inquiries, newest first, optionally for one agent only."""
        if agent_id is not None:
            query = {"assignedAgent": agent_match(agent_id)}
        else:
            query = {"assignedAgent": {"$ne": None}}

        with store_errors("list inquiries"):
            cursor = self.collection.find(query).sort("createdAt", -1)
            return await cursor.to_list(length=None)

    async def list_identifiers(self) -> List[Dict[str, Any]]:
        """Identifier fields of every stored inquiry, assigned or not."""
        with store_errors("list inquiry identifiers"):
            cursor = self.collection.find({}, projection={"_id": 1, "id": 1, "externalId": 1})
            return await cursor.to_list(length=None)

    async def ensure_indexes(self) -> None:
        """At most one stored inquiry per external id; local-only inquiries have none."""
        with store_errors("create inquiry indexes"):
            await self.collection.create_index("externalId", unique=True, sparse=True)

    async def insert(self, document: InquiryDocument) -> Dict[str, Any]:
        """
        Store a new inquiry.

        Raises:
            ConflictError: an inquiry with the same externalId is already stored
        """
        doc = document.to_mongo()
        with store_errors("create inquiry"):
            try:
                result = await self.collection.insert_one(doc)
            except DuplicateKeyError as e:
                logger.warning(f"Inquiry with externalId={document.external_id} is already stored")
                raise ConflictError("An inquiry with this external id already exists") from e
        doc["_id"] = result.inserted_id
        logger.info(f"Inquiry {result.inserted_id} stored (externalId={document.external_id})")
        return doc

    async def update(
        self,
        doc_id: ObjectId,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Set fields on an inquiry.

        Args:
            doc_id: Local identifier of the inquiry
            fields: Field values to set
            expected: Extra filter conditions the stored document must still
                satisfy (compare-and-set)

        Returns:
            True if a document matched, False otherwise
        """
        fields = {**fields, "updatedAt": datetime.utcnow()}
        query = {"_id": doc_id, **(expected or {})}
        with store_errors("update inquiry"):
            result = await self.collection.update_one(query, {"$set": fields})
        return result.matched_count > 0

    async def append_response(self, doc_id: ObjectId, entry: InquiryResponseEntry) -> None:
        with store_errors("add response"):
            await self.collection.update_one(
                {"_id": doc_id},
                {
                    "$push": {"responses": entry.model_dump(by_alias=True)},
                    "$set": {"updatedAt": datetime.utcnow()},
                },
            )

    async def reload(self, doc_id: ObjectId) -> Optional[Dict[str, Any]]:
        with store_errors("load inquiry"):
            return await self.collection.find_one({"_id": doc_id})

    async def delete(self, doc_id: ObjectId) -> bool:
        with store_errors("delete inquiry"):
            result = await self.collection.delete_one({"_id": doc_id})
        return result.deleted_count > 0
