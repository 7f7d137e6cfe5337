"""
Identity Resolver - looks up agent identities across the identity stores.

Agents historically live either in the ``users`` collection or in the
``agents`` collection. Both are queried in a fixed order and the first
match wins.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import get_settings
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.identity import AgentSummary, CurrentUser, looks_like_local_id
from app.services.inquiry_store import store_errors

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Resolve an identity id to the agent's name and email."""

    def __init__(self, db: AsyncIOMotorDatabase, store_names: Optional[Sequence[str]] = None):
        settings = get_settings()
        names = store_names or (settings.mongo_users_collection, settings.mongo_agents_collection)
        self.stores: Tuple[Tuple[str, object], ...] = tuple((name, db[name]) for name in names)

    async def resolve(self, identity_id: Optional[str]) -> Optional[AgentSummary]:
        """
        Find the identity in the first store that holds it.

        Returns:
            AgentSummary, or None when no store knows the id
        """
        if not identity_id:
            return None

        key = str(identity_id)
        query = {"_id": ObjectId(key)} if looks_like_local_id(key) else {"_id": key}

        for name, collection in self.stores:
            doc = await collection.find_one(query, projection={"name": 1, "email": 1})
            if doc:
                return AgentSummary(
                    id=key,
                    name=doc.get("name"),
                    email=doc.get("email"),
                    source=name,
                )
        return None

    async def resolve_many(self, identity_ids: Iterable[Optional[str]]) -> Dict[str, AgentSummary]:
        """Resolve each distinct id once; unknown ids are left out."""
        resolved: Dict[str, AgentSummary] = {}
        for identity_id in {str(i) for i in identity_ids if i}:
            agent = await self.resolve(identity_id)
            if agent:
                resolved[identity_id] = agent
            else:
                logger.warning(f"Agent {identity_id} not found in any identity store")
        return resolved


AGENT_PUBLIC_FIELDS = (
    "name", "email", "role", "phone", "username", "department",
    "monthlyTarget", "commissionRate", "createdAt", "updatedAt",
)

# Profile fields editable through the directory.
AGENT_UPDATABLE_FIELDS = ("name", "phone", "username", "department", "monthlyTarget", "commissionRate")


def agent_profile(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Agent document without credentials, with a string id."""
    profile = {field: doc.get(field) for field in AGENT_PUBLIC_FIELDS if field in doc}
    profile["id"] = str(doc["_id"])
    return profile


class AgentDirectory:
    """The agents collection: listing, lookup, profile edits and removal."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[get_settings().mongo_agents_collection]

    async def list_agents(self) -> List[Dict[str, Any]]:
        cursor = self.collection.find({}).sort("createdAt", -1)
        return [agent_profile(doc) for doc in await cursor.to_list(length=None)]

    async def get_agent(self, agent_id: str) -> Optional[Dict[str, Any]]:
        if not looks_like_local_id(agent_id):
            return None
        doc = await self.collection.find_one({"_id": ObjectId(agent_id)})
        return agent_profile(doc) if doc else None

    async def _find(self, agent_id: str) -> Dict[str, Any]:
        if not looks_like_local_id(agent_id):
            raise NotFoundError("Agent not found")
        with store_errors("load agent"):
            doc = await self.collection.find_one({"_id": ObjectId(agent_id)})
        if not doc:
            raise NotFoundError("Agent not found")
        return doc

    async def update_agent(self, agent_id: str, changes: Dict[str, Any], user: CurrentUser) -> Dict[str, Any]:
        """
        Update an agent's profile.

        Agents may edit only their own profile; admins may edit any.

        Raises:
            ValidationError: no editable field was supplied
            NotFoundError: unknown agent
            ForbiddenError: caller is neither an admin nor the agent
        """
        fields = {k: changes[k] for k in AGENT_UPDATABLE_FIELDS if changes.get(k) not in (None, "")}
        if not fields:
            raise ValidationError(
                f"At least one field ({', '.join(AGENT_UPDATABLE_FIELDS)}) is required to update"
            )

        doc = await self._find(agent_id)
        if not user.is_admin and user.id != str(doc["_id"]):
            raise ForbiddenError("Forbidden")

        fields["updatedAt"] = datetime.utcnow()
        with store_errors("update agent"):
            await self.collection.update_one({"_id": doc["_id"]}, {"$set": fields})
        logger.info(f"Agent {agent_id} updated by {user.role.value} {user.id}: {sorted(fields)}")
        return agent_profile({**doc, **fields})

    async def delete_agent(self, agent_id: str) -> None:
        doc = await self._find(agent_id)
        with store_errors("delete agent"):
            await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"Agent {agent_id} removed")
