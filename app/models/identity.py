"""
Caller identity and identifier models.
"""
import re
from enum import Enum
from typing import Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_LOCAL_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def looks_like_local_id(value: object) -> bool:
    """True iff value is exactly 24 hexadecimal characters."""
    return isinstance(value, str) and bool(_LOCAL_ID_RE.match(value))


class Role(str, Enum):
    ADMIN = "admin"
    AGENT = "agent"


class CurrentUser(BaseModel):
    """Authenticated caller resolved from the bearer token."""
    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class AgentSummary(BaseModel):
    """Name and email of an agent, from whichever identity store matched."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    source: Optional[str] = None


class AgentUpdateRequest(BaseModel):
    """Body of PUT /api/agents/{id}; credentials and role are not editable here."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    phone: Optional[str] = None
    username: Optional[str] = None
    department: Optional[str] = None
    monthly_target: Optional[float] = None
    commission_rate: Optional[float] = None


class LocalRef(BaseModel):
    """Identifier issued by the local document store."""
    model_config = ConfigDict(frozen=True)

    value: str

    @property
    def object_id(self) -> ObjectId:
        return ObjectId(self.value)


class ExternalRef(BaseModel):
    """Identifier under which a record is known in the external inquiry source."""
    model_config = ConfigDict(frozen=True)

    value: str


InquiryRef = Union[LocalRef, ExternalRef]


def parse_inquiry_ref(raw: str) -> InquiryRef:
    """Tag a path identifier as local or external."""
    raw = str(raw).strip()
    if looks_like_local_id(raw):
        return LocalRef(value=raw)
    return ExternalRef(value=raw)
