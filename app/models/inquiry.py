"""
Inquiry models: persisted documents, API views and request bodies.

Field names are snake_case in Python and camelCase on the wire and in
MongoDB, matching the documents already stored by the back office.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.identity import AgentSummary

Scalar = Union[int, float, str]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Pricing(CamelModel):
    double: Optional[Scalar] = None
    triple: Optional[Scalar] = None
    quad: Optional[Scalar] = None
    currency: str = "USD"


class Duration(CamelModel):
    nights_makkah: Optional[Scalar] = None
    nights_madina: Optional[Scalar] = None
    total_nights: Optional[Scalar] = None


class Hotels(CamelModel):
    makkah: Optional[str] = None
    madina: Optional[str] = None


class Services(CamelModel):
    transportation: Optional[str] = None
    visa: Optional[str] = None


class Inclusions(CamelModel):
    breakfast: bool = False
    dinner: bool = False
    visa: bool = False
    ticket: bool = False
    roundtrip: bool = False
    ziyarat: bool = False
    guide: bool = False


class PackageDetails(CamelModel):
    """Travel package an inquiry refers to."""
    package_name: str
    pricing: Pricing = Field(default_factory=Pricing)
    duration: Duration = Field(default_factory=Duration)
    hotels: Hotels = Field(default_factory=Hotels)
    services: Services = Field(default_factory=Services)
    inclusions: Inclusions = Field(default_factory=Inclusions)

    def first_price(self) -> Optional[Scalar]:
        return self.pricing.double or self.pricing.triple or self.pricing.quad


class InquiryResponseEntry(CamelModel):
    """A message appended to an inquiry by an agent or admin."""
    message: str
    responder: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class InquiryDocument(CamelModel):
    """MongoDB document model for the inquiries collection."""
    external_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    message: str = ""
    subject: Optional[str] = None
    priority: Optional[str] = None
    package_details: Optional[PackageDetails] = None
    status: str = "pending"
    assigned_agent: Optional[str] = None
    responses: List[InquiryResponseEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_mongo(self) -> Dict[str, Any]:
        doc = self.model_dump(by_alias=True)
        if doc.get("externalId") is None:
            # keep the unique externalId index sparse
            doc.pop("externalId")
        return doc


class InquiryView(CamelModel):
    """Caller-visible inquiry, for both stored and external records."""
    id: str
    external_id: Optional[str] = None
    name: str = ""
    customer_name: str = ""
    email: str = ""
    customer_email: str = ""
    phone: str = ""
    customer_phone: str = ""
    subject: str = "(No subject)"
    message: str = ""
    status: str = "pending"
    priority: str = "low"
    package_details: Optional[PackageDetails] = None
    assigned_agent: Optional[Union[AgentSummary, str]] = None
    responses: List[InquiryResponseEntry] = Field(default_factory=list)
    created_at: Optional[Any] = None
    updated_at: Optional[Any] = None
    is_external: bool = False


class AssignRequest(CamelModel):
    """Body of PUT /inquiries/{id}/assign."""
    assigned_agent: Optional[str] = None
    create_booking: Optional[bool] = None
    inquiry_data: Optional[Dict[str, Any]] = None


class InquiryUpdateRequest(CamelModel):
    """Body of PUT /inquiries/{id}; assignedAgent may be explicitly null."""
    status: Optional[str] = None
    assigned_agent: Optional[str] = None


class ResponseCreateRequest(CamelModel):
    message: str = Field(..., min_length=1)
