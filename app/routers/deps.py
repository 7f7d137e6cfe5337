"""
Dependency providers shared by the routers.
"""
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import Settings, get_settings
from app.core.database import get_database
from app.services.assignment import AssignmentWorkflow
from app.services.booking_service import BookingService
from app.services.external_inquiries import ExternalInquiryClient
from app.services.identity_service import AgentDirectory, IdentityResolver
from app.services.inquiry_service import InquiryService
from app.services.inquiry_store import InquiryStore
from app.services.reconciliation import InquiryReconciler


def get_identity_resolver(db: AsyncIOMotorDatabase = Depends(get_database)) -> IdentityResolver:
    return IdentityResolver(db)


def get_inquiry_store(db: AsyncIOMotorDatabase = Depends(get_database)) -> InquiryStore:
    return InquiryStore(db)


def get_external_client(settings: Settings = Depends(get_settings)) -> ExternalInquiryClient:
    return ExternalInquiryClient(settings)


def get_booking_service(
    db: AsyncIOMotorDatabase = Depends(get_database),
    identities: IdentityResolver = Depends(get_identity_resolver),
) -> BookingService:
    return BookingService(db, identities)


def get_inquiry_service(
    store: InquiryStore = Depends(get_inquiry_store),
    identities: IdentityResolver = Depends(get_identity_resolver),
) -> InquiryService:
    return InquiryService(store, identities)


def get_reconciler(
    store: InquiryStore = Depends(get_inquiry_store),
    identities: IdentityResolver = Depends(get_identity_resolver),
    external: ExternalInquiryClient = Depends(get_external_client),
) -> InquiryReconciler:
    return InquiryReconciler(store, identities, external)


def get_assignment_workflow(
    store: InquiryStore = Depends(get_inquiry_store),
    identities: IdentityResolver = Depends(get_identity_resolver),
    bookings: BookingService = Depends(get_booking_service),
) -> AssignmentWorkflow:
    return AssignmentWorkflow(store, identities, bookings)


def get_agent_directory(db: AsyncIOMotorDatabase = Depends(get_database)) -> AgentDirectory:
    return AgentDirectory(db)
