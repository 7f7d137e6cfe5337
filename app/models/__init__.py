"""Data models for the Travel Back Office."""
from .identity import (
    AgentSummary,
    CurrentUser,
    ExternalRef,
    InquiryRef,
    LocalRef,
    Role,
    parse_inquiry_ref,
)
from .inquiry import InquiryDocument, InquiryView, PackageDetails
from .booking import BookingDocument, BookingCreateRequest

__all__ = [
    "AgentSummary",
    "CurrentUser",
    "ExternalRef",
    "InquiryRef",
    "LocalRef",
    "Role",
    "parse_inquiry_ref",
    "InquiryDocument",
    "InquiryView",
    "PackageDetails",
    "BookingDocument",
    "BookingCreateRequest",
]
