"""Services module for the Travel Back Office."""
from .reconciliation import InquiryReconciler
from .assignment import AssignmentWorkflow

__all__ = ["InquiryReconciler", "AssignmentWorkflow"]
