from typing import Any, Dict, List, Optional

from config import GENERIC_SUBMIT_FAILURE
from .eligibility import Eligibility, EligibilityGate
from .errors import (
    EligibilityBlocked,
    IncompleteDocuments,
    PermissionDenied,
    ProcessingError,
    SubmissionFailed,
    SubmissionInProgress,
    VerificationError,
)
from .models import StatusTier, SubmissionResult, VerificationKind, VerificationRecord
from .status import resolve_record

SUBMITTED_MESSAGE = "Documents submitted for verification. Review takes 1-2 business days."

STATUS_MESSAGES = {
    StatusTier.NOT_SUBMITTED: "Not verified yet.",
    StatusTier.PENDING: "Your request is being reviewed.",
    StatusTier.VERIFIED: "Your account is verified.",
    StatusTier.REJECTED: "Your documents were rejected. You can submit new ones.",
}

ERROR_STATUSES = {
    PermissionDenied: "PERMISSION_DENIED",
    ProcessingError: "REUPLOAD",
    IncompleteDocuments: "INCOMPLETE",
    EligibilityBlocked: "BLOCKED",
    SubmissionFailed: "SUBMISSION_FAILED",
    SubmissionInProgress: "IN_PROGRESS",
}


def build_response(status: str,
                   message: Optional[str],
                   retryable: bool = False,
                   signals: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build standardized response"""
    return {
        "status": status,
        "message": message,
        "retryable": retryable,
        "signals": signals or {},
    }


def status_message(record: Optional[VerificationRecord]) -> str:
    tier = resolve_record(record)
    if tier is StatusTier.REJECTED:
        reason = record.rejection_reason or "no reason given"
        return f"Your documents were rejected: {reason}. You can submit new ones."
    return STATUS_MESSAGES[tier]


def describe_result(result: SubmissionResult) -> Dict[str, Any]:
    return build_response(
        status="SUBMITTED",
        message=result.message or SUBMITTED_MESSAGE,
        signals={
            "kind": result.kind.value,
            "tier": result.tier.value,
            "record": result.record.to_dict() if result.record else None,
        },
    )


def describe_view_only(kind: VerificationKind,
                       eligibility: Eligibility,
                       record: Optional[VerificationRecord]) -> Dict[str, Any]:
    """Already pending or verified: nothing is submitted, the status is shown"""
    return build_response(
        status="VIEW_ONLY",
        message=status_message(record),
        signals={
            "kind": kind.value,
            "tier": eligibility.reason,
            "record": record.to_dict() if record else None,
        },
    )


def describe_error(error: VerificationError) -> Dict[str, Any]:
    status = ERROR_STATUSES.get(type(error), "ERROR")
    signals: Dict[str, Any] = {}

    if isinstance(error, IncompleteDocuments):
        signals["missing"] = error.missing
    elif isinstance(error, EligibilityBlocked):
        signals["reason"] = error.reason
        signals["redirect"] = error.redirect
    elif isinstance(error, SubmissionFailed):
        signals["cause"] = str(error.cause)

    return build_response(
        status=status,
        message=error.message or GENERIC_SUBMIT_FAILURE,
        retryable=error.retryable,
        signals=signals,
    )


def describe_status(student_record: Optional[VerificationRecord],
                    driver_record: Optional[VerificationRecord],
                    gate: Optional[EligibilityGate] = None) -> Dict[str, Any]:
    """Both tiers side by side, with the driver row locked until the student one is verified"""
    gate = gate or EligibilityGate()
    student_tier = resolve_record(student_record)
    driver_tier = resolve_record(driver_record)
    driver_gate = gate.evaluate(VerificationKind.DRIVER, student_tier, driver_tier)

    return {
        "student": {
            "tier": student_tier.value,
            "message": status_message(student_record),
            "can_submit": gate.evaluate(VerificationKind.STUDENT, student_tier).allowed,
            "record": student_record.to_dict() if student_record else None,
        },
        "driver": {
            "tier": driver_tier.value,
            "message": status_message(driver_record),
            "can_submit": driver_gate.allowed,
            "locked": driver_gate.reason if not driver_gate.allowed and not driver_gate.view_only else None,
            "record": driver_record.to_dict() if driver_record else None,
        },
    }


def describe_history(records: List[VerificationRecord]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]
