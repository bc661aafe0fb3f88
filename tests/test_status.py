"""Tests for status tier resolution."""
import pytest

from verification.models import StatusTier, VerificationKind, VerificationRecord
from verification.status import resolve_record, resolve_status


@pytest.mark.parametrize("raw", ["active", "verified", "approved", "APPROVED", "Verified", " active "])
def test_verified_synonyms(raw):
    assert resolve_status(raw) is StatusTier.VERIFIED


@pytest.mark.parametrize("raw", ["pending", "Pending", "PENDING"])
def test_pending(raw):
    assert resolve_status(raw) is StatusTier.PENDING


@pytest.mark.parametrize("raw", ["rejected", "suspended", "Rejected", "SUSPENDED"])
def test_rejected_synonyms(raw):
    assert resolve_status(raw) is StatusTier.REJECTED


@pytest.mark.parametrize("raw", ["banana", "", None, "not_submitted", 42])
def test_everything_else_is_not_submitted(raw):
    assert resolve_status(raw) is StatusTier.NOT_SUBMITTED


def test_same_mapping_for_both_kinds():
    student = VerificationRecord(id="1", kind=VerificationKind.STUDENT, raw_status="approved")
    driver = VerificationRecord(id="2", kind=VerificationKind.DRIVER, raw_status="approved")
    assert student.tier is driver.tier is StatusTier.VERIFIED


def test_missing_record_is_not_submitted():
    assert resolve_record(None) is StatusTier.NOT_SUBMITTED


def test_record_from_api_reads_backend_fields():
    record = VerificationRecord.from_api({
        "verification_id": 7,
        "status": "Rejected",
        "rejection_reason": "blurry photo",
        "type": "student_id",
        "created_at": "2026-10-01T08:00:00Z",
    })
    assert record.id == "7"
    assert record.kind is VerificationKind.STUDENT
    assert record.tier is StatusTier.REJECTED
    assert record.rejection_reason == "blurry photo"
    assert record.to_dict()["tier"] == "rejected"


def test_record_from_api_driver_type():
    record = VerificationRecord.from_api({"id": "x", "status": "pending", "type": "driver_documents"})
    assert record.kind is VerificationKind.DRIVER
