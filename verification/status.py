from typing import Optional

from .models import StatusTier, VerificationRecord

# Backend status synonyms, shared by student and driver records
_STATUS_TIERS = {
    "active": StatusTier.VERIFIED,
    "verified": StatusTier.VERIFIED,
    "approved": StatusTier.VERIFIED,
    "pending": StatusTier.PENDING,
    "rejected": StatusTier.REJECTED,
    "suspended": StatusTier.REJECTED,
}


def resolve_status(raw_status: Optional[str]) -> StatusTier:
    """Map a free-form backend status string to its canonical tier"""
    if not isinstance(raw_status, str):
        return StatusTier.NOT_SUBMITTED
    return _STATUS_TIERS.get(raw_status.strip().lower(), StatusTier.NOT_SUBMITTED)


def resolve_record(record: Optional[VerificationRecord]) -> StatusTier:
    if record is None:
        return StatusTier.NOT_SUBMITTED
    return resolve_status(record.raw_status)
