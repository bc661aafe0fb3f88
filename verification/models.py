from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class VerificationKind(str, Enum):
    STUDENT = "student"
    DRIVER = "driver"


class StatusTier(str, Enum):
    NOT_SUBMITTED = "not_submitted"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class Side(str, Enum):
    FRONT = "front"
    BACK = "back"


JPEG_MIME_TYPE = "image/jpeg"


@dataclass(frozen=True)
class NormalizedImage:
    """Canonical JPEG produced by the normalization pipeline."""

    uri: str
    file_name: str
    byte_size: int
    width: int
    height: int
    mime_type: str = JPEG_MIME_TYPE


@dataclass
class DocumentSlot:
    side: Side
    asset: Optional[NormalizedImage] = None

    @property
    def filled(self) -> bool:
        return self.asset is not None


@dataclass
class DocumentGroup:
    name: str
    required: bool
    front: DocumentSlot = field(default_factory=lambda: DocumentSlot(Side.FRONT))
    back: DocumentSlot = field(default_factory=lambda: DocumentSlot(Side.BACK))

    def slot(self, side: Side) -> DocumentSlot:
        return self.front if Side(side) is Side.FRONT else self.back

    @property
    def is_complete(self) -> bool:
        return self.front.filled and self.back.filled


@dataclass
class VerificationRecord:
    """Client-side snapshot of a record owned by the authority."""

    id: Optional[str]
    kind: Optional[VerificationKind]
    raw_status: Optional[str]
    rejection_reason: Optional[str] = None
    created_at: Optional[str] = None
    record_type: Optional[str] = None
    source_document_groups: List[Any] = field(default_factory=list)

    @property
    def tier(self) -> StatusTier:
        from .status import resolve_status
        return resolve_status(self.raw_status)

    @classmethod
    def from_api(cls, data: Dict[str, Any], kind: Optional[VerificationKind] = None) -> "VerificationRecord":
        record_id = data.get("verification_id", data.get("id"))
        return cls(
            id=str(record_id) if record_id is not None else None,
            kind=kind or _kind_from_type(data.get("type")),
            raw_status=data.get("status"),
            rejection_reason=data.get("rejection_reason"),
            created_at=data.get("created_at"),
            record_type=data.get("type"),
            source_document_groups=list(data.get("documents") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value if self.kind else None,
            "status": self.raw_status,
            "tier": self.tier.value,
            "rejection_reason": self.rejection_reason,
            "type": self.record_type,
            "created_at": self.created_at,
        }


def _kind_from_type(record_type: Optional[str]) -> Optional[VerificationKind]:
    if not record_type:
        return None
    value = record_type.strip().lower()
    if value.startswith("student"):
        return VerificationKind.STUDENT
    if value.startswith("driver") or value.startswith("vehicle"):
        return VerificationKind.DRIVER
    return None


@dataclass
class SubmissionResult:
    kind: VerificationKind
    message: Optional[str]
    record: Optional[VerificationRecord]
    tier: StatusTier
