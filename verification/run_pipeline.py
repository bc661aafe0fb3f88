import logging
import shutil
import tempfile
from typing import Any, Dict, Optional, Tuple

from config import settings
from .acquisition import LIBRARY, LocalFileSource, acquire
from .authority import VerificationAuthority
from .decision import describe_result, describe_view_only
from .documents import DocumentSet
from .eligibility import Eligibility, EligibilityGate
from .errors import AuthorityError, SubmissionInProgress
from .file_converter import ImageNormalizer
from .models import NormalizedImage, Side, StatusTier, SubmissionResult, VerificationKind
from .status import resolve_record
from .submission import SubmissionCoordinator

log = logging.getLogger(__name__)


class VerificationFlow:
    """
    One in-progress verification attempt for a single kind.

    Lifecycle: open() runs the eligibility gate and only then creates the
    DocumentSet; capture() fills slots; submit() hands the set to the
    coordinator. Everything captured lives in a private work dir that
    close() removes.
    """

    def __init__(self,
                 kind: VerificationKind,
                 authority: VerificationAuthority,
                 normalizer: Optional[ImageNormalizer] = None,
                 gate: Optional[EligibilityGate] = None,
                 work_dir: Optional[str] = None):
        self.kind = VerificationKind(kind)
        self.authority = authority
        self.gate = gate or EligibilityGate()
        self.coordinator = SubmissionCoordinator(authority)
        self.work_dir = work_dir or tempfile.mkdtemp(prefix="kyc_", dir=settings.WORK_DIR)
        self.normalizer = normalizer or ImageNormalizer(output_dir=self.work_dir)

        self.document_set: Optional[DocumentSet] = None
        self.eligibility: Optional[Eligibility] = None
        self.student_record = None
        self.current_record = None
        # Caller-owned guard: one dispatch+reconciliation at a time
        self.submitting = False

    def __enter__(self) -> "VerificationFlow":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def open(self) -> Eligibility:
        """
        Fetch current records and evaluate eligibility.
        Raises EligibilityBlocked without creating any capture state.
        """
        self.student_record = self._read_current(VerificationKind.STUDENT)
        student_tier = resolve_record(self.student_record)

        current_tier = None
        if self.kind is VerificationKind.STUDENT:
            self.current_record = self.student_record
        elif student_tier is StatusTier.VERIFIED:
            self.current_record = self._read_current(VerificationKind.DRIVER)
            current_tier = resolve_record(self.current_record)

        self.eligibility = self.gate.require(self.kind, student_tier, current_tier)
        if self.eligibility.allowed:
            self.document_set = DocumentSet.for_kind(self.kind)
        return self.eligibility

    def capture(self,
                group: str,
                side: Side,
                source,
                via: str = LIBRARY) -> Optional[NormalizedImage]:
        """
        Acquire, normalize and store one photo.
        On PermissionDenied / ProcessingError the slot keeps its previous asset.
        """
        if self.document_set is None:
            raise RuntimeError(f"{self.kind.value} document capture is not open")
        # Unknown group names fail before any permission prompt
        self.document_set.group(group)

        uri = acquire(source, via)
        if uri is None:
            return None

        image = self.normalizer.normalize(uri, group, side)
        self.document_set.put(group, side, image)
        log.info(f"Captured {image.file_name} ({image.width}x{image.height}, {image.byte_size} bytes)")
        return image

    def submit(self) -> SubmissionResult:
        if self.submitting:
            raise SubmissionInProgress(self.kind.value)
        if self.document_set is None:
            raise RuntimeError(f"{self.kind.value} document capture is not open")

        self.submitting = True
        try:
            result = self.coordinator.try_submit(self.kind, self.document_set)
        finally:
            self.submitting = False

        if result.record is not None:
            self.current_record = result.record
        # Attempt finished: the captured set is no longer needed
        self.document_set = None
        return result

    def close(self) -> None:
        shutil.rmtree(self.work_dir, ignore_errors=True)

    def _read_current(self, kind: VerificationKind):
        try:
            if kind is VerificationKind.STUDENT:
                return self.authority.get_current_student_verification()
            return self.authority.get_current_driver_verification()
        except AuthorityError as e:
            log.warning(f"No current {kind.value} verification available: {e}")
            return None


def split_doc_key(key: str) -> Tuple[str, Side]:
    """'vehicleRegistration_front' -> ('vehicleRegistration', Side.FRONT)"""
    group, _, side = key.rpartition("_")
    return group, Side(side)


def run_pipeline(kind: VerificationKind, docs: Dict[str, str], authority: VerificationAuthority) -> Dict[str, Any]:
    """
    Main pipeline function that runs a whole verification attempt from files on disk

    Args:
        kind: student or driver
        docs: Dictionary with "{group}_{side}" keys and file paths as values
              Student: studentId_front, studentId_back
              Driver: license_*, vehicleRegistration_*, optional vehicleAuthorization_*
        authority: verification authority client

    Returns:
        Standardized response with status, message and signals.
        Verification errors propagate to the caller.
    """
    with VerificationFlow(kind, authority) as flow:
        # Step 1: eligibility, before anything is normalized
        eligibility = flow.open()
        if not eligibility.allowed:
            return describe_view_only(flow.kind, eligibility, flow.current_record)

        # Step 2: normalize every provided photo into its slot
        for key, path in docs.items():
            group, side = split_doc_key(key)
            flow.capture(group, side, LocalFileSource(path))

        # Step 3: validate, dispatch, reconcile
        result = flow.submit()

    response = describe_result(result)
    response["pipeline_metadata"] = {
        "documents_processed": list(docs.keys()),
    }
    return response
