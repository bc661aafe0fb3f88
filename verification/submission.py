import logging
from typing import Any, Dict, List, Optional

from config import GENERIC_SUBMIT_FAILURE
from .authority import VerificationAuthority
from .documents import DocumentSet
from .errors import AuthorityError, IncompleteDocuments, RefreshFailed, SubmissionFailed
from .models import (
    NormalizedImage,
    StatusTier,
    SubmissionResult,
    VerificationKind,
    VerificationRecord,
)
from .status import resolve_record

log = logging.getLogger(__name__)


class SubmissionCoordinator:
    """
    Validates a DocumentSet, dispatches it to the authority exactly once and
    reads back the resulting record.

    Holds no per-attempt state: a failed attempt can simply be re-invoked.
    Guarding against overlapping calls is the caller's job.
    """

    def __init__(self, authority: VerificationAuthority):
        self.authority = authority

    def try_submit(self, kind: VerificationKind, document_set: DocumentSet) -> SubmissionResult:
        kind = VerificationKind(kind)

        # Step 1: completeness, before any network traffic
        missing = document_set.missing_required()
        if missing:
            log.info(f"{kind.value} submission incomplete: {missing}")
            raise IncompleteDocuments(missing)

        # Step 2: payload (half-filled optional groups are dropped)
        payload = document_set.assemble_payload()

        # Step 3: single dispatch, no retry
        try:
            response = self._dispatch(kind, payload)
        except AuthorityError as e:
            log.error(f"{kind.value} verification submission failed: {e}")
            raise SubmissionFailed(e, e.message or GENERIC_SUBMIT_FAILURE) from e

        message = response.get("message") if isinstance(response, dict) else None
        log.info(f"{kind.value} verification submitted ({', '.join(payload)})")

        # Step 4: best-effort reconciliation, not part of the commit
        record = None
        try:
            record = self._refresh(kind)
        except RefreshFailed as e:
            log.warning(e.message)

        tier = resolve_record(record) if record is not None else StatusTier.PENDING
        return SubmissionResult(kind=kind, message=message, record=record, tier=tier)

    def _dispatch(self, kind: VerificationKind, payload: Dict[str, List[NormalizedImage]]) -> Any:
        if kind is VerificationKind.STUDENT:
            return self.authority.submit_student_verification(payload["studentId"])
        return self.authority.submit_driver_verification(payload)

    def _refresh(self, kind: VerificationKind) -> Optional[VerificationRecord]:
        try:
            if kind is VerificationKind.STUDENT:
                return self.authority.get_current_student_verification()
            return self.authority.get_current_driver_verification()
        # Not part of the commit: any read failure, including a malformed body
        except Exception as e:
            raise RefreshFailed(e) from e
