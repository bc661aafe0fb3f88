import logging
from dataclasses import dataclass
from typing import Optional

from .errors import EligibilityBlocked
from .models import StatusTier, VerificationKind

log = logging.getLogger(__name__)

STUDENT_PREREQUISITE_UNMET = "student-prerequisite-unmet"


@dataclass
class Eligibility:
    allowed: bool
    reason: Optional[str] = None
    # Already pending/verified: show the status instead of the capture flow
    view_only: bool = False
    redirect: Optional[VerificationKind] = None


class EligibilityGate:
    """
    Decides whether a user may enter document capture for a verification kind.
    Driver verification depends on an approved student record.
    """

    def evaluate(self,
                 kind: VerificationKind,
                 student_tier: StatusTier,
                 current_tier: Optional[StatusTier] = None) -> Eligibility:
        kind = VerificationKind(kind)

        if kind is VerificationKind.STUDENT:
            return self._own_status(student_tier)

        if student_tier is not StatusTier.VERIFIED:
            log.info(f"Driver verification blocked: student tier is {student_tier.value}")
            return Eligibility(
                allowed=False,
                reason=STUDENT_PREREQUISITE_UNMET,
                redirect=VerificationKind.STUDENT,
            )

        if current_tier is None:
            return Eligibility(allowed=True)
        return self._own_status(current_tier)

    def require(self,
                kind: VerificationKind,
                student_tier: StatusTier,
                current_tier: Optional[StatusTier] = None) -> Eligibility:
        """Like evaluate(), but raises EligibilityBlocked on a hard block"""
        outcome = self.evaluate(kind, student_tier, current_tier)
        if not outcome.allowed and not outcome.view_only:
            raise EligibilityBlocked(
                reason=outcome.reason,
                redirect=outcome.redirect.value if outcome.redirect else None,
                message="Student verification must be approved before driver verification.",
            )
        return outcome

    @staticmethod
    def _own_status(tier: StatusTier) -> Eligibility:
        if tier in (StatusTier.PENDING, StatusTier.VERIFIED):
            return Eligibility(allowed=False, reason=tier.value, view_only=True)
        # NOT_SUBMITTED, or REJECTED and allowed to resubmit
        return Eligibility(allowed=True)
