"""
Error taxonomy for the verification flow.

Retryable errors leave every document slot as it was, so the user can just
try the same action again.
"""
from typing import List, Optional


class VerificationError(Exception):
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PermissionDenied(VerificationError):
    """Photo library or camera access was refused"""
    retryable = True

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Access to the {source} is required to add a document photo")


class ProcessingError(VerificationError):
    """Decode, resize or encode failed while normalizing an image"""
    retryable = True

    def __init__(self, message: str = "Could not process the image. Please choose another one."):
        super().__init__(message)


class IncompleteDocuments(VerificationError):
    retryable = True

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(
            f"Both sides are required for: {', '.join(self.missing)}"
        )


class EligibilityBlocked(VerificationError):
    def __init__(self, reason: str, redirect: Optional[str] = None, message: Optional[str] = None):
        self.reason = reason
        self.redirect = redirect
        super().__init__(message or reason)


class SubmissionFailed(VerificationError):
    """Dispatch to the authority failed. Never retried automatically."""

    def __init__(self, cause: Exception, message: str):
        self.cause = cause
        super().__init__(message)


class RefreshFailed(VerificationError):
    """Post-submit status read failed; does not change the submission outcome"""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Could not refresh verification status: {cause}")


class SubmissionInProgress(VerificationError):
    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"A {kind} verification submission is already in progress")


class AuthorityError(Exception):
    """Transport or server error reported by the verification authority"""

    def __init__(self, message: Optional[str], status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message or f"Authority request failed (status={status_code})")
