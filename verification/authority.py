"""
HTTP client for the remote verification authority.

The authority owns every verification record; this client only uploads
normalized documents and reads back snapshots. Timeouts live here, retries
do not: a failed submission is surfaced to the caller unchanged.
"""
import logging
from contextlib import ExitStack
from typing import Any, Dict, List, Optional, Protocol

import requests

from config import settings, AUTHORITY_FIELDS
from .errors import AuthorityError
from .file_converter import local_path
from .models import NormalizedImage, VerificationKind, VerificationRecord

log = logging.getLogger(__name__)


class VerificationAuthority(Protocol):
    def submit_student_verification(self, documents: List[NormalizedImage]) -> Dict[str, Any]: ...

    def submit_driver_verification(self, groups: Dict[str, List[NormalizedImage]]) -> Dict[str, Any]: ...

    def get_current_student_verification(self) -> Optional[VerificationRecord]: ...

    def get_current_driver_verification(self) -> Optional[VerificationRecord]: ...

    def get_my_verification_history(self) -> List[VerificationRecord]: ...


class VerificationAuthorityClient:

    def __init__(self,
                 base_url: Optional[str] = None,
                 token: Optional[str] = None,
                 timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or settings.AUTHORITY_BASE_URL).rstrip("/")
        self.token = token if token is not None else settings.AUTHORITY_TOKEN
        self.timeout = timeout or settings.AUTHORITY_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    # ------------------------
    # Submissions
    # ------------------------
    def submit_student_verification(self, documents: List[NormalizedImage]) -> Dict[str, Any]:
        return self._upload(settings.STUDENT_SUBMIT_PATH, {"studentId": documents})

    def submit_driver_verification(self, groups: Dict[str, List[NormalizedImage]]) -> Dict[str, Any]:
        return self._upload(settings.DRIVER_SUBMIT_PATH, groups)

    # ------------------------
    # Reads
    # ------------------------
    def get_current_student_verification(self) -> Optional[VerificationRecord]:
        return self._current(settings.STUDENT_CURRENT_PATH, VerificationKind.STUDENT)

    def get_current_driver_verification(self) -> Optional[VerificationRecord]:
        return self._current(settings.DRIVER_CURRENT_PATH, VerificationKind.DRIVER)

    def get_my_verification_history(self) -> List[VerificationRecord]:
        data = self._request("GET", settings.HISTORY_PATH)
        items = _unwrap(data)
        if isinstance(items, dict):
            items = items.get("verifications") or items.get("items") or []
        if not isinstance(items, (list, type(None))):
            raise AuthorityError("Malformed verification history from verification authority")
        return [VerificationRecord.from_api(_require_object(item)) for item in items or []]

    def _current(self, path: str, kind: VerificationKind) -> Optional[VerificationRecord]:
        try:
            data = self._request("GET", path)
        except AuthorityError as e:
            if e.status_code == 404:
                return None
            raise
        data = _unwrap(data)
        if not data:
            return None
        return VerificationRecord.from_api(_require_object(data), kind=kind)

    # ------------------------
    # Transport
    # ------------------------
    def _upload(self, path: str, groups: Dict[str, List[NormalizedImage]]) -> Dict[str, Any]:
        with ExitStack() as stack:
            files = []
            for group_name, images in groups.items():
                field = AUTHORITY_FIELDS.get(group_name, group_name)
                for image in images:
                    handle = stack.enter_context(open(local_path(image.uri), "rb"))
                    files.append((field, (image.file_name, handle, image.mime_type)))

            log.info(f"Uploading {len(files)} document image(s) to {path}")
            data = self._request("POST", path, files=files)

        return data if isinstance(data, dict) else {"message": None}

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = (
                self.token if self.token.lower().startswith("bearer ") else f"Bearer {self.token}"
            )
        return headers

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            log.warning(f"{method} {url} failed: {e}")
            raise AuthorityError(None) from e

        if response.status_code >= 400:
            message = _error_message(response)
            log.warning(f"{method} {url} -> {response.status_code}: {message}")
            raise AuthorityError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise AuthorityError("Malformed response from verification authority",
                                 status_code=response.status_code) from e


def _unwrap(data: Any) -> Any:
    """Accept both bare payloads and {"data": ...} envelopes"""
    if isinstance(data, dict) and "data" in data and "status" not in data:
        return data["data"]
    return data


def _require_object(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise AuthorityError("Malformed verification record from verification authority")
    return data


def _error_message(response: requests.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail") or body.get("error")
        if isinstance(message, str):
            return message
    return None
