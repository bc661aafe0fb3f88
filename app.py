from fastapi import FastAPI, File, UploadFile, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware

import logging
import os
import shutil
import tempfile
import threading
from typing import Optional, Dict, Any, Set, Tuple

from verification.authority import VerificationAuthorityClient
from verification.decision import describe_error, describe_history, describe_status
from verification.errors import (
    AuthorityError,
    EligibilityBlocked,
    SubmissionFailed,
    SubmissionInProgress,
    VerificationError,
)
from verification.models import VerificationKind
from verification.run_pipeline import run_pipeline
from config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


app = FastAPI(
    title="Verification Gateway",
    description="Student and driver document verification: JPEG normalization and submission",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_HTTP_STATUS = {
    "PERMISSION_DENIED": 422,
    "REUPLOAD": 422,
    "INCOMPLETE": 422,
    "BLOCKED": 403,
    "SUBMISSION_FAILED": 502,
    "IN_PROGRESS": 409,
}

# Submission-in-progress guard, one entry per (caller, kind)
_in_flight: Set[Tuple[str, str]] = set()
_in_flight_lock = threading.Lock()


def get_authority(authorization: Optional[str]) -> VerificationAuthorityClient:
    return VerificationAuthorityClient(token=authorization)


def _raise_http(error: VerificationError):
    body = describe_error(error)
    raise HTTPException(
        status_code=ERROR_HTTP_STATUS.get(body["status"], 500),
        detail=body,
    )


# ------------------------
# Status / history
# ------------------------
@app.get("/verification/status")
def verification_status(authorization: Optional[str] = Header(None)):
    authority = get_authority(authorization)
    try:
        student = authority.get_current_student_verification()
        driver = authority.get_current_driver_verification()
    except AuthorityError as e:
        raise HTTPException(status_code=502, detail=e.message or "Verification authority unavailable")
    return describe_status(student, driver)


@app.get("/verification/history")
def verification_history(authorization: Optional[str] = Header(None)):
    authority = get_authority(authorization)
    try:
        records = authority.get_my_verification_history()
    except AuthorityError as e:
        raise HTTPException(status_code=502, detail=e.message or "Verification authority unavailable")
    return {"history": describe_history(records)}


# ------------------------
# Submissions
# ------------------------
def _submit(kind: VerificationKind,
            file_mappings: Dict[str, Optional[UploadFile]],
            authorization: Optional[str]) -> Dict[str, Any]:
    key = (authorization or "", kind.value)
    with _in_flight_lock:
        if key in _in_flight:
            _raise_http(SubmissionInProgress(kind.value))
        _in_flight.add(key)

    temp_dir = None
    try:
        temp_dir = tempfile.mkdtemp(prefix="kyc_upload_")

        # Save raw uploads; normalization happens inside the pipeline
        docs: Dict[str, str] = {}
        for doc_key, uploaded_file in file_mappings.items():
            if not uploaded_file or not uploaded_file.filename:
                continue

            raw_path = os.path.join(
                temp_dir, f"raw_{doc_key}_{os.path.basename(uploaded_file.filename)}"
            )
            with open(raw_path, "wb") as buffer:
                shutil.copyfileobj(uploaded_file.file, buffer)
            docs[doc_key] = raw_path

        return run_pipeline(kind, docs, get_authority(authorization))

    except EligibilityBlocked as e:
        log.info(f"{kind.value} submission blocked: {e.reason}")
        _raise_http(e)
    except SubmissionFailed as e:
        log.error(f"{kind.value} submission failed: {e.cause}")
        _raise_http(e)
    except VerificationError as e:
        _raise_http(e)

    finally:
        with _in_flight_lock:
            _in_flight.discard(key)
        # Cleanup temp files
        if temp_dir and os.path.exists(temp_dir):
            shutil.rmtree(temp_dir, ignore_errors=True)


@app.post("/verification/student")
def submit_student(
    student_id_front: UploadFile = File(None),
    student_id_back: UploadFile = File(None),
    authorization: Optional[str] = Header(None),
):
    """
    Submit both sides of the student ID card.
    Supports JPG / PNG / HEIC / WebP uploads; everything is sent as JPEG.
    """
    return _submit(
        VerificationKind.STUDENT,
        {
            "studentId_front": student_id_front,
            "studentId_back": student_id_back,
        },
        authorization,
    )


@app.post("/verification/driver")
def submit_driver(
    license_front: UploadFile = File(None),
    license_back: UploadFile = File(None),
    vehicle_registration_front: UploadFile = File(None),
    vehicle_registration_back: UploadFile = File(None),
    vehicle_authorization_front: Optional[UploadFile] = File(None),
    vehicle_authorization_back: Optional[UploadFile] = File(None),
    authorization: Optional[str] = Header(None),
):
    """
    Submit driver documents. License and vehicle registration are required
    (both sides); vehicle authorization is optional and only sent when both
    sides are present. Requires an approved student verification.
    """
    return _submit(
        VerificationKind.DRIVER,
        {
            "license_front": license_front,
            "license_back": license_back,
            "vehicleRegistration_front": vehicle_registration_front,
            "vehicleRegistration_back": vehicle_registration_back,
            "vehicleAuthorization_front": vehicle_authorization_front,
            "vehicleAuthorization_back": vehicle_authorization_back,
        },
        authorization,
    )


# ------------------------
# Health Check
# ------------------------
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "verification-gateway"
    }


# ------------------------
# Local Dev Entry
# ------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
