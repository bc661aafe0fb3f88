from pydantic_settings import BaseSettings
from typing import Dict, Any, Optional

class Settings(BaseSettings):
    # Verification authority
    AUTHORITY_BASE_URL: str = "http://localhost:8080/api"
    AUTHORITY_TOKEN: Optional[str] = None
    AUTHORITY_TIMEOUT_SECONDS: float = 30
    STUDENT_SUBMIT_PATH: str = "/verification/student"
    DRIVER_SUBMIT_PATH: str = "/verification/driver"
    STUDENT_CURRENT_PATH: str = "/verification/student/current"
    DRIVER_CURRENT_PATH: str = "/verification/driver/current"
    HISTORY_PATH: str = "/verification/history"

    # Image normalization (two fixed passes)
    PASS1_MAX_EDGE: int = 1200
    PASS1_QUALITY: int = 70
    PASS2_MAX_EDGE: int = 800
    PASS2_QUALITY: int = 50
    # Best-effort budget; the authority enforces the hard ceiling
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024

    # Where normalized images are written (system temp dir when unset)
    WORK_DIR: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()

# Document groups per verification kind, each one a front/back pair
DOCUMENT_GROUPS: Dict[str, Any] = {
    "student": [
        {"name": "studentId", "required": True},
    ],
    "driver": [
        {"name": "license", "required": True},
        {"name": "vehicleRegistration", "required": True},
        {"name": "vehicleAuthorization", "required": False},
    ],
}

# Multipart field names expected by the authority
AUTHORITY_FIELDS = {
    "studentId": "documents",
    "license": "license",
    "vehicleRegistration": "vehicle_registration",
    "vehicleAuthorization": "vehicle_authorization",
}

GENERIC_SUBMIT_FAILURE = "Could not submit verification documents. Please try again."
