"""Pytest fixtures for the verification pipeline tests."""
import io
import os
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image
import pillow_heif

from verification.models import NormalizedImage, VerificationKind, VerificationRecord

pillow_heif.register_heif_opener()


# =============================================================================
# Image fixtures
# =============================================================================


def _gradient(size, mode="RGB"):
    horizontal = Image.linear_gradient("L").rotate(90).resize(size)
    vertical = Image.linear_gradient("L").resize(size)
    bands = [horizontal, vertical, Image.new("L", size, 128)]
    if mode == "RGBA":
        bands.append(Image.new("L", size, 200))
    return Image.merge(mode, bands)


@pytest.fixture
def image_file(tmp_path: Path):
    """Write a test image in the given format and return its path."""

    def _make(fmt: str = "JPEG", size=(320, 240), name: Optional[str] = None, **save_kwargs) -> str:
        ext = {"JPEG": "jpg", "PNG": "png", "HEIF": "heic", "WEBP": "webp"}[fmt]
        path = tmp_path / (name or f"source_{fmt.lower()}_{size[0]}x{size[1]}.{ext}")
        mode = "RGBA" if fmt == "PNG" else "RGB"
        img = _gradient(size, mode)
        try:
            img.save(path, fmt, **save_kwargs)
        except (KeyError, OSError, ValueError) as e:
            pytest.skip(f"{fmt} encoder not available: {e}")
        return str(path)

    return _make


@pytest.fixture
def noise_file(tmp_path: Path):
    """Random-noise PNG: compresses badly, so JPEG output stays large."""

    def _make(size=(2000, 1500)) -> str:
        path = tmp_path / f"noise_{size[0]}x{size[1]}.png"
        Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3)).save(path, "PNG")
        return str(path)

    return _make


@pytest.fixture
def garbage_file(tmp_path: Path) -> str:
    path = tmp_path / "not_an_image.jpg"
    path.write_bytes(b"\x00definitely not image data" * 10)
    return str(path)


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    _gradient((200, 150), "RGBA").save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def make_asset():
    """NormalizedImage without a backing file, for slot bookkeeping tests."""

    def _make(name: str = "license_front_1.jpg") -> NormalizedImage:
        return NormalizedImage(
            uri=f"/tmp/{name}",
            file_name=name,
            byte_size=1024,
            width=1200,
            height=800,
        )

    return _make


# =============================================================================
# Authority double
# =============================================================================


class FakeAuthority:
    """In-memory verification authority with an additive history."""

    def __init__(self,
                 student: Optional[VerificationRecord] = None,
                 driver: Optional[VerificationRecord] = None):
        self.records = {
            VerificationKind.STUDENT: student,
            VerificationKind.DRIVER: driver,
        }
        self.history = [r for r in (student, driver) if r is not None]
        self.calls = []
        self.submit_error: Optional[Exception] = None
        self.refresh_error: Optional[Exception] = None
        self.submit_message: Optional[str] = "Documents received"
        self._next_id = 100

    @property
    def submissions(self):
        return [c for c in self.calls if c[0] == "submit"]

    def _submitted(self, kind: VerificationKind, payload):
        self.calls.append(("submit", kind, payload))
        if self.submit_error:
            raise self.submit_error
        record = VerificationRecord(
            id=str(self._next_id),
            kind=kind,
            raw_status="pending",
            record_type="student_id" if kind is VerificationKind.STUDENT else "driver_documents",
            created_at="2026-10-18T09:00:00",
        )
        self._next_id += 1
        self.records[kind] = record
        self.history.append(record)
        return {"message": self.submit_message}

    def _current(self, kind: VerificationKind):
        self.calls.append(("current", kind))
        # Only the post-submit refresh fails
        if self.refresh_error and self.submissions:
            raise self.refresh_error
        return self.records[kind]

    def submit_student_verification(self, documents):
        return self._submitted(VerificationKind.STUDENT, documents)

    def submit_driver_verification(self, groups):
        return self._submitted(VerificationKind.DRIVER, groups)

    def get_current_student_verification(self):
        return self._current(VerificationKind.STUDENT)

    def get_current_driver_verification(self):
        return self._current(VerificationKind.DRIVER)

    def get_my_verification_history(self):
        self.calls.append(("history",))
        return list(self.history)


def record(kind: VerificationKind, status: Optional[str], reason: Optional[str] = None,
           record_id: str = "1") -> VerificationRecord:
    return VerificationRecord(
        id=record_id,
        kind=kind,
        raw_status=status,
        rejection_reason=reason,
        created_at="2026-10-01T08:00:00",
    )

