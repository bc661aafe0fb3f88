import logging
import os
from typing import Optional, Protocol

from .errors import PermissionDenied
from .file_converter import local_path

log = logging.getLogger(__name__)

LIBRARY = "library"
CAMERA = "camera"


class ImageSource(Protocol):
    def request_library_permission(self) -> bool: ...

    def request_camera_permission(self) -> bool: ...

    def pick_from_library(self) -> Optional[str]: ...

    def capture_from_camera(self) -> Optional[str]: ...


def acquire(source: ImageSource, via: str = LIBRARY) -> Optional[str]:
    """
    Ask for permission, then pick or capture a photo.
    Returns the source uri, or None when the user cancelled.
    """
    if via == CAMERA:
        granted = source.request_camera_permission()
    elif via == LIBRARY:
        granted = source.request_library_permission()
    else:
        raise ValueError(f"Unknown image source: {via}")

    if not granted:
        log.info(f"{via} permission denied")
        raise PermissionDenied("camera" if via == CAMERA else "photo library")

    uri = source.capture_from_camera() if via == CAMERA else source.pick_from_library()
    if not uri:
        log.debug(f"{via} selection cancelled")
        return None
    return uri


class LocalFileSource:
    """
    Image source backed by a file already on disk (e.g. an HTTP upload).
    Permission means the file is readable; there is no camera.
    """

    def __init__(self, uri: Optional[str]):
        self.uri = uri

    def _readable(self) -> bool:
        # Nothing to read is a cancellation, not a refusal
        if not self.uri:
            return True
        return os.access(local_path(self.uri), os.R_OK)

    def request_library_permission(self) -> bool:
        return self._readable()

    def request_camera_permission(self) -> bool:
        return False

    def pick_from_library(self) -> Optional[str]:
        return self.uri

    def capture_from_camera(self) -> Optional[str]:
        return None
