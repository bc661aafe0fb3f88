import logging
import os
import requests
import tempfile
from typing import Optional
from urllib.parse import urlparse

from config import settings

log = logging.getLogger(__name__)

def download_image_from_url(url: str, save_path: Optional[str] = None) -> str:
    """
    Download an image from URL and save to local path

    Args:
        url: Image URL to download
        save_path: Optional path to save the image. If None, creates temp file

    Returns:
        Local path to downloaded image
    """
    try:
        response = requests.get(url, timeout=settings.AUTHORITY_TIMEOUT_SECONDS)
        response.raise_for_status()

        if save_path is None:
            # Suffix is irrelevant, the decoder sniffs the content
            fd, save_path = tempfile.mkstemp(suffix='.img')
            os.close(fd)

        with open(save_path, 'wb') as f:
            f.write(response.content)

        return save_path

    except (requests.RequestException, OSError) as e:
        raise Exception(f"Failed to download image from {url}: {str(e)}") from e

def is_valid_url(url: str) -> bool:
    """Check if string is a downloadable http(s) URL"""
    try:
        result = urlparse(url)
    except (TypeError, ValueError):
        return False
    return result.scheme in ("http", "https") and bool(result.netloc)

def cleanup_temp_file(file_path: str) -> None:
    """Safely remove temporary file"""
    try:
        if file_path and os.path.exists(file_path):
            os.remove(file_path)
    except OSError as e:
        log.warning(f"Could not remove temp file {file_path}: {e}")
