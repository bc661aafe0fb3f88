import logging
import os
import tempfile
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

from PIL import Image, ImageOps
import pillow_heif

from config import settings
from .errors import ProcessingError
from .models import NormalizedImage, Side
from .utils import cleanup_temp_file, download_image_from_url, is_valid_url

pillow_heif.register_heif_opener()

log = logging.getLogger(__name__)

# Pillow failure modes for unreadable / truncated / hostile inputs
_CODEC_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)


@dataclass
class TranscodeResult:
    uri: str
    width: int
    height: int
    byte_size: int


def local_path(uri: str) -> str:
    """Resolve a file:// URI or plain path to a filesystem path"""
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return uri


def _flatten_to_rgb(img: Image.Image) -> Image.Image:
    """JPEG has no alpha channel: composite transparent images on white"""
    if img.mode == "P" and "transparency" in img.info:
        img = img.convert("RGBA")
    if img.mode in ("RGBA", "LA"):
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.getchannel("A"))
        return background
    return img.convert("RGB")


class PillowImageCodec:
    """
    Decodes any Pillow/HEIF-readable image and re-encodes it as a
    metadata-free JPEG whose longest edge is at most max_edge.
    """

    def __init__(self, output_dir: Optional[str] = None):
        self.output_dir = output_dir or settings.WORK_DIR or tempfile.gettempdir()

    def transcode(self, uri: str, max_edge: int, quality: int) -> TranscodeResult:
        os.makedirs(self.output_dir, exist_ok=True)
        out_path = os.path.join(self.output_dir, f"{uuid.uuid4().hex}.jpg")

        try:
            with Image.open(local_path(uri)) as src:
                # Bake orientation into pixels before EXIF is dropped
                img = ImageOps.exif_transpose(src)
                img = _flatten_to_rgb(img)
                img.thumbnail((max_edge, max_edge), Image.Resampling.LANCZOS)
                # No exif/icc_profile arguments: nothing but pixels is written
                img.save(out_path, "JPEG", quality=quality, optimize=True)
                width, height = img.size
        except _CODEC_ERRORS as e:
            cleanup_temp_file(out_path)
            raise ProcessingError() from e

        return TranscodeResult(
            uri=out_path,
            width=width,
            height=height,
            byte_size=os.path.getsize(out_path),
        )


def _now_millis() -> int:
    return int(time.time() * 1000)


class ImageNormalizer:
    """
    Converts a picked/captured photo into a canonical, size-bounded JPEG.

    Fixed two-pass pipeline:
      1. longest edge 1200px, quality 70
      2. only if pass 1 is over budget: pass 1's output at 800px, quality 50

    Edge sizes are upper bounds: smaller photos keep their dimensions and are
    never upscaled to 1200px.

    The pass 2 result is final even when still over budget; the authority
    enforces the hard upload ceiling.
    """

    def __init__(self,
                 codec=None,
                 byte_budget: Optional[int] = None,
                 clock: Optional[Callable[[], int]] = None,
                 output_dir: Optional[str] = None):
        self.codec = codec or PillowImageCodec(output_dir)
        self.byte_budget = byte_budget if byte_budget is not None else settings.MAX_IMAGE_BYTES
        self.clock = clock or _now_millis
        self.pass1 = (settings.PASS1_MAX_EDGE, settings.PASS1_QUALITY)
        self.pass2 = (settings.PASS2_MAX_EDGE, settings.PASS2_QUALITY)

    def normalize(self, source_uri: str, document_kind: str, side: Side) -> NormalizedImage:
        side = Side(side)
        downloaded = None
        source = source_uri

        if is_valid_url(source_uri):
            try:
                downloaded = download_image_from_url(source_uri)
            except Exception as e:
                raise ProcessingError("Could not download the image. Please try again.") from e
            source = downloaded

        try:
            result = self._run_pass(1, source)
            if result.byte_size > self.byte_budget:
                log.info(
                    f"{document_kind}/{side.value}: pass 1 produced {result.byte_size} bytes "
                    f"(budget {self.byte_budget}), compressing further"
                )
                first = result
                try:
                    result = self._run_pass(2, first.uri)
                finally:
                    cleanup_temp_file(first.uri)
                if result.byte_size > self.byte_budget:
                    log.warning(
                        f"{document_kind}/{side.value}: still {result.byte_size} bytes after pass 2, "
                        f"accepting as final"
                    )
        finally:
            if downloaded:
                cleanup_temp_file(downloaded)

        return NormalizedImage(
            uri=result.uri,
            file_name=f"{document_kind}_{side.value}_{self.clock()}.jpg",
            byte_size=result.byte_size,
            width=result.width,
            height=result.height,
        )

    def _run_pass(self, number: int, uri: str) -> TranscodeResult:
        max_edge, quality = self.pass1 if number == 1 else self.pass2
        try:
            result = self.codec.transcode(uri, max_edge=max_edge, quality=quality)
        except ProcessingError:
            log.exception(f"Image normalization pass {number} failed for {uri}")
            raise
        log.debug(
            f"Pass {number}: {result.width}x{result.height}, {result.byte_size} bytes"
        )
        return result
