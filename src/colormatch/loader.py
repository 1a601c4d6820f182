"""Image decoding from paths, URLs, raw bytes or arrays."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np
import numpy.typing as npt
import requests

from .errors import DecodeError, raise_native_error
from .image import Image

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, npt.NDArray[np.uint8], Image]

_URL_PREFIXES = ("http://", "https://")
_DOWNLOAD_TIMEOUT = 10


def _to_rgba(decoded: npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    """Convert an OpenCV-decoded (grey, BGR or BGRA) array to RGBA."""
    if decoded.ndim == 2:
        return cv2.cvtColor(decoded, cv2.COLOR_GRAY2RGBA)
    if decoded.shape[2] == 4:
        return cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(decoded, cv2.COLOR_BGR2RGBA)


def decode_bytes(data: bytes | bytearray, name: str = "<bytes>") -> Image:
    """Decode an encoded image (PNG, JPEG, ...) held in memory.

    Raises:
        DecodeError: If the bytes are not a decodable image.
    """
    buf = np.frombuffer(bytes(data), dtype=np.uint8)
    try:
        decoded = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED) if buf.size else None
    except cv2.error as e:
        raise_native_error(e, "decode")

    if decoded is None:
        msg = f"Could not decode image: {name}"
        raise DecodeError(msg)

    if decoded.dtype != np.uint8:
        # 16-bit PNG/TIFF
        decoded = cv2.convertScaleAbs(decoded, alpha=255.0 / 65535.0)
    return Image(_to_rgba(decoded))


def fetch_url(url: str) -> bytes:
    """Download an image over HTTP(S).

    Raises:
        DecodeError: If the request fails or returns an error status.
    """
    logger.debug(f"Fetching {url}")
    try:
        response = requests.get(url, timeout=_DOWNLOAD_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        msg = f"Could not fetch image {url}: {e}"
        raise DecodeError(msg) from e
    return response.content


def load_image(source: ImageSource) -> Image:
    """Load an image from any supported source.

    Args:
        source: File path, ``http(s)`` URL, encoded bytes, RGB(A) numpy
            array or an existing :class:`Image` (returned as-is).

    Returns:
        Decoded RGBA image with an empty excluded bitmap.

    Raises:
        DecodeError: If the source cannot be read or decoded.
    """
    if isinstance(source, Image):
        return source
    if isinstance(source, np.ndarray):
        try:
            return Image(source)
        except ValueError as e:
            raise DecodeError(str(e)) from e
    if isinstance(source, (bytes, bytearray)):
        return decode_bytes(source)

    name = str(source)
    if name.startswith(_URL_PREFIXES):
        return decode_bytes(fetch_url(name), name)

    path = Path(source)
    if not path.is_file():
        msg = f"Image file not found: {path}"
        raise DecodeError(msg)
    try:
        data = path.read_bytes()
    except OSError as e:
        msg = f"Could not read image file {path}: {e}"
        raise DecodeError(msg) from e
    # imdecode handles non-ASCII paths that cv2.imread rejects on Windows
    image = decode_bytes(data, name)
    logger.debug(f"Loaded {path.name} ({image.width}x{image.height})")
    return image
