"""Colour-distribution fingerprints for image regions."""

import numpy as np
import numpy.typing as npt

from .image import Image
from .models import Rect

DEFAULT_BLOCKS = 4


def bucket_indices(channel: npt.NDArray[np.uint8], blocks: int) -> npt.NDArray[np.intp]:
    """Quantise 0-255 channel values into ``blocks`` buckets.

    Bucket for value ``v`` is ``floor(v / (256 / blocks))`` clamped to
    ``[0, blocks - 1]``.
    """
    width = 256.0 / blocks
    buckets = np.floor(channel.astype(np.float64) / width).astype(np.intp)
    return np.clip(buckets, 0, blocks - 1)


def color_fingerprint(
    image: Image, blocks: int = DEFAULT_BLOCKS, rect: Rect | None = None
) -> npt.NDArray[np.float64]:
    """Compute the 3-D RGB histogram fingerprint of an image.

    Excluded (background) pixels are skipped. The flattened layout is
    R outermost, then G, then B, so bucket ``(r, g, b)`` lives at
    ``r * blocks**2 + g * blocks + b``.

    Args:
        image: Image to fingerprint.
        blocks: Buckets per channel. Default 4 (64 buckets total).
        rect: Optional sub-region; equivalent to fingerprinting
            ``image.crop(rect)`` except that the image's excluded bitmap
            still applies.

    Returns:
        Pixel counts per bucket, length ``blocks ** 3``.

    Raises:
        ValueError: If ``blocks`` is less than 1.
    """
    if blocks < 1:
        msg = f"blocks must be >= 1, got {blocks}"
        raise ValueError(msg)

    rgba = image.rgba()
    excluded = image.excluded
    if rect is not None:
        rect = rect.clamp(image.width, image.height)
        rgba = rgba[rect.y:rect.bottom, rect.x:rect.right]
        excluded = excluded[rect.y:rect.bottom, rect.x:rect.right]

    included = rgba[~excluded]
    r = bucket_indices(included[:, 0], blocks)
    g = bucket_indices(included[:, 1], blocks)
    b = bucket_indices(included[:, 2], blocks)
    index = (r * blocks + g) * blocks + b

    counts = np.bincount(index, minlength=blocks ** 3)
    return counts.astype(np.float64)
