"""Foreground isolation via GrabCut before fingerprinting.

Background pixels of a template (window chrome, page colour around an icon)
would otherwise dominate its colour histogram. The preprocessor runs a
foreground/background segmentation seeded by a rectangle, paints every
background pixel white and records it in the output image's excluded
bitmap so the fingerprint ignores it.
"""

import logging
from typing import Protocol

import cv2
import numpy as np
import numpy.typing as npt

from .errors import SegmentationError, raise_native_error
from .image import Image
from .models import Rect

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 4
_BACKGROUND_LABELS = (cv2.GC_BGD, cv2.GC_PR_BGD)


class Segmenter(Protocol):
    """Protocol defining the foreground/background segmentation primitive."""

    def segment(
        self, rgb: npt.NDArray[np.uint8], rect: Rect, iterations: int
    ) -> npt.NDArray[np.uint8]:
        """Classify every pixel of ``rgb`` as foreground or background.

        Args:
            rgb: ``(H, W, 3)`` uint8 image.
            rect: Seed rectangle; everything outside it is background.
            iterations: Number of refinement iterations.

        Returns:
            ``(H, W)`` mask holding ``cv2.GC_BGD``, ``cv2.GC_FGD``,
            ``cv2.GC_PR_BGD`` or ``cv2.GC_PR_FGD`` per pixel.
        """
        ...


class GrabCutSegmenter:
    """Segmenter backed by OpenCV's ``cv2.grabCut``."""

    def segment(
        self, rgb: npt.NDArray[np.uint8], rect: Rect, iterations: int = DEFAULT_ITERATIONS
    ) -> npt.NDArray[np.uint8]:
        mask = np.zeros(rgb.shape[:2], dtype=np.uint8)
        bgd_model = np.zeros((1, 65), np.float64)
        fgd_model = np.zeros((1, 65), np.float64)
        cv2.grabCut(
            rgb,
            mask,
            rect.as_tuple(),
            bgd_model,
            fgd_model,
            iterations,
            cv2.GC_INIT_WITH_RECT,
        )
        return mask


class SegmentationPreprocessor:
    """Strip background pixels from an image ahead of fingerprinting."""

    def __init__(
        self, segmenter: Segmenter | None = None, iterations: int = DEFAULT_ITERATIONS
    ):
        """Initialize preprocessor.

        Args:
            segmenter: Segmentation primitive. None disables segmentation,
                in which case images pass through (cropped) untouched.
            iterations: Refinement iterations handed to the segmenter.
        """
        self.segmenter = segmenter
        self.iterations = iterations

    def isolate_foreground(self, image: Image, rect: Rect | None = None) -> Image:
        """Segment ``image`` and blank out its background.

        Args:
            image: Source image (not modified).
            rect: Seed region. When given, the output is restricted to it;
                otherwise the whole image inset by one pixel on the bottom
                and right seeds the segmentation and the full frame is
                returned.

        Returns:
            New RGBA image with background pixels painted white and marked
            excluded.

        Raises:
            SegmentationError: If the segmenter fails or returns a bad mask.
        """
        if self.segmenter is None:
            logger.debug("No segmenter configured, using all template pixels")
            return image.crop(rect) if rect is not None else image

        if rect is not None:
            seed = rect.clamp(image.width, image.height)
        else:
            seed = Rect(x=0, y=0, width=max(image.width - 1, 0), height=max(image.height - 1, 0))

        rgb = image.rgb()
        try:
            mask = self.segmenter.segment(rgb, seed, self.iterations)
        except Exception as e:
            raise_native_error(e, "segmentation")

        if mask.shape != rgb.shape[:2]:
            msg = f"Segmentation mask shape {mask.shape} does not match image {rgb.shape[:2]}"
            raise SegmentationError(msg)

        background = np.isin(mask, _BACKGROUND_LABELS)
        if rect is not None:
            rgb = rgb[seed.y:seed.bottom, seed.x:seed.right]
            background = background[seed.y:seed.bottom, seed.x:seed.right]

        rgb[background] = 255
        rgba = cv2.cvtColor(np.ascontiguousarray(rgb), cv2.COLOR_RGB2RGBA)

        logger.debug(f"Segmented {rgb.shape[1]}x{rgb.shape[0]} region, "
                     f"{int(background.sum())} background pixels excluded")
        return Image(rgba, excluded=background.copy())
