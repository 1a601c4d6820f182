"""Colormatch - Locate template images by regional colour fingerprints."""

from .config import MatchConfig
from .errors import (
    ColorMatchError,
    DecodeError,
    MatchCancelledError,
    SegmentationError,
)
from .fingerprint import color_fingerprint
from .image import ArrayPixels, BufferPixels, Image, PixelSource
from .loader import load_image
from .matcher import ColorTemplateMatcher, match_template_color
from .models import MatchResult, Rect
from .segmentation import GrabCutSegmenter, SegmentationPreprocessor, Segmenter
from .vector import cosine_similarity, similarity_or_zero

__version__ = "0.1.0"

__all__ = [
    "ArrayPixels",
    "BufferPixels",
    "ColorMatchError",
    "ColorTemplateMatcher",
    "DecodeError",
    "GrabCutSegmenter",
    "Image",
    "MatchCancelledError",
    "MatchConfig",
    "MatchResult",
    "PixelSource",
    "Rect",
    "SegmentationError",
    "SegmentationPreprocessor",
    "Segmenter",
    "color_fingerprint",
    "cosine_similarity",
    "load_image",
    "match_template_color",
    "similarity_or_zero",
]
