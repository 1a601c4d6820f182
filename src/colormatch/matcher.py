"""Template location by colour-fingerprint similarity over sliding windows."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Generator
from dataclasses import replace
from multiprocessing import Pool
from typing import Any

import numpy as np
import numpy.typing as npt
from tqdm import tqdm

from .config import MatchConfig
from .errors import MatchCancelledError, raise_native_error
from .fingerprint import color_fingerprint
from .image import Image
from .loader import ImageSource, load_image
from .models import MatchResult, Rect
from .segmentation import GrabCutSegmenter, SegmentationPreprocessor, Segmenter
from .vector import similarity_or_zero

logger = logging.getLogger(__name__)

DEFAULT_SEGMENTER = GrabCutSegmenter()

# Per-process state for pool workers, set once by _init_worker
_worker_state: dict[str, Any] = {}


def _init_worker(
    target_rgba: npt.NDArray[np.uint8],
    template_fingerprint: npt.NDArray[np.float64],
    blocks: int,
) -> None:
    """Pool initializer: give each worker its own copy of the target."""
    _worker_state["target"] = Image(target_rgba)
    _worker_state["fingerprint"] = template_fingerprint
    _worker_state["blocks"] = blocks


def _score_window_worker(rect: Rect) -> float:
    """Worker function for parallel window scoring.

    Args:
        rect: Target window to score.

    Returns:
        Similarity between the window and the template fingerprint.
    """
    window = color_fingerprint(_worker_state["target"], _worker_state["blocks"], rect)
    return similarity_or_zero(window, _worker_state["fingerprint"])


class ColorTemplateMatcher:
    """Find the target window whose colour distribution best matches a template.

    The template is optionally stripped of its background by a segmenter,
    reduced to an RGB histogram fingerprint, and compared by cosine
    similarity against the fingerprint of every window of the target.
    """

    def __init__(
        self,
        segmenter: Segmenter | None = DEFAULT_SEGMENTER,
        loader: Callable[[ImageSource], Image] = load_image,
        config: MatchConfig | None = None,
    ):
        """Initialize matcher.

        Args:
            segmenter: Foreground segmentation primitive for the template.
                None skips segmentation and fingerprints every pixel.
            loader: Turns a path, URL, bytes or array into an Image.
            config: Search settings. Defaults to ``MatchConfig()``.
        """
        self.config = config if config is not None else MatchConfig()
        self.config.validate()
        self.loader = loader
        self.preprocessor = SegmentationPreprocessor(segmenter, self.config.iterations)

    def template_fingerprint(
        self, template: Image, block_size: int | None = None
    ) -> npt.NDArray[np.float64]:
        """Segment and fingerprint the template.

        Args:
            template: Template image.
            block_size: If given, only the centred ``block_size`` square of
                the template is segmented and fingerprinted.

        Returns:
            Template fingerprint.
        """
        region = None
        if block_size is not None:
            region = Rect.centered(block_size, template.width, template.height)
            logger.debug(f"Template region: {region.as_tuple()}")

        isolated = self.preprocessor.isolate_foreground(template, region)
        return color_fingerprint(isolated, self.config.blocks)

    def _score_sequential(
        self,
        target: Image,
        rects: list[Rect],
        fingerprint: npt.NDArray[np.float64],
        debug: bool,
    ) -> Generator[float, None, None]:
        for rect in tqdm(rects, desc="Scoring windows", disable=not debug):
            window = color_fingerprint(target, self.config.blocks, rect)
            yield similarity_or_zero(window, fingerprint)

    def _score_parallel(
        self,
        target: Image,
        rects: list[Rect],
        fingerprint: npt.NDArray[np.float64],
        debug: bool,
    ) -> Generator[float, None, None]:
        chunksize = max(1, len(rects) // (self.config.num_workers * 4))
        initargs = (np.array(target.rgba()), fingerprint, self.config.blocks)
        with Pool(self.config.num_workers, _init_worker, initargs) as pool:
            # imap keeps scan order so the reduction stays deterministic
            scores = pool.imap(_score_window_worker, rects, chunksize=chunksize)
            yield from tqdm(scores, total=len(rects), desc="Scoring windows", disable=not debug)

    def search(
        self,
        target: Image,
        fingerprint: npt.NDArray[np.float64],
        window_width: int,
        window_height: int,
        debug: bool = False,
        cancel: threading.Event | None = None,
    ) -> MatchResult:
        """Slide a window over ``target`` and keep the best-scoring one.

        Only a window scoring strictly above the best so far replaces it, so
        ties resolve to the earliest window in row-major order and windows
        scoring 0 are never reported.

        Args:
            target: Image to search.
            fingerprint: Template fingerprint.
            window_width: Window width.
            window_height: Window height.
            debug: Log every window score and show a progress bar.
            cancel: Optional event checked between window evaluations.

        Returns:
            Best window and its similarity, or an empty result.

        Raises:
            MatchCancelledError: If ``cancel`` is set during the search.
        """
        rects = list(target.blocks(window_width, window_height, self.config.stride))
        logger.info(f"Scoring {len(rects)} windows of {window_width}x{window_height}")

        if self.config.num_workers > 1 and len(rects) > 1:
            scores = self._score_parallel(target, rects, fingerprint, debug)
        else:
            scores = self._score_sequential(target, rects, fingerprint, debug)

        best = MatchResult()
        try:
            for rect, value in zip(rects, scores):
                if cancel is not None and cancel.is_set():
                    msg = "Template search cancelled"
                    raise MatchCancelledError(msg)
                if debug:
                    logger.debug(f"Window {rect.as_tuple()}: {value:.6f}")
                if value > best.value:
                    best = MatchResult(rect=rect, value=value)
        finally:
            scores.close()

        return best

    def match(
        self,
        target: ImageSource,
        template: ImageSource,
        block_size: int | None = None,
        debug: bool | None = None,
        cancel: threading.Event | None = None,
    ) -> MatchResult:
        """Locate ``template`` inside ``target``.

        Args:
            target: Image to search (path, URL, bytes, array or Image).
            template: Reference image to find.
            block_size: Side of the square search window. Defaults to the
                configured value, else the full template size.
            debug: Verbose per-window logging. Defaults to the config value.
            cancel: Optional event that aborts the search when set.

        Returns:
            Best matching window and its cosine similarity.

        Raises:
            DecodeError: If either image cannot be loaded.
            SegmentationError: If template segmentation fails.
            MatchCancelledError: If ``cancel`` is set during the search.
            ValueError: If ``block_size`` is not positive.
        """
        config = replace(
            self.config,
            block_size=block_size if block_size is not None else self.config.block_size,
            debug=debug if debug is not None else self.config.debug,
        )
        config.validate()

        try:
            large = self.loader(target)
            small = self.loader(template)
        except Exception as e:
            raise_native_error(e, "decode")

        logger.info(f"Target {large.width}x{large.height}, "
                    f"template {small.width}x{small.height}, block size {config.block_size}")

        fingerprint = self.template_fingerprint(small, config.block_size)
        if config.debug:
            logger.debug(f"Template fingerprint: {fingerprint.astype(int).tolist()}")

        window_width, window_height = config.window_size(small.width, small.height)
        result = self.search(large, fingerprint, window_width, window_height,
                             debug=config.debug, cancel=cancel)

        if result.rect is None:
            logger.info("No window matched the template")
        else:
            logger.info(f"Best match at {result.rect.as_tuple()} (similarity {result.value:.4f})")
        return result


def match_template_color(  # noqa: PLR0913
    target: ImageSource,
    template: ImageSource,
    block_size: int | None = None,
    debug: bool = False,
    *,
    segmenter: Segmenter | None = DEFAULT_SEGMENTER,
    loader: Callable[[ImageSource], Image] = load_image,
    cancel: threading.Event | None = None,
    **config_kwargs: Any,
) -> MatchResult:
    """Locate ``template`` inside ``target`` by colour fingerprint.

    Convenience wrapper around :class:`ColorTemplateMatcher`. Extra keyword
    arguments (``blocks``, ``stride``, ``iterations``, ``num_workers``) are
    passed to :class:`MatchConfig`.

    Returns:
        Best matching window and its cosine similarity.
    """
    config = MatchConfig(block_size=block_size, debug=debug, **config_kwargs)
    matcher = ColorTemplateMatcher(segmenter=segmenter, loader=loader, config=config)
    return matcher.match(target, template, cancel=cancel)
