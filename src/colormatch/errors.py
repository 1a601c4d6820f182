"""Error types raised by the colour template matcher."""

from typing import NoReturn

import cv2


class ColorMatchError(Exception):
    """Base class for all colormatch failures."""


class DecodeError(ColorMatchError):
    """An image could not be loaded or decoded."""


class SegmentationError(ColorMatchError):
    """The foreground segmentation primitive failed."""


class MatchCancelledError(ColorMatchError):
    """The window search was cancelled before it finished."""


_STAGE_ERRORS: dict[str, type[ColorMatchError]] = {
    "decode": DecodeError,
    "segmentation": SegmentationError,
}


def describe_native_error(err: BaseException) -> str:
    """Build a readable message from an OpenCV error.

    ``cv2.error`` carries the failing function, the error text and the
    numeric status code as attributes. Anything else falls back to ``str``.

    Args:
        err: Exception raised by OpenCV or by any other collaborator.

    Returns:
        Human-readable description of the failure.
    """
    if not isinstance(err, cv2.error):
        return str(err)

    text = getattr(err, "err", None)
    if not text:
        return str(err).strip()

    func = getattr(err, "func", None)
    code = getattr(err, "code", None)
    msg = f"{func}: {text}" if func else str(text)
    if code is not None:
        msg += f" (code {code})"
    return msg


def raise_native_error(err: BaseException, stage: str) -> NoReturn:
    """Re-raise ``err``, translating native OpenCV errors for ``stage``.

    Args:
        err: Exception caught while loading or segmenting.
        stage: Pipeline stage name, "decode" or "segmentation".

    Raises:
        ColorMatchError: Stage-specific error for a native ``cv2.error``.
        BaseException: ``err`` itself for everything else.
    """
    if isinstance(err, cv2.error):
        error_cls = _STAGE_ERRORS.get(stage, ColorMatchError)
        raise error_cls(describe_native_error(err)) from err
    raise err
