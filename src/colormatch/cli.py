#!/usr/bin/env python3
"""CLI interface for colormatch."""

import argparse
import json
import logging
import sys
from pathlib import Path

import cv2

from .config import MatchConfig
from .errors import ColorMatchError
from .loader import load_image
from .matcher import DEFAULT_SEGMENTER, ColorTemplateMatcher
from .models import MatchResult

logger = logging.getLogger(__name__)


def load_pairs(path: Path) -> list[tuple[str, str]]:
    """Read a JSON list of ``[target, template]`` pairs.

    Raises:
        ValueError: If the file is not a list of two-element lists.
    """
    with path.open() as f:
        data = json.load(f)

    if not isinstance(data, list) or not all(
        isinstance(item, list) and len(item) == 2 for item in data
    ):
        msg = f"{path} must contain a JSON list of [target, template] pairs"
        raise ValueError(msg)
    return [(str(target), str(template)) for target, template in data]


def annotate(target: str, result: MatchResult, output: Path) -> None:
    """Save ``target`` with the matched window outlined in green."""
    image = load_image(target)
    canvas = cv2.cvtColor(image.rgba(), cv2.COLOR_RGBA2BGR)
    if result.rect is not None:
        rect = result.rect
        cv2.rectangle(canvas, (rect.x, rect.y), (rect.right - 1, rect.bottom - 1), (0, 255, 0), 1)
    cv2.imwrite(str(output), canvas)
    logger.info(f"Annotated match saved to {output}")


def main() -> None:
    """CLI entry point for colormatch.

    Parses command-line arguments, runs the matcher and prints one JSON
    result per target/template pair.
    """
    parser = argparse.ArgumentParser(
        description="Locate a template image inside a larger image by colour fingerprint",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument("target", type=str, nargs="?",
                       help="Path or URL of the image to search")
    parser.add_argument("template", type=str, nargs="?",
                       help="Path or URL of the template to find")

    parser.add_argument("--pairs", type=Path, default=None,
                       help="JSON file with a list of [target, template] pairs to match")
    parser.add_argument("--block-size", type=int, default=None,
                       help="Side of the square search window "
                            "(default: full template size)")
    parser.add_argument("--blocks", type=int, default=4,
                       help="Histogram buckets per colour channel")
    parser.add_argument("--stride", type=int, default=None,
                       help="Step between windows (default: window width / 4)")
    parser.add_argument("--iterations", type=int, default=4,
                       help="GrabCut iterations for template segmentation")
    parser.add_argument("--workers", type=int, default=1,
                       help="Number of parallel workers for window scoring")
    parser.add_argument("--no-segmentation", action="store_true",
                       help="Fingerprint every template pixel (skip GrabCut)")
    parser.add_argument("--annotate", type=Path, default=None,
                       help="Save the target with the best match outlined "
                            "(single pair only)")
    parser.add_argument("--debug", action="store_true",
                       help="Log every window score and show progress")

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )

    try:
        if args.pairs is not None:
            pairs = load_pairs(args.pairs)
        elif args.target and args.template:
            pairs = [(args.target, args.template)]
        else:
            parser.error("either target and template or --pairs is required")

        config = MatchConfig(
            block_size=args.block_size,
            stride=args.stride,
            blocks=args.blocks,
            iterations=args.iterations,
            num_workers=args.workers,
            debug=args.debug,
        )
        matcher = ColorTemplateMatcher(
            segmenter=None if args.no_segmentation else DEFAULT_SEGMENTER,
            config=config,
        )

        for target, template in pairs:
            result = matcher.match(target, template)
            print(json.dumps({
                "target": target,
                "template": template,
                **result.model_dump(),
            }))
            if args.annotate is not None and len(pairs) == 1:
                annotate(target, result, args.annotate)
    except (ColorMatchError, ValueError, OSError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
