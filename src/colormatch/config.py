#!/usr/bin/env python3
"""Configuration dataclass for the colour template matcher."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MatchConfig:
    """Settings for template fingerprinting and the window search."""

    # Search Window Settings
    block_size: int | None = None  # None = use the full template size
    stride: int | None = None  # None = window width // 4

    # Fingerprint Settings
    blocks: int = 4  # Buckets per channel, blocks**3 total

    # Segmentation Settings
    iterations: int = 4

    # Execution Settings
    num_workers: int = 1  # >1 scores windows in a process pool
    debug: bool = False

    def window_size(self, template_width: int, template_height: int) -> tuple[int, int]:
        """Size of the search window for a template.

        Returns:
            ``(block_size, block_size)`` when set, else the template size.
        """
        if self.block_size is not None:
            return self.block_size, self.block_size
        return template_width, template_height

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If any parameter is invalid.
        """
        if self.block_size is not None and self.block_size <= 0:
            msg = f"block_size must be positive, got {self.block_size}"
            raise ValueError(msg)
        if self.stride is not None and self.stride < 1:
            msg = f"stride must be >= 1, got {self.stride}"
            raise ValueError(msg)
        if self.blocks < 1:
            msg = f"blocks must be >= 1, got {self.blocks}"
            raise ValueError(msg)
        if self.iterations < 1:
            msg = f"iterations must be >= 1, got {self.iterations}"
            raise ValueError(msg)
        if self.num_workers < 1:
            msg = f"num_workers must be >= 1, got {self.num_workers}"
            raise ValueError(msg)
