"""Cosine similarity over fixed-length fingerprint vectors."""

import math

import numpy as np
import numpy.typing as npt


def cosine_similarity(a: npt.ArrayLike, b: npt.ArrayLike) -> float:
    """Compute cosine similarity between two vectors.

    A zero-magnitude input yields ``nan`` rather than raising, so callers
    must decide what a degenerate comparison means to them.

    Args:
        a: First vector.
        b: Second vector, same length as ``a``.

    Returns:
        ``dot(a, b) / (|a| * |b|)``, or ``nan`` if either norm is zero.

    Raises:
        ValueError: If the vectors are empty or differ in length.
    """
    vec_a = np.asarray(a, dtype=np.float64).ravel()
    vec_b = np.asarray(b, dtype=np.float64).ravel()

    if vec_a.size == 0:
        msg = "cosine similarity needs non-empty vectors"
        raise ValueError(msg)
    if vec_a.shape != vec_b.shape:
        msg = f"vector lengths differ: {vec_a.size} != {vec_b.size}"
        raise ValueError(msg)

    norm_a = float(np.linalg.norm(vec_a))
    norm_b = float(np.linalg.norm(vec_b))
    if norm_a == 0 or norm_b == 0:
        return math.nan

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


def similarity_or_zero(a: npt.ArrayLike, b: npt.ArrayLike) -> float:
    """Cosine similarity with degenerate (zero-norm) comparisons mapped to 0."""
    value = cosine_similarity(a, b)
    if math.isnan(value):
        return 0.0
    return value
