"""
Unit tests for cosine similarity.
"""

import math

import numpy as np
import pytest

from colormatch import cosine_similarity, similarity_or_zero


class TestCosineSimilarity:
    """Test the cosine similarity contract."""

    def test_identical_vectors(self):
        """Test that a nonzero vector is fully similar to itself."""
        vec = np.array([3.0, 0.0, 4.0, 1.0])

        assert cosine_similarity(vec, vec) == pytest.approx(1.0, abs=1e-12)

    def test_symmetry(self):
        """Test that argument order does not matter."""
        rng = np.random.default_rng(7)
        for _ in range(20):
            a = rng.integers(0, 500, 64).astype(float)
            b = rng.integers(0, 500, 64).astype(float)
            assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_orthogonal_histograms(self):
        """Test that histograms with disjoint buckets score 0."""
        a = [10, 0, 0, 0]
        b = [0, 0, 5, 7]

        assert cosine_similarity(a, b) == 0.0

    def test_scale_invariance(self):
        """Test that absolute pixel counts do not change similarity."""
        a = np.array([1.0, 2.0, 3.0])

        assert cosine_similarity(a, a * 1000) == pytest.approx(1.0)

    def test_non_negative_range(self):
        """Test that non-negative vectors stay within [0, 1]."""
        rng = np.random.default_rng(11)
        a = rng.random(27)
        b = rng.random(27)

        value = cosine_similarity(a, b)
        assert 0.0 <= value <= 1.0

    def test_zero_vector_is_nan(self):
        """Test that a zero-magnitude vector yields nan instead of raising."""
        assert math.isnan(cosine_similarity([0, 0, 0], [1, 2, 3]))
        assert math.isnan(cosine_similarity([1, 2, 3], [0, 0, 0]))

    def test_length_mismatch_raises(self):
        """Test that vectors of different length are rejected."""
        with pytest.raises(ValueError, match="lengths differ"):
            cosine_similarity([1, 2, 3], [1, 2])

    def test_empty_vectors_raise(self):
        """Test that empty vectors are rejected."""
        with pytest.raises(ValueError):
            cosine_similarity([], [])


class TestSimilarityOrZero:
    """Test the guarded similarity used by the matcher."""

    def test_degenerate_maps_to_zero(self):
        """Test that a zero-norm comparison counts as no similarity."""
        assert similarity_or_zero(np.zeros(64), np.ones(64)) == 0.0

    def test_regular_value_unchanged(self):
        """Test that normal comparisons pass through."""
        a = [1.0, 1.0, 0.0]
        b = [1.0, 0.0, 0.0]

        assert similarity_or_zero(a, b) == pytest.approx(1 / math.sqrt(2))
