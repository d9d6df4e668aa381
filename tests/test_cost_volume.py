import numpy as np
import pytest

from app.lens_blur.cost_volume import build_cost_volume, compute_confidence, shift_columns
from app.lens_blur.preprocess import DimensionMismatch


def test_identical_images_have_zero_cost(random_pair):
    left, _ = random_pair
    cost = build_cost_volume(left, left.copy(), 8)

    assert cost.shape == (12, 20, 8)
    assert cost.dtype == np.float32
    assert not np.any(cost[:, :, 0])


def test_true_disparity_slice_has_zero_cost(shifted_pair):
    left, right, d = shifted_pair
    cost = build_cost_volume(left, right, 6)

    W = left.shape[1]
    interior = slice(0, W - 2 * d)
    assert np.all(cost[:, interior, d] == 0)
    # other slices compare unrelated random pixels
    assert np.all(np.argmin(cost[:, :10], axis=2) == d)


def test_cost_matches_manual_computation_at_the_right_edge(random_pair):
    left, right = random_pair
    slices = 8
    cost = build_cost_volume(left, right, slices)

    H, W = left.shape[:2]
    y, x, z = 5, W - 3, 4  # x + 2z runs past the right edge
    l = left[y, x].astype(np.int64)
    r0 = right[y, min(x + 2 * z, W - 1)].astype(np.int64)
    r1 = right[y, min(x + 2 * z + 1, W - 1)].astype(np.int64)
    expected = np.sum(np.minimum(np.abs(l - r0), np.abs(l - r1)) ** 2)

    assert cost[y, x, z] == expected


def test_shift_columns_repeats_edges():
    image = np.arange(5)[np.newaxis, :, np.newaxis]
    np.testing.assert_array_equal(shift_columns(image, 3)[0, :, 0], [3, 4, 4, 4, 4])
    np.testing.assert_array_equal(shift_columns(image, -2)[0, :, 0], [0, 0, 0, 1, 2])


def test_dimension_mismatch_is_rejected(rng):
    left = rng.integers(0, 256, size=(8, 10, 3), dtype=np.uint8)
    right = rng.integers(0, 256, size=(8, 11, 3), dtype=np.uint8)
    with pytest.raises(DimensionMismatch):
        build_cost_volume(left, right, 4)


def test_grayscale_input_is_rejected(rng):
    left = rng.integers(0, 256, size=(8, 10), dtype=np.uint8)
    with pytest.raises(ValueError):
        build_cost_volume(left, left, 4)


def test_confidence_is_population_variance(random_pair):
    left, right = random_pair
    cost = build_cost_volume(left, right, 8)
    confidence = compute_confidence(cost)

    assert confidence.shape == (12, 20)
    assert np.all(confidence >= 0)
    np.testing.assert_allclose(confidence, np.var(cost.astype(np.float64), axis=2), rtol=1e-5)


def test_flat_cost_profile_has_zero_confidence():
    cost = np.full((3, 4, 8), 17.0, dtype=np.float32)
    assert not np.any(compute_confidence(cost))
