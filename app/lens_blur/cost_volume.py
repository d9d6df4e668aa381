"""Stereo cost volume and matching confidence."""

from __future__ import annotations

import numpy as np

from app.lens_blur.preprocess import check_stereo_pair


def shift_columns(image: np.ndarray, shift: int) -> np.ndarray:
    """Return `image(x + shift, y)` for every x, repeating the edge columns."""
    W = image.shape[1]
    cols = np.clip(np.arange(W) + shift, 0, W - 1)
    return np.take(image, cols, axis=1)


def build_cost_volume(left: np.ndarray, right: np.ndarray, slices: int) -> np.ndarray:
    """Build an (H, W, slices) squared-difference cost volume.

    Slice z compares left(x, y) with right(x + 2z, y) and right(x + 2z + 1, y)
    and keeps the smaller absolute difference per channel, which approximates
    half-pixel disparity steps with integer shifts.
    """
    check_stereo_pair(left, right)
    H, W = left.shape[:2]

    left_i = left.astype(np.int16)
    right_i = right.astype(np.int16)

    cost_volume = np.zeros((H, W, slices), dtype=np.float32)

    for z in range(slices):
        diff = np.minimum(
            np.abs(left_i - shift_columns(right_i, 2 * z)),
            np.abs(left_i - shift_columns(right_i, 2 * z + 1)),
        ).astype(np.float32)
        cost_volume[:, :, z] = np.sum(diff * diff, axis=2)

    return cost_volume


def compute_confidence(cost_volume: np.ndarray) -> np.ndarray:
    """Variance of the cost across slices: E[cost^2] - E[cost]^2.

    A flat cost profile means the match is ambiguous, so the variance doubles
    as a confidence weight for the push-pull pyramid.
    """
    cost = cost_volume.astype(np.float64)
    mean_sq = np.mean(cost * cost, axis=2)
    sq_mean = np.mean(cost, axis=2) ** 2
    return np.maximum(mean_sq - sq_mean, 0.0).astype(np.float32)
