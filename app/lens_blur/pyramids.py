"""Push-pull pyramid used to inpaint low-confidence stereo costs.

Each level stores the confidence-weighted cost and the confidence itself. The
push pass low-pass filters and halves the resolution level by level; the pull
pass walks back up, blending the bilinearly upsampled coarser result 50/50 with
each level's own pushed values. Dividing the pulled weighted cost by the pulled
confidence at level 0 yields a cost volume where ambiguous matches have been
filled in from coarser, more confident scales.

References:
    Gortler et al. (1996): The Lumigraph (push-pull interpolation).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np


@dataclass(frozen=True)
class PyramidLevel:
    """Confidence-weighted cost (H x W x slices) and confidence (H x W) at one scale."""

    weighted_cost: np.ndarray
    confidence: np.ndarray

    @property
    def shape(self) -> tuple[int, int]:
        return self.confidence.shape[:2]

    def map(self, fn: Callable[[np.ndarray], np.ndarray]) -> "PyramidLevel":
        """Apply the same spatial operation to both planes."""
        return PyramidLevel(weighted_cost=fn(self.weighted_cost), confidence=fn(self.confidence))


def pyramid_shapes(height: int, width: int, levels: int) -> list[tuple[int, int]]:
    """Spatial size of every level; each level halves (rounding down, at least 1)."""
    shapes = [(height, width)]
    for _ in range(levels - 1):
        h, w = shapes[-1]
        shapes.append((max(h // 2, 1), max(w // 2, 1)))
    return shapes


def _downsample_axis(f: np.ndarray, axis: int, size: int) -> np.ndarray:
    n = f.shape[axis]
    x = np.arange(size)

    def tap(offset: int) -> np.ndarray:
        return np.take(f, np.clip(2 * x + offset, 0, n - 1), axis=axis)

    return (tap(-1) + 3.0 * (tap(0) + tap(1)) + tap(2)) / 8.0


def _upsample_axis(f: np.ndarray, axis: int, size: int) -> np.ndarray:
    n = f.shape[axis]
    x = np.arange(size)
    near = np.clip(x // 2, 0, n - 1)
    # previous source sample for even x, next one for odd x
    far = np.clip(x // 2 - 1 + 2 * (x % 2), 0, n - 1)
    return 0.25 * np.take(f, far, axis=axis) + 0.75 * np.take(f, near, axis=axis)


def downsample(f: np.ndarray, shape: tuple[int, int]) -> np.ndarray:
    """Downsample axes 0/1 of `f` to `shape` with a separable 1 3 3 1 filter.

    Trailing axes (slices) are carried along untouched. Reads outside `f`
    repeat its edge samples.
    """
    return _downsample_axis(_downsample_axis(f, axis=1, size=shape[1]), axis=0, size=shape[0])


def upsample(f: np.ndarray, shape: tuple[int, int]) -> np.ndarray:
    """Bilinearly upsample axes 0/1 of `f` to `shape` (0.75/0.25 taps)."""
    return _upsample_axis(_upsample_axis(f, axis=1, size=shape[1]), axis=0, size=shape[0])


def build_push_pyramid(cost_volume: np.ndarray, confidence: np.ndarray, levels: int) -> list[PyramidLevel]:
    """Build the push (downsampling) pyramid [P0, P1, ..., P(levels-1)]."""
    H, W = confidence.shape
    shapes = pyramid_shapes(H, W, levels)

    push_pyramid = [
        PyramidLevel(
            weighted_cost=(cost_volume * confidence[:, :, np.newaxis]).astype(np.float32),
            confidence=confidence.astype(np.float32),
        )
    ]
    for shape in shapes[1:]:
        push_pyramid.append(push_pyramid[-1].map(lambda f: downsample(f, shape)))

    return push_pyramid


def build_pull_pyramid(push_pyramid: list[PyramidLevel]) -> list[PyramidLevel]:
    """Build the pull pyramid from the coarsest pushed level back to level 0."""
    num_levels = len(push_pyramid)
    pull_pyramid: list[PyramidLevel] = [None] * num_levels  # type: ignore[list-item]
    pull_pyramid[-1] = push_pyramid[-1]

    for k in reversed(range(num_levels - 1)):
        pushed = push_pyramid[k]
        up = pull_pyramid[k + 1].map(lambda f: upsample(f, pushed.shape))
        pull_pyramid[k] = PyramidLevel(
            weighted_cost=0.5 * up.weighted_cost + 0.5 * pushed.weighted_cost,
            confidence=0.5 * up.confidence + 0.5 * pushed.confidence,
        )

    return pull_pyramid


def normalize_level(level: PyramidLevel) -> np.ndarray:
    """Recover the cost from a (weighted cost, confidence) level.

    Pixels with zero confidence at every scale carry no information; their
    cost is defined as 0 instead of 0/0.
    """
    confidence = level.confidence[:, :, np.newaxis]
    confidence = np.broadcast_to(confidence, level.weighted_cost.shape)
    out = np.zeros_like(level.weighted_cost, dtype=np.float32)
    np.divide(level.weighted_cost, confidence, out=out, where=confidence > 0)
    return out


def filter_cost_volume(cost_volume: np.ndarray, confidence: np.ndarray, levels: int = 8) -> np.ndarray:
    """Inpaint low-confidence costs with a push-pull pyramid of `levels` levels."""
    push_pyramid = build_push_pyramid(cost_volume, confidence, levels)
    pull_pyramid = build_pull_pyramid(push_pyramid)
    return normalize_level(pull_pyramid[0])
