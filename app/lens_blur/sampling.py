"""Stateless aperture sample offsets.

Every offset is a pure integer hash of (x, y, sample index, stream), so the
same pixel always draws the same samples no matter how, where, or in what
order the image is evaluated. There is no random generator state to share.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

_MASK = np.uint64(0xFFFFFFFF)
_M0 = np.uint64(0xED5AD4BB)
_M1 = np.uint64(0xAC4C1B51)
_M2 = np.uint64(0x31848BAB)
_S11 = np.uint64(11)
_S14 = np.uint64(14)
_S15 = np.uint64(15)
_S17 = np.uint64(17)


def _as_u32(v) -> np.ndarray:
    return (np.asarray(v, dtype=np.int64) & 0xFFFFFFFF).astype(np.uint64)


def uhash(x: np.ndarray) -> np.ndarray:
    """32-bit integer avalanche hash on uint64 arrays holding 32-bit values."""
    x = ((x ^ (x >> _S17)) * _M0) & _MASK
    x = ((x ^ (x >> _S11)) * _M1) & _MASK
    x = ((x ^ (x >> _S15)) * _M2) & _MASK
    return x ^ (x >> _S14)


def hash_coords(x, y, sample: int, stream: int) -> np.ndarray:
    """Hash pixel coordinates, sample index and stream id into 32 bits."""
    h = uhash(_as_u32(stream))
    h = uhash(h ^ _as_u32(sample))
    h = uhash(h ^ _as_u32(y))
    return uhash(h ^ _as_u32(x))


def random_unit(x, y, sample: int, stream: int) -> np.ndarray:
    """Uniform value in [0, 1) for every (x, y); 24 bits of the hash."""
    return (hash_coords(x, y, sample, stream) >> np.uint64(8)).astype(np.float64) / float(1 << 24)


@dataclass(frozen=True)
class SampleOffset:
    """Integer aperture offset (u, v) per pixel for one sample index."""

    u: np.ndarray
    v: np.ndarray

    @property
    def r_squared(self) -> np.ndarray:
        return self.u * self.u + self.v * self.v


def sample_offset(
    x: np.ndarray,
    y: np.ndarray,
    sample: int,
    worst_radius: np.ndarray,
    max_blur_radius: int,
) -> SampleOffset:
    """Offset of aperture sample `sample` for the pixels at (x, y).

    The offset is uniform over the square of half-width `worst_radius`,
    truncated toward zero and clamped to [-max_blur_radius, max_blur_radius].
    """
    span = 2.0 * np.asarray(worst_radius, dtype=np.float64)
    u = (random_unit(x, y, sample, 0) - 0.5) * span
    v = (random_unit(x, y, sample, 1) - 0.5) * span
    u = np.clip(np.trunc(u), -max_blur_radius, max_blur_radius).astype(np.int64)
    v = np.clip(np.trunc(v), -max_blur_radius, max_blur_radius).astype(np.int64)
    return SampleOffset(u=u, v=v)


class SampleOffsetField:
    """Sample offsets over a full H x W grid, produced one sample index at a time."""

    def __init__(self, worst_radius: np.ndarray, max_blur_radius: int) -> None:
        h, w = worst_radius.shape
        self.worst_radius = worst_radius
        self.max_blur_radius = int(max_blur_radius)
        self.y, self.x = np.mgrid[0:h, 0:w]

    def __getitem__(self, sample: int) -> SampleOffset:
        return sample_offset(self.x, self.y, sample, self.worst_radius, self.max_blur_radius)
