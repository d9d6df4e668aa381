import numpy as np
import pytest

from app.lens_blur.params import LensBlurParams


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def small_params() -> LensBlurParams:
    return LensBlurParams(slices=8, focus_depth=3, blur_radius_scale=0.5, aperture_samples=8, pyramid_levels=4)


@pytest.fixture
def random_pair(rng):
    left = rng.integers(0, 256, size=(12, 20, 3), dtype=np.uint8)
    right = rng.integers(0, 256, size=(12, 20, 3), dtype=np.uint8)
    return left, right


@pytest.fixture
def shifted_pair(rng):
    """A pair where right(x + 2d) == left(x) for d = 2 wherever x + 2d is inside the image."""
    d = 2
    left = rng.integers(0, 256, size=(6, 40, 3), dtype=np.uint8)
    right = rng.integers(0, 256, size=(6, 40, 3), dtype=np.uint8)
    right[:, 2 * d :] = left[:, : -2 * d]
    return left, right, d


@pytest.fixture
def gray_pair():
    left = np.full((4, 4, 3), 128, dtype=np.uint8)
    return left, left.copy()
