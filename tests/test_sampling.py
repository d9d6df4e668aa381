import numpy as np

from app.lens_blur.sampling import SampleOffsetField, random_unit, sample_offset


def test_random_unit_is_reproducible_and_in_range():
    y, x = np.mgrid[0:32, 0:32]
    a = random_unit(x, y, 5, 0)
    b = random_unit(x, y, 5, 0)

    np.testing.assert_array_equal(a, b)
    assert np.all(a >= 0.0) and np.all(a < 1.0)
    # different streams/samples decorrelate
    assert not np.array_equal(a, random_unit(x, y, 5, 1))
    assert not np.array_equal(a, random_unit(x, y, 6, 0))


def test_random_unit_is_roughly_uniform():
    y, x = np.mgrid[0:64, 0:64]
    values = random_unit(x, y, 0, 0).ravel()
    assert abs(values.mean() - 0.5) < 0.02
    hist, _ = np.histogram(values, bins=4, range=(0, 1))
    assert hist.min() > 0.2 * values.size


def test_offsets_stay_within_radius_bounds(rng):
    worst = rng.uniform(0, 20, size=(16, 16)).astype(np.float32)
    field = SampleOffsetField(worst, max_blur_radius=9)

    for s in range(16):
        offset = field[s]
        assert np.all(np.abs(offset.u) <= np.minimum(np.floor(worst), 9))
        assert np.all(np.abs(offset.v) <= np.minimum(np.floor(worst), 9))
        assert offset.u.dtype == np.int64


def test_zero_radius_gives_zero_offsets():
    field = SampleOffsetField(np.zeros((4, 5), dtype=np.float32), max_blur_radius=9)
    offset = field[3]
    assert not np.any(offset.u)
    assert not np.any(offset.r_squared)


def test_offsets_do_not_depend_on_evaluation_window(rng):
    worst = rng.uniform(0, 9, size=(12, 15)).astype(np.float32)
    full = SampleOffsetField(worst, max_blur_radius=9)[7]

    # evaluate a single tile on its own, with absolute coordinates
    y, x = np.mgrid[4:9, 6:13]
    tile = sample_offset(x, y, 7, worst[4:9, 6:13], max_blur_radius=9)

    np.testing.assert_array_equal(tile.u, full.u[4:9, 6:13])
    np.testing.assert_array_equal(tile.v, full.v[4:9, 6:13])
