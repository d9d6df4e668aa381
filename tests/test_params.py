from pathlib import Path

import pytest

from app.lens_blur.params import LensBlurParams, load_params, parse_configs

REPO_ROOT = Path(__file__).resolve().parents[1]


def test_defaults_match_the_reference_constants():
    params = LensBlurParams()
    assert (params.slices, params.focus_depth, params.aperture_samples, params.pyramid_levels) == (32, 13, 32, 8)
    assert params.blur_radius_scale == 0.5
    assert params.max_blur_radius == 9


def test_max_blur_radius_uses_the_farther_side_of_focus():
    assert LensBlurParams(focus_depth=30).max_blur_radius == 15
    assert LensBlurParams(focus_depth=2, blur_radius_scale=1.0).max_blur_radius == 30


@pytest.mark.parametrize(
    "kwargs",
    [
        {"slices": 0},
        {"focus_depth": -1},
        {"focus_depth": 32},
        {"blur_radius_scale": -0.5},
        {"aperture_samples": 0},
        {"pyramid_levels": 0},
    ],
)
def test_invalid_params_are_rejected(kwargs):
    with pytest.raises(ValueError):
        LensBlurParams(**kwargs).validate()


def test_unknown_keys_are_rejected():
    with pytest.raises(ValueError, match="focal"):
        LensBlurParams.from_dict({"focal": 0.3})


def test_shipped_default_config_matches_defaults():
    assert load_params(REPO_ROOT / "configs" / "default.yaml") == LensBlurParams()


def test_overrides_win_over_config(tmp_path):
    config = tmp_path / "lens.yaml"
    config.write_text("focus_depth: 20\nblur_radius_scale: 1.0\n")

    params = load_params(config, focus_depth=5, slices=None)

    assert params.focus_depth == 5
    assert params.blur_radius_scale == 1.0
    assert params.slices == 32


def test_malformed_yaml_falls_back_to_defaults(tmp_path, caplog):
    config = tmp_path / "broken.yaml"
    config.write_text("lens_blur: [unclosed\n")

    assert parse_configs(config) == {}
    assert load_params(config) == LensBlurParams()


def test_empty_section_falls_back_to_defaults(tmp_path):
    config = tmp_path / "empty_section.yaml"
    config.write_text("lens_blur:\n")

    assert load_params(config) == LensBlurParams()


@pytest.mark.parametrize(
    "text",
    [
        'slices: "32"\n',
        "focus_depth: 2.5\n",
        "aperture_samples: true\n",
        "blur_radius_scale: wide\n",
        "lens_blur: [1, 2]\n",
    ],
)
def test_wrongly_typed_values_are_rejected(tmp_path, text):
    config = tmp_path / "typed.yaml"
    config.write_text(text)

    with pytest.raises(ValueError):
        load_params(config)
