"""Stereo lens blur: synthetic depth of field from a rectified stereo pair.

The pipeline estimates a disparity map from the stereo cost volume (inpainted
with a confidence-weighted push-pull pyramid), turns it into a per-pixel blur
radius around a chosen focus depth, and renders an occlusion-aware bokeh image
by stochastically sampling the aperture around every pixel.

Stages live in their own modules:
- `cost_volume`: stereo cost volume + per-pixel confidence
- `pyramids`: push-pull inpainting of the cost volume
- `depth`: depth extraction + bokeh radius field
- `sampling`: stateless aperture sample offsets
- `scatter`: stochastic bokeh renderer + compositor (PyTorch)
- `pipeline`: `LensBlurEngine`, which runs all of the above
"""

from app.lens_blur.params import LensBlurParams, load_params
from app.lens_blur.pipeline import LensBlurEngine, LensBlurResult
from app.lens_blur.preprocess import DimensionMismatch

__all__ = [
    "DimensionMismatch",
    "LensBlurEngine",
    "LensBlurParams",
    "LensBlurResult",
    "load_params",
]
