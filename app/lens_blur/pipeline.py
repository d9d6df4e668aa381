"""Lens blur engine: stereo pair in, bokeh image out.

Stages run in a fixed order, each one finishing before the next starts:

    cost volume -> confidence -> push-pull pyramid -> depth
        -> bokeh radius field -> stochastic renderer -> compositor

Intermediate maps are returned alongside the image so callers can inspect or
visualise them.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np
import torch

from app.lens_blur.cost_volume import build_cost_volume, compute_confidence
from app.lens_blur.depth import BokehRadiusField, build_bokeh_radius_field, extract_depth
from app.lens_blur.params import LensBlurParams
from app.lens_blur.pyramids import filter_cost_volume
from app.lens_blur.scatter import StochasticBokehRenderer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LensBlurResult:
    """Holds the rendered image and the maps it was derived from."""

    image: np.ndarray  # H x W x 3 float32 in [0, 255]
    depth: np.ndarray  # H x W int32 slice index
    confidence: np.ndarray  # H x W float32
    bokeh: BokehRadiusField


@contextmanager
def _timed(stage: str) -> Iterator[None]:
    t0 = time.perf_counter()
    yield
    logger.info("[%s] time = %.2f ms", stage, (time.perf_counter() - t0) * 1000)


class LensBlurEngine:
    """Runs the full stereo lens blur pipeline with fixed parameters."""

    def __init__(
        self,
        params: Optional[LensBlurParams] = None,
        device: Optional[torch.device] = None,
        *,
        progress: bool = False,
    ) -> None:
        """Initialize the engine.

        Args:
            params: Pipeline constants. Defaults to `LensBlurParams()`.
            device: Torch device for the renderer. Defaults to CUDA if available.
            progress: Show a progress bar over aperture samples.
        """
        self.params: LensBlurParams = (params or LensBlurParams()).validate()
        self.device: torch.device = device or torch.device(
            "cuda:0" if torch.cuda.is_available() else "cpu"
        )
        self.renderer = StochasticBokehRenderer(
            self.params.aperture_samples,
            self.params.max_blur_radius,
            progress=progress,
        ).to(self.device)

    def estimate_depth(self, left: np.ndarray, right: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Estimate the depth map of the left image.

        Returns:
            (depth, confidence), both H x W.
        """
        p = self.params

        with _timed("cost_volume"):
            cost_volume = build_cost_volume(left, right, p.slices)
        with _timed("confidence"):
            confidence = compute_confidence(cost_volume)
        with _timed("push_pull"):
            filtered_cost = filter_cost_volume(cost_volume, confidence, p.pyramid_levels)
        with _timed("depth"):
            depth = extract_depth(filtered_cost)

        return depth, confidence

    def bokeh_field(self, depth: np.ndarray) -> BokehRadiusField:
        p = self.params
        with _timed("bokeh_radius"):
            return build_bokeh_radius_field(depth, p.focus_depth, p.blur_radius_scale, p.max_blur_radius)

    def render(self, left: np.ndarray, right: np.ndarray) -> LensBlurResult:
        """Render the lens-blurred left image.

        Args:
            left: H x W x 3 uint8 left image (the one that gets blurred).
            right: H x W x 3 uint8 right image.

        Raises:
            DimensionMismatch: If the images differ in size.
        """
        depth, confidence = self.estimate_depth(left, right)
        field = self.bokeh_field(depth)

        with _timed("render"):
            image = self.renderer.inference(left, depth, field, device=self.device)

        logger.info(
            "Rendered %dx%d, depth range [%d, %d], max worst-case radius %.1f",
            image.shape[1],
            image.shape[0],
            int(depth.min()),
            int(depth.max()),
            float(field.worst_case.max()),
        )
        return LensBlurResult(image=image, depth=depth, confidence=confidence, bokeh=field)
