"""Occlusion-aware stochastic bokeh renderer.

Each output pixel gathers a fixed number of aperture samples from its
neighbourhood. A sample contributes when it lies inside the pixel's own bokeh
disk, or when it is in front of the pixel, and only if the sample's own bokeh
disk is wide enough to reach the pixel. The last condition keeps background
blur from bleeding over an in-focus foreground that occludes it.

The renderer runs on whatever device the module lives on. All accumulated
values are sums of 8-bit colours times 0/1 weights, which float32 represents
exactly, so CPU and CUDA produce identical images.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import torch
import torch.nn as nn
from tqdm import tqdm

from app.lens_blur.depth import BokehRadiusField
from app.lens_blur.sampling import SampleOffsetField

logger = logging.getLogger(__name__)


def composite(accumulated: torch.Tensor, eps: float = 1e-6) -> torch.Tensor:
    """Normalise accumulated (weighted colour, weight) by the weight.

    The weight is at least 1 (every pixel is seeded with itself); the clamp
    only guards against a degenerate accumulator.
    """
    return accumulated[..., :-1] / accumulated[..., -1:].clamp_min(eps)


class StochasticBokehRenderer(nn.Module):
    """Gather-style bokeh renderer over an RGB image and its depth map."""

    def __init__(self, aperture_samples: int, max_blur_radius: int, *, progress: bool = False) -> None:
        if aperture_samples <= 0:
            raise ValueError(f"`aperture_samples` must be > 0, got {aperture_samples}.")
        super().__init__()

        self.aperture_samples = int(aperture_samples)
        self.max_blur_radius = int(max_blur_radius)
        self.progress = progress

    def accumulate(
        self,
        rgb: torch.Tensor,
        depth: torch.Tensor,
        radius_squared: torch.Tensor,
        offsets: SampleOffsetField,
    ) -> torch.Tensor:
        """Seed with each pixel's own colour and add every accepted sample.

        Args:
            rgb: H x W x 3 float tensor.
            depth: H x W integer tensor (slice index).
            radius_squared: H x W float tensor.
            offsets: Sample offsets for the same H x W grid.

        Returns:
            H x W x 4 tensor of (weighted colour, weight).
        """
        h, w = depth.shape
        assert rgb.shape == (h, w, 3), f"rgb should be {h}x{w}x3, got {tuple(rgb.shape)}"
        assert radius_squared.shape == (h, w), "radius_squared should match depth"
        device = rgb.device

        rgba = torch.cat([rgb.float(), torch.ones((h, w, 1), dtype=torch.float32, device=device)], dim=2)
        accumulated = rgba.clone()

        flat_rgba = rgba.reshape(-1, 4)
        flat_depth = depth.reshape(-1)
        flat_radius_squared = radius_squared.reshape(-1)

        ys = torch.arange(h, device=device).view(h, 1)
        xs = torch.arange(w, device=device).view(1, w)

        for s in tqdm(range(self.aperture_samples), desc="aperture samples", disable=not self.progress):
            offset = offsets[s]
            u = torch.from_numpy(offset.u).to(device)
            v = torch.from_numpy(offset.v).to(device)

            # Reads outside the image repeat the edge pixels.
            sample_x = (xs + u).clamp(0, w - 1)
            sample_y = (ys + v).clamp(0, h - 1)
            index = sample_y * w + sample_x
            r_squared = torch.from_numpy(offset.r_squared).to(device).float()

            sample_is_within_bokeh_of_this_pixel = r_squared < radius_squared
            sample_is_in_front_of_this_pixel = flat_depth[index] < depth
            this_pixel_is_within_bokeh_of_sample = r_squared < flat_radius_squared[index]

            weight = (
                (sample_is_within_bokeh_of_this_pixel | sample_is_in_front_of_this_pixel)
                & this_pixel_is_within_bokeh_of_sample
            ).float()

            accumulated += weight.unsqueeze(-1) * flat_rgba[index]

        return accumulated

    def forward(
        self,
        rgb: torch.Tensor,
        depth: torch.Tensor,
        radius_squared: torch.Tensor,
        offsets: SampleOffsetField,
    ) -> torch.Tensor:
        """Render H x W x 3 bokeh from an RGB image, its depth and blur radii."""
        return composite(self.accumulate(rgb, depth, radius_squared, offsets))

    def inference(
        self,
        image: np.ndarray,
        depth: np.ndarray,
        field: BokehRadiusField,
        *,
        device: Optional[torch.device] = None,
    ) -> np.ndarray:
        """Run the renderer from numpy inputs.

        Args:
            image: H x W x 3 image (uint8 or float, values in [0, 255]).
            depth: H x W integer depth map.
            field: Bokeh radius field computed from `depth`.
            device: Torch device to render on. Defaults to CPU.

        Returns:
            H x W x 3 float32 image with values in [0, 255].
        """
        assert image.shape[:2] == depth.shape, "image and depth should have the same size"
        device = device or torch.device("cpu")

        offsets = SampleOffsetField(field.worst_case, self.max_blur_radius)

        rgb = torch.from_numpy(np.ascontiguousarray(image, dtype=np.float32)).to(device)
        depth_t = torch.from_numpy(depth.astype(np.int64)).to(device)
        radius_squared = torch.from_numpy(np.ascontiguousarray(field.radius_squared, dtype=np.float32)).to(device)

        with torch.no_grad():
            bokeh = self.forward(rgb, depth_t, radius_squared, offsets)

        return bokeh.detach().cpu().numpy()
