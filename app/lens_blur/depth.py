"""Depth extraction and the per-pixel bokeh radius field."""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np


@dataclass(frozen=True)
class BokehRadiusField:
    """Blur radius per pixel, its square, and the dilated worst-case radius."""

    radius: np.ndarray  # H x W float32
    radius_squared: np.ndarray  # H x W float32
    worst_case: np.ndarray  # H x W float32


def extract_depth(filtered_cost: np.ndarray) -> np.ndarray:
    """Pick the minimum-cost slice per pixel.

    Ties go to the lowest slice index (`np.argmin` returns the first minimum).
    """
    return np.argmin(filtered_cost, axis=2).astype(np.int32)


def compute_bokeh_radius(depth: np.ndarray, focus_depth: int, blur_radius_scale: float) -> np.ndarray:
    return (np.abs(depth - focus_depth) * blur_radius_scale).astype(np.float32)


def dilate_bokeh_radius(radius: np.ndarray, max_blur_radius: int) -> np.ndarray:
    """Max filter over a (2R+1) x (2R+1) window, done as two 1-D passes.

    The result bounds how far any pixel's bokeh can reach into (x, y), which
    limits the aperture sampling window there.
    """
    ksize = 2 * int(max_blur_radius) + 1
    radius = np.ascontiguousarray(radius, dtype=np.float32)
    rows = cv2.dilate(radius, np.ones((1, ksize), np.uint8), borderType=cv2.BORDER_REPLICATE)
    return cv2.dilate(rows, np.ones((ksize, 1), np.uint8), borderType=cv2.BORDER_REPLICATE)


def build_bokeh_radius_field(
    depth: np.ndarray,
    focus_depth: int,
    blur_radius_scale: float,
    max_blur_radius: int,
) -> BokehRadiusField:
    radius = compute_bokeh_radius(depth, focus_depth, blur_radius_scale)
    return BokehRadiusField(
        radius=radius,
        radius_squared=radius * radius,
        worst_case=dilate_bokeh_radius(radius, max_blur_radius),
    )
