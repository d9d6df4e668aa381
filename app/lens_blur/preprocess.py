"""Stereo pair loading, validation and output saving.

The core pipeline consumes two equal-sized 8-bit, 3-channel images. This module
reads them from disk with OpenCV, checks that they can be matched against each
other, and writes the rendered float image back as 8-bit.
"""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class DimensionMismatch(ValueError):
    """Left and right images do not have the same width and height."""


def read_image(image_path: str | Path) -> np.ndarray:
    """Read an image as H x W x 3 uint8 (BGR, as decoded by OpenCV)."""
    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None:
        raise FileNotFoundError(f"Failed to read image: {image_path}")
    return image


def check_image(image: np.ndarray, name: str = "image") -> np.ndarray:
    """Validate that `image` is an H x W x 3 uint8 array."""
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"{name} must be H x W x 3, got shape {image.shape}.")
    if image.dtype != np.uint8:
        raise ValueError(f"{name} must be uint8, got {image.dtype}.")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ValueError(f"{name} is empty: {image.shape}.")
    return image


def check_same_size(left: np.ndarray, right: np.ndarray) -> None:
    """Raise `DimensionMismatch` unless both images share width and height."""
    if left.shape[:2] != right.shape[:2]:
        raise DimensionMismatch(
            f"left/right size mismatch: {left.shape[1]}x{left.shape[0]} vs {right.shape[1]}x{right.shape[0]}"
        )


def check_stereo_pair(left: np.ndarray, right: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    check_image(left, "left")
    check_image(right, "right")
    check_same_size(left, right)
    return left, right


def load_stereo_pair(left_path: str | Path, right_path: str | Path) -> tuple[np.ndarray, np.ndarray]:
    """Load and validate a rectified stereo pair.

    Raises:
        FileNotFoundError: If either file is missing or cannot be decoded.
        DimensionMismatch: If the images differ in size.
    """
    left = read_image(left_path)
    right = read_image(right_path)
    logger.info("Loaded stereo pair %s | %s (%dx%d)", left_path, right_path, left.shape[1], left.shape[0])
    return check_stereo_pair(left, right)


def to_uint8(image: np.ndarray) -> np.ndarray:
    """Clip a float image to [0, 255] and round to uint8 for storage."""
    return np.clip(np.rint(image), 0, 255).astype(np.uint8)


def save_image(output_path: str | Path, image: np.ndarray) -> Path:
    """Write a float or uint8 image, creating the parent directory."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if image.dtype != np.uint8:
        image = to_uint8(image)
    if not cv2.imwrite(str(output_path), image):
        raise OSError(f"Failed to write image: {output_path}")
    return output_path
