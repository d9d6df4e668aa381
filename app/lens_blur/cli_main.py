"""Lens blur CLI entry point.

Usage:
    lens-blur left.png right.png out.png [schedule]

The schedule index picks where the renderer runs (0: auto, 1: CPU). It never
changes the rendered pixels.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import cv2
import matplotlib.pyplot as plt
import numpy as np
import torch

from app.lens_blur.params import load_params
from app.lens_blur.pipeline import LensBlurEngine, LensBlurResult
from app.lens_blur.preprocess import DimensionMismatch, load_stereo_pair, save_image

logger = logging.getLogger(__name__)

SCHEDULES = {
    0: "auto",
    1: "cpu",
}


def resolve_schedule(schedule: int) -> torch.device:
    """Map a schedule index to the torch device the renderer runs on."""
    if schedule not in SCHEDULES:
        logger.warning("Unknown schedule %d, falling back to schedule 0 (%s)", schedule, SCHEDULES[0])
        schedule = 0
    if SCHEDULES[schedule] == "cpu":
        return torch.device("cpu")
    return torch.device("cuda:0" if torch.cuda.is_available() else "cpu")


def save_debug_maps(output_path: Path, result: LensBlurResult) -> list[Path]:
    """Save depth, confidence and worst-case radius visualisations next to the output."""
    prefix = output_path.with_suffix("")
    written = []

    depth_path = Path(f"{prefix}_depth.png")
    plt.imsave(depth_path, np.ascontiguousarray(result.depth), cmap="plasma")
    written.append(depth_path)

    for name, data in (("confidence", result.confidence), ("worst_radius", result.bokeh.worst_case)):
        data_norm = cv2.normalize(data.astype(np.float32), None, 0, 255, cv2.NORM_MINMAX)
        path = Path(f"{prefix}_{name}.png")
        cv2.imwrite(str(path), data_norm.astype(np.uint8))
        written.append(path)

    return written


def run_lens_blur(
    *,
    left_path: Path,
    right_path: Path,
    output_path: Path,
    schedule: int = 0,
    config: Optional[Path] = None,
    verbose: bool = False,
    progress: bool = False,
    **overrides,
) -> Path:
    """Render `left_path` with synthetic depth of field and write it to `output_path`.

    Args:
        left_path: Left image of a rectified stereo pair.
        right_path: Right image of the pair.
        output_path: Where the rendered image is written.
        schedule: Execution schedule index (see `SCHEDULES`).
        config: Optional YAML config with pipeline parameters.
        verbose: Also write intermediate maps for debugging.
        progress: Show a progress bar over aperture samples.
        **overrides: Parameter overrides (None values are ignored).

    Returns:
        Path to the written image.
    """
    params = load_params(config, **overrides)
    left, right = load_stereo_pair(left_path, right_path)

    engine = LensBlurEngine(params, device=resolve_schedule(schedule), progress=progress)
    logger.info("Rendering with %s on %s", params, engine.device)
    result = engine.render(left, right)

    save_image(output_path, result.image)
    logger.info("Saved lens blur image to: %s", output_path)

    if verbose:
        for path in save_debug_maps(output_path, result):
            logger.info("Saved debug map: %s", path)

    return output_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Synthetic lens blur from a rectified stereo pair")
    parser.add_argument("left", type=Path, help="Left image (the one that gets blurred)")
    parser.add_argument("right", type=Path, help="Right image")
    parser.add_argument("output", type=Path, help="Output image path")
    parser.add_argument(
        "schedule",
        type=int,
        nargs="?",
        default=0,
        help="Execution schedule: 0 = auto device, 1 = CPU. Does not affect the result.",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML file with pipeline parameters")
    parser.add_argument("--slices", type=int, default=None, help="Number of disparities to consider")
    parser.add_argument("--focus-depth", type=int, default=None, help="Depth slice to focus on")
    parser.add_argument(
        "--blur-radius-scale",
        type=float,
        default=None,
        help="Increase in blur radius per slice of misfocus",
    )
    parser.add_argument("--aperture-samples", type=int, default=None, help="Aperture samples per pixel")
    parser.add_argument("--pyramid-levels", type=int, default=None, help="Push-pull pyramid depth")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Verbose mode, will save the intermediate depth/confidence/radius maps for debug",
    )
    parser.add_argument("--progress", action="store_true", help="Show a progress bar while rendering")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        run_lens_blur(
            left_path=args.left,
            right_path=args.right,
            output_path=args.output,
            schedule=args.schedule,
            config=args.config,
            verbose=args.verbose,
            progress=args.progress,
            slices=args.slices,
            focus_depth=args.focus_depth,
            blur_radius_scale=args.blur_radius_scale,
            aperture_samples=args.aperture_samples,
            pyramid_levels=args.pyramid_levels,
        )
    except (DimensionMismatch, OSError, ValueError) as exc:
        logger.error("lens blur failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
