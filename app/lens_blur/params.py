"""Lens blur parameters and YAML configuration loading."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LensBlurParams:
    """Constants shared by every stage of the pipeline."""

    slices: int = 32  # number of disparities to consider
    focus_depth: int = 13  # the depth (slice) to focus on
    blur_radius_scale: float = 0.5  # increase in blur radius per slice of misfocus
    aperture_samples: int = 32
    pyramid_levels: int = 8

    @property
    def max_blur_radius(self) -> int:
        """Largest blur radius any pixel can get, truncated to whole pixels."""
        return int(max(self.slices - self.focus_depth, self.focus_depth) * self.blur_radius_scale)

    def validate(self) -> "LensBlurParams":
        """Raise `ValueError` if the parameters cannot drive the pipeline."""
        for name in ("slices", "focus_depth", "aperture_samples", "pyramid_levels"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"`{name}` must be an integer, got {value!r}.")
        if isinstance(self.blur_radius_scale, bool) or not isinstance(self.blur_radius_scale, (int, float)):
            raise ValueError(f"`blur_radius_scale` must be a number, got {self.blur_radius_scale!r}.")
        if self.slices <= 0:
            raise ValueError(f"`slices` must be > 0, got {self.slices}.")
        if not 0 <= self.focus_depth < self.slices:
            raise ValueError(f"`focus_depth` must be in [0, {self.slices}), got {self.focus_depth}.")
        if self.blur_radius_scale < 0:
            raise ValueError(f"`blur_radius_scale` must be >= 0, got {self.blur_radius_scale}.")
        if self.aperture_samples <= 0:
            raise ValueError(f"`aperture_samples` must be > 0, got {self.aperture_samples}.")
        if self.pyramid_levels <= 0:
            raise ValueError(f"`pyramid_levels` must be > 0, got {self.pyramid_levels}.")
        return self

    @classmethod
    def from_dict(cls, cfg: dict[str, Any]) -> "LensBlurParams":
        """Build parameters from a flat config dict, rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(cfg) - known)
        if unknown:
            raise ValueError(f"Unknown lens blur config keys: {unknown}")
        return cls(**cfg).validate()


def parse_configs(config: str | Path) -> dict:
    """Load a YAML config file as a dict.

    Args:
        config: Path to YAML config file.

    Returns:
        Parsed config dictionary (empty if the file is empty or malformed).
    """
    with open(config, "r") as stream:
        try:
            configs = yaml.safe_load(stream)
        except yaml.YAMLError as exc:
            logging.error(exc)
            return {}
    return configs or {}


def load_params(config: Optional[str | Path] = None, **overrides: Any) -> LensBlurParams:
    """Resolve parameters: defaults, then the YAML file, then explicit overrides.

    Overrides whose value is None are ignored so CLI flags can be passed through
    unconditionally.
    """
    cfg: dict[str, Any] = {}
    if config is not None:
        loaded = parse_configs(config)
        if not isinstance(loaded, dict):
            raise ValueError(f"Config {config} must be a mapping, got {type(loaded).__name__}.")
        # Allow the parameters to live under a `lens_blur:` section.
        section = loaded.get("lens_blur", loaded) or {}
        if not isinstance(section, dict):
            raise ValueError(f"`lens_blur` section of {config} must be a mapping, got {type(section).__name__}.")
        cfg.update(section)
        logger.debug("Loaded config %s: %s", config, cfg)
    cfg.update({k: v for k, v in overrides.items() if v is not None})
    return LensBlurParams.from_dict(cfg)
