"""Render configuration.

RenderConfig holds everything that is fixed for one render call: image
size, sampling parameters, shading constants and the camera placement.
Configs are frozen; use dataclasses.replace() to derive variants.

Validation is explicit: RenderConfig.validate() raises InvalidConfigError
and the renderer calls it before allocating anything.

Example:
    >>> config = RenderConfig(width=200, height=100, samples_per_pixel=10, max_depth=5)
    >>> config.validate()
    >>> config.aspect_ratio
    2.0
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from typing import Any

import numpy as np


class InvalidConfigError(ValueError):
    """Raised when a render configuration cannot produce an image."""


def _is_int(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _vec3(value: Any, name: str) -> tuple[float, float, float]:
    try:
        arr = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(f"{name} must be a 3-component vector, got {value!r}") from e
    if arr.shape != (3,) or not np.all(np.isfinite(arr)):
        raise InvalidConfigError(f"{name} must be a finite 3-component vector, got {value!r}")
    return (float(arr[0]), float(arr[1]), float(arr[2]))


def _scalar(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(f"{name} must be a number, got {value!r}") from e


@dataclass(frozen=True)
class CameraConfig:
    """Placement and lens of the pinhole camera.

    Attributes:
        lookfrom: Eye position in world space.
        lookat: Point the camera looks at.
        vup: Up direction used to orient the image plane.
        vfov: Vertical field of view in degrees, in (0, 180).
    """

    lookfrom: tuple[float, float, float] = (0.0, 0.0, 0.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0

    def validate(self) -> None:
        """Check the camera can build an orthonormal basis.

        Raises:
            InvalidConfigError: If the view direction is zero, vup is
                parallel to it, or vfov is out of range.
        """
        lookfrom = np.array(_vec3(self.lookfrom, "camera.lookfrom"))
        lookat = np.array(_vec3(self.lookat, "camera.lookat"))
        vup = np.array(_vec3(self.vup, "camera.vup"))

        if not (isinstance(self.vfov, (int, float)) and 0.0 < self.vfov < 180.0):
            raise InvalidConfigError(f"camera.vfov must be in (0, 180) degrees, got {self.vfov!r}")

        w = lookfrom - lookat
        if np.linalg.norm(w) == 0.0:
            raise InvalidConfigError("camera.lookfrom and camera.lookat must differ")
        if np.linalg.norm(np.cross(vup, w)) <= 1e-12 * max(1.0, float(np.linalg.norm(w))):
            raise InvalidConfigError("camera.vup must not be parallel to the view direction")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CameraConfig:
        """Build a camera config from a mapping of field names."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfigError(f"Unknown camera config keys: {sorted(unknown)}")
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key == "vfov":
                kwargs[key] = _scalar(value, f"camera.{key}")
            else:
                kwargs[key] = _vec3(value, f"camera.{key}")
        return cls(**kwargs)


@dataclass(frozen=True)
class RenderConfig:
    """Fixed parameters of one render call.

    Attributes:
        width: Image width in pixels (>= 1).
        height: Image height in pixels (>= 1).
        samples_per_pixel: Jittered rays per pixel (>= 1). A value of 1
            samples pixel centers, disabling anti-aliasing.
        max_depth: Maximum diffuse bounces (>= 0). 0 disables bouncing.
        camera: Camera placement; the aspect ratio comes from width/height.
        seed: Global seed in [0, 2^32) mixed into every sample's generator.
        gamma: Display gamma; channels are raised to 1/gamma (2.0 = sqrt).
        reflectance: Fraction of light kept per diffuse bounce, in [0, 1].
    """

    width: int = 1920
    height: int = 1080
    samples_per_pixel: int = 100
    max_depth: int = 50
    camera: CameraConfig = field(default_factory=CameraConfig)
    seed: int = 0
    gamma: float = 2.0
    reflectance: float = 0.5

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def buffer_size(self) -> int:
        """Length in bytes of the RGBA8 framebuffer this config produces."""
        return self.width * self.height * 4

    def validate(self) -> None:
        """Check the configuration before any work begins.

        Raises:
            InvalidConfigError: On zero-area images, zero samples, negative
                depth, out-of-range shading constants, a seed that does not
                fit 32 bits, or a degenerate camera.
        """
        for name in ("width", "height"):
            value = getattr(self, name)
            if not _is_int(value) or value < 1:
                raise InvalidConfigError(f"{name} must be a positive integer, got {value!r}")
        if not _is_int(self.samples_per_pixel) or self.samples_per_pixel < 1:
            raise InvalidConfigError(
                f"samples_per_pixel must be an integer >= 1, got {self.samples_per_pixel!r}"
            )
        if not _is_int(self.max_depth) or self.max_depth < 0:
            raise InvalidConfigError(f"max_depth must be an integer >= 0, got {self.max_depth!r}")
        if not _is_int(self.seed) or not 0 <= self.seed < 2**32:
            raise InvalidConfigError(f"seed must be an integer in [0, 2**32), got {self.seed!r}")
        if not (isinstance(self.gamma, (int, float)) and math.isfinite(self.gamma) and self.gamma > 0):
            raise InvalidConfigError(f"gamma must be a positive finite number, got {self.gamma!r}")
        if not (isinstance(self.reflectance, (int, float)) and 0.0 <= self.reflectance <= 1.0):
            raise InvalidConfigError(f"reflectance must be in [0, 1], got {self.reflectance!r}")
        if not isinstance(self.camera, CameraConfig):
            raise InvalidConfigError(f"camera must be a CameraConfig, got {type(self.camera).__name__}")
        self.camera.validate()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain Python types (nested camera as a dict)."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RenderConfig:
        """Build a config from a mapping, e.g. parsed CLI arguments.

        Missing keys keep their defaults. The result is not validated.

        Raises:
            InvalidConfigError: If data contains unknown keys.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfigError(f"Unknown render config keys: {sorted(unknown)}")
        kwargs = dict(data)
        camera = kwargs.get("camera")
        if isinstance(camera, Mapping):
            kwargs["camera"] = CameraConfig.from_dict(camera)
        return cls(**kwargs)
