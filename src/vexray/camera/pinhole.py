"""Perspective (pinhole) camera.

From lookfrom, lookat and vup the camera derives a right-handed orthonormal
frame: w is the unit vector back toward the eye (lookfrom - lookat), u is
image-right and v is image-up. One unit in front of the eye sits the
viewport, whose height is 2*tan(vfov/2) and whose width is that times the
aspect ratio. Both are fixed when the camera is created.

Viewport coordinates run u = 0 at the left edge to u = 1 at the right, and
v = 0 at the bottom edge to v = 1 at the top.

Example:
    >>> cam = PinholeCamera(
    ...     lookfrom=(0.0, 0.0, 0.0),
    ...     lookat=(0.0, 0.0, -1.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=90.0,
    ...     aspect_ratio=2.0,
    ... )
    >>> cam.ray_for(0.5, 0.5).direction
    (0.0, 0.0, -1.0)
    >>> setup_camera(cam)  # kernels can now call get_ray(u, v)
"""

import math
from dataclasses import dataclass, field

import numpy as np
import taichi as ti

from vexray.core.config import CameraConfig, InvalidConfigError, RenderConfig
from vexray.core.ray import HostRay, Ray, make_ray, normalize, normalize_host

Vec3Tuple = tuple[float, float, float]

_DERIVED = ("u", "v", "w", "horizontal", "vertical", "lower_left")


def _to_tuple(arr: np.ndarray) -> Vec3Tuple:
    return tuple(float(c) for c in arr[:3])


# =============================================================================
# Host-side camera
# =============================================================================


@dataclass(frozen=True)
class PinholeCamera:
    """Frozen camera with its viewport precomputed.

    Attributes:
        lookfrom: Eye position.
        lookat: Point the eye is aimed at.
        vup: World up hint used to level the frame; must not be parallel to
            the view direction.
        vfov: Vertical field of view, degrees, in (0, 180).
        aspect_ratio: Image width over image height.

    Construction also fills in the frame vectors u, v, w and the viewport
    vectors horizontal, vertical and lower_left (the viewport's u=0, v=0
    corner).

    Raises:
        InvalidConfigError: For a non-finite or degenerate view.
    """

    lookfrom: Vec3Tuple
    lookat: Vec3Tuple
    vup: Vec3Tuple
    vfov: float
    aspect_ratio: float

    u: Vec3Tuple = field(init=False, repr=False, compare=False)
    v: Vec3Tuple = field(init=False, repr=False, compare=False)
    w: Vec3Tuple = field(init=False, repr=False, compare=False)
    horizontal: Vec3Tuple = field(init=False, repr=False, compare=False)
    vertical: Vec3Tuple = field(init=False, repr=False, compare=False)
    lower_left: Vec3Tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        CameraConfig(
            lookfrom=self.lookfrom, lookat=self.lookat, vup=self.vup, vfov=self.vfov
        ).validate()
        if not (math.isfinite(self.aspect_ratio) and self.aspect_ratio > 0.0):
            raise InvalidConfigError(f"aspect_ratio must be positive, got {self.aspect_ratio!r}")

        eye, target, up = (
            np.asarray(p, dtype=np.float64) for p in (self.lookfrom, self.lookat, self.vup)
        )

        half_height = math.tan(math.radians(self.vfov) / 2.0)
        half_width = self.aspect_ratio * half_height

        w = normalize_host(eye - target)
        u = normalize_host(np.cross(up, w))
        v = np.cross(w, u)

        derived = {
            "u": u,
            "v": v,
            "w": w,
            "horizontal": 2.0 * half_width * u,
            "vertical": 2.0 * half_height * v,
            "lower_left": eye - w - half_width * u - half_height * v,
        }

        # frozen: bypass __setattr__
        object.__setattr__(self, "lookfrom", _to_tuple(eye))
        object.__setattr__(self, "lookat", _to_tuple(target))
        object.__setattr__(self, "vup", _to_tuple(up))
        for name in _DERIVED:
            object.__setattr__(self, name, _to_tuple(derived[name]))

    @classmethod
    def from_config(cls, config: RenderConfig) -> "PinholeCamera":
        cam = config.camera
        return cls(
            lookfrom=cam.lookfrom,
            lookat=cam.lookat,
            vup=cam.vup,
            vfov=cam.vfov,
            aspect_ratio=config.aspect_ratio,
        )

    def ray_for(self, u: float, v: float) -> HostRay:
        """Ray from the eye through viewport point (u, v).

        Args:
            u: 0 at the left edge, 1 at the right.
            v: 0 at the bottom edge, 1 at the top.

        Returns:
            HostRay with a unit direction.
        """
        eye = np.asarray(self.lookfrom)
        target = (
            np.asarray(self.lower_left) + u * np.asarray(self.horizontal) + v * np.asarray(self.vertical)
        )
        return HostRay.from_vectors(eye, normalize_host(target - eye))


# =============================================================================
# Device-side copy
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_DEVICE_FIELDS = {
    "origin": _camera_origin,
    "horizontal": _viewport_horizontal,
    "vertical": _viewport_vertical,
    "lower_left": _lower_left_corner,
}


def setup_camera(camera: PinholeCamera) -> None:
    """Copy a camera into the fields get_ray() reads.

    Callers sharing the runtime with other renders must hold
    vexray.runtime.device_lock.
    """
    _camera_origin[None] = list(camera.lookfrom)
    _viewport_horizontal[None] = list(camera.horizontal)
    _viewport_vertical[None] = list(camera.vertical)
    _lower_left_corner[None] = list(camera.lower_left)


@ti.func
def get_ray(u: ti.f32, v: ti.f32) -> Ray:
    """Kernel-side PinholeCamera.ray_for() for the camera last uploaded.

    Args:
        u: 0 at the left edge, 1 at the right.
        v: 0 at the bottom edge, 1 at the top.

    Returns:
        Ray from the eye with a unit direction.
    """
    eye = _camera_origin[None]
    target = _lower_left_corner[None] + u * _viewport_horizontal[None] + v * _viewport_vertical[None]
    return make_ray(eye, normalize(target - eye))


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Read the uploaded camera back from the device."""
    return {name: _to_tuple(f[None].to_numpy()) for name, f in _DEVICE_FIELDS.items()}
