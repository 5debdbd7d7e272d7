"""Rays, on the device and on the host.

Kernels use the ``Ray`` struct over ``taichi.math.vec3``; camera setup and
World queries from Python use ``HostRay`` and NumPy vectors. Both sides
agree that normalising the zero vector gives the zero vector, so no caller
has to guard against a degenerate direction producing NaNs.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> ray = Ray(origin=ti.math.vec3(0.0), direction=ti.math.vec3(0, 0, -1))
    >>> # inside a kernel: ray_at(ray, 5.0) is (0, 0, -5)
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Anything the host side accepts as a 3-vector
Vec3Like = Sequence[float] | npt.NDArray[np.floating]

# Per-component threshold for near_zero
_NEAR_ZERO = 1e-8


@ti.dataclass
class Ray:
    """Device-side ray.

    Attributes:
        origin: Start point.
        direction: Direction of travel. Any non-zero length works with the
            intersection routines; t is measured in units of this vector.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Point reached after travelling t direction-lengths from the origin."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    return Ray(origin=origin, direction=direction)


@ti.func
def normalize(v: vec3) -> vec3:
    """Unit vector along v, or the zero vector when |v| == 0."""
    out = vec3(0.0)
    norm_sq = tm.dot(v, v)
    if norm_sq > 0.0:
        out = v * (1.0 / ti.sqrt(norm_sq))
    return out


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """1 when every component of v is within 1e-8 of zero.

    Diffuse scattering uses this to replace a cancelled-out direction.
    """
    return ti.max(ti.max(ti.abs(v.x), ti.abs(v.y)), ti.abs(v.z)) < _NEAR_ZERO


# =============================================================================
# Host side
# =============================================================================


def as_vector(v: Vec3Like) -> npt.NDArray[np.float64]:
    """Coerce v to a float64 array of shape (3,).

    Raises:
        ValueError: If v is not a 3-vector.
    """
    arr = np.asarray(v, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-component vector, got shape {arr.shape}")
    return arr


def normalize_host(v: Vec3Like) -> npt.NDArray[np.float64]:
    arr = as_vector(v)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return np.zeros(3, dtype=np.float64)
    return arr / norm


@dataclass(frozen=True)
class HostRay:
    """Ray used by Python-side queries such as World.hit.

    Attributes:
        origin: (x, y, z) start point.
        direction: (x, y, z) direction; not required to be unit length.
    """

    origin: tuple[float, float, float]
    direction: tuple[float, float, float]

    @classmethod
    def from_vectors(cls, origin: Vec3Like, direction: Vec3Like) -> "HostRay":
        o = as_vector(origin)
        d = as_vector(direction)
        return cls(origin=tuple(float(c) for c in o), direction=tuple(float(c) for c in d))

    def at(self, t: float) -> tuple[float, float, float]:
        return tuple(o + t * d for o, d in zip(self.origin, self.direction))
