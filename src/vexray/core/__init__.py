"""Core rendering module.

Components:
    ray: Device and host rays, normalisation helpers
    sampler: Deterministic per-sample random numbers and diffuse scatter directions
    config: Render and camera configuration, InvalidConfigError
    integrator: Shading loop, pixel sampling and the row-band kernel
    renderer: Band-parallel Renderer, Framebuffer, render()/render_sync()

Rendering is diffuse ray tracing with jittered anti-aliasing: each pixel
averages several camera rays, each ray bounces up to max_depth times off
diffuse surfaces and picks up the sky gradient when it escapes.
"""

from .config import CameraConfig, InvalidConfigError, RenderConfig
from .ray import (
    HostRay,
    Ray,
    make_ray,
    near_zero,
    normalize,
    normalize_host,
    ray_at,
    vec3,
)

# Note: integrator and renderer are NOT imported here. They pull in the
# scene and camera modules, which declare Taichi fields and therefore need
# an initialised runtime. Import them directly once Taichi is up:
#   from vexray.core.renderer import Renderer, render

__all__ = [
    "CameraConfig",
    "RenderConfig",
    "InvalidConfigError",
    "Ray",
    "HostRay",
    "ray_at",
    "make_ray",
    "vec3",
    "normalize",
    "normalize_host",
    "near_zero",
]
