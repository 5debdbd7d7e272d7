"""Diffuse ray tracing integrator.

This module implements the per-pixel rendering pipeline:

1. Generate samples_per_pixel jittered camera rays through the pixel.
2. Shade each ray with an iterative bounce loop: a miss returns the sky
   gradient, a hit with depth left scatters diffusely and attenuates, a hit
   with no depth left returns black.
3. Average the samples in linear space.
4. Gamma-correct, clamp and quantize to 8 bits.
5. Write RGBA into the caller's uint8 array.

Pixel rows are counted from the top of the image; the camera's v
coordinate is counted from the bottom, so row y maps to
v = (height - 1 - y + jitter) / height.

All randomness comes from vexray.core.sampler, keyed by pixel and sample,
so the kernels can run rows in any order or split across launches.

Example:
    >>> import numpy as np
    >>> out = np.zeros((height, width, 4), dtype=np.uint8)
    >>> render_rows(out, 0, height, width, height, 10, 5, 0, 0.5, 0.5)
"""

import taichi as ti
import taichi.math as tm

from vexray.camera.pinhole import get_ray
from vexray.core.ray import normalize
from vexray.core.sampler import next_random, sample_seed, scatter_diffuse
from vexray.scene.intersection import T_MAX, T_MIN, intersect_scene

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Shading Constants
# =============================================================================

# Sky gradient endpoints (linear RGB)
HORIZON_COLOR = (1.0, 1.0, 1.0)
SKY_COLOR = (0.5, 0.7, 1.0)

# Largest channel value before quantization, so 1.0 maps to 255
_QUANTIZE_CEILING = 0.999


@ti.func
def background_color(direction: vec3) -> vec3:
    """Vertical blend from horizon to sky color by ray direction.

    Args:
        direction: Ray direction (need not be normalized).

    Returns:
        (1 - t) * HORIZON_COLOR + t * SKY_COLOR with t = 0.5 * (y + 1) of
        the unit direction.
    """
    unit_direction = normalize(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    horizon = vec3(HORIZON_COLOR[0], HORIZON_COLOR[1], HORIZON_COLOR[2])
    sky = vec3(SKY_COLOR[0], SKY_COLOR[1], SKY_COLOR[2])
    return (1.0 - t) * horizon + t * sky


@ti.func
def trace_ray(origin: vec3, direction: vec3, max_depth: ti.i32, reflectance: ti.f32, state: ti.u32):
    """Shade one camera ray with bounded diffuse bounces.

    The bounce recursion is unrolled into a loop with an attenuation
    accumulator. The loop runs at most max_depth + 1 times: every hit either
    consumes one unit of depth or, at depth 0, terminates with black.

    Args:
        origin: Ray origin.
        direction: Ray direction.
        max_depth: Number of bounces allowed.
        reflectance: Attenuation applied per bounce.
        state: Generator state for this sample.

    Returns:
        A tuple of (linear RGB color, new_state).
    """
    color = vec3(0.0, 0.0, 0.0)
    attenuation = 1.0
    remaining = max_depth
    ray_origin = origin
    ray_direction = direction
    rng = state

    # Taichi funcs cannot break out of non-static loops; use an active flag
    active = 1

    for _ in range(max_depth + 1):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)
            if rec.hit == 0:
                color = attenuation * background_color(ray_direction)
                active = 0
            elif remaining == 0:
                # Energy absorbed
                active = 0
            else:
                scattered, rng = scatter_diffuse(rec.normal, rng)
                ray_origin = rec.point
                ray_direction = scattered
                attenuation *= reflectance
                remaining -= 1

    return color, rng


@ti.func
def render_pixel(
    pixel_x: ti.i32,
    pixel_y: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
    reflectance: ti.f32,
) -> vec3:
    """Average samples_per_pixel shaded rays through one pixel.

    With a single sample the ray goes through the pixel center; otherwise
    each sample is jittered uniformly within the pixel footprint.

    Non-finite sample values are treated as black so one bad sample cannot
    poison the pixel.

    Returns:
        The mean linear RGB color of the pixel.
    """
    total = vec3(0.0, 0.0, 0.0)
    for s in range(samples_per_pixel):
        state = sample_seed(pixel_x, pixel_y, s, seed)
        jitter_u = 0.5
        jitter_v = 0.5
        if samples_per_pixel > 1:
            jitter_u, state = next_random(state)
            jitter_v, state = next_random(state)

        u = (ti.cast(pixel_x, ti.f32) + jitter_u) / ti.cast(width, ti.f32)
        v = (ti.cast(height - 1 - pixel_y, ti.f32) + jitter_v) / ti.cast(height, ti.f32)
        ray = get_ray(u, v)

        color, state = trace_ray(ray.origin, ray.direction, max_depth, reflectance, state)

        for c in ti.static(range(3)):
            if tm.isnan(color[c]) or tm.isinf(color[c]):
                color[c] = 0.0

        total += color

    return total / ti.cast(samples_per_pixel, ti.f32)


@ti.func
def quantize_channel(value: ti.f32, inv_gamma: ti.f32) -> ti.i32:
    """Gamma-correct a linear channel and quantize it to [0, 255]."""
    clamped = tm.clamp(value, 0.0, 1.0)
    corrected = clamped**inv_gamma
    return ti.cast(tm.min(corrected, _QUANTIZE_CEILING) * 256.0, ti.i32)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def render_rows(
    out: ti.types.ndarray(dtype=ti.u8, ndim=3),
    row_start: ti.i32,
    row_count: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
    reflectance: ti.f32,
    inv_gamma: ti.f32,
):
    """Render a band of rows into an RGBA8 array.

    The outermost loop is parallelized by Taichi. Rows outside
    [row_start, row_start + row_count) are left untouched.

    Args:
        out: uint8 array of shape (height, width, 4), row 0 at the top.
        row_start: First row of the band.
        row_count: Number of rows in the band.
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Samples per pixel (>= 1).
        max_depth: Maximum diffuse bounces (>= 0).
        seed: Global render seed.
        reflectance: Per-bounce attenuation.
        inv_gamma: Reciprocal of the display gamma.
    """
    for r, x in ti.ndrange(row_count, width):
        y = row_start + r
        color = render_pixel(x, y, width, height, samples_per_pixel, max_depth, seed, reflectance)
        for c in ti.static(range(3)):
            out[y, x, c] = ti.cast(quantize_channel(color[c], inv_gamma), ti.u8)
        out[y, x, 3] = ti.cast(255, ti.u8)


@ti.kernel
def _trace_single_ray(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    max_depth: ti.i32,
    reflectance: ti.f32,
    seed: ti.u32,
) -> vec3:
    state = sample_seed(0, 0, 0, seed)
    color, _ = trace_ray(vec3(ox, oy, oz), vec3(dx, dy, dz), max_depth, reflectance, state)
    return color


def shade_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int,
    reflectance: float = 0.5,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Shade a single ray against the currently bound scene.

    This is a Python-callable function for testing and debugging. Bind a
    World (World.bind) under vexray.runtime.device_lock first.

    Returns:
        Tuple of linear (R, G, B) values.
    """
    color = _trace_single_ray(
        origin[0], origin[1], origin[2],
        direction[0], direction[1], direction[2],
        max_depth, reflectance, seed,
    )
    return (float(color[0]), float(color[1]), float(color[2]))
