"""Deterministic random number generation for Monte Carlo sampling.

Every sample owns a small 32-bit generator state derived by hashing
(pixel x, pixel y, sample index, global seed). No state is shared between
pixels, so a render produces identical bytes however its work is split
across kernel launches or CPU threads.

The hash and the generator step are PCG (RXS-M-XS variant) as described in
"Hash Functions for GPU Rendering" (Jarzynski & Olano, 2020). All
arithmetic is on ti.u32 and wraps modulo 2^32.

Example:
    >>> @ti.kernel
    ... def sample() -> ti.f32:
    ...     state = sample_seed(3, 4, 0, ti.cast(7, ti.u32))
    ...     value, state = next_random(state)
    ...     return value
"""

import taichi as ti
import taichi.math as tm

from vexray.core.ray import near_zero

# Type alias for 3D vectors
vec3 = tm.vec3

# PCG LCG multiplier and increment. The increment 2891336453 is applied as
# a subtraction of (2^32 - 2891336453) so every literal fits in an i32.
PCG_MULTIPLIER = 747796405
PCG_INCREMENT_COMPLEMENT = 1403630843
PCG_OUTPUT_MULTIPLIER = 277803737

# 2^-24: maps the top 24 bits of a word onto [0, 1)
_INV_2_24 = 1.0 / 16777216.0


@ti.func
def _pcg_step(state: ti.u32) -> ti.u32:
    """Advance the LCG underlying PCG by one step."""
    return state * ti.cast(PCG_MULTIPLIER, ti.u32) - ti.cast(PCG_INCREMENT_COMPLEMENT, ti.u32)


@ti.func
def _pcg_output(state: ti.u32) -> ti.u32:
    """Apply the RXS-M-XS output permutation to a state word."""
    shift = (state >> ti.cast(28, ti.u32)) + ti.cast(4, ti.u32)
    word = ((state >> shift) ^ state) * ti.cast(PCG_OUTPUT_MULTIPLIER, ti.u32)
    return (word >> ti.cast(22, ti.u32)) ^ word


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """Hash a 32-bit value to a well-mixed 32-bit value."""
    return _pcg_output(_pcg_step(value))


@ti.func
def sample_seed(pixel_x: ti.i32, pixel_y: ti.i32, sample_index: ti.i32, seed: ti.u32) -> ti.u32:
    """Derive the generator state for one sample of one pixel.

    Args:
        pixel_x: Pixel column.
        pixel_y: Pixel row.
        sample_index: Index of the sample within the pixel.
        seed: Global render seed.

    Returns:
        The initial generator state for this sample.
    """
    h = pcg_hash(ti.cast(sample_index, ti.u32))
    h = pcg_hash(ti.cast(pixel_y, ti.u32) ^ h)
    h = pcg_hash(ti.cast(pixel_x, ti.u32) ^ h)
    return pcg_hash(seed ^ h)


@ti.func
def next_random(state: ti.u32):
    """Draw a uniform float in [0, 1) and advance the generator.

    Args:
        state: Current generator state.

    Returns:
        A tuple of (value, new_state).
    """
    new_state = _pcg_step(state)
    word = _pcg_output(new_state)
    value = ti.cast(word >> ti.cast(8, ti.u32), ti.f32) * _INV_2_24
    return value, new_state


@ti.func
def random_unit_vector(state: ti.u32):
    """Generate a unit vector uniformly distributed on the sphere.

    Uses the inverse-CDF mapping (z uniform in [-1, 1], phi uniform in
    [0, 2*pi)), so it consumes exactly two draws.

    Returns:
        A tuple of (unit_vector, new_state).
    """
    rng = state
    r1, rng = next_random(rng)
    r2, rng = next_random(rng)
    z = 1.0 - 2.0 * r1
    phi = 2.0 * tm.pi * r2
    r = ti.sqrt(ti.max(0.0, 1.0 - z * z))
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z), rng


@ti.func
def scatter_diffuse(normal: vec3, state: ti.u32):
    """Sample a diffuse bounce direction around a surface normal.

    Returns normal + random_unit_vector (a cosine-weighted lobe). A
    direction that cancels to nearly zero falls back to the normal.

    Args:
        normal: Unit surface normal facing the incoming ray.
        state: Current generator state.

    Returns:
        A tuple of (direction, new_state). The direction is not normalized
        and always lies in the closed hemisphere of the normal.
    """
    offset, rng = random_unit_vector(state)
    direction = normal + offset
    if near_zero(direction):
        direction = normal
    return direction, rng
