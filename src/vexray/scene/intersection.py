"""Primitive tables on the device and the nearest-hit scan over them.

Binding a World copies its primitives into Taichi fields, one table per
kind, laid out as Structure-of-Arrays. Every row also carries the
primitive's insertion index so the scan can settle equal-t hits by World
order even when the two candidates sit in different tables.

The tables are process-wide. Hold vexray.runtime.device_lock from the first
upload until the kernel that reads them has returned.

Example:
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, primitive_index=0)
    >>> # kernels then call intersect_scene(origin, direction, T_MIN, T_MAX)
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from vexray.geometry.quad import Quad, hit_quad
from vexray.geometry.sphere import HitRecord, Sphere, hit_sphere

vec3 = tm.vec3

# Hits closer than T_MIN are ignored so bounced rays do not re-hit the
# surface they left.
T_MIN = 1e-3
T_MAX = 1e10

# Table capacities
MAX_SPHERES = 1024
MAX_QUADS = 1024


@ti.dataclass
class WorldHitRecord:
    """Nearest hit of a ray against the whole bound scene.

    Attributes:
        hit: 1 if any primitive was hit.
        t: Ray parameter of the nearest hit.
        point: Hit point.
        normal: Unit normal facing the ray.
        front_face: 1 if the ray came from outside the surface.
        primitive_index: World insertion index of the primitive, -1 on miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    primitive_index: ti.i32


sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_primitive_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

quad_corners = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_edge_u = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_edge_v = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_primitive_ids = ti.field(dtype=ti.i32, shape=MAX_QUADS)
num_quads = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Empty both tables. Old rows stay in memory until overwritten."""
    num_spheres[None] = 0
    num_quads[None] = 0


def add_sphere(center: Sequence[float], radius: float, primitive_index: int) -> int:
    """Upload one sphere.

    Args:
        center: Sphere center.
        radius: Sphere radius.
        primitive_index: Position of the sphere in its World.

    Returns:
        Row written in the sphere table.

    Raises:
        RuntimeError: If the sphere table is full.
    """
    row = num_spheres[None]
    if row >= MAX_SPHERES:
        raise RuntimeError(f"Sphere table is full ({MAX_SPHERES} rows)")
    sphere_centers[row] = list(center[:3])
    sphere_radii[row] = radius
    sphere_primitive_ids[row] = primitive_index
    num_spheres[None] = row + 1
    return row


def add_quad(
    corner: Sequence[float],
    edge_u: Sequence[float],
    edge_v: Sequence[float],
    primitive_index: int,
) -> int:
    """Upload one quad.

    Args:
        corner: Corner Q.
        edge_u: Edge from Q along u.
        edge_v: Edge from Q along v.
        primitive_index: Position of the quad in its World.

    Returns:
        Row written in the quad table.

    Raises:
        RuntimeError: If the quad table is full.
    """
    row = num_quads[None]
    if row >= MAX_QUADS:
        raise RuntimeError(f"Quad table is full ({MAX_QUADS} rows)")
    quad_corners[row] = list(corner[:3])
    quad_edge_u[row] = list(edge_u[:3])
    quad_edge_v[row] = list(edge_v[:3])
    quad_primitive_ids[row] = primitive_index
    num_quads[None] = row + 1
    return row


def get_sphere_count() -> int:
    return int(num_spheres[None])


def get_quad_count() -> int:
    return int(num_quads[None])


@ti.func
def _keep_nearer(best: WorldHitRecord, rec: HitRecord, primitive_index: ti.i32) -> WorldHitRecord:
    """Return whichever of best and rec is nearer.

    An exact t tie goes to the lower World index.
    """
    out = best
    if rec.hit == 1:
        wins = (
            best.hit == 0
            or rec.t < best.t
            or (rec.t == best.t and primitive_index < best.primitive_index)
        )
        if wins:
            out = WorldHitRecord(
                hit=1,
                t=rec.t,
                point=rec.point,
                normal=rec.normal,
                front_face=rec.front_face,
                primitive_index=primitive_index,
            )
    return out


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> WorldHitRecord:
    """Nearest intersection of a ray with everything in the tables.

    Brute force over both tables. The interval is not narrowed as hits are
    found, so a primitive at exactly the current best t still gets tested
    and can win the index tie-break.

    Args:
        ray_origin: Ray origin.
        ray_direction: Ray direction.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The nearest WorldHitRecord, or one with hit == 0 and
        primitive_index == -1.
    """
    best = WorldHitRecord(
        hit=0, t=0.0, point=vec3(0.0), normal=vec3(0.0), front_face=0, primitive_index=-1
    )

    for i in range(num_spheres[None]):
        sphere = Sphere(center=sphere_centers[i], radius=sphere_radii[i])
        best = _keep_nearer(
            best, hit_sphere(ray_origin, ray_direction, sphere, t_min, t_max), sphere_primitive_ids[i]
        )

    for i in range(num_quads[None]):
        quad = Quad(Q=quad_corners[i], u=quad_edge_u[i], v=quad_edge_v[i])
        best = _keep_nearer(
            best, hit_quad(ray_origin, ray_direction, quad, t_min, t_max), quad_primitive_ids[i]
        )

    return best
