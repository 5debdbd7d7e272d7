"""Quads (parallelograms) and the ray-quad test.

A quad starts at corner Q and spans edges u and v, so its points are
Q + alpha*u + beta*v with alpha, beta in [0, 1]. The test first finds where
the ray meets the supporting plane, then recovers (alpha, beta) for that
point with the dual vectors w_u = (v x n) / |n|^2 and w_v = (n x u) / |n|^2,
where n = u x v.

A quad whose edges are parallel (or zero) spans no area and is never hit.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from vexray.geometry.quad import Quad
    >>> back_wall = Quad(
    ...     Q=ti.math.vec3(-1, -1, -2),
    ...     u=ti.math.vec3(2, 0, 0),
    ...     v=ti.math.vec3(0, 2, 0),
    ... )
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord, face_toward_ray

vec3 = tm.vec3

# |u x v|^2 at or below this is treated as zero area
_MIN_AREA_SQ = 1e-12
# |n . d| at or below this is treated as a ray parallel to the plane
_MIN_COSINE = 1e-8


@ti.dataclass
class Quad:
    """Device-side parallelogram.

    Attributes:
        Q: Corner point.
        u: First edge, from Q.
        v: Second edge, from Q. The front face is the side cross(u, v)
            points to.
    """

    Q: vec3
    u: vec3
    v: vec3


@ti.func
def _inside_unit_square(alpha: ti.f32, beta: ti.f32) -> ti.i32:
    return 0.0 <= alpha <= 1.0 and 0.0 <= beta <= 1.0


@ti.func
def hit_quad(
    ray_origin: vec3,
    ray_direction: vec3,
    quad: Quad,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with a quad.

    Args:
        ray_origin: Ray origin.
        ray_direction: Ray direction (any non-zero length).
        quad: Quad to test.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        HitRecord with the normal facing the ray, or hit == 0.
    """
    record = HitRecord(
        hit=0, t=0.0, point=vec3(0.0), normal=vec3(0.0), front_face=0
    )

    n = tm.cross(quad.u, quad.v)
    area_sq = tm.dot(n, n)
    if area_sq > _MIN_AREA_SQ:
        unit_n = n / ti.sqrt(area_sq)
        cosine = tm.dot(unit_n, ray_direction)
        if ti.abs(cosine) > _MIN_COSINE:
            t = tm.dot(unit_n, quad.Q - ray_origin) / cosine
            if t > t_min and t < t_max:
                point = ray_origin + t * ray_direction
                offset = point - quad.Q
                alpha = tm.dot(tm.cross(quad.v, n), offset) / area_sq
                beta = tm.dot(tm.cross(n, quad.u), offset) / area_sq
                if _inside_unit_square(alpha, beta):
                    normal, front = face_toward_ray(ray_direction, unit_n)
                    record = HitRecord(hit=1, t=t, point=point, normal=normal, front_face=front)

    return record
