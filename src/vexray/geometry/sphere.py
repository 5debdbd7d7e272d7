"""Spheres and the ray-sphere test.

Substituting the ray into |P - center|^2 = radius^2 gives a quadratic in t.
Its roots are computed with the cancellation-free form from Ray Tracing
Gems ("Precision Improvements for Ray/Sphere Intersection"), which stays
accurate for grazing rays and for spheres far from the ray origin.

A sphere with radius <= 0 is treated as empty: hit_sphere never reports it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from vexray.geometry.sphere import Sphere, hit_sphere
    >>> ground = Sphere(center=ti.math.vec3(0, -100.5, -1), radius=100.0)
    >>> # call hit_sphere(origin, direction, ground, t_min, t_max) from a kernel
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# |q| below this means the robust form would divide by ~0
_Q_EPSILON = 1e-10


@ti.dataclass
class Sphere:
    """Device-side sphere.

    Attributes:
        center: Sphere center in world space.
        radius: Sphere radius; values <= 0 make the sphere empty.
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Outcome of testing one ray against one primitive.

    Fields other than ``hit`` are meaningful only when ``hit == 1``.

    Attributes:
        hit: 1 on intersection, 0 otherwise.
        t: Ray parameter of the intersection.
        point: World-space intersection point.
        normal: Unit normal, flipped to face the incoming ray.
        front_face: 1 if the ray came from outside the surface.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def face_toward_ray(ray_direction: vec3, outward_normal: vec3):
    """Orient a unit outward normal against the ray.

    Returns:
        A tuple of (normal facing the ray, front_face flag).
    """
    facing = outward_normal
    front = 1
    if tm.dot(ray_direction, outward_normal) > 0.0:
        facing = -outward_normal
        front = 0
    return facing, front


@ti.func
def _nearest_root(a: ti.f32, half_b: ti.f32, c: ti.f32, t_min: ti.f32, t_max: ti.f32):
    """Smallest root of a*t^2 + 2*half_b*t + c inside (t_min, t_max).

    Returns:
        A tuple of (t, found). found is 0 if neither root is in range or the
        discriminant is negative.
    """
    found = 0
    t = 0.0
    discriminant = half_b * half_b - a * c
    if discriminant >= 0.0:
        root = ti.sqrt(discriminant)
        q = -(half_b + ti.select(half_b < 0.0, -1.0, 1.0) * root)

        near = (-half_b - root) / a
        far = (-half_b + root) / a
        if ti.abs(q) >= _Q_EPSILON:
            near = ti.min(q / a, c / q)
            far = ti.max(q / a, c / q)

        if near > t_min and near < t_max:
            t = near
            found = 1
        elif far > t_min and far < t_max:
            # Origin inside the sphere, or near root behind t_min
            t = far
            found = 1
    return t, found


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with a sphere.

    The direction does not need to be normalized; the quadratic keeps the
    a = |direction|^2 term, so t is in units of the given direction.

    Args:
        ray_origin: Ray origin.
        ray_direction: Ray direction. A zero vector never hits.
        sphere: Sphere to test.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        HitRecord for the nearest root in (t_min, t_max), or hit == 0.
    """
    record = HitRecord(
        hit=0, t=0.0, point=vec3(0.0), normal=vec3(0.0), front_face=0
    )

    to_origin = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    if sphere.radius > 0.0 and a > 0.0:
        half_b = tm.dot(ray_direction, to_origin)
        c = tm.dot(to_origin, to_origin) - sphere.radius * sphere.radius
        t, found = _nearest_root(a, half_b, c, t_min, t_max)
        if found:
            point = ray_origin + t * ray_direction
            normal, front = face_toward_ray(ray_direction, (point - sphere.center) / sphere.radius)
            record = HitRecord(hit=1, t=t, point=point, normal=normal, front_face=front)

    return record
