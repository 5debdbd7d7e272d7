"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with ray-sphere intersection
    quad: Parallelogram primitive with ray-quad intersection

All intersection routines are Taichi functions (@ti.func) with the same
shape so the scene scan can dispatch on primitive kind:
    record = hit_shape(ray_origin, ray_direction, shape, t_min, t_max)
"""

from .quad import Quad, hit_quad
from .sphere import HitRecord, Sphere, hit_sphere

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "Quad",
    "hit_quad",
]
