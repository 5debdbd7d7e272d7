"""Scene module: the World and its device-side mirror.

Components:
    world: World container, primitive descriptions and host hit queries
    intersection: Device tables and the nearest-hit scan used by kernels

Scene data is organised for Taichi access:
    - Structure-of-Arrays tables per primitive kind
    - Insertion indices stored alongside each entry for tie-breaking
"""

from .intersection import (
    MAX_QUADS,
    MAX_SPHERES,
    T_MAX,
    T_MIN,
    WorldHitRecord,
    add_quad,
    add_sphere,
    clear_scene,
    get_quad_count,
    get_sphere_count,
    intersect_scene,
)
from .world import (
    HitInfo,
    Primitive,
    PrimitiveKind,
    QuadInfo,
    SphereInfo,
    World,
)

__all__ = [
    # Intersection module
    "WorldHitRecord",
    "add_sphere",
    "add_quad",
    "clear_scene",
    "get_sphere_count",
    "get_quad_count",
    "intersect_scene",
    "MAX_SPHERES",
    "MAX_QUADS",
    "T_MIN",
    "T_MAX",
    # World module
    "World",
    "Primitive",
    "PrimitiveKind",
    "SphereInfo",
    "QuadInfo",
    "HitInfo",
]
