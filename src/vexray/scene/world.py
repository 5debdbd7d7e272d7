"""World: the ordered, owning collection of primitives a render consumes.

The World is the host-side source of truth. Primitives are frozen
dataclasses tagged with a PrimitiveKind, kept in insertion order. Before a
query or a render the World is bound, i.e. mirrored into the device tables
of vexray.scene.intersection.

Lifecycle:
    1. Build: add()/add_sphere()/add_quad() during scene setup.
    2. Freeze: the renderer calls freeze() before the first band; further
       mutation raises RuntimeError.
    3. Render: bind() uploads the frozen primitives as often as needed.

Example:
    >>> world = World()
    >>> world.add_sphere((0.0, 0.0, -1.0), 0.5)
    0
    >>> world.add_sphere((0.0, -100.5, -1.0), 100.0)
    1
    >>> hit = world.hit(HostRay((0, 0, 0), (0, 0, -1)))
    >>> hit.primitive_index
    0
"""

import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import IntEnum

import taichi as ti

from vexray.core.ray import HostRay, Vec3Like, as_vector
from vexray.runtime import device_lock
from vexray.scene.intersection import (
    MAX_QUADS,
    MAX_SPHERES,
    T_MAX,
    T_MIN,
    add_quad,
    add_sphere,
    clear_scene,
    intersect_scene,
    vec3,
)

logger = logging.getLogger(__name__)


class PrimitiveKind(IntEnum):
    """Tag of every primitive kind the device tables know about."""

    SPHERE = 0
    QUAD = 1


def _as_tuple(v: Vec3Like) -> tuple[float, float, float]:
    arr = as_vector(v)
    return (float(arr[0]), float(arr[1]), float(arr[2]))


@dataclass(frozen=True)
class SphereInfo:
    """A sphere in the World.

    A radius <= 0 (or a non-finite one) is allowed but degenerate: the
    sphere never intersects any ray.

    Attributes:
        center: The center of the sphere.
        radius: The radius of the sphere.
    """

    center: tuple[float, float, float]
    radius: float

    @property
    def kind(self) -> PrimitiveKind:
        return PrimitiveKind.SPHERE

    @property
    def is_degenerate(self) -> bool:
        return not (math.isfinite(self.radius) and self.radius > 0.0)


@dataclass(frozen=True)
class QuadInfo:
    """A quad (parallelogram) in the World.

    Attributes:
        corner: The corner point (Q) of the quad.
        edge_u: The first edge vector.
        edge_v: The second edge vector.
    """

    corner: tuple[float, float, float]
    edge_u: tuple[float, float, float]
    edge_v: tuple[float, float, float]

    @property
    def kind(self) -> PrimitiveKind:
        return PrimitiveKind.QUAD

    @property
    def is_degenerate(self) -> bool:
        ux, uy, uz = self.edge_u
        vx, vy, vz = self.edge_v
        nx = uy * vz - uz * vy
        ny = uz * vx - ux * vz
        nz = ux * vy - uy * vx
        return nx * nx + ny * ny + nz * nz <= 1e-12


Primitive = SphereInfo | QuadInfo


@dataclass(frozen=True)
class HitInfo:
    """Result of a successful World.hit query.

    Attributes:
        t: Ray parameter of the intersection.
        point: World-space hit point.
        normal: Unit surface normal facing the incoming ray.
        front_face: True if the ray arrived from outside the surface.
        primitive_index: Insertion index of the hit primitive.
        primitive: The hit primitive itself.
    """

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    front_face: bool
    primitive_index: int
    primitive: Primitive


# Result slots for host-side queries
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_front_face = ti.field(dtype=ti.i32, shape=())
_query_primitive = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _query_kernel(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
):
    rec = intersect_scene(vec3(ox, oy, oz), vec3(dx, dy, dz), t_min, t_max)
    _query_hit[None] = rec.hit
    _query_t[None] = rec.t
    _query_point[None] = rec.point
    _query_normal[None] = rec.normal
    _query_front_face[None] = rec.front_face
    _query_primitive[None] = rec.primitive_index


class World:
    """An ordered collection of intersectable primitives.

    The World owns its primitives: they are immutable values, and the
    collection is exposed only as a tuple. Insertion order is significant;
    it decides exact-t ties in hit().

    Attributes:
        primitives: Tuple of all primitives in insertion order.
    """

    def __init__(self, primitives: Iterable[Primitive] = ()) -> None:
        self._primitives: list[Primitive] = []
        self._sphere_count = 0
        self._quad_count = 0
        self._frozen = False
        for primitive in primitives:
            self.add(primitive)

    # =========================================================================
    # Setup
    # =========================================================================

    def add(self, primitive: Primitive) -> int:
        """Append a primitive.

        Args:
            primitive: A SphereInfo or QuadInfo.

        Returns:
            The insertion index of the primitive.

        Raises:
            TypeError: If primitive is not a known primitive kind.
            RuntimeError: If the World is frozen or the device table for
                this kind is full.
        """
        if self._frozen:
            raise RuntimeError("World is frozen; primitives can only be added during setup")

        if isinstance(primitive, SphereInfo):
            if self._sphere_count >= MAX_SPHERES:
                raise RuntimeError(f"World already holds {MAX_SPHERES} spheres, the device limit")
            self._sphere_count += 1
        elif isinstance(primitive, QuadInfo):
            if self._quad_count >= MAX_QUADS:
                raise RuntimeError(f"World already holds {MAX_QUADS} quads, the device limit")
            self._quad_count += 1
        else:
            raise TypeError(f"Unsupported primitive type: {type(primitive).__name__}")

        index = len(self._primitives)
        self._primitives.append(primitive)
        if primitive.is_degenerate:
            logger.warning("Primitive %d is degenerate and will never be hit: %r", index, primitive)
        return index

    def add_sphere(self, center: Vec3Like, radius: float) -> int:
        """Append a sphere; see add()."""
        return self.add(SphereInfo(center=_as_tuple(center), radius=float(radius)))

    def add_quad(self, corner: Vec3Like, edge_u: Vec3Like, edge_v: Vec3Like) -> int:
        """Append a quad; see add()."""
        return self.add(
            QuadInfo(corner=_as_tuple(corner), edge_u=_as_tuple(edge_u), edge_v=_as_tuple(edge_v))
        )

    def freeze(self) -> None:
        """End the setup phase. Idempotent."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def primitives(self) -> tuple[Primitive, ...]:
        return tuple(self._primitives)

    @property
    def sphere_count(self) -> int:
        return self._sphere_count

    @property
    def quad_count(self) -> int:
        return self._quad_count

    def __len__(self) -> int:
        return len(self._primitives)

    def __iter__(self) -> Iterator[Primitive]:
        return iter(tuple(self._primitives))

    def __getitem__(self, index: int) -> Primitive:
        return self._primitives[index]

    def __repr__(self) -> str:
        return (
            f"World(spheres={self._sphere_count}, quads={self._quad_count}, "
            f"frozen={self._frozen})"
        )

    # =========================================================================
    # Device binding and queries
    # =========================================================================

    def bind(self) -> None:
        """Mirror the primitives into the device tables.

        Must be called with vexray.runtime.device_lock held.
        """
        clear_scene()
        for index, primitive in enumerate(self._primitives):
            if primitive.kind == PrimitiveKind.SPHERE:
                add_sphere(primitive.center, primitive.radius, index)
            elif primitive.kind == PrimitiveKind.QUAD:
                add_quad(primitive.corner, primitive.edge_u, primitive.edge_v, index)

    def hit(self, ray: HostRay, t_min: float = T_MIN, t_max: float = T_MAX) -> HitInfo | None:
        """Find the nearest intersection along a ray.

        Args:
            ray: The query ray.
            t_min: Exclusive lower bound on t.
            t_max: Exclusive upper bound on t.

        Returns:
            The HitInfo with the smallest t in (t_min, t_max), ties going to
            the lowest insertion index, or None if nothing is hit.
        """
        ox, oy, oz = ray.origin
        dx, dy, dz = ray.direction
        with device_lock:
            self.bind()
            _query_kernel(ox, oy, oz, dx, dy, dz, t_min, t_max)
            if _query_hit[None] == 0:
                return None
            index = int(_query_primitive[None])
            point = _query_point[None]
            normal = _query_normal[None]
            return HitInfo(
                t=float(_query_t[None]),
                point=(float(point[0]), float(point[1]), float(point[2])),
                normal=(float(normal[0]), float(normal[1]), float(normal[2])),
                front_face=bool(_query_front_face[None]),
                primitive_index=index,
                primitive=self._primitives[index],
            )
