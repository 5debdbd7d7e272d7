"""Unit tests for hit_sphere.

Tests cover:
- Front-face hits from outside and clean misses
- Rays that start inside (back-face hit)
- Interval bounds selecting the far root
- Degenerate radii never hit
"""

import taichi as ti


def _run_hit(origin, direction, center, radius, t_min=0.001, t_max=1000.0):
    """Run hit_sphere once and return (hit, t, point, normal, front_face)."""
    from vexray.geometry.sphere import Sphere, hit_sphere, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.Vector.field(3, dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(
        ox: ti.f32, oy: ti.f32, oz: ti.f32,
        dx: ti.f32, dy: ti.f32, dz: ti.f32,
        cx: ti.f32, cy: ti.f32, cz: ti.f32,
        r: ti.f32, lo: ti.f32, hi: ti.f32,
    ):
        sphere = Sphere(center=vec3(cx, cy, cz), radius=r)
        record = hit_sphere(vec3(ox, oy, oz), vec3(dx, dy, dz), sphere, lo, hi)
        hit[None] = record.hit
        t_val[None] = record.t
        point[None] = record.point
        normal[None] = record.normal
        front_face[None] = record.front_face

    test_kernel(*origin, *direction, *center, radius, t_min, t_max)
    return hit[None], t_val[None], point[None], normal[None], front_face[None]


class TestSphereIntersection:
    """hit_sphere against a unit sphere at the origin."""

    def test_head_on_hit_from_outside(self):
        hit, t, p, n, front = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 1
        # Nearest surface point is z=1, four units away
        assert abs(t - 4.0) < 1e-5
        assert abs(p[2] - 1.0) < 1e-5
        # Outward normal already faces the ray
        assert abs(n[2] - 1.0) < 1e-5
        assert front == 1

    def test_offset_ray_misses(self):
        hit, *_ = _run_hit((5.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 0

    def test_origin_inside_hits_back_face(self):
        hit, t, _, n, front = _run_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 1
        assert abs(t - 1.0) < 1e-5
        # Normal faces the ray, opposite the outward normal
        assert abs(n[2] + 1.0) < 1e-5
        assert front == 0

    def test_hit_sphere_unnormalized_direction(self):
        """Test that t scales with direction length."""
        hit, t, p, _, _ = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, -2.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 1
        assert abs(t - 2.0) < 1e-5
        assert abs(p[2] - 1.0) < 1e-5

    def test_near_root_outside_interval_uses_far_root(self):
        """Test that the larger root is used when the smaller is excluded."""
        hit, t, p, n, front = _run_hit(
            (0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0, t_min=4.5, t_max=10.0
        )
        assert hit == 1
        assert abs(t - 6.0) < 1e-5
        assert abs(p[2] + 1.0) < 1e-5
        assert abs(n[2] - 1.0) < 1e-5
        assert front == 0

    def test_both_roots_outside_interval_miss(self):
        hit, *_ = _run_hit(
            (0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0, t_min=4.5, t_max=5.5
        )
        assert hit == 0

    def test_sphere_behind_ray_miss(self):
        hit, *_ = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 0


class TestDegenerateSpheres:
    """Spheres with non-positive radius are never hit."""

    def test_zero_radius_never_hit(self):
        hit, *_ = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 0.0)
        assert hit == 0

    def test_negative_radius_never_hit(self):
        """A negative radius would otherwise intersect like |r|."""
        hit, *_ = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), -1.0)
        assert hit == 0

    def test_zero_direction_never_hits(self):
        hit, *_ = _run_hit((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 0
