"""Tests for the band-parallel renderer.

Tests cover:
- Framebuffer layout and accessors
- Upfront validation (nothing happens for an invalid config)
- Determinism across runs and independence from band size
- Empty-world output matching the analytic sky gradient
- Noise decreasing with samples per pixel
- The coroutine entry point, cancellation and interleaved renders
- Progress callbacks and the diagnostics logger
"""

import asyncio
import logging

import numpy as np
import pytest


def _sky_reference(width, height):
    """Compute the expected empty-world image with NumPy (spp=1, depth=0)."""
    aspect = width / height
    viewport_h = 2.0
    viewport_w = aspect * viewport_h
    lower_left = np.array([-viewport_w / 2.0, -viewport_h / 2.0, -1.0])

    ys, xs = np.mgrid[0:height, 0:width]
    u = (xs + 0.5) / width
    v = (height - 1 - ys + 0.5) / height
    directions = np.stack(
        [lower_left[0] + u * viewport_w, lower_left[1] + v * viewport_h, np.full(u.shape, -1.0)],
        axis=-1,
    )
    directions /= np.linalg.norm(directions, axis=-1, keepdims=True)
    t = 0.5 * (directions[..., 1:2] + 1.0)
    color = (1.0 - t) * np.array([1.0, 1.0, 1.0]) + t * np.array([0.5, 0.7, 1.0])
    return (np.minimum(np.sqrt(color), 0.999) * 256.0).astype(np.int32)


class TestFramebuffer:
    """Tests for the Framebuffer value type."""

    def test_length_mismatch_raises(self):
        from vexray.core.renderer import Framebuffer

        with pytest.raises(ValueError):
            Framebuffer(width=2, height=2, data=bytes(15))

    def test_pixel_access(self):
        from vexray.core.renderer import Framebuffer

        data = bytes(range(2 * 1 * 4))
        fb = Framebuffer(width=2, height=1, data=data)
        assert len(fb) == 8
        assert fb.pixel(0, 0) == (0, 1, 2, 3)
        assert fb.pixel(1, 0) == (4, 5, 6, 7)
        with pytest.raises(IndexError):
            fb.pixel(2, 0)

    def test_to_numpy_is_read_only_view(self):
        from vexray.core.renderer import Framebuffer

        fb = Framebuffer(width=3, height=2, data=bytes(24))
        arr = fb.to_numpy()
        assert arr.shape == (2, 3, 4)
        with pytest.raises(ValueError):
            arr[0, 0, 0] = 1


class TestRendererValidation:
    """Invalid input is rejected before any work."""

    @pytest.mark.parametrize("rows", [0, -1, 1.5, True])
    def test_invalid_rows_per_task(self, rows):
        from vexray.core.renderer import Renderer

        with pytest.raises(ValueError):
            Renderer(rows_per_task=rows)

    @pytest.mark.parametrize(
        "overrides", [{"width": 0}, {"height": 0}, {"samples_per_pixel": 0}, {"max_depth": -1}]
    )
    def test_invalid_config_raises_before_work(self, overrides):
        from vexray.core.config import InvalidConfigError, RenderConfig
        from vexray.core.renderer import render_sync
        from vexray.scene.world import World

        world = World()
        calls = []
        with pytest.raises(InvalidConfigError):
            render_sync(RenderConfig(**overrides), world, progress=lambda d, t: calls.append(d))
        assert calls == []
        # The world was never frozen, so setup may continue
        assert not world.frozen

    def test_bands_cover_every_row_once(self):
        from vexray.core.renderer import Renderer

        assert Renderer(rows_per_task=4).bands(10) == [(0, 4), (4, 4), (8, 2)]
        assert Renderer(rows_per_task=16).bands(3) == [(0, 3)]


class TestRenderOutput:
    """Tests for the rendered bytes."""

    def test_buffer_size(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import render_sync

        fb = render_sync(RenderConfig(width=12, height=5, samples_per_pixel=2, max_depth=2), two_sphere_world)
        assert (fb.width, fb.height) == (12, 5)
        assert len(fb.data) == 12 * 5 * 4
        assert np.all(fb.to_numpy()[..., 3] == 255)

    def test_single_pixel_image(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import render_sync

        fb = render_sync(RenderConfig(width=1, height=1, samples_per_pixel=1, max_depth=1), two_sphere_world)
        assert len(fb.data) == 4
        assert fb.pixel(0, 0)[3] == 255

    def test_world_is_frozen_by_render(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import render_sync

        render_sync(RenderConfig(width=4, height=2, samples_per_pixel=1, max_depth=1), two_sphere_world)
        assert two_sphere_world.frozen
        with pytest.raises(RuntimeError):
            two_sphere_world.add_sphere((1.0, 0.0, -1.0), 0.5)

    def test_deterministic_across_runs(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import render_sync

        config = RenderConfig(width=24, height=12, samples_per_pixel=4, max_depth=3, seed=11)
        first = render_sync(config, two_sphere_world)
        second = render_sync(config, two_sphere_world)
        assert first.data == second.data

    def test_seed_changes_noise(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import render_sync

        config = RenderConfig(width=24, height=12, samples_per_pixel=4, max_depth=3, seed=1)
        other = RenderConfig(width=24, height=12, samples_per_pixel=4, max_depth=3, seed=2)
        assert render_sync(config, two_sphere_world).data != render_sync(other, two_sphere_world).data

    def test_band_size_does_not_change_output(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import Renderer

        config = RenderConfig(width=24, height=12, samples_per_pixel=4, max_depth=3, seed=5)
        outputs = {
            rows: Renderer(rows_per_task=rows).render_sync(config, two_sphere_world).data
            for rows in (1, 7, 12, 64)
        }
        assert len(set(outputs.values())) == 1

    def test_empty_world_matches_sky_gradient(self):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import render_sync
        from vexray.scene.world import World

        config = RenderConfig(width=32, height=16, samples_per_pixel=1, max_depth=0)
        fb = render_sync(config, World())
        pixels = fb.to_numpy().astype(np.int32)
        expected = _sky_reference(32, 16)
        assert np.abs(pixels[..., :3] - expected).max() <= 1
        # Top of the image is bluer than the bottom
        assert pixels[0, 16, 0] < pixels[-1, 16, 0]

    def test_noise_decreases_with_samples(self, two_sphere_world):
        """Test that two seeds agree more closely at higher sample counts."""
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import render_sync

        def seed_difference(spp):
            images = [
                render_sync(
                    RenderConfig(width=32, height=16, samples_per_pixel=spp, max_depth=5, seed=seed),
                    two_sphere_world,
                ).to_numpy().astype(np.float64)
                for seed in (0, 1)
            ]
            return float(np.mean(np.abs(images[0] - images[1])))

        assert seed_difference(64) < seed_difference(4)


class TestAsyncRender:
    """Tests for the coroutine entry point."""

    def test_async_matches_sync(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import render, render_sync

        config = RenderConfig(width=16, height=8, samples_per_pixel=2, max_depth=3)
        async_fb = asyncio.run(render(config, two_sphere_world, rows_per_task=3))
        assert async_fb.data == render_sync(config, two_sphere_world).data

    def test_async_invalid_config_raises(self):
        from vexray.core.config import InvalidConfigError, RenderConfig
        from vexray.core.renderer import render
        from vexray.scene.world import World

        with pytest.raises(InvalidConfigError):
            asyncio.run(render(RenderConfig(width=0), World()))

    def test_interleaved_renders_do_not_mix_scenes(self, two_sphere_world):
        """Test two renders sharing the event loop each see their own world."""
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import Renderer, render_sync
        from vexray.scene.world import World

        config = RenderConfig(width=16, height=8, samples_per_pixel=2, max_depth=2)
        empty = World()
        expected_spheres = render_sync(config, two_sphere_world).data
        expected_empty = render_sync(config, empty).data

        async def both():
            renderer = Renderer(rows_per_task=1)
            return await asyncio.gather(
                renderer.render(config, two_sphere_world),
                renderer.render(config, empty),
            )

        spheres_fb, empty_fb = asyncio.run(both())
        assert spheres_fb.data == expected_spheres
        assert empty_fb.data == expected_empty
        assert expected_spheres != expected_empty

    def test_cancellation_between_bands(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import Renderer

        config = RenderConfig(width=8, height=8, samples_per_pixel=1, max_depth=1)
        seen = []

        async def cancel_early():
            task = asyncio.ensure_future(
                Renderer(rows_per_task=1, progress=lambda d, t: seen.append(d)).render(
                    config, two_sphere_world
                )
            )
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(cancel_early())
        assert 0 < len(seen) < 8


class TestProgressAndLogging:
    """Tests for progress callbacks and diagnostics."""

    def test_progress_reports_every_band(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import Renderer

        calls = []
        renderer = Renderer(rows_per_task=3, progress=lambda done, total: calls.append((done, total)))
        renderer.render_sync(RenderConfig(width=4, height=8, samples_per_pixel=1, max_depth=1), two_sphere_world)
        assert calls == [(3, 8), (6, 8), (8, 8)]

    def test_iter_bands_yields_progress_and_returns_framebuffer(self, two_sphere_world):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import Framebuffer, Renderer

        gen = Renderer(rows_per_task=2).iter_bands(
            RenderConfig(width=4, height=4, samples_per_pixel=1, max_depth=1), two_sphere_world
        )
        assert next(gen) == (2, 4)
        assert next(gen) == (4, 4)
        with pytest.raises(StopIteration) as done:
            next(gen)
        assert isinstance(done.value.value, Framebuffer)

    def test_diagnostics_logger_receives_messages(self, two_sphere_world, caplog):
        from vexray.core.config import RenderConfig
        from vexray.core.renderer import Renderer

        diagnostics = logging.getLogger("vexray.tests.diagnostics")
        with caplog.at_level(logging.DEBUG, logger="vexray.tests.diagnostics"):
            Renderer(rows_per_task=2, diagnostics=diagnostics).render_sync(
                RenderConfig(width=4, height=4, samples_per_pixel=1, max_depth=1), two_sphere_world
            )

        records = [r for r in caplog.records if r.name == "vexray.tests.diagnostics"]
        messages = [r.getMessage() for r in records]
        assert any(m.startswith("Rendering 4x4") for m in messages)
        assert any(m.startswith("Rendered rows 2-3") for m in messages)
        assert any(m.startswith("Render finished") for m in messages)
