"""Band-parallel renderer producing RGBA8 framebuffers.

The Renderer wraps the integrator kernel with:
- Upfront validation (InvalidConfigError before any allocation)
- Partitioning of the image into bands of scanlines, one kernel launch each
- A coroutine entry point that yields to the event loop between bands
- Progress callbacks and an explicit diagnostics logger

Each band re-binds the World and camera under vexray.runtime.device_lock,
so renders of different scenes may interleave on the event loop without
seeing each other's device state. Pixel randomness is keyed by pixel
coordinates, so the bytes do not depend on the band size or on how many
CPU threads Taichi uses.

Example:
    >>> import asyncio
    >>> from vexray.core.config import RenderConfig
    >>> from vexray.core.renderer import Renderer
    >>> from vexray.scene.world import World
    >>>
    >>> world = World()
    >>> world.add_sphere((0.0, 0.0, -1.0), 0.5)
    >>> config = RenderConfig(width=200, height=100, samples_per_pixel=10, max_depth=5)
    >>> framebuffer = asyncio.run(Renderer().render(config, world))
    >>> len(framebuffer.data) == 200 * 100 * 4
    True
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from vexray.camera.pinhole import PinholeCamera, setup_camera
from vexray.core.config import InvalidConfigError, RenderConfig
from vexray.core.integrator import render_rows
from vexray.runtime import device_lock
from vexray.scene.world import World

logger = logging.getLogger(__name__)

# Callback receives (rows_completed, total_rows)
ProgressCallback = Callable[[int, int], None]

DEFAULT_ROWS_PER_TASK = 16


@dataclass(frozen=True)
class Framebuffer:
    """A finished RGBA8 image.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        data: width * height * 4 bytes, row-major, row 0 at the top,
            channels in R, G, B, A order.
    """

    width: int
    height: int
    data: bytes

    def __post_init__(self) -> None:
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise ValueError(
                f"Framebuffer data has {len(self.data)} bytes, expected {expected} "
                f"for {self.width}x{self.height} RGBA8"
            )

    def __len__(self) -> int:
        return len(self.data)

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        """Return the (R, G, B, A) bytes of pixel (x, y), y from the top."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} image")
        offset = (y * self.width + x) * 4
        r, g, b, a = self.data[offset : offset + 4]
        return (r, g, b, a)

    def to_numpy(self) -> npt.NDArray[np.uint8]:
        """Return a read-only (height, width, 4) uint8 view of the data."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(self.height, self.width, 4)


class Renderer:
    """Renders a World through a RenderConfig into a Framebuffer.

    Attributes:
        rows_per_task: Number of scanlines rendered per kernel launch.
    """

    def __init__(
        self,
        rows_per_task: int = DEFAULT_ROWS_PER_TASK,
        *,
        progress: ProgressCallback | None = None,
        diagnostics: logging.Logger | None = None,
    ) -> None:
        """Initialize the renderer.

        Args:
            rows_per_task: Scanlines per band (>= 1). Affects scheduling
                granularity only, never the output.
            progress: Optional callback invoked after each band with
                (rows_completed, total_rows).
            diagnostics: Logger receiving render diagnostics. Defaults to
                this module's logger.

        Raises:
            ValueError: If rows_per_task is not a positive integer.
        """
        if isinstance(rows_per_task, bool) or not isinstance(rows_per_task, int) or rows_per_task < 1:
            raise ValueError(f"rows_per_task must be a positive integer, got {rows_per_task!r}")
        self._rows_per_task = rows_per_task
        self._progress = progress
        self._log = diagnostics if diagnostics is not None else logger

    @property
    def rows_per_task(self) -> int:
        return self._rows_per_task

    def bands(self, height: int) -> list[tuple[int, int]]:
        """Split [0, height) into (row_start, row_count) bands."""
        return [
            (start, min(self._rows_per_task, height - start))
            for start in range(0, height, self._rows_per_task)
        ]

    # =========================================================================
    # Rendering
    # =========================================================================

    def _prepare(
        self, config: RenderConfig, world: World
    ) -> tuple[PinholeCamera, npt.NDArray[np.uint8]]:
        config.validate()
        camera = PinholeCamera.from_config(config)
        world.freeze()
        self._log.info(
            "Rendering %dx%d, %d spp, max depth %d, %d primitives, %d bands",
            config.width,
            config.height,
            config.samples_per_pixel,
            config.max_depth,
            len(world),
            len(self.bands(config.height)),
        )
        return camera, np.zeros((config.height, config.width, 4), dtype=np.uint8)

    def _render_band(
        self,
        config: RenderConfig,
        world: World,
        camera: PinholeCamera,
        pixels: npt.NDArray[np.uint8],
        row_start: int,
        row_count: int,
    ) -> None:
        with device_lock:
            world.bind()
            setup_camera(camera)
            render_rows(
                pixels,
                row_start,
                row_count,
                config.width,
                config.height,
                config.samples_per_pixel,
                config.max_depth,
                config.seed,
                config.reflectance,
                1.0 / config.gamma,
            )

    def iter_bands(
        self, config: RenderConfig, world: World
    ) -> Generator[tuple[int, int], None, Framebuffer]:
        """Render band by band, yielding progress after each band.

        This generator is the building block of render_sync() and render().
        Its return value (StopIteration.value) is the finished Framebuffer.

        Yields:
            Tuple of (rows_completed, total_rows).

        Raises:
            InvalidConfigError: Before the first band, if config is invalid.
        """
        camera, pixels = self._prepare(config, world)
        start_time = time.perf_counter()

        rows_done = 0
        for row_start, row_count in self.bands(config.height):
            self._render_band(config, world, camera, pixels, row_start, row_count)
            rows_done += row_count
            self._log.debug("Rendered rows %d-%d", row_start, row_start + row_count - 1)
            if self._progress is not None:
                self._progress(rows_done, config.height)
            yield (rows_done, config.height)

        self._log.info("Render finished in %.3fs", time.perf_counter() - start_time)
        return Framebuffer(width=config.width, height=config.height, data=pixels.tobytes())

    def render_sync(self, config: RenderConfig, world: World) -> Framebuffer:
        """Render to completion on the calling thread.

        Raises:
            InvalidConfigError: If config is invalid; nothing is allocated.
        """
        bands = self.iter_bands(config, world)
        while True:
            try:
                next(bands)
            except StopIteration as done:
                return done.value

    async def render(self, config: RenderConfig, world: World) -> Framebuffer:
        """Render as a coroutine, yielding to the event loop between bands.

        Cancellation takes effect between bands; a cancelled render returns
        nothing, never a partial buffer.

        Raises:
            InvalidConfigError: If config is invalid; nothing is allocated.
        """
        bands = self.iter_bands(config, world)
        while True:
            try:
                next(bands)
            except StopIteration as done:
                return done.value
            await asyncio.sleep(0)


def render_sync(config: RenderConfig, world: World, **kwargs) -> Framebuffer:
    """Render with a default Renderer on the calling thread.

    Keyword arguments are forwarded to Renderer().
    """
    return Renderer(**kwargs).render_sync(config, world)


async def render(config: RenderConfig, world: World, **kwargs) -> Framebuffer:
    """Render with a default Renderer as a coroutine.

    Keyword arguments are forwarded to Renderer().
    """
    return await Renderer(**kwargs).render(config, world)


__all__ = [
    "Framebuffer",
    "InvalidConfigError",
    "ProgressCallback",
    "Renderer",
    "render",
    "render_sync",
]
