#!/usr/bin/env python3
"""Render the two-sphere demo scene.

This script renders a small sphere resting on a very large "ground" sphere
under the sky gradient, the classic first diffuse scene. It sets up logging
and the Taichi runtime, builds the world, renders it as a coroutine and
saves the result as an RGBA PNG.

Usage:
    python examples/render_spheres.py [options]

Options:
    --width WIDTH           Image width in pixels (default: 1920)
    --height HEIGHT         Image height in pixels (default: 1080)
    --samples SAMPLES       Samples per pixel (default: 100)
    --max-depth DEPTH       Maximum bounces per path (default: 50)
    --seed SEED             Random seed (default: 0)
    --rows-per-task ROWS    Scanlines per render band (default: 16)
    --threads N             CPU worker threads (default: Taichi's choice)
    --output OUTPUT         Output file path (default: render.png)
    --quiet                 Only log warnings and errors

Example:
    python examples/render_spheres.py --width 400 --height 225 --samples 20
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from vexray.diagnostics import configure_logging
from vexray.runtime import init_runtime

logger = logging.getLogger("vexray.examples.render_spheres")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the two-sphere demo scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=1920, help="Image width in pixels (default: 1920)")
    parser.add_argument("--height", type=int, default=1080, help="Image height in pixels (default: 1080)")
    parser.add_argument("--samples", type=int, default=100, help="Samples per pixel (default: 100)")
    parser.add_argument("--max-depth", type=int, default=50, help="Maximum bounces per path (default: 50)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument(
        "--rows-per-task",
        type=int,
        default=16,
        help="Scanlines per render band (default: 16)",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="CPU worker threads (default: Taichi's choice)",
    )
    parser.add_argument("--output", type=str, default="render.png", help="Output file path (default: render.png)")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    return parser.parse_args(argv)


def build_world():
    """Create the demo world: a unit-diameter sphere on a huge ground sphere."""
    # Lazy import to allow Taichi initialization first
    from vexray.scene.world import World

    world = World()
    world.add_sphere((0.0, 0.0, -1.0), 0.5)
    world.add_sphere((0.0, -100.5, -1.0), 100.0)
    return world


def render_spheres(
    width: int = 1920,
    height: int = 1080,
    samples_per_pixel: int = 100,
    max_depth: int = 50,
    seed: int = 0,
    rows_per_task: int = 16,
    output_path: str = "render.png",
) -> Path:
    """Render the demo scene and save it to file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Camera rays averaged per pixel.
        max_depth: Maximum diffuse bounces per path.
        seed: Random seed.
        rows_per_task: Scanlines per render band.
        output_path: Output file path (PNG).

    Returns:
        Path to the saved image file.

    Raises:
        InvalidConfigError: If the configuration is invalid.
        OSError: If the image cannot be written.
    """
    from vexray.core.config import RenderConfig
    from vexray.core.renderer import render
    from vexray.preview.export import save_png

    config = RenderConfig(
        width=width,
        height=height,
        samples_per_pixel=samples_per_pixel,
        max_depth=max_depth,
        seed=seed,
    )
    world = build_world()

    def progress_callback(rows_done: int, total_rows: int) -> None:
        logger.debug("Progress: %d/%d rows (%.1f%%)", rows_done, total_rows, 100.0 * rows_done / total_rows)

    framebuffer = asyncio.run(
        render(config, world, rows_per_task=rows_per_task, progress=progress_callback)
    )
    return save_png(framebuffer, output_path)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(logging.WARNING if args.quiet else logging.INFO)

    try:
        init_runtime("cpu", num_threads=args.threads)
        output_file = render_spheres(
            width=args.width,
            height=args.height,
            samples_per_pixel=args.samples,
            max_depth=args.max_depth,
            seed=args.seed,
            rows_per_task=args.rows_per_task,
            output_path=args.output,
        )
    except (ValueError, OSError) as e:
        logger.error("Error: %s", e)
        return 1

    logger.info("Image saved to %s", output_file.absolute())
    return 0


if __name__ == "__main__":
    sys.exit(main())
