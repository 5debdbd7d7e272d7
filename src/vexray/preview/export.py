"""Image export for rendered framebuffers.

The renderer hands back raw RGBA8 bytes; this module is the sink that turns
them into files. Encoding errors surface as the OSError Pillow raises, kept
apart from the renderer's InvalidConfigError.

Files are written as 8-bit RGBA; Pillow picks the encoder from the
extension, so .png is the normal choice.

Example:
    >>> from vexray.preview.export import save_png
    >>> framebuffer = render_sync(config, world)
    >>> save_png(framebuffer, "render.png")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from vexray.core.renderer import Framebuffer

logger = logging.getLogger(__name__)


def framebuffer_to_image(framebuffer: Framebuffer) -> PILImage.Image:
    """Wrap a framebuffer as a Pillow RGBA image (top-left origin)."""
    return PILImage.frombytes("RGBA", (framebuffer.width, framebuffer.height), framebuffer.data)


def save_png(framebuffer: Framebuffer, filepath: str | Path) -> Path:
    """Save a framebuffer to disk.

    Args:
        framebuffer: Finished render.
        filepath: Destination; the suffix selects the format.

    Returns:
        The path written.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(filepath)
    framebuffer_to_image(framebuffer).save(path)
    logger.debug("Wrote %dx%d image to %s", framebuffer.width, framebuffer.height, path)
    return path


def compute_rmse(
    image_a: npt.NDArray[np.generic],
    image_b: npt.NDArray[np.generic],
) -> float:
    """Per-element RMS difference of two equally shaped arrays.

    Used by tests to compare renders; 0.0 means identical.

    Raises:
        ValueError: On a shape mismatch.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Cannot compare arrays of shape {image_a.shape} and {image_b.shape}")

    residual = np.subtract(image_a, image_b, dtype=np.float64)
    return float(np.sqrt(np.mean(np.square(residual))))
