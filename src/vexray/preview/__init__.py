"""Preview module for rendered output.

Components:
    export: Framebuffer to Pillow image / PNG file, image comparison

Example:
    >>> from vexray.preview import save_png
    >>> save_png(framebuffer, "render.png")
"""

from vexray.preview.export import (
    compute_rmse,
    framebuffer_to_image,
    save_png,
)

__all__ = [
    "framebuffer_to_image",
    "save_png",
    "compute_rmse",
]
