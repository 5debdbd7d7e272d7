"""Cameras.

pinhole: PinholeCamera turns viewport coordinates (u right, v up, both
in [0, 1]) into world-space rays, on the host through ray_for() and in
kernels through setup_camera() followed by get_ray().
"""

from .pinhole import PinholeCamera, get_camera_info, get_ray, setup_camera

__all__ = [
    "PinholeCamera",
    "setup_camera",
    "get_ray",
    "get_camera_info",
]
