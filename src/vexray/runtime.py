"""Taichi runtime initialisation and shared device state.

The scene and camera live in module-level Taichi fields, so only one render
can own them at a time. ``device_lock`` serialises every upload-and-launch
sequence that touches those fields.

Example:
    >>> from vexray.runtime import init_runtime
    >>> init_runtime(arch="cpu", num_threads=4)
    >>> from vexray.core.renderer import render_sync  # fields are safe to declare now
"""

from __future__ import annotations

import logging
import threading

import taichi as ti

logger = logging.getLogger(__name__)

device_lock = threading.RLock()

_ARCHES = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
    "cuda": ti.cuda,
    "vulkan": ti.vulkan,
    "metal": ti.metal,
}


def init_runtime(
    arch: str = "cpu",
    num_threads: int | None = None,
    debug: bool = False,
) -> str:
    """Initialise the Taichi runtime.

    Must run before importing modules that declare Taichi fields
    (scene, camera, integrator). Calling it again resets the runtime and
    invalidates any fields created so far.

    Args:
        arch: Backend name ("cpu", "gpu", "cuda", "vulkan", "metal").
        num_threads: Maximum CPU worker threads for parallel loops.
            None lets Taichi use every core.
        debug: Enable Taichi's bounds-checking debug mode.

    Returns:
        The backend name that was requested.

    Raises:
        ValueError: If the backend name is unknown or num_threads < 1.
    """
    if arch not in _ARCHES:
        raise ValueError(f"Unknown Taichi arch {arch!r}; expected one of {sorted(_ARCHES)}")

    kwargs: dict[str, object] = {"arch": _ARCHES[arch], "debug": debug, "default_fp": ti.f32}
    if num_threads is not None:
        if num_threads < 1:
            raise ValueError(f"num_threads must be >= 1, got {num_threads}")
        kwargs["cpu_max_num_threads"] = num_threads

    ti.init(**kwargs)
    logger.info("Taichi runtime initialised (arch=%s, threads=%s)", arch, num_threads or "auto")
    return arch
