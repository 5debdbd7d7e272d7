"""CPU ray tracer built on Taichi.

This package renders small sphere scenes into RGBA8 framebuffers:
- Camera ray generation with a pinhole camera
- Ray-primitive intersection (spheres, quads) with deterministic tie-breaks
- Diffuse shading with jittered anti-aliasing
- Band-parallel rendering exposed as a coroutine

Subpackages:
    core: Vector/ray math, sampling, configuration, integrator and renderer
    geometry: Shape primitives and intersection algorithms
    scene: World container and device-side primitive tables
    camera: Pinhole camera with ray generation
    preview: Framebuffer export (PNG)

Taichi must be initialised (see vexray.runtime.init_runtime) before any
module that declares Taichi fields is imported.
"""

__version__ = "0.1.0"
