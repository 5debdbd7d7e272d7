"""Pytest configuration for vexray tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the module-level fields of the scene and camera modules.
    """
    from vexray.runtime import init_runtime

    init_runtime("cpu")
    yield


@pytest.fixture(autouse=True)
def clear_scene_tables():
    """Clear the device primitive tables before and after each test."""
    # Import here so Taichi is initialized before fields are declared
    from vexray.scene.intersection import clear_scene

    clear_scene()
    yield
    clear_scene()


@pytest.fixture
def two_sphere_world():
    """The demo scene: a small sphere resting on a huge ground sphere."""
    from vexray.scene.world import World

    world = World()
    world.add_sphere((0.0, 0.0, -1.0), 0.5)
    world.add_sphere((0.0, -100.5, -1.0), 100.0)
    return world
