"""Tests for runtime initialisation and logging setup.

Successful init_runtime() calls are not made here: re-initialising Taichi
mid-session would invalidate every field the other tests rely on.
"""

import logging

import pytest


class TestInitRuntime:
    """Argument checking happens before Taichi is touched."""

    def test_unknown_arch_raises(self):
        from vexray.runtime import init_runtime

        with pytest.raises(ValueError, match="Unknown Taichi arch"):
            init_runtime("tpu")

    def test_non_positive_threads_raises(self):
        from vexray.runtime import init_runtime

        with pytest.raises(ValueError, match="num_threads"):
            init_runtime("cpu", num_threads=0)


class TestConfigureLogging:
    """Tests for the script-side logging setup."""

    def test_installs_single_handler(self):
        from vexray.diagnostics import configure_logging

        root = logging.getLogger("vexray")
        before = list(root.handlers)
        try:
            configure_logging(logging.DEBUG)
            configure_logging(logging.WARNING)
            added = [h for h in root.handlers if h not in before]
            assert len(added) == 1
            assert root.level == logging.WARNING
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    root.removeHandler(handler)
            root.setLevel(logging.NOTSET)

    def test_format_has_millisecond_timestamp(self):
        from vexray.diagnostics import LOG_FORMAT

        assert "%(msecs)03d" in LOG_FORMAT

    def test_replaces_previously_installed_handler(self):
        from vexray import diagnostics

        root = logging.getLogger("vexray")
        before = list(root.handlers)
        try:
            diagnostics.configure_logging()
            first = diagnostics._installed_handler
            diagnostics.configure_logging()
            second = diagnostics._installed_handler
            assert first is not second
            assert first not in root.handlers
            assert second in root.handlers
            assert not hasattr(second, "_vexray_handler")
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    root.removeHandler(handler)
            root.setLevel(logging.NOTSET)
