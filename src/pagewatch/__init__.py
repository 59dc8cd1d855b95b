"""pagewatch: watch dynamic web pages through a headless browser and notify on change."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("pagewatch")
except Exception:
    __version__ = "0.0.0"
