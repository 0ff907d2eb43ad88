"""Project metadata, read from the installed ``litestar-processes`` distribution."""

from __future__ import annotations

import importlib.metadata

__all__ = ("__project__", "__version__")

_DISTRIBUTION = "litestar-processes"

__version__ = importlib.metadata.version(_DISTRIBUTION)
"""Installed version."""
__project__ = importlib.metadata.metadata(_DISTRIBUTION)["Name"]
"""Distribution name."""
