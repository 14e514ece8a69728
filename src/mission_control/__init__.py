"""Mission Control: a shared task board with a gated review stage and live updates."""

from __future__ import annotations

__version__ = "1.0.0"

__all__ = ["__version__"]
