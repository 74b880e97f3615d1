from __future__ import annotations

from .config import EngineOptions
from .engine import PatternEngine

__all__ = ["EngineOptions", "PatternEngine", "__version__"]

__version__ = "0.1.0"
