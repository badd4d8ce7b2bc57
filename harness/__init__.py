"""Build harness that turns a revel application tree into a runnable binary."""

from __future__ import annotations

from .app import App
from .builder import Builder
from .config import HarnessConfig, load_config
from .models import BuildError, CompileError, SourceInfo

__all__ = [
    "App",
    "BuildError",
    "Builder",
    "CompileError",
    "HarnessConfig",
    "SourceInfo",
    "load_config",
]
