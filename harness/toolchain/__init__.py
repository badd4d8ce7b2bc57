"""Go toolchain invocation and diagnostic parsing."""

from __future__ import annotations

from .diagnostics import DiagnosticParser
from .go import CommandResult, GoToolchain, ToolchainError

__all__ = ["CommandResult", "DiagnosticParser", "GoToolchain", "ToolchainError"]
