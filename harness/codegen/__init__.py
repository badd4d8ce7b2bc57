"""Code generation of the application entry point."""

from __future__ import annotations

from .aliases import BLANK_ALIAS, resolve_aliases
from .generator import CodeGenerationError, CodeGenerator, TEMPLATE_VERSION

__all__ = [
    "BLANK_ALIAS",
    "CodeGenerationError",
    "CodeGenerator",
    "TEMPLATE_VERSION",
    "resolve_aliases",
]
