"""Static analysis of Go application source."""

from __future__ import annotations

from .base import Analyzer
from .go_source import GoFile, GoSourceParser
from .source import SourceAnalyzer

__all__ = [
    "Analyzer",
    "GoFile",
    "GoSourceParser",
    "SourceAnalyzer",
]
