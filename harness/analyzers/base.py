"""Base class for source analyzers."""

from abc import ABC, abstractmethod
from typing import Sequence

from ..config import SourceRoot
from ..models import SourceInfo


class Analyzer(ABC):
    """Contract for analyzers that turn application source roots into ``SourceInfo``."""

    @abstractmethod
    def analyze(self, roots: Sequence[SourceRoot]) -> SourceInfo:
        """Return the controllers, test suites and validation keys found under ``roots``."""
