"""Handle on a freshly built application binary."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List


@dataclass(frozen=True)
class App:
    """A runnable binary plus the values its generated flags expect."""

    binary_path: Path
    import_path: str
    src_path: Path

    def command(self, run_mode: str = "", port: int = 0) -> List[str]:
        """Return argv for starting the binary; ``port=0`` defers to app.conf."""
        return [
            str(self.binary_path),
            f"-runMode={run_mode}",
            f"-port={port}",
            f"-importPath={self.import_path}",
            f"-srcPath={self.src_path}",
        ]


def source_root_for(base_path: Path, import_path: str) -> Path:
    """Return the directory that ``import_path`` is relative to (the GOPATH ``src``)."""
    parts = [part for part in import_path.split("/") if part]
    if parts and list(base_path.parts[-len(parts) :]) == parts:
        return Path(*base_path.parts[: -len(parts)])
    return base_path.parent


__all__ = ["App", "source_root_for"]
