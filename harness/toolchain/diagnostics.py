"""Translation of Go toolchain output into ``CompileError`` records."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ..logging import get_logger
from ..models import CompileError

SOURCE_TYPE = "Go code"
TITLE = "Go Compilation Error"
UNPARSED_DESCRIPTION = "See console output for build error."

_DIAGNOSTIC_LINE = re.compile(r"^([^:#\n]+):(\d+):(\d+:)? (.*)$", re.MULTILINE)


class DiagnosticParser:
    """Extracts the first ``path:line:[col:] message`` diagnostic from build output."""

    def __init__(self, root: Path | None = None, *, logger: logging.Logger | None = None) -> None:
        self.root = root
        self.logger = logger or get_logger("diagnostics")

    def parse(self, output: str | bytes) -> CompileError:
        text = output.decode("utf-8", errors="replace") if isinstance(output, bytes) else output
        match = _DIAGNOSTIC_LINE.search(text)
        if match is None:
            self.logger.error("Failed to parse build errors:\n%s", text.rstrip())
            return CompileError(
                source_type=SOURCE_TYPE,
                title=TITLE,
                description=UNPARSED_DESCRIPTION,
            )

        rel_path = match.group(1).strip()
        error = CompileError(
            source_type=SOURCE_TYPE,
            title=TITLE,
            description=match.group(4).strip(),
            path=rel_path,
            line=int(match.group(2)),
        )

        abs_path = self._absolute(rel_path)
        try:
            error.source_lines = abs_path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            reason = exc.strerror if isinstance(exc, OSError) and exc.strerror else str(exc)
            error.meta_error = f"{abs_path}: {reason}"
            self.logger.error(error.meta_error)
        return error

    def _absolute(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        base = self.root if self.root is not None else Path.cwd()
        return (base / candidate).resolve()


__all__ = ["DiagnosticParser", "SOURCE_TYPE", "TITLE", "UNPARSED_DESCRIPTION"]
