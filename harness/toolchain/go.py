"""Adapter for the ``go`` command line tool."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..logging import get_logger, log_command_output
from ..models import HarnessError


class ToolchainError(HarnessError):
    """Raised when the toolchain executable cannot be started."""


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined stdout/stderr of a finished command."""

    args: Sequence[str]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


CommandRunner = Callable[[Sequence[str], Optional[Path]], CommandResult]


class GoToolchain:
    """Runs ``go build`` and ``go get`` and captures their combined output."""

    def __init__(
        self,
        executable: str = "go",
        *,
        runner: CommandRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.executable = executable
        self._runner = runner or self._default_runner
        self.logger = logger or get_logger("toolchain")

    def build(
        self,
        package: str,
        output_path: Path,
        *,
        tags: str = "",
        cwd: Path | None = None,
    ) -> CommandResult:
        args = [self.executable, "build", "-tags", tags, "-o", str(output_path), package]
        return self._run(args, cwd)

    def get(self, package: str, *, cwd: Path | None = None) -> CommandResult:
        return self._run([self.executable, "get", package], cwd)

    def _run(self, args: Sequence[str], cwd: Path | None) -> CommandResult:
        self.logger.debug("Exec: %s", " ".join(args))
        result = self._runner(args, cwd)
        log_command_output(self.logger, args, result.output)
        return result

    def _default_runner(self, args: Sequence[str], cwd: Path | None) -> CommandResult:
        try:
            completed = subprocess.run(
                list(args),
                cwd=str(cwd) if cwd is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolchainError(
                f"Go executable '{self.executable}' not found in PATH."
            ) from exc
        except OSError as exc:
            raise ToolchainError(f"Failed to run {args[0]}: {exc}") from exc
        return CommandResult(args=tuple(args), returncode=completed.returncode, output=completed.stdout or "")


__all__ = ["CommandResult", "CommandRunner", "GoToolchain", "ToolchainError"]
