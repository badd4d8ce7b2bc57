"""Build orchestration: analyse, generate, compile, retry missing imports."""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Optional, Set

from .analyzers import Analyzer, SourceAnalyzer
from .app import App, source_root_for
from .codegen import CodeGenerator
from .config import HarnessConfig
from .logging import get_logger
from .models import BuildError, CompileError, SourceInfo
from .toolchain import DiagnosticParser, GoToolchain, ToolchainError

MAIN_FILENAME = "main.go"
PREPARATION_SOURCE_TYPE = "harness"


class Builder:
    """Turns the configured application source into a runnable binary.

    ``build`` returns an :class:`App` or raises :class:`BuildError` whose
    ``error`` attribute holds the structured ``CompileError``.
    """

    def __init__(
        self,
        config: HarnessConfig,
        *,
        analyzer: Analyzer | None = None,
        generator: CodeGenerator | None = None,
        toolchain: GoToolchain | None = None,
        diagnostics: DiagnosticParser | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or get_logger("builder")
        self.analyzer = analyzer or SourceAnalyzer(
            config.framework_import_path, logger=self.logger.getChild("analyzer")
        )
        self.generator = generator or CodeGenerator(
            config.framework_import_path, logger=self.logger.getChild("codegen")
        )
        self.toolchain = toolchain or GoToolchain(
            config.build.go, logger=self.logger.getChild("toolchain")
        )
        self.diagnostics = diagnostics or DiagnosticParser(
            config.base_path, logger=self.logger.getChild("diagnostics")
        )
        self._import_error_pattern: re.Pattern[str] = (
            config.build.compiled_import_error_pattern()
        )

    @property
    def binary_path(self) -> Path:
        name = self.config.base_path.name
        if os.name == "nt":
            name += ".exe"
        return self.config.resolved_bin_dir() / name

    @property
    def main_path(self) -> Path:
        return self.config.tmp_path / MAIN_FILENAME

    def build(self) -> App:
        """Analyse the configured code roots and build the application."""
        self.logger.info("Building %s", self.config.import_path or self.config.base_path)
        source_info = self.analyzer.analyze(self.config.code_roots())
        return self.build_source(source_info)

    def generate(self, source_info: Optional[SourceInfo] = None) -> str:
        """Return the entry-point source without writing or compiling it."""
        if source_info is None:
            source_info = self.analyzer.analyze(self.config.code_roots())
        if self.config.db_import:
            source_info = source_info.with_init_imports([self.config.db_import])
        aliases = self.generator.resolve_aliases(source_info)
        return self.generator.render(source_info, aliases)

    def build_source(self, source_info: SourceInfo) -> App:
        """Generate, write and compile ``source_info``, fetching missing imports once each."""
        self._prepare(self.generate(source_info))

        binary = self.binary_path
        package = f"{self.config.import_path}/app/tmp"
        attempted: Set[str] = set()
        while True:
            try:
                result = self.toolchain.build(
                    package, binary, tags=self.config.build.tags, cwd=self.config.base_path
                )
            except ToolchainError as exc:
                raise BuildError(self._preparation_error("Go Toolchain Error", str(exc))) from exc

            if result.ok:
                self.logger.info("Built %s", binary)
                return App(
                    binary_path=binary,
                    import_path=self.config.import_path,
                    src_path=source_root_for(self.config.base_path, self.config.import_path),
                )

            match = self._import_error_pattern.search(result.output)
            if match is None:
                raise BuildError(self.diagnostics.parse(result.output))

            missing = match.group(1)
            if missing in attempted:
                self.logger.debug("Already tried to fetch %s; giving up", missing)
                raise BuildError(self.diagnostics.parse(result.output))
            attempted.add(missing)

            self.logger.info("Fetching missing package %s", missing)
            try:
                fetched = self.toolchain.get(missing, cwd=self.config.base_path)
            except ToolchainError as exc:
                raise BuildError(self._preparation_error("Go Toolchain Error", str(exc))) from exc
            if not fetched.ok:
                self.logger.warning("Failed to fetch %s", missing)
                raise BuildError(self.diagnostics.parse(result.output))

    def _prepare(self, source: str) -> None:
        tmp_path = self.config.tmp_path
        if tmp_path.exists():
            try:
                shutil.rmtree(tmp_path)
            except OSError as exc:
                self.logger.error("Failed to remove tmp dir: %s", exc)
                raise BuildError(
                    self._preparation_error(
                        "Build Preparation Error", f"Failed to remove {tmp_path}: {exc}"
                    )
                ) from exc
        try:
            tmp_path.mkdir(parents=True)
            self.main_path.write_text(source, encoding="utf-8")
        except OSError as exc:
            raise BuildError(
                self._preparation_error(
                    "Build Preparation Error", f"Failed to write {self.main_path}: {exc}"
                )
            ) from exc
        self.logger.debug("Wrote %s", self.main_path)

    @staticmethod
    def _preparation_error(title: str, description: str) -> CompileError:
        return CompileError(
            source_type=PREPARATION_SOURCE_TYPE,
            title=title,
            description=description,
        )


__all__ = ["Builder", "MAIN_FILENAME"]
