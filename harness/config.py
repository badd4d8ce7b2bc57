"""Configuration loading for the build harness (harness.yml)."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = "harness.yml"
DEFAULT_FRAMEWORK_IMPORT_PATH = "github.com/robfig/revel"
DEFAULT_IMPORT_ERROR_PATTERN = r'import "([^"]+)": cannot find package'


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass(frozen=True)
class SourceRoot:
    """A directory of Go source together with the import path it is served under."""

    path: Path
    import_path: str


@dataclass
class BuildConfig:
    """Toolchain settings used by the build orchestrator."""

    tags: str = ""
    go: str = "go"
    bin_dir: Optional[Path] = None
    import_error_pattern: str = DEFAULT_IMPORT_ERROR_PATTERN

    def compiled_import_error_pattern(self) -> "re.Pattern[str]":
        try:
            pattern = re.compile(self.import_error_pattern)
        except re.error as exc:
            raise ConfigError(f"Invalid build.import_error_pattern: {exc}") from exc
        if pattern.groups < 1:
            raise ConfigError("build.import_error_pattern must capture the package path")
        return pattern


@dataclass
class ModuleConfig:
    """An additional source root whose controllers are registered with the app."""

    path: Path
    import_path: str


@dataclass
class HarnessConfig:
    """Represents the settings defined in harness.yml."""

    base_path: Path
    import_path: str = ""
    build: BuildConfig = field(default_factory=BuildConfig)
    db_import: Optional[str] = None
    framework_import_path: str = DEFAULT_FRAMEWORK_IMPORT_PATH
    modules: List[ModuleConfig] = field(default_factory=list)

    @property
    def app_path(self) -> Path:
        return self.base_path / "app"

    @property
    def tmp_path(self) -> Path:
        return self.app_path / "tmp"

    def code_roots(self) -> List[SourceRoot]:
        """Return the app root, module roots, then the test root when present."""
        if not self.import_path:
            raise ConfigError(
                "Application import path is not configured; set app.import_path or pass --import-path"
            )
        roots = [SourceRoot(path=self.app_path, import_path=f"{self.import_path}/app")]
        for module in self.modules:
            roots.append(SourceRoot(path=module.path / "app", import_path=f"{module.import_path}/app"))
        tests_path = self.base_path / "tests"
        if tests_path.is_dir():
            roots.append(SourceRoot(path=tests_path, import_path=f"{self.import_path}/tests"))
        return roots

    def resolved_bin_dir(self) -> Path:
        """Directory receiving the built binary: build.bin_dir, $GOBIN or $GOPATH/bin."""
        if self.build.bin_dir is not None:
            return self.build.bin_dir
        gobin = os.environ.get("GOBIN")
        if gobin:
            return Path(gobin)
        gopath = os.environ.get("GOPATH", "")
        first = gopath.split(os.pathsep)[0] if gopath else ""
        if first:
            return Path(first) / "bin"
        return Path.home() / "go" / "bin"


def load_config(config_path: Path, *, import_path: str | None = None) -> HarnessConfig:
    """Load configuration from disk, overriding the import path when given."""
    config_file = _resolve_config_path(config_path)
    base_path = config_file.parent.resolve()

    if not config_file.exists():
        return HarnessConfig(base_path=base_path, import_path=import_path or "")

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    app_data = _as_dict(data.get("app"))
    configured_import = _as_str(app_data.get("import_path"))

    build_data = _as_dict(data.get("build"))
    build = BuildConfig()
    if build_data:
        build.tags = _as_str(build_data.get("tags")) or ""
        build.go = _as_str(build_data.get("go")) or "go"
        bin_dir = _as_str(build_data.get("bin_dir"))
        build.bin_dir = base_path / bin_dir if bin_dir else None
        build.import_error_pattern = (
            _as_str(build_data.get("import_error_pattern")) or DEFAULT_IMPORT_ERROR_PATTERN
        )
        build.compiled_import_error_pattern()

    db_data = _as_dict(data.get("db"))
    db_import = _as_str(db_data.get("import")) if db_data else None

    framework_data = _as_dict(data.get("framework"))
    framework_import_path = (
        _as_str(framework_data.get("import_path")) if framework_data else None
    ) or DEFAULT_FRAMEWORK_IMPORT_PATH

    modules = [
        ModuleConfig(path=(base_path / module["path"]).resolve(), import_path=module["import_path"])
        for module in _as_module_list(data.get("modules"))
    ]

    return HarnessConfig(
        base_path=base_path,
        import_path=import_path or configured_import or "",
        build=build,
        db_import=db_import or None,
        framework_import_path=framework_import_path,
        modules=modules,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_module_list(value: Any) -> List[Dict[str, str]]:
    if value is None:
        return []
    if not isinstance(value, Sequence) or isinstance(value, str):
        raise ConfigError("modules must be a list of {path, import_path} mappings")
    modules: List[Dict[str, str]] = []
    for entry in value:
        entry_data = _as_dict(entry)
        path = _as_str(entry_data.get("path"))
        module_import = _as_str(entry_data.get("import_path"))
        if not path or not module_import:
            raise ConfigError("Each module needs both path and import_path")
        modules.append({"path": path, "import_path": module_import})
    return modules


__all__ = [
    "BuildConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_FRAMEWORK_IMPORT_PATH",
    "DEFAULT_IMPORT_ERROR_PATTERN",
    "HarnessConfig",
    "ModuleConfig",
    "SourceRoot",
    "load_config",
]
