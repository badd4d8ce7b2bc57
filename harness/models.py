"""Core data models shared across harness components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

AliasTable = Dict[str, str]
"""Mapping from import path to the alias used for it in generated source."""


@dataclass(frozen=True)
class TypeExpr:
    """Source-level type expression that can be re-emitted under another qualifier.

    ``expr`` holds the unqualified text (``*User``, ``[]string``) and
    ``pkg_index`` the offset at which a package qualifier is inserted, so
    ``TypeExpr("*User", "models", 1).type_name("m0")`` yields ``*m0.User``.
    """

    expr: str
    pkg_name: str = ""
    pkg_index: int = 0
    valid: bool = True

    def type_name(self, pkg_override: str = "") -> str:
        pkg_name = pkg_override or self.pkg_name
        if not pkg_name:
            return self.expr
        return f"{self.expr[: self.pkg_index]}{pkg_name}.{self.expr[self.pkg_index :]}"


INVALID_TYPE = TypeExpr(expr="", valid=False)


@dataclass(frozen=True)
class MethodArg:
    """A single parameter of a controller action."""

    name: str
    type_expr: TypeExpr
    import_path: str = ""


@dataclass(frozen=True)
class RenderCall:
    """Argument names passed to a ``Render`` call ending on ``line``."""

    line: int
    names: Tuple[str, ...]


@dataclass(frozen=True)
class MethodSpec:
    """An action method discovered on a controller type."""

    name: str
    args: Tuple[MethodArg, ...] = ()
    render_calls: Tuple[RenderCall, ...] = ()


@dataclass(frozen=True)
class TypeInfo:
    """A controller or test-suite struct and the actions declared on it."""

    struct_name: str
    import_path: str
    package_name: str
    method_specs: Tuple[MethodSpec, ...] = ()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.import_path, self.struct_name)


@dataclass(frozen=True)
class SourceInfo:
    """Aggregate result of analysing the application source roots."""

    controller_specs: Tuple[TypeInfo, ...] = ()
    test_suites: Tuple[TypeInfo, ...] = ()
    validation_keys: Mapping[str, Mapping[int, str]] = field(default_factory=dict)
    init_import_paths: Tuple[str, ...] = ()

    def with_init_imports(self, paths: Iterable[str]) -> "SourceInfo":
        """Return a copy with ``paths`` appended to the side-effect imports."""
        merged: List[str] = list(self.init_import_paths)
        for path in paths:
            if path and path not in merged:
                merged.append(path)
        return replace(self, init_import_paths=tuple(merged))


@dataclass
class CompileError:
    """Structured description of a failed build, rendered directly by callers.

    An empty ``path`` marks an error that could not be tied to a source file.
    ``meta_error`` is only set when reading the offending file itself failed.
    """

    source_type: str
    title: str
    description: str = ""
    path: str = ""
    line: int = 0
    source_lines: List[str] = field(default_factory=list)
    meta_error: str = ""

    @property
    def is_localized(self) -> bool:
        return bool(self.path)

    def context(self, radius: int = 5) -> List[Tuple[int, str, bool]]:
        """Return ``(line_number, text, is_error_line)`` around the error line."""
        if not self.source_lines or self.line <= 0:
            return []
        start = max(1, self.line - radius)
        end = min(len(self.source_lines), self.line + radius)
        return [
            (number, self.source_lines[number - 1], number == self.line)
            for number in range(start, end + 1)
        ]

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    def format(self, radius: int = 3) -> str:
        """Render the error as plain text for console output."""
        header = f"{self.title}: {self.description}" if self.description else self.title
        lines = [header]
        if self.path:
            location = f"{self.path}:{self.line}" if self.line else self.path
            lines.append(f"  at {location}")
        for number, text, is_error in self.context(radius):
            marker = ">" if is_error else " "
            lines.append(f"  {marker} {number:4d} | {text}")
        if self.meta_error:
            lines.append(f"  ({self.meta_error})")
        return "\n".join(lines)


class HarnessError(RuntimeError):
    """Base class for harness failures."""


class BuildError(HarnessError):
    """Raised when a build attempt ends in the failed state."""

    def __init__(self, error: CompileError) -> None:
        message = error.description or error.title
        if error.path:
            message = f"{error.path}:{error.line}: {message}"
        super().__init__(message)
        self.error = error


def source_error(
    title: str,
    description: str,
    *,
    path: str = "",
    line: int = 0,
    source_lines: Optional[List[str]] = None,
    source_type: str = "Go code",
) -> CompileError:
    """Build a ``CompileError`` for failures that originate in application source."""
    return CompileError(
        source_type=source_type,
        title=title,
        description=description,
        path=path,
        line=line,
        source_lines=list(source_lines or []),
    )


__all__ = [
    "AliasTable",
    "BuildError",
    "CompileError",
    "HarnessError",
    "INVALID_TYPE",
    "MethodArg",
    "MethodSpec",
    "RenderCall",
    "SourceInfo",
    "TypeExpr",
    "TypeInfo",
    "source_error",
]
