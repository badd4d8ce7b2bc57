"""Rendering of the synthetic ``main.go`` entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from ..analyzers.go_source import default_package_name
from ..config import DEFAULT_FRAMEWORK_IMPORT_PATH
from ..logging import get_logger
from ..models import HarnessError, MethodArg, SourceInfo, TypeInfo
from .aliases import resolve_aliases

TEMPLATE_VERSION = "1"
TEMPLATE_NAME = "main.go.j2"
# Package-level variables declared by the template.
RESERVED_NAMES = ("runMode", "port", "importPath", "srcPath")


class CodeGenerationError(HarnessError):
    """Raised when the entry-point template cannot be rendered."""


def go_string(value: object) -> str:
    """Quote ``value`` as a Go interpreted string literal."""
    return json.dumps(str(value), ensure_ascii=False)


class CodeGenerator:
    """Renders the entry point that registers controllers with the framework."""

    def __init__(
        self,
        framework_import_path: str = DEFAULT_FRAMEWORK_IMPORT_PATH,
        *,
        templates_dir: Path | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.framework_import_path = framework_import_path
        self.framework_alias = default_package_name(framework_import_path)
        self.logger = logger or get_logger("codegen")
        self._env = self._create_env(templates_dir)

    def seed_aliases(self) -> Dict[str, str]:
        """Aliases of the imports the template itself relies on."""
        return {
            "flag": "flag",
            "reflect": "reflect",
            self.framework_import_path: self.framework_alias,
        }

    def resolve_aliases(self, source_info: SourceInfo) -> Dict[str, str]:
        return resolve_aliases(source_info, self.seed_aliases(), RESERVED_NAMES)

    def render(self, source_info: SourceInfo, aliases: Optional[Mapping[str, str]] = None) -> str:
        """Return the generated source; identical inputs give identical output."""
        table = dict(aliases) if aliases is not None else self.resolve_aliases(source_info)
        for import_path, alias in self.seed_aliases().items():
            if table.get(import_path) != alias:
                raise CodeGenerationError(
                    f"Alias table must map {import_path!r} to {alias!r}"
                )
        context = self.build_context(source_info, table)
        try:
            template = self._env.get_template(TEMPLATE_NAME)
            rendered = template.render(**context)
        except TemplateError as exc:
            raise CodeGenerationError(f"Failed to render {TEMPLATE_NAME}: {exc}") from exc
        self.logger.debug(
            "Rendered entry point with %d controllers and %d imports",
            len(context["controllers"]),
            len(context["imports"]),
        )
        return rendered

    def build_context(self, source_info: SourceInfo, aliases: Mapping[str, str]) -> Dict[str, Any]:
        """Flatten ``source_info`` into the plain structure the template consumes."""
        return {
            "version": TEMPLATE_VERSION,
            "fw": self.framework_alias,
            "imports": sorted(((alias, path) for path, alias in aliases.items()), key=lambda item: item[1]),
            "controllers": [_controller_context(spec, aliases) for spec in source_info.controller_specs],
            "validation_keys": [
                (path, sorted(lines.items()))
                for path, lines in sorted(source_info.validation_keys.items())
            ],
            "test_suites": [
                f"{_alias_for(aliases, suite.import_path)}.{suite.struct_name}"
                for suite in source_info.test_suites
            ],
        }

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        env = Environment(
            loader=FileSystemLoader(directories),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        env.filters["go_string"] = go_string
        return env


def _alias_for(aliases: Mapping[str, str], import_path: str) -> str:
    try:
        return aliases[import_path]
    except KeyError as exc:
        raise CodeGenerationError(f"No alias assigned for import {import_path!r}") from exc


def _controller_context(spec: TypeInfo, aliases: Mapping[str, str]) -> Dict[str, Any]:
    owner_alias = _alias_for(aliases, spec.import_path)
    return {
        "type": f"{owner_alias}.{spec.struct_name}",
        "methods": [
            {
                "name": method.name,
                "args": [
                    {"name": arg.name, "type": _arg_type(arg, owner_alias, aliases)}
                    for arg in method.args
                ],
                "render_calls": [
                    {"line": call.line, "names": list(call.names)} for call in method.render_calls
                ],
            }
            for method in spec.method_specs
        ],
    }


def _arg_type(arg: MethodArg, owner_alias: str, aliases: Mapping[str, str]) -> str:
    if arg.import_path:
        return arg.type_expr.type_name(_alias_for(aliases, arg.import_path))
    if arg.type_expr.pkg_name:
        # Declared alongside the controller.
        return arg.type_expr.type_name(owner_alias)
    return arg.type_expr.type_name()


__all__ = [
    "CodeGenerationError",
    "CodeGenerator",
    "RESERVED_NAMES",
    "TEMPLATE_NAME",
    "TEMPLATE_VERSION",
    "go_string",
]
