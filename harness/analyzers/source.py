"""Discovery of controllers, test suites and validation keys in Go application source."""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

import tree_sitter

from ..config import DEFAULT_FRAMEWORK_IMPORT_PATH, SourceRoot
from ..logging import get_logger
from ..models import (
    INVALID_TYPE,
    MethodArg,
    MethodSpec,
    RenderCall,
    SourceInfo,
    TypeExpr,
    TypeInfo,
)
from .base import Analyzer
from .go_source import (
    BUILTIN_TYPES,
    GoFile,
    GoSourceParser,
    iter_nodes,
    line_of_end,
    receiver_type_name,
)

TypeKey = Tuple[str, str]

_SKIPPED_DIRS = {"testdata", "vendor"}
# Scratch build directory, only at the top of a source root.
_SCRATCH_DIR = "tmp"


@dataclass
class _StructRecord:
    package_name: str
    embedded: List[TypeKey] = field(default_factory=list)


class SourceAnalyzer(Analyzer):
    """Walks Go source roots and produces the ``SourceInfo`` used for code generation."""

    def __init__(
        self,
        framework_import_path: str = DEFAULT_FRAMEWORK_IMPORT_PATH,
        *,
        parser: GoSourceParser | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.framework_import_path = framework_import_path
        self._parser = parser or GoSourceParser()
        self.logger = logger or get_logger("analyzer")

    def analyze(self, roots: Sequence[SourceRoot]) -> SourceInfo:
        structs: Dict[TypeKey, _StructRecord] = {}
        methods: Dict[TypeKey, List[MethodSpec]] = defaultdict(list)
        validation_keys: Dict[str, Dict[int, str]] = {}

        for root in roots:
            if not root.path.is_dir():
                self.logger.debug("Skipping missing source root %s", root.path)
                continue
            for directory, import_path in self._package_dirs(root):
                for go_file in self._parse_package(directory):
                    self._process_file(go_file, import_path, structs, methods, validation_keys)

        controller_keys = self._types_embedding((self.framework_import_path, "Controller"), structs)
        suite_keys = self._types_embedding((self.framework_import_path, "TestSuite"), structs)
        self.logger.debug(
            "Discovered %d controllers and %d test suites",
            len(controller_keys),
            len(suite_keys),
        )
        return SourceInfo(
            controller_specs=tuple(self._type_info(key, structs, methods) for key in controller_keys),
            test_suites=tuple(self._type_info(key, structs, methods) for key in suite_keys),
            validation_keys=validation_keys,
        )

    # ------------------------------------------------------------------
    # Source tree walking

    @staticmethod
    def _package_dirs(root: SourceRoot) -> Iterator[Tuple[Path, str]]:
        for current, dirnames, _ in os.walk(root.path):
            directory = Path(current)
            at_root = directory == root.path
            dirnames[:] = sorted(
                name
                for name in dirnames
                if name not in _SKIPPED_DIRS
                and not name.startswith((".", "_"))
                and not (at_root and name == _SCRATCH_DIR)
            )
            relative = directory.relative_to(root.path).as_posix()
            import_path = root.import_path if relative == "." else f"{root.import_path}/{relative}"
            yield directory, import_path

    def _parse_package(self, directory: Path) -> List[GoFile]:
        files = sorted(
            path
            for path in directory.iterdir()
            if path.is_file() and path.suffix == ".go" and not path.name.endswith("_test.go")
        )
        parsed = [self._parser.parse_file(path) for path in files]
        parsed = [go_file for go_file in parsed if go_file.package_name != "main"]
        packages = {go_file.package_name for go_file in parsed}
        if len(packages) > 1:
            self.logger.warning(
                "Multiple packages in %s: %s", directory, ", ".join(sorted(packages))
            )
        return parsed

    # ------------------------------------------------------------------
    # Per-file extraction

    def _process_file(
        self,
        go_file: GoFile,
        import_path: str,
        structs: Dict[TypeKey, _StructRecord],
        methods: Dict[TypeKey, List[MethodSpec]],
        validation_keys: Dict[str, Dict[int, str]],
    ) -> None:
        for decl in go_file.structs:
            record = _StructRecord(package_name=go_file.package_name)
            for ref in decl.embedded:
                if not ref.alias:
                    record.embedded.append((import_path, ref.name))
                elif ref.alias in go_file.imports:
                    record.embedded.append((go_file.imports[ref.alias], ref.name))
            structs[(import_path, decl.name)] = record

        framework_alias = self._framework_alias(go_file)
        for method in go_file.methods:
            receiver = receiver_type_name(method, go_file.source)
            if not receiver:
                continue
            spec = self._action_spec(go_file, method, framework_alias)
            if spec is not None:
                methods[(import_path, receiver)].append(spec)

        file_keys: Dict[int, str] = {}
        for decl in [*go_file.functions, *go_file.methods]:
            file_keys.update(self._validation_keys(go_file, decl, framework_alias))
        if file_keys:
            validation_keys[go_file.path.as_posix()] = dict(sorted(file_keys.items()))

    def _framework_alias(self, go_file: GoFile) -> str:
        for alias, path in go_file.imports.items():
            if path == self.framework_import_path:
                return alias
        return ""

    def _action_spec(
        self, go_file: GoFile, method: tree_sitter.Node, framework_alias: str
    ) -> Optional[MethodSpec]:
        name = go_file.text(method.child_by_field_name("name"))
        if not name or not name[0].isupper():
            return None
        if not framework_alias or not self._returns_result(go_file, method, framework_alias):
            return None

        args: List[MethodArg] = []
        for param_name, type_node, variadic in _parameters(method, go_file):
            type_expr, qualifier = _arg_type_expr(type_node, variadic, go_file)
            if not type_expr.valid:
                self.logger.warning(
                    "Skipping action %s in %s: unsupported type for argument %s",
                    name,
                    go_file.path,
                    param_name,
                )
                return None
            arg_import = ""
            if qualifier:
                arg_import = go_file.imports.get(qualifier, "")
                if not arg_import:
                    self.logger.warning(
                        "Skipping action %s in %s: no import found for %s",
                        name,
                        go_file.path,
                        type_expr.type_name(),
                    )
                    return None
            args.append(MethodArg(name=param_name, type_expr=type_expr, import_path=arg_import))

        render_calls: Dict[int, RenderCall] = {}
        for call in _render_calls(go_file, method):
            # Keyed by line in the generated map literal; the first call on a line wins.
            render_calls.setdefault(call.line, call)
        return MethodSpec(name=name, args=tuple(args), render_calls=tuple(render_calls.values()))

    @staticmethod
    def _returns_result(go_file: GoFile, method: tree_sitter.Node, framework_alias: str) -> bool:
        result = method.child_by_field_name("result")
        if result is None:
            return False
        if result.type == "parameter_list":
            declarations = [child for child in result.named_children if child.type == "parameter_declaration"]
            if len(declarations) != 1 or len(declarations[0].children_by_field_name("name")) > 1:
                return False
            result = declarations[0].child_by_field_name("type")
        if result is None or result.type != "qualified_type":
            return False
        return (
            go_file.text(result.child_by_field_name("package")) == framework_alias
            and go_file.text(result.child_by_field_name("name")) == "Result"
        )

    def _validation_keys(
        self, go_file: GoFile, decl: tree_sitter.Node, framework_alias: str
    ) -> Dict[int, str]:
        body = decl.child_by_field_name("body")
        if body is None:
            return {}
        validation_params = self._validation_params(go_file, decl, framework_alias)
        keys: Dict[int, str] = {}
        for node in iter_nodes(body):
            if node.type != "call_expression":
                continue
            function = node.child_by_field_name("function")
            if function is None or function.type != "selector_expression":
                continue
            target = function.child_by_field_name("operand")
            if target is None:
                continue
            if target.type == "selector_expression":
                if go_file.text(target.child_by_field_name("field")) != "Validation":
                    continue
            elif target.type == "identifier":
                if go_file.text(target) not in validation_params:
                    continue
            else:
                continue
            args = _call_args(node)
            if not args:
                continue
            arg = args[0]
            if arg.type == "binary_expression":
                arg = arg.child_by_field_name("left")
            key = _dotted_path(arg, go_file)
            if key:
                keys[line_of_end(node)] = key
        return keys

    @staticmethod
    def _validation_params(
        go_file: GoFile, decl: tree_sitter.Node, framework_alias: str
    ) -> Set[str]:
        if not framework_alias:
            return set()
        names: Set[str] = set()
        for param_name, type_node, _ in _parameters(decl, go_file):
            if type_node.type != "pointer_type" or not type_node.named_children:
                continue
            inner = type_node.named_children[0]
            if (
                inner.type == "qualified_type"
                and go_file.text(inner.child_by_field_name("package")) == framework_alias
                and go_file.text(inner.child_by_field_name("name")) == "Validation"
            ):
                names.add(param_name)
        return names

    # ------------------------------------------------------------------
    # Aggregation

    @staticmethod
    def _types_embedding(target: TypeKey, structs: Dict[TypeKey, _StructRecord]) -> List[TypeKey]:
        found: Set[TypeKey] = {target}
        changed = True
        while changed:
            changed = False
            for key, record in structs.items():
                if key in found:
                    continue
                if any(ref in found for ref in record.embedded):
                    found.add(key)
                    changed = True
        return [key for key in structs if key in found and key != target]

    @staticmethod
    def _type_info(
        key: TypeKey,
        structs: Dict[TypeKey, _StructRecord],
        methods: Dict[TypeKey, List[MethodSpec]],
    ) -> TypeInfo:
        import_path, struct_name = key
        return TypeInfo(
            struct_name=struct_name,
            import_path=import_path,
            package_name=structs[key].package_name,
            method_specs=tuple(methods.get(key, ())),
        )


def _parameters(
    decl: tree_sitter.Node, go_file: GoFile
) -> Iterable[Tuple[str, tree_sitter.Node, bool]]:
    """Yield ``(name, type node, variadic)`` for every named parameter of ``decl``."""
    params = decl.child_by_field_name("parameters")
    if params is None:
        return []
    triples: List[Tuple[str, tree_sitter.Node, bool]] = []
    for param in params.named_children:
        if param.type not in {"parameter_declaration", "variadic_parameter_declaration"}:
            continue
        type_node = param.child_by_field_name("type")
        if type_node is None:
            continue
        variadic = param.type == "variadic_parameter_declaration"
        for name_node in param.children_by_field_name("name"):
            triples.append((go_file.text(name_node), type_node, variadic))
    return triples


def _arg_type_expr(
    node: tree_sitter.Node, variadic: bool, go_file: GoFile
) -> Tuple[TypeExpr, str]:
    type_expr, qualifier = _type_expr(node, go_file, go_file.package_name)
    if variadic:
        # ...T arrives at the action as []T.
        type_expr = _wrap(type_expr, "[]")
    return type_expr, qualifier


def _type_expr(node: tree_sitter.Node, go_file: GoFile, package_name: str) -> Tuple[TypeExpr, str]:
    """Convert a parameter type node to a ``TypeExpr`` and the qualifier it was written with."""
    kind = node.type
    if kind == "type_identifier":
        name = go_file.text(node)
        if name in BUILTIN_TYPES:
            return TypeExpr(expr=name), ""
        return TypeExpr(expr=name, pkg_name=package_name), ""
    if kind == "qualified_type":
        qualifier = go_file.text(node.child_by_field_name("package"))
        name = go_file.text(node.child_by_field_name("name"))
        return TypeExpr(expr=name, pkg_name=qualifier), qualifier
    if kind == "pointer_type" and node.named_children:
        inner, qualifier = _type_expr(node.named_children[0], go_file, package_name)
        return _wrap(inner, "*"), qualifier
    if kind == "slice_type":
        element = node.child_by_field_name("element")
        if element is None:
            return INVALID_TYPE, ""
        inner, qualifier = _type_expr(element, go_file, package_name)
        return _wrap(inner, "[]"), qualifier
    if kind == "parenthesized_type" and node.named_children:
        return _type_expr(node.named_children[0], go_file, package_name)
    return INVALID_TYPE, ""


def _wrap(inner: TypeExpr, prefix: str) -> TypeExpr:
    if not inner.valid:
        return INVALID_TYPE
    return TypeExpr(
        expr=prefix + inner.expr,
        pkg_name=inner.pkg_name,
        pkg_index=inner.pkg_index + len(prefix),
    )


def _call_args(call: tree_sitter.Node) -> List[tree_sitter.Node]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [child for child in arguments.named_children if child.type != "comment"]


def _render_calls(go_file: GoFile, method: tree_sitter.Node) -> Iterator[RenderCall]:
    body = method.child_by_field_name("body")
    if body is None:
        return
    for node in iter_nodes(body):
        if node.type != "call_expression":
            continue
        function = node.child_by_field_name("function")
        if function is None or function.type != "selector_expression":
            continue
        if go_file.text(function.child_by_field_name("field")) != "Render":
            continue
        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            continue
        names = tuple(go_file.text(arg) for arg in _call_args(node) if arg.type == "identifier")
        yield RenderCall(line=line_of_end(arguments), names=names)


def _dotted_path(node: Optional[tree_sitter.Node], go_file: GoFile) -> str:
    if node is None:
        return ""
    if node.type == "identifier":
        return go_file.text(node)
    if node.type == "selector_expression":
        operand = _dotted_path(node.child_by_field_name("operand"), go_file)
        field_name = go_file.text(node.child_by_field_name("field"))
        if not operand or not field_name:
            return ""
        return f"{operand}.{field_name}"
    if node.type == "parenthesized_expression" and node.named_children:
        return _dotted_path(node.named_children[0], go_file)
    return ""


__all__ = ["SourceAnalyzer"]
