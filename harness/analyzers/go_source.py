"""Tree-sitter backed parsing of Go source files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import tree_sitter
import tree_sitter_go

from ..models import BuildError, source_error

_GO_LANGUAGE = tree_sitter.Language(tree_sitter_go.language())

_MAJOR_VERSION = re.compile(r"^v\d+$")
_DOTTED_VERSION = re.compile(r"\.v\d+$")

BUILTIN_TYPES = frozenset(
    {
        "any",
        "bool",
        "byte",
        "complex64",
        "complex128",
        "error",
        "float32",
        "float64",
        "int",
        "int8",
        "int16",
        "int32",
        "int64",
        "rune",
        "string",
        "uint",
        "uint8",
        "uint16",
        "uint32",
        "uint64",
        "uintptr",
    }
)


@dataclass(frozen=True)
class EmbeddedRef:
    """An embedded field as written: optional package alias and type name."""

    alias: str
    name: str


@dataclass
class StructDecl:
    name: str
    embedded: List[EmbeddedRef] = field(default_factory=list)


@dataclass
class GoFile:
    """A parsed Go file with the declarations the analyzer cares about."""

    path: Path
    source: bytes
    package_name: str
    imports: Dict[str, str]
    structs: List[StructDecl]
    methods: List[tree_sitter.Node]
    functions: List[tree_sitter.Node]

    def text(self, node: Optional[tree_sitter.Node]) -> str:
        return node_text(node, self.source)


class GoSourceParser:
    """Parses Go files with tree-sitter and collects top-level declarations."""

    def __init__(self) -> None:
        self._parser = tree_sitter.Parser(_GO_LANGUAGE)

    def parse_file(self, path: Path) -> GoFile:
        try:
            source = path.read_bytes()
        except OSError as exc:
            raise BuildError(
                source_error("Go Compilation Error", f"Failed to read source: {exc}", path=str(path))
            ) from exc
        try:
            source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BuildError(
                source_error("Go Compilation Error", "Source file is not valid UTF-8", path=str(path))
            ) from exc
        return self.parse_source(path, source)

    def parse_source(self, path: Path, source: bytes) -> GoFile:
        tree = self._parser.parse(source)
        root = tree.root_node
        if root.has_error:
            self._raise_syntax_error(path, source, root)

        package_name = ""
        imports: Dict[str, str] = {}
        structs: List[StructDecl] = []
        methods: List[tree_sitter.Node] = []
        functions: List[tree_sitter.Node] = []

        for child in root.named_children:
            if child.type == "package_clause":
                package_name = _package_clause_name(child, source)
            elif child.type == "import_declaration":
                imports.update(_collect_imports(child, source))
            elif child.type == "type_declaration":
                structs.extend(_collect_structs(child, source))
            elif child.type == "method_declaration":
                methods.append(child)
            elif child.type == "function_declaration":
                functions.append(child)

        return GoFile(
            path=path,
            source=source,
            package_name=package_name,
            imports=imports,
            structs=structs,
            methods=methods,
            functions=functions,
        )

    @staticmethod
    def _raise_syntax_error(path: Path, source: bytes, root: tree_sitter.Node) -> None:
        bad = first_error(root)
        line = bad.start_point[0] + 1 if bad is not None else 0
        if bad is None:
            description = "syntax error"
        elif bad.is_missing:
            description = f"syntax error: missing {bad.type}"
        else:
            snippet = node_text(bad, source).strip().splitlines()
            near = snippet[0][:40] if snippet else ""
            description = f"syntax error near {near!r}" if near else "syntax error"
        raise BuildError(
            source_error(
                "Go Compilation Error",
                description,
                path=str(path),
                line=line,
                source_lines=source.decode("utf-8", errors="replace").splitlines(),
            )
        )


def node_text(node: Optional[tree_sitter.Node], source: bytes) -> str:
    if node is None:
        return ""
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def iter_nodes(node: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Yield ``node`` and its descendants in source order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def first_error(node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    for candidate in iter_nodes(node):
        if candidate.type == "ERROR" or candidate.is_missing:
            return candidate
    return None


def line_of_end(node: tree_sitter.Node) -> int:
    return node.end_point[0] + 1


def default_package_name(import_path: str) -> str:
    """Guess the package name Go will bind for an un-aliased import."""
    parts = [part for part in import_path.split("/") if part]
    if not parts:
        return ""
    name = parts[-1]
    if _MAJOR_VERSION.match(name) and len(parts) > 1:
        name = parts[-2]
    name = _DOTTED_VERSION.sub("", name)
    if name.startswith("go-"):
        name = name[3:]
    return name.replace("-", "_").replace(".", "_")


def receiver_type_name(method: tree_sitter.Node, source: bytes) -> str:
    """Return ``T`` for receivers written as ``(c T)`` or ``(c *T)``."""
    receiver = method.child_by_field_name("receiver")
    if receiver is None:
        return ""
    params = [child for child in receiver.named_children if child.type == "parameter_declaration"]
    if len(params) != 1:
        return ""
    type_node = params[0].child_by_field_name("type")
    if type_node is not None and type_node.type == "pointer_type" and type_node.named_children:
        type_node = type_node.named_children[0]
    if type_node is None or type_node.type != "type_identifier":
        return ""
    return node_text(type_node, source)


def _package_clause_name(node: tree_sitter.Node, source: bytes) -> str:
    for child in node.named_children:
        if child.type == "package_identifier":
            return node_text(child, source)
    return ""


def _collect_imports(node: tree_sitter.Node, source: bytes) -> Dict[str, str]:
    imports: Dict[str, str] = {}
    for spec in iter_nodes(node):
        if spec.type != "import_spec":
            continue
        path = node_text(spec.child_by_field_name("path"), source).strip('"`')
        if not path:
            continue
        name_node = spec.child_by_field_name("name")
        if name_node is None:
            imports[default_package_name(path)] = path
        elif name_node.type == "package_identifier":
            imports[node_text(name_node, source)] = path
        # Dot and blank imports never qualify a type name.
    return imports


def _collect_structs(node: tree_sitter.Node, source: bytes) -> List[StructDecl]:
    structs: List[StructDecl] = []
    for spec in node.named_children:
        if spec.type != "type_spec":
            continue
        type_node = spec.child_by_field_name("type")
        if type_node is None or type_node.type != "struct_type":
            continue
        decl = StructDecl(name=node_text(spec.child_by_field_name("name"), source))
        for field_list in type_node.named_children:
            if field_list.type != "field_declaration_list":
                continue
            for field_decl in field_list.named_children:
                if field_decl.type != "field_declaration":
                    continue
                if field_decl.child_by_field_name("name") is not None:
                    continue
                ref = _embedded_ref(field_decl.child_by_field_name("type"), source)
                if ref is not None:
                    decl.embedded.append(ref)
        structs.append(decl)
    return structs


def _embedded_ref(type_node: Optional[tree_sitter.Node], source: bytes) -> Optional[EmbeddedRef]:
    if type_node is None:
        return None
    if type_node.type == "type_identifier":
        return EmbeddedRef(alias="", name=node_text(type_node, source))
    if type_node.type == "qualified_type":
        return EmbeddedRef(
            alias=node_text(type_node.child_by_field_name("package"), source),
            name=node_text(type_node.child_by_field_name("name"), source),
        )
    return None


__all__ = [
    "BUILTIN_TYPES",
    "EmbeddedRef",
    "GoFile",
    "GoSourceParser",
    "StructDecl",
    "default_package_name",
    "first_error",
    "iter_nodes",
    "line_of_end",
    "node_text",
    "receiver_type_name",
]
