"""Tests for harness.models."""

from __future__ import annotations

from harness.models import BuildError, CompileError, SourceInfo, TypeExpr, source_error


def test_type_expr_inserts_qualifier_after_prefix() -> None:
    expr = TypeExpr(expr="[]*User", pkg_name="models", pkg_index=3)

    assert expr.type_name() == "[]*models.User"
    assert expr.type_name("m0") == "[]*m0.User"
    assert TypeExpr(expr="string").type_name("ignored") == "ignored.string"
    assert TypeExpr(expr="string").type_name() == "string"


def test_with_init_imports_deduplicates_in_order() -> None:
    info = SourceInfo(init_import_paths=("github.com/lib/pq",))

    merged = info.with_init_imports(["", "github.com/lib/pq", "github.com/mattn/go-sqlite3"])

    assert merged.init_import_paths == ("github.com/lib/pq", "github.com/mattn/go-sqlite3")
    assert info.init_import_paths == ("github.com/lib/pq",)


def test_compile_error_context_clamps_to_file() -> None:
    error = source_error(
        "Go Compilation Error",
        "undefined: x",
        path="app.go",
        line=2,
        source_lines=["package main", "var y = x", "func main() {}"],
    )

    assert error.context(radius=5) == [
        (1, "package main", False),
        (2, "var y = x", True),
        (3, "func main() {}", False),
    ]
    assert error.is_localized


def test_compile_error_without_location_has_no_context() -> None:
    error = CompileError(source_type="Go code", title="Go Compilation Error", description="boom")

    assert error.context() == []
    assert error.format() == "Go Compilation Error: boom"
    assert str(BuildError(error)) == "boom"


def test_compile_error_format_includes_meta_error() -> None:
    error = CompileError(
        source_type="Go code",
        title="Go Compilation Error",
        description="undefined: x",
        path="app.go",
        line=4,
        meta_error="/src/app.go: No such file or directory",
    )

    assert error.format().splitlines() == [
        "Go Compilation Error: undefined: x",
        "  at app.go:4",
        "  (/src/app.go: No such file or directory)",
    ]
    assert error.to_dict()["meta_error"] == "/src/app.go: No such file or directory"
