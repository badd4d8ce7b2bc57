"""Tests for the Go source analyzer."""

from __future__ import annotations

import pytest

from harness.analyzers import SourceAnalyzer
from harness.config import SourceRoot
from harness.models import BuildError, MethodArg, RenderCall, TypeExpr

from tests._fixtures.go_app import GoAppBuilder, IMPORT_PATH


def test_analyzer_discovers_controllers_transitively(go_app: GoAppBuilder) -> None:
    go_app.write_sample()

    info = SourceAnalyzer().analyze(go_app.roots())

    names = [(spec.import_path, spec.struct_name) for spec in info.controller_specs]
    assert names == [
        (f"{IMPORT_PATH}/app/controllers", "Application"),
        (f"{IMPORT_PATH}/app/controllers", "App"),
    ]
    assert all(spec.package_name == "controllers" for spec in info.controller_specs)


def test_analyzer_collects_exported_actions_with_args(go_app: GoAppBuilder) -> None:
    go_app.write_sample()

    info = SourceAnalyzer().analyze(go_app.roots())
    app = info.controller_specs[1]

    assert [method.name for method in app.method_specs] == ["Index", "Show", "Login"]
    show = app.method_specs[1]
    assert show.args == (
        MethodArg(name="id", type_expr=TypeExpr(expr="int")),
        MethodArg(
            name="user",
            type_expr=TypeExpr(expr="*User", pkg_name="models", pkg_index=1),
            import_path=f"{IMPORT_PATH}/app/models",
        ),
        MethodArg(name="tags", type_expr=TypeExpr(expr="[]string", pkg_index=2)),
    )
    assert show.args[1].type_expr.type_name() == "*models.User"
    assert info.controller_specs[0].method_specs == ()


def test_analyzer_records_render_call_names(go_app: GoAppBuilder) -> None:
    go_app.write_sample()

    info = SourceAnalyzer().analyze(go_app.roots())
    index, show, login = info.controller_specs[1].method_specs

    assert index.render_calls == (RenderCall(line=18, names=("greeting",)),)
    assert show.render_calls == (RenderCall(line=25, names=("title", "user")),)
    assert login.render_calls == ()


def test_analyzer_extracts_validation_keys(go_app: GoAppBuilder) -> None:
    go_app.write_sample()

    info = SourceAnalyzer().analyze(go_app.roots())

    app_file = go_app.path("app/controllers/app.go").as_posix()
    validate_file = go_app.path("app/controllers/validate.go").as_posix()
    assert info.validation_keys[app_file] == {22: "user.Name", 23: "user.Name"}
    assert info.validation_keys[validate_file] == {9: "user.Email", 10: "user.Age"}


def test_analyzer_discovers_test_suites(go_app: GoAppBuilder) -> None:
    go_app.write_sample()

    info = SourceAnalyzer().analyze(go_app.roots())

    assert [(suite.import_path, suite.struct_name) for suite in info.test_suites] == [
        (f"{IMPORT_PATH}/tests", "AppTest")
    ]
    assert info.test_suites[0].package_name == "tests"


def test_analyzer_is_deterministic(go_app: GoAppBuilder) -> None:
    go_app.write_sample()
    analyzer = SourceAnalyzer()

    first = analyzer.analyze(go_app.roots())
    second = analyzer.analyze(go_app.roots())

    assert first == second
    assert list(first.validation_keys) == list(second.validation_keys)


def test_analyzer_skips_actions_with_unsupported_arguments(go_app: GoAppBuilder) -> None:
    go_app.write(
        {
            "app/controllers/app.go": """
            package controllers

            import "github.com/robfig/revel"

            type App struct {
            	*revel.Controller
            }

            func (c App) Filter(opts map[string]string) revel.Result {
            	return nil
            }

            func (c App) Missing(u *unknown.Thing) revel.Result {
            	return nil
            }

            func (c App) Ok(page int, names ...string) revel.Result {
            	return nil
            }
            """,
        }
    )

    info = SourceAnalyzer().analyze(go_app.roots())

    (app,) = info.controller_specs
    assert [method.name for method in app.method_specs] == ["Ok"]
    names_arg = app.method_specs[0].args[1]
    assert names_arg.type_expr.type_name() == "[]string"


def test_analyzer_resolves_local_argument_types_to_the_controller_package(go_app: GoAppBuilder) -> None:
    go_app.write(
        {
            "app/controllers/app.go": """
            package controllers

            import "github.com/robfig/revel"

            type Form struct {
            	Name string
            }

            type App struct {
            	*revel.Controller
            }

            func (c App) Save(form Form) revel.Result {
            	return nil
            }
            """,
        }
    )

    info = SourceAnalyzer().analyze(go_app.roots())

    (arg,) = info.controller_specs[0].method_specs[0].args
    assert arg.import_path == ""
    assert arg.type_expr == TypeExpr(expr="Form", pkg_name="controllers")


def test_analyzer_honours_import_aliases(go_app: GoAppBuilder) -> None:
    go_app.write(
        {
            "app/controllers/app.go": """
            package controllers

            import (
            	r "github.com/robfig/revel"
            	m "example.com/myapp/app/models"
            )

            type App struct {
            	r.Controller
            }

            func (c App) Show(user m.User) r.Result {
            	return nil
            }
            """,
        }
    )

    info = SourceAnalyzer().analyze(go_app.roots())

    (arg,) = info.controller_specs[0].method_specs[0].args
    assert arg.import_path == f"{IMPORT_PATH}/app/models"
    assert arg.type_expr.pkg_name == "m"


def test_analyzer_ignores_scratch_main_and_test_files(go_app: GoAppBuilder) -> None:
    go_app.write_sample()
    go_app.write(
        {
            "app/tmp/main.go": """
            package main

            func main() {}
            """,
            "app/controllers/app_test.go": """
            package controllers

            import "github.com/robfig/revel"

            type Hidden struct {
            	*revel.Controller
            }
            """,
            "app/cmd/main.go": """
            package main

            import "github.com/robfig/revel"

            type NotAController struct {
            	*revel.Controller
            }
            """,
        }
    )

    info = SourceAnalyzer().analyze(go_app.roots())

    assert [spec.struct_name for spec in info.controller_specs] == ["Application", "App"]


def test_analyzer_ignores_missing_roots(go_app: GoAppBuilder) -> None:
    info = SourceAnalyzer().analyze(
        [SourceRoot(path=go_app.path("nowhere"), import_path=f"{IMPORT_PATH}/nowhere")]
    )

    assert info.controller_specs == ()
    assert info.validation_keys == {}


def test_analyzer_reports_syntax_errors_with_file_context(go_app: GoAppBuilder) -> None:
    go_app.write(
        {
            "app/controllers/broken.go": """
            package controllers

            func (c App) Index() revel.Result {
            	return c.Render(
            }
            """,
        }
    )

    with pytest.raises(BuildError) as excinfo:
        SourceAnalyzer().analyze(go_app.roots())

    error = excinfo.value.error
    assert error.path == str(go_app.path("app/controllers/broken.go"))
    assert error.line > 0
    assert error.description.startswith("syntax error")
    assert error.source_lines[0] == "package controllers"


def test_analyzer_only_skips_the_top_level_scratch_directory(go_app: GoAppBuilder) -> None:
    go_app.write(
        {
            "app/tmp/main.go": """
            package scratch

            import "github.com/robfig/revel"

            type Stale struct {
            	*revel.Controller
            }
            """,
            "app/controllers/tmp/temp.go": """
            package tmp

            import "github.com/robfig/revel"

            type Temporary struct {
            	*revel.Controller
            }
            """,
        }
    )

    info = SourceAnalyzer().analyze(go_app.roots())

    assert [(spec.import_path, spec.struct_name) for spec in info.controller_specs] == [
        (f"{IMPORT_PATH}/app/controllers/tmp", "Temporary")
    ]
