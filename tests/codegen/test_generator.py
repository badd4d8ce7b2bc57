"""Tests for entry-point generation."""

from __future__ import annotations

from pathlib import Path

import pytest

from harness.analyzers import SourceAnalyzer
from harness.codegen import CodeGenerationError, CodeGenerator
from harness.models import MethodArg, MethodSpec, RenderCall, SourceInfo, TypeExpr, TypeInfo

from tests._fixtures.go_app import GoAppBuilder


def _sample_info(go_app: GoAppBuilder) -> SourceInfo:
    go_app.write_sample()
    return SourceAnalyzer().analyze(go_app.roots())


def test_render_registers_controllers_and_actions(go_app: GoAppBuilder) -> None:
    source = CodeGenerator().render(_sample_info(go_app))

    assert source.startswith("// GENERATED CODE - DO NOT EDIT\n")
    assert "package main" in source
    assert "revel.RegisterController((*controllers.Application)(nil)," in source
    assert "revel.RegisterController((*controllers.App)(nil)," in source
    assert 'Name: "Show",' in source
    assert '&revel.MethodArg{Name: "id", Type: reflect.TypeOf((*int)(nil))},' in source
    assert '&revel.MethodArg{Name: "user", Type: reflect.TypeOf((**models.User)(nil))},' in source
    assert '&revel.MethodArg{Name: "tags", Type: reflect.TypeOf((*[]string)(nil))},' in source
    assert "revel.Run(*port)" in source


def test_render_emits_imports_sorted_by_path(go_app: GoAppBuilder) -> None:
    source = CodeGenerator().render(_sample_info(go_app))

    import_block = source.split("import (\n", 1)[1].split("\n)", 1)[0]
    assert import_block.splitlines() == [
        '\tcontrollers "example.com/myapp/app/controllers"',
        '\tmodels "example.com/myapp/app/models"',
        '\ttests "example.com/myapp/tests"',
        '\tflag "flag"',
        '\trevel "github.com/robfig/revel"',
        '\treflect "reflect"',
    ]


def test_render_includes_render_args_validation_keys_and_suites(go_app: GoAppBuilder) -> None:
    source = CodeGenerator().render(_sample_info(go_app))
    validate_file = go_app.path("app/controllers/validate.go").as_posix()

    assert '18: []string{\n\t\t\t\t\t\t"greeting",\n\t\t\t\t\t},' in source
    assert '25: []string{\n\t\t\t\t\t\t"title",\n\t\t\t\t\t\t"user",\n\t\t\t\t\t},' in source
    assert f'\t\t"{validate_file}": {{\n\t\t\t9: "user.Email",\n\t\t\t10: "user.Age",\n\t\t}},' in source
    assert "\t\t(*tests.AppTest)(nil),\n" in source


def test_render_is_deterministic(go_app: GoAppBuilder) -> None:
    info = _sample_info(go_app)
    generator = CodeGenerator()

    assert generator.render(info) == generator.render(info)
    assert CodeGenerator().render(SourceAnalyzer().analyze(go_app.roots())) == generator.render(info)


def test_render_emits_blank_imports_for_init_packages() -> None:
    info = SourceInfo(init_import_paths=("github.com/lib/pq",))

    source = CodeGenerator().render(info)

    assert '\t_ "github.com/lib/pq"\n' in source
    assert "RegisterController" not in source
    assert "revel.TestSuites = []interface{}{\n\t}" in source


def test_render_qualifies_local_argument_types_with_the_controller_alias() -> None:
    controller = TypeInfo(
        struct_name="App",
        import_path="example.com/admin/controllers",
        package_name="controllers",
        method_specs=(
            MethodSpec(
                name="Save",
                args=(MethodArg(name="form", type_expr=TypeExpr(expr="*Form", pkg_name="controllers", pkg_index=1)),),
                render_calls=(RenderCall(line=7, names=()),),
            ),
        ),
    )
    generator = CodeGenerator()
    info = SourceInfo(controller_specs=(controller,))
    aliases = generator.resolve_aliases(info)
    aliases["example.com/admin/controllers"] = "admin"

    source = generator.render(info, aliases)

    assert "revel.RegisterController((*admin.App)(nil)," in source
    assert "reflect.TypeOf((**admin.Form)(nil))" in source
    assert "7: []string{\n\t\t\t\t\t}," in source


def test_render_rejects_alias_tables_without_template_imports() -> None:
    with pytest.raises(CodeGenerationError):
        CodeGenerator().render(SourceInfo(), {"flag": "flag"})


def test_render_rejects_types_without_alias() -> None:
    controller = TypeInfo(struct_name="App", import_path="example.com/app/controllers", package_name="controllers")
    generator = CodeGenerator()

    with pytest.raises(CodeGenerationError):
        generator.render(SourceInfo(controller_specs=(controller,)), generator.seed_aliases())


def test_render_prefers_templates_dir_override(tmp_path: Path) -> None:
    (tmp_path / "main.go.j2").write_text("// custom {{ fw }} {{ version }}\n", encoding="utf-8")

    source = CodeGenerator(templates_dir=tmp_path).render(SourceInfo())

    assert source == "// custom revel 1\n"


def test_render_keeps_aliases_clear_of_template_variables() -> None:
    controller = TypeInfo(struct_name="App", import_path="example.com/app/port", package_name="port")
    generator = CodeGenerator()

    source = generator.render(SourceInfo(controller_specs=(controller,)))

    assert '\tport0 "example.com/app/port"\n' in source
    assert "revel.RegisterController((*port0.App)(nil)," in source
    assert "port       *int" in source
