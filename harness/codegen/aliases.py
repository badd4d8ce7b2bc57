"""Collision-free import alias assignment for generated source."""

from __future__ import annotations

from typing import Iterable, Iterator, Mapping, Optional, Set, Tuple

from ..models import AliasTable, SourceInfo, TypeInfo

BLANK_ALIAS = "_"


def resolve_aliases(
    source_info: SourceInfo,
    seed: Optional[Mapping[str, str]] = None,
    reserved: Iterable[str] = (),
) -> AliasTable:
    """Map every import path referenced by ``source_info`` to a unique alias.

    Specs are visited in declaration order, so the table is reproducible
    across runs. ``seed`` pre-assigns aliases (the generated program's own
    imports) that later packages must not reuse; ``reserved`` names are
    identifiers declared by the generated program that no alias may take.
    """
    aliases: AliasTable = dict(seed or {})
    taken: Set[str] = {alias for alias in aliases.values() if alias != BLANK_ALIAS}
    taken.update(reserved)

    for import_path, package_name in _referenced_packages(
        [*source_info.controller_specs, *source_info.test_suites]
    ):
        if import_path in aliases:
            continue
        alias = _make_alias(taken, package_name)
        aliases[import_path] = alias
        taken.add(alias)

    for import_path in source_info.init_import_paths:
        aliases.setdefault(import_path, BLANK_ALIAS)

    return aliases


def _referenced_packages(specs: Iterable[TypeInfo]) -> Iterator[Tuple[str, str]]:
    for spec in specs:
        yield spec.import_path, spec.package_name
        for method in spec.method_specs:
            for arg in method.args:
                if arg.import_path:
                    yield arg.import_path, arg.type_expr.pkg_name


def _make_alias(taken: Set[str], package_name: str) -> str:
    base = package_name or "pkg"
    alias = base
    index = 0
    while alias in taken:
        alias = f"{base}{index}"
        index += 1
    return alias


__all__ = ["BLANK_ALIAS", "resolve_aliases"]
