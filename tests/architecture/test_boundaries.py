import ast
from pathlib import Path

import pytest
from pytest_archon import archrule

import relmap

PACKAGE_ROOT = Path(relmap.__file__).parent


def _module_name(path: Path) -> str:
    parts = path.relative_to(PACKAGE_ROOT.parent).with_suffix("").parts
    if parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


def _own_imports(path: Path) -> set[str]:
    """Absolute names imported by the file itself (parent packages excluded)."""
    module = _module_name(path)
    package = module if path.name == "__init__.py" else module.rpartition(".")[0]
    found: set[str] = set()
    for node in ast.walk(ast.parse(path.read_text(encoding="utf-8"))):
        if isinstance(node, ast.Import):
            found.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                base = package.split(".")
                base = base[: len(base) - (node.level - 1)]
                prefix = ".".join(base)
                target = f"{prefix}.{node.module}" if node.module else prefix
                if node.module is None:
                    found.update(f"{target}.{alias.name}" for alias in node.names)
                    continue
            else:
                target = node.module or ""
            found.add(target)
    return found


def _files(*relative: str) -> list[Path]:
    paths: list[Path] = []
    for rel in relative:
        path = PACKAGE_ROOT / rel
        paths.extend(sorted(path.rglob("*.py")) if path.is_dir() else [path])
    return paths


def _violations(paths: list[Path], forbidden: tuple[str, ...]) -> list[str]:
    return [
        f"{_module_name(path)} imports {name}"
        for path in paths
        for name in sorted(_own_imports(path))
        if any(name == f or name.startswith(f + ".") for f in forbidden)
    ]


@pytest.mark.parametrize(
    ("layer", "forbidden"),
    [
        ("query", ("relmap.schema", "relmap.crud", "pydantic")),
        ("schema", ("relmap.query", "relmap.crud")),
        ("exceptions.py", ("relmap.schema", "relmap.query", "relmap.crud")),
    ],
)
def test_layer_imports(layer: str, forbidden: tuple[str, ...]) -> None:
    """
    The query layer only knows SQL text and arguments, schema resolution
    does not build statements, and the exception hierarchy is a leaf.
    Statement planning lives in relmap.crud on top of both layers.
    """
    paths = _files(layer)
    assert paths
    assert _violations(paths, forbidden) == []


def test_relative_imports_are_resolved() -> None:
    imports = _own_imports(PACKAGE_ROOT / "crud.py")
    assert {"relmap.exceptions", "relmap.query", "relmap.schema"} <= imports


def test_query_independence() -> None:
    (
        archrule("query_is_independent")
        .match("relmap.query*")
        .should_not_import("relmap.schema*")
        .should_not_import("relmap.crud*")
        .should_not_import("pydantic*")
        .check("relmap.query", only_direct_imports=True)
    )


def test_no_test_tooling_in_library() -> None:
    """Library code must not import test-only dependencies."""
    (
        archrule("no_test_tooling")
        .match("relmap*")
        .should_not_import("pytest*")
        .should_not_import("sqlalchemy*")
        .check("relmap", only_direct_imports=True)
    )
