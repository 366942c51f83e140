"""Architectural tests for package layering.

All checks are static/AST-based to avoid runtime side effects.
"""

from __future__ import annotations

import ast
from pathlib import Path
from typing import Iterable, List

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PKG_DIR = PROJECT_ROOT / "stepform"
LOGIC_DIR = PKG_DIR / "logic"
ROUTES_DIR = PKG_DIR / "routes"

# session engine modules that must stay free of transport and storage details
PURE_ENGINE = ("catalog.py", "session_state.py", "progress.py", "controller.py", "listing.py")


def py_files_under(*roots: Path) -> List[Path]:
    files: List[Path] = []
    for root in roots:
        files.extend(p for p in root.rglob("*.py") if "__pycache__" not in p.parts)
    return sorted(files)


def imported_modules(path: Path) -> Iterable[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield alias.name
        elif isinstance(node, ast.ImportFrom) and node.module:
            yield node.module


def test_package_sources_parse():
    files = py_files_under(PKG_DIR)
    assert files
    for f in files:
        ast.parse(f.read_text(encoding="utf-8"), filename=str(f))


@pytest.mark.parametrize("name", PURE_ENGINE)
def test_engine_modules_do_not_import_web_or_db(name):
    mods = set(imported_modules(LOGIC_DIR / name))
    forbidden = {m for m in mods if m.split(".")[0] in {"fastapi", "starlette", "sqlalchemy", "httpx"}}
    forbidden |= {m for m in mods if m.startswith(("stepform.routes", "stepform.db", "stepform.logic.repository_forms"))}
    assert not forbidden, f"{name} imports {sorted(forbidden)}"


def test_routes_do_not_embed_sql():
    for f in py_files_under(ROUTES_DIR):
        mods = set(imported_modules(f))
        assert not any(m.startswith("sqlalchemy") for m in mods), f"{f.name} imports sqlalchemy"


def test_no_bare_except_in_package():
    for f in py_files_under(PKG_DIR):
        tree = ast.parse(f.read_text(encoding="utf-8"))
        bare = [n.lineno for n in ast.walk(tree) if isinstance(n, ast.ExceptHandler) and n.type is None]
        assert not bare, f"bare except in {f.name} at lines {bare}"


def test_app_is_not_instantiated_at_import():
    tree = ast.parse((PKG_DIR / "main.py").read_text(encoding="utf-8"))
    top_level_calls = [
        n for n in tree.body
        if isinstance(n, (ast.Assign, ast.Expr)) and isinstance(getattr(n, "value", None), ast.Call)
        and getattr(n.value.func, "id", "") in {"create_app", "FastAPI"}
    ]
    assert not top_level_calls


def test_migrations_are_packaged():
    sql = sorted((PKG_DIR / "db" / "migrations").glob("*.sql"))
    assert [p.name for p in sql][:1] == ["001_create_forms.sql"]
