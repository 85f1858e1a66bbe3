#!/usr/bin/env python3
"""
Fail if a component imports another component, or core imports any component.
Checks all Python files under src/merck_tools/.
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
PACKAGE = "merck_tools"
PACKAGE_DIR = REPO_ROOT / "src" / PACKAGE

COMPONENTS = (
    "jira",
    "confluence",
    "auth",
    "sharepoint",
    "ms_graph",
    "llm",
    "credhub",
)
# Importable by every component.
SHARED = ("core", "models")


def owner(path: Path) -> str | None:
    """Top-level package member that ``path`` belongs to."""
    rel = path.relative_to(PACKAGE_DIR)
    head = rel.parts[0]
    return head[:-3] if head.endswith(".py") else head


def resolve_module(path: Path, node: ast.ImportFrom) -> str:
    """Absolute dotted name of a (possibly relative) ``from`` import."""
    if not node.level:
        return node.module or ""
    rel = path.relative_to(REPO_ROOT / "src").with_suffix("")
    # containing package, for both modules and __init__.py
    parts = list(rel.parts[:-1])
    base = parts[: len(parts) - (node.level - 1)]
    if node.module:
        base.append(node.module)
    return ".".join(base)


def imported_members(path: Path) -> list[str]:
    """Top-level package members imported by ``path``."""
    members: list[str] = []
    tree = ast.parse(path.read_text())
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom):
            mod = resolve_module(path, node)
            if mod == PACKAGE:
                names = [f"{PACKAGE}.{alias.name}" for alias in node.names]
            else:
                names = [mod]
        else:
            continue
        for name in names:
            parts = name.split(".")
            if len(parts) > 1 and parts[0] == PACKAGE:
                members.append(parts[1])
    return members


def scan_file(path: Path) -> list[str]:
    errors: list[str] = []
    own = owner(path)
    if own not in COMPONENTS and own != "core":
        return errors
    for member in imported_members(path):
        if member == own or member in SHARED:
            continue
        if member in COMPONENTS:
            errors.append(f"{path}: '{own}' must not import component '{member}'")
    return errors


def main() -> int:
    violations: list[str] = []
    for py_file in sorted(PACKAGE_DIR.rglob("*.py")):
        if py_file.parent == PACKAGE_DIR and py_file.name == "__init__.py":
            continue
        violations.extend(scan_file(py_file))

    if violations:
        for v in violations:
            print(v, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
