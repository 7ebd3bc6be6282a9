from __future__ import annotations

import ast
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
PACKAGE_ROOT = REPO_ROOT / "releasekeeper"

_PROCESS_MODULE_PREFIXES = {
    "os",
    "subprocess",
    "shutil",
    "tempfile",
}


def _iter_python_files(root: Path):
    if not root.exists():
        return []
    return [p for p in root.rglob("*.py") if "__pycache__" not in p.parts]


def _imports(path: Path) -> set[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"))
    imported: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                imported.add(alias.name)
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                imported.add(node.module)
    return imported


def _matches(name: str, prefixes) -> bool:
    return any(name == prefix or name.startswith(prefix + ".") for prefix in prefixes)


def _forbidden_calls(path: Path) -> list[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"))
    violations: list[str] = []

    for node in ast.walk(tree):
        if isinstance(node, ast.Call):
            func = node.func
            lineno = getattr(node, "lineno", 0)
            if isinstance(func, ast.Name) and func.id == "open":
                modes = [arg.value for arg in node.args[1:2] if isinstance(arg, ast.Constant)]
                modes += [kw.value.value for kw in node.keywords if kw.arg == "mode" and isinstance(kw.value, ast.Constant)]
                if any(isinstance(m, str) and any(flag in m for flag in ("w", "a", "x")) for m in modes):
                    violations.append(f"L{lineno}:open_write_mode")
            if isinstance(func, ast.Attribute):
                if isinstance(func.value, ast.Name) and func.value.id == "subprocess":
                    violations.append(f"L{lineno}:subprocess.{func.attr}")
                if isinstance(func.value, ast.Name) and func.value.id == "Path" and func.attr == "cwd":
                    violations.append(f"L{lineno}:Path.cwd")
        if isinstance(node, ast.Attribute):
            if isinstance(node.value, ast.Name) and node.value.id == "os" and node.attr == "environ":
                violations.append(f"L{getattr(node, 'lineno', 0)}:os.environ")

    return sorted(set(violations))


@pytest.mark.architecture
def test_domain_layer_has_no_process_or_config_imports():
    for file in _iter_python_files(PACKAGE_ROOT / "domain"):
        imports = _imports(file)
        bad = sorted(i for i in imports if _matches(i, _PROCESS_MODULE_PREFIXES | {"yaml"}))
        assert not bad, f"domain module imports process/config deps: {file}: {bad}"


@pytest.mark.architecture
def test_domain_layer_does_not_import_outer_layers():
    forbidden = ("releasekeeper.application", "releasekeeper.infrastructure", "releasekeeper.cli")
    for file in _iter_python_files(PACKAGE_ROOT / "domain"):
        bad = sorted(i for i in _imports(file) if _matches(i, forbidden))
        assert not bad, f"domain imports outer layers: {file}: {bad}"


@pytest.mark.architecture
def test_application_layer_does_not_import_infrastructure():
    forbidden = ("releasekeeper.infrastructure", "releasekeeper.cli", *_PROCESS_MODULE_PREFIXES)
    for file in _iter_python_files(PACKAGE_ROOT / "application"):
        bad = sorted(i for i in _imports(file) if _matches(i, forbidden))
        assert not bad, f"application imports infrastructure directly: {file}: {bad}"


@pytest.mark.architecture
def test_domain_and_application_layers_forbid_side_effect_calls():
    violations: list[str] = []
    for root in (PACKAGE_ROOT / "domain", PACKAGE_ROOT / "application"):
        for file in _iter_python_files(root):
            bad_calls = _forbidden_calls(file)
            if bad_calls:
                violations.append(f"{file}: {bad_calls}")

    assert not violations, "forbidden side-effect calls detected in domain/application:\n" + "\n".join(violations)
