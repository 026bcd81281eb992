"""
Layering rules for the settlement packages, checked by parsing source.

    settlement_kernel   imports nothing of ours and no YAML
    settlement_engines  imports only the kernel; no clock, environment,
                        YAML or threads
    settlement_config   may use kernel and engines
    settlement_services may use everything

Only settlement_config/ itself reaches into settlement_config.loader, and
only settlement_services/ starts worker pools.
"""

import ast
from functools import cache
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]

PACKAGES = (
    "settlement_kernel",
    "settlement_engines",
    "settlement_config",
    "settlement_services",
)


@cache
def _tree(path: Path) -> ast.Module:
    return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))


def _sources(package: str) -> list[Path]:
    paths = sorted((ROOT / package).rglob("*.py"))
    assert paths, f"{package} has no sources"
    return paths


def _imported_modules(path: Path):
    for node in ast.walk(_tree(path)):
        if isinstance(node, ast.Import):
            yield from ((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            yield node.lineno, node.module


def _dotted_references(path: Path):
    for node in ast.walk(_tree(path)):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            yield node.lineno, f"{node.value.id}.{node.attr}"


def _under(module: str, roots: tuple[str, ...]) -> bool:
    return any(module == root or module.startswith(root + ".") for root in roots)


def _import_violations(packages: tuple[str, ...], banned: tuple[str, ...]) -> list[str]:
    return [
        f"{path.relative_to(ROOT).as_posix()}:{lineno} -> {module}"
        for package in packages
        for path in _sources(package)
        for lineno, module in _imported_modules(path)
        if _under(module, banned)
    ]


@pytest.mark.parametrize(("package", "banned"), [
    ("settlement_kernel", ("settlement_engines", "settlement_config", "settlement_services", "yaml")),
    ("settlement_engines", ("settlement_config", "settlement_services", "yaml",
                            "threading", "concurrent", "multiprocessing")),
    ("settlement_config", ("settlement_services",)),
])
def test_package_imports_stay_below_its_layer(package, banned):
    violations = _import_violations((package,), banned)
    assert not violations, "\n".join(violations)


def test_engines_do_not_read_clock_or_environment():
    impure = {
        "datetime.now",
        "datetime.utcnow",
        "date.today",
        "time.time",
        "os.environ",
        "os.getenv",
    }
    violations = [
        f"{path.relative_to(ROOT).as_posix()}:{lineno} uses {name}"
        for path in _sources("settlement_engines")
        for lineno, name in _dotted_references(path)
        if name in impure
    ]
    assert not violations, "\n".join(violations)


def test_loader_is_private_to_config_package():
    outside = tuple(p for p in PACKAGES if p != "settlement_config")
    violations = _import_violations(outside, ("settlement_config.loader",))
    assert not violations, "\n".join(violations)


def test_worker_pools_live_in_services():
    violations = _import_violations(PACKAGES[:3], ("concurrent.futures",))
    assert not violations, "\n".join(violations)
