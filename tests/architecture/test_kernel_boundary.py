"""
Kernel Boundary Contract.

Tests that enforce the package layering:

1. approval_kernel/** may NOT import approval_config or approval_services.
   The kernel never depends upward.

2. approval_kernel/domain/** is pure: no SQLAlchemy, no db/, models/,
   services/ or selectors/ imports.

3. approval_config/** may NOT import approval_services.

4. Kernel services and selectors never commit; the facade owns
   transaction boundaries.

These tests read source code via AST -- they cannot break anything.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _parse(filepath: Path) -> ast.AST:
    return ast.parse(filepath.read_text(), filename=str(filepath))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    results: list[tuple[int, str]] = []
    for node in ast.walk(_parse(filepath)):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(
                        f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'"
                    )
    return found


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestKernelNoUpwardDependencies:

    def test_kernel_does_not_import_outer_packages(self):
        violations = _violations("approval_kernel", ("approval_config", "approval_services"))
        assert not violations, (
            "Kernel boundary violation -- approval_kernel/** must not import "
            "outer packages:\n" + "\n".join(violations)
        )

    def test_config_does_not_import_services(self):
        violations = _violations("approval_config", ("approval_services",))
        assert not violations, "\n".join(violations)


class TestDomainPurity:

    FORBIDDEN = (
        "sqlalchemy",
        "approval_kernel.db",
        "approval_kernel.models",
        "approval_kernel.services",
        "approval_kernel.selectors",
    )

    def test_domain_has_no_persistence_imports(self):
        violations = _violations("approval_kernel/domain", self.FORBIDDEN)
        assert not violations, (
            "Domain purity violation -- approval_kernel/domain/** must not "
            "touch persistence:\n" + "\n".join(violations)
        )


class TestTransactionOwnership:

    def test_kernel_services_never_commit(self):
        violations: list[str] = []
        for package in ("approval_kernel/services", "approval_kernel/selectors"):
            for filepath in _python_files(package):
                for node in ast.walk(_parse(filepath)):
                    if (
                        isinstance(node, ast.Call)
                        and isinstance(node.func, ast.Attribute)
                        and node.func.attr == "commit"
                    ):
                        violations.append(
                            f"  {filepath.relative_to(ROOT)}:{node.lineno}"
                        )
        assert not violations, (
            "Kernel services and selectors must only flush:\n" + "\n".join(violations)
        )
