"""Unit tests for the import boundary checking script.

Tests verify that the refdesk layering rules are enforced:
- domain/ imports NOTHING from other refdesk layers
- application/ imports from domain/ only
- infrastructure/ imports from domain/ and application/
- api/ imports from application/ and domain/, never infrastructure/
"""

import ast
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "scripts"))

from check_imports import (  # noqa: E402
    ALLOWED_IMPORTS,
    LAYER_HIERARCHY,
    check_file_imports,
    check_import_boundaries,
    format_violations,
    get_import_module,
)


@pytest.fixture
def package_dir(tmp_path: Path) -> Path:
    """Create a throwaway refdesk package with the four layers."""
    root = tmp_path / "refdesk"
    for layer in LAYER_HIERARCHY:
        (root / layer).mkdir(parents=True)
        (root / layer / "__init__.py").write_text("")
    return root


def write_module(package_dir: Path, layer: str, source: str) -> Path:
    path = package_dir / layer / "module.py"
    path.write_text(source)
    return path


class TestLayerRules:
    def test_hierarchy_order(self) -> None:
        ordered = sorted(LAYER_HIERARCHY, key=LAYER_HIERARCHY.__getitem__)
        assert ordered == ["domain", "application", "infrastructure", "api"]

    def test_allowed_imports(self) -> None:
        assert ALLOWED_IMPORTS["domain"] == set()
        assert ALLOWED_IMPORTS["application"] == {"domain"}
        assert ALLOWED_IMPORTS["infrastructure"] == {"domain", "application"}
        assert ALLOWED_IMPORTS["api"] == {"application", "domain"}


class TestGetImportModule:
    def test_from_import(self) -> None:
        node = ast.parse("from refdesk.domain.models import DisputeSession").body[0]
        assert get_import_module(node) == "refdesk.domain.models"

    def test_plain_import(self) -> None:
        node = ast.parse("import refdesk.domain.models").body[0]
        assert get_import_module(node) == "refdesk.domain.models"

    def test_relative_import(self) -> None:
        node = ast.parse("from . import something").body[0]
        assert get_import_module(node) is None


class TestCheckFileImports:
    @pytest.mark.parametrize(
        ("layer", "source"),
        [
            ("domain", "import re\nfrom dataclasses import dataclass"),
            ("domain", "from refdesk.domain.errors import SessionNotOpenError"),
            ("application", "from refdesk.domain.models import DisputeSession"),
            ("infrastructure", "from refdesk.application.ports import ChatPlatformProtocol"),
            ("api", "from refdesk.application.services import RoutingResolver"),
            ("api", "from refdesk.bootstrap.container import get_container"),
            ("application", "from refdesk.config import RelayConfig"),
        ],
    )
    def test_allowed(self, package_dir: Path, layer: str, source: str) -> None:
        path = write_module(package_dir, layer, source)
        assert check_file_imports(path, package_dir) == []

    @pytest.mark.parametrize(
        ("layer", "target"),
        [
            ("domain", "application"),
            ("domain", "infrastructure"),
            ("application", "infrastructure"),
            ("application", "api"),
            ("infrastructure", "api"),
            ("api", "infrastructure"),
        ],
    )
    def test_violations(self, package_dir: Path, layer: str, target: str) -> None:
        path = write_module(package_dir, layer, f"from refdesk.{target}.x import y")

        violations = check_file_imports(path, package_dir)

        assert violations == [
            (str(path), 1, f"{layer} layer cannot import from {target}")
        ]

    def test_files_outside_layers_are_skipped(self, package_dir: Path) -> None:
        (package_dir / "bootstrap").mkdir()
        path = package_dir / "bootstrap" / "container.py"
        path.write_text("from refdesk.infrastructure.stubs import ChatPlatformStub")

        assert check_file_imports(path, package_dir) == []


class TestCheckImportBoundaries:
    def test_nested_files_are_scanned(self, package_dir: Path) -> None:
        nested = package_dir / "domain" / "services"
        nested.mkdir()
        (nested / "matcher.py").write_text("import refdesk.api.routes")

        violations = check_import_boundaries(package_dir)

        assert len(violations) == 1
        assert "matcher.py" in violations[0][0]
        assert "Total: 1 violation(s)" in format_violations(violations)

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert check_import_boundaries(tmp_path / "missing") == []

    def test_refdesk_package_has_no_violations(self) -> None:
        violations = check_import_boundaries(PROJECT_ROOT / "refdesk")
        assert violations == [], format_violations(violations)
