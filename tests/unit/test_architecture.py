"""Tests to verify the hexagonal package structure of refdesk."""

from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture
def package_path() -> Path:
    """Return the refdesk package path."""
    return PROJECT_ROOT / "refdesk"


def test_main_layers_exist(package_path: Path) -> None:
    """Verify all main layer directories exist."""
    for layer in ["domain", "application", "infrastructure", "api"]:
        assert (package_path / layer).is_dir(), f"Missing layer: {layer}"
        assert (package_path / layer / "__init__.py").is_file(), (
            f"Missing {layer}/__init__.py"
        )


def test_domain_subdirectories_exist(package_path: Path) -> None:
    domain = package_path / "domain"
    for subdir in ["errors", "models", "services"]:
        assert (domain / subdir / "__init__.py").is_file(), f"Missing domain/{subdir}"


def test_api_reaches_infrastructure_only_through_bootstrap(package_path: Path) -> None:
    """Route modules get adapters injected; only bootstrap wires them."""
    for py_file in (package_path / "api").rglob("*.py"):
        content = py_file.read_text()
        assert "refdesk.infrastructure" not in content, (
            f"{py_file} imports infrastructure directly"
        )


def test_refdesk_error_importable_from_domain() -> None:
    from refdesk.domain import RefDeskError

    assert issubclass(RefDeskError, Exception)
    assert str(RefDeskError("test message")) == "test message"
    assert str(RefDeskError()) == ""


def test_error_taxonomy_shares_base() -> None:
    """Every domain error is a RefDeskError so routes can map them in one place."""
    from refdesk.domain import errors
    from refdesk.domain.exceptions import RefDeskError

    for name in errors.__all__:
        error_class = getattr(errors, name)
        assert issubclass(error_class, RefDeskError), name


def test_unknown_session_is_not_open() -> None:
    from refdesk.domain.errors import SessionNotFoundError, SessionNotOpenError

    assert issubclass(SessionNotFoundError, SessionNotOpenError)
