"""Shared test fixtures for restree.

Provides reusable fixtures for loading fixture documents, creating isolated
config environments, resetting output and logging state, and running CLI
commands.  These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any

import pytest
from rich.logging import RichHandler

from restree.models import Analysis, Document
from restree.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_restree_logger() -> None:
    """Undo the log handler the CLI callback installs on the ``restree`` logger.

    The handler writes to a console bound to a CliRunner stream, and
    ``propagate=False`` would hide records from ``caplog``.
    """
    yield
    logger = logging.getLogger("restree")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Raw document fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


def load_fixture(name: str) -> dict[str, Any]:
    with open(FIXTURES_DIR / name) as f:
        return json.load(f)


@pytest.fixture
def library_raw() -> dict[str, Any]:
    """Load the raw OpenAPI 3.0 library document."""
    return load_fixture("library_3.0.json")


@pytest.fixture
def swagger_raw() -> dict[str, Any]:
    """Load the raw Swagger 2.0 pet clinic document."""
    return load_fixture("swagger_2.0.json")


# ---------------------------------------------------------------------------
# Built document and analysis fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def library_document(library_raw: dict[str, Any]) -> Document:
    from restree.parser import build_document

    return build_document(library_raw)


@pytest.fixture
def swagger_document(swagger_raw: dict[str, Any]) -> Document:
    from restree.parser import build_document

    return build_document(swagger_raw)


@pytest.fixture
def library_analysis(library_document: Document) -> Analysis:
    """Analysis of the library document with default options."""
    from restree.analyzer import analyze_document

    return analyze_document(library_document, cache_key="library")


@pytest.fixture
def library_file(tmp_path: Path) -> Path:
    """Copy the library document into tmp_path and return its path."""
    target = tmp_path / "library.json"
    shutil.copy(FIXTURES_DIR / "library_3.0.json", target)
    return target


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config. Clears all RESTREE_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("restree.config._is_xdg_platform", lambda: True)

    for var in [
        "RESTREE_FORMAT",
        "RESTREE_SCHEMA_STRATEGY",
        "RESTREE_MAX_DEPTH",
        "RESTREE_BASE_URL",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
