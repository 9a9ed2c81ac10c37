"""Tests for restree.parser.loader."""

from __future__ import annotations

import asyncio
import io
import json
import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest

from restree.exceptions import FetchError, SpecParseError, SpecValidationError
from restree.models import Dialect
from restree.parser.loader import (
    _parse_content,
    build_document,
    detect_dialect,
    fetch_spec,
    load_spec,
    load_spec_async,
    validate_document,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

MINIMAL = {"openapi": "3.0.3", "info": {"title": "Minimal", "version": "1.0"}, "paths": {}}


def _fetch_with(handler: Any, url: str = "https://example.com/openapi.json") -> dict[str, Any]:
    """Run :func:`fetch_spec` against an httpx mock transport."""

    async def run() -> dict[str, Any]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_spec(url, client=client)

    return asyncio.run(run())


# ---------------------------------------------------------------------------
# load_spec dispatch
# ---------------------------------------------------------------------------


class TestLoadSpec:
    """Test load_spec dispatcher routes to the correct loader."""

    def test_loads_from_file_json(self) -> None:
        result = load_spec(str(FIXTURES_DIR / "library_3.0.json"))
        assert result["openapi"] == "3.0.3"
        assert result["info"]["title"] == "Library API"

    def test_loads_from_file_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "spec.yaml"
        yaml_file.write_text(
            textwrap.dedent("""\
                swagger: "2.0"
                info:
                  title: YAML Test
                  version: "1.0.0"
                paths: {}
            """),
            encoding="utf-8",
        )
        result = load_spec(str(yaml_file))
        assert result["swagger"] == "2.0"
        assert result["info"]["title"] == "YAML Test"

    def test_loads_from_stdin(self) -> None:
        with patch("restree.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(json.dumps(MINIMAL))
            result = load_spec("-")
        assert result["info"]["title"] == "Minimal"

    def test_empty_stdin_raises(self) -> None:
        with patch("restree.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("   \n")
            with pytest.raises(SpecParseError, match="No input"):
                load_spec("-")

    def test_loads_from_url(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            json=MINIMAL,
            request=httpx.Request("GET", "https://example.com/spec.json"),
        )
        with patch("restree.parser.loader.httpx.get", return_value=mock_response):
            result = load_spec("https://example.com/spec.json")
        assert result["info"]["title"] == "Minimal"

    def test_url_http_error_raises_fetch_error(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/missing.json"),
        )
        with patch("restree.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(FetchError, match="HTTP 404"):
                load_spec("https://example.com/missing.json")

    def test_url_connection_error_raises_fetch_error(self) -> None:
        with patch(
            "restree.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("Connection refused"),
        ):
            with pytest.raises(FetchError, match="Failed to fetch"):
                load_spec("https://unreachable.example.com/spec.json")

    def test_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SpecParseError, match="not found"):
            load_spec(str(tmp_path / "missing.json"))

    def test_empty_file_raises(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.json"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(SpecParseError, match="empty"):
            load_spec(str(empty))


# ---------------------------------------------------------------------------
# Async fetching
# ---------------------------------------------------------------------------


class TestFetchSpec:
    def test_fetches_json(self) -> None:
        result = _fetch_with(lambda request: httpx.Response(200, json=MINIMAL))
        assert result == MINIMAL

    def test_fetches_yaml_by_content_type(self) -> None:
        body = "openapi: '3.0.0'\ninfo:\n  title: Remote YAML\n  version: '1'\npaths: {}\n"
        result = _fetch_with(
            lambda request: httpx.Response(
                200, text=body, headers={"content-type": "application/yaml"}
            )
        )
        assert result["info"]["title"] == "Remote YAML"

    def test_non_2xx_raises_fetch_error(self) -> None:
        with pytest.raises(FetchError, match="HTTP 503"):
            _fetch_with(lambda request: httpx.Response(503))

    def test_network_error_raises_fetch_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(FetchError, match="Failed to fetch"):
            _fetch_with(handler)

    def test_malformed_body_raises_parse_error(self) -> None:
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            _fetch_with(
                lambda request: httpx.Response(
                    200, text="{not json", headers={"content-type": "application/json"}
                )
            )

    def test_load_spec_async_reads_files_directly(self) -> None:
        result = asyncio.run(load_spec_async(str(FIXTURES_DIR / "swagger_2.0.json")))
        assert result["swagger"] == "2.0"


# ---------------------------------------------------------------------------
# _parse_content
# ---------------------------------------------------------------------------


class TestParseContent:
    def test_parses_json(self) -> None:
        assert _parse_content('{"a": 1}') == {"a": 1}

    def test_parses_yaml(self) -> None:
        assert _parse_content("a: 1\nb: two\n") == {"a": 1, "b": "two"}

    def test_yaml_hint_skips_json(self) -> None:
        assert _parse_content('{"a": 1}', hint="yaml") == {"a": 1}

    def test_non_dict_content_raises(self) -> None:
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            _parse_content("[1, 2, 3]")

    def test_null_yaml_raises(self) -> None:
        with pytest.raises(SpecParseError, match="empty document"):
            _parse_content("~")


# ---------------------------------------------------------------------------
# Dialect detection and validation
# ---------------------------------------------------------------------------


class TestDetectDialect:
    def test_openapi_3(self) -> None:
        assert detect_dialect({"openapi": "3.1.0"}) == (Dialect.OPENAPI_3, "3.1.0")

    def test_swagger_2(self) -> None:
        assert detect_dialect({"swagger": "2.0"}) == (Dialect.SWAGGER_2, "2.0")

    def test_version_as_number(self) -> None:
        assert detect_dialect({"swagger": 2.0}) == (Dialect.SWAGGER_2, "2.0")

    def test_missing_marker_raises(self) -> None:
        with pytest.raises(SpecValidationError, match="Missing 'openapi' or 'swagger'"):
            detect_dialect({"info": {}})

    def test_unsupported_openapi_version_raises(self) -> None:
        with pytest.raises(SpecValidationError, match="Unsupported OpenAPI version"):
            detect_dialect({"openapi": "2.0"})

    def test_unsupported_swagger_version_raises(self) -> None:
        with pytest.raises(SpecValidationError, match="Unsupported Swagger version"):
            detect_dialect({"swagger": "1.2"})


class TestValidateDocument:
    def test_accepts_minimal_document(self) -> None:
        assert validate_document(MINIMAL) == (Dialect.OPENAPI_3, "3.0.3")

    @pytest.mark.parametrize(
        "info, message",
        [
            (None, "Missing 'info'"),
            ({"version": "1"}, "info.title"),
            ({"title": "T"}, "info.version"),
            ({"title": "", "version": "1"}, "info.title"),
        ],
    )
    def test_incomplete_info_raises(self, info: Any, message: str) -> None:
        spec: dict[str, Any] = {"openapi": "3.0.0", "paths": {}}
        if info is not None:
            spec["info"] = info
        with pytest.raises(SpecValidationError, match=message):
            validate_document(spec)

    def test_missing_paths_raises(self) -> None:
        spec = {"openapi": "3.0.0", "info": {"title": "T", "version": "1"}}
        with pytest.raises(SpecValidationError, match="Missing 'paths'"):
            validate_document(spec)

    def test_non_object_paths_raises(self) -> None:
        spec = {"openapi": "3.0.0", "info": {"title": "T", "version": "1"}, "paths": ["/a"]}
        with pytest.raises(SpecValidationError, match="must be an object"):
            validate_document(spec)

    def test_validation_error_is_a_parse_error(self) -> None:
        with pytest.raises(SpecParseError):
            validate_document({})


# ---------------------------------------------------------------------------
# build_document
# ---------------------------------------------------------------------------


class TestBuildDocument:
    def test_openapi_metadata(self, library_raw: dict[str, Any]) -> None:
        document = build_document(library_raw)

        assert document.title == "Library API"
        assert document.version == "1.2.0"
        assert document.description == "Authors, their books, and reader notes."
        assert document.dialect == Dialect.OPENAPI_3
        assert document.spec_version == "3.0.3"
        assert document.tags == ["authors", "books", "notes"]
        assert "Book" in document.definitions
        assert document.raw is library_raw

    def test_openapi_server_variables_are_substituted(self, library_raw: dict[str, Any]) -> None:
        assert build_document(library_raw).servers == ["https://api.example.com/v1"]

    def test_swagger_servers_from_schemes_host_base_path(self, swagger_raw: dict[str, Any]) -> None:
        document = build_document(swagger_raw)

        assert document.dialect == Dialect.SWAGGER_2
        assert document.servers == [
            "https://clinic.example.com/v2",
            "http://clinic.example.com/v2",
        ]
        assert "Pet" in document.definitions

    def test_swagger_server_defaults(self) -> None:
        document = build_document({"swagger": "2.0", "info": {"title": "T", "version": "1"}, "paths": {}})
        assert document.servers == ["http://localhost"]

    def test_document_is_frozen(self, library_raw: dict[str, Any]) -> None:
        document = build_document(library_raw)
        with pytest.raises(Exception):
            document.title = "Changed"  # type: ignore[misc]

    def test_path_entries_skip_non_object_items(self) -> None:
        document = build_document({
            "openapi": "3.0.0",
            "info": {"title": "T", "version": "1"},
            "paths": {
                "/books": {"get": {"responses": {}}, "summary": "not an operation"},
                "/broken": "nope",
            },
        })
        entries = list(document.path_entries())
        assert [e.path for e in entries] == ["/books"]
        assert list(entries[0].operations) == ["get"]
