"""Tests for restree.analyzer -- the end-to-end analysis pipeline."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx
import pytest

from restree.analyzer import (
    analyze_document,
    parse_document,
    parse_spec,
    resolve_base_url,
    source_key,
)
from restree.exceptions import FetchError, SpecValidationError
from restree.models import Analysis, Dialect, Document, ParseOptions, SchemaStrategy


# ---------------------------------------------------------------------------
# source_key
# ---------------------------------------------------------------------------


class TestSourceKey:
    def test_url_is_verbatim(self) -> None:
        url = "https://example.com/openapi.json?v=2"
        assert source_key(url) == url

    def test_stdin(self) -> None:
        assert source_key("-") == "-"

    def test_file_path_is_absolute(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert source_key("spec.json") == str((tmp_path / "spec.json").resolve())

    def test_dict_is_content_hashed(self, library_raw: dict[str, Any]) -> None:
        key = source_key(library_raw)
        assert key.startswith("sha256:")
        assert source_key(dict(reversed(list(library_raw.items())))) == key

    def test_different_dicts_differ(self) -> None:
        assert source_key({"a": 1}) != source_key({"a": 2})


class TestResolveBaseUrl:
    def test_first_server(self, library_document: Document) -> None:
        assert resolve_base_url(library_document, ParseOptions()) == "https://api.example.com/v1"

    def test_override_trailing_slash_removed(self, library_document: Document) -> None:
        options = ParseOptions(base_url="http://localhost:8080/")
        assert resolve_base_url(library_document, options) == "http://localhost:8080"

    def test_no_servers(self) -> None:
        document = Document(
            title="T", version="1", dialect=Dialect.OPENAPI_3, spec_version="3.0.0"
        )
        assert resolve_base_url(document, ParseOptions()) == ""


# ---------------------------------------------------------------------------
# analyze_document
# ---------------------------------------------------------------------------


class TestAnalyzeDocument:
    def test_metadata(self, library_analysis: Analysis) -> None:
        assert library_analysis.cache_key == "library"
        assert library_analysis.title == "Library API"
        assert library_analysis.version == "1.2.0"
        assert library_analysis.dialect == Dialect.OPENAPI_3
        assert library_analysis.spec_version == "3.0.3"
        assert library_analysis.base_url == "https://api.example.com/v1"
        assert library_analysis.servers == ["https://api.example.com/v1"]
        assert library_analysis.tags == ["authors", "books", "notes"]
        assert library_analysis.parsed_at.tzinfo is not None

    def test_resources_and_stats(self, library_analysis: Analysis) -> None:
        assert [node.key for node in library_analysis.resources] == ["authors", "books", "notes"]
        assert library_analysis.stats.total_resources == 5
        assert library_analysis.stats.total_operations == 17

    def test_base_url_override_reaches_nodes(self, library_document: Document) -> None:
        analysis = analyze_document(library_document, ParseOptions(base_url="http://localhost/"))
        assert analysis.base_url == "http://localhost"
        assert analysis.resources[1].base_path == "http://localhost/books"

    def test_envelope_keys_option(self, library_document: Document) -> None:
        analysis = analyze_document(library_document, ParseOptions(envelope_keys=[]))
        books = analysis.resources[1]
        assert [f.name for f in books.schema_][:3] == ["total", "page", "data"]

    def test_logs_summary(
        self, library_document: Document, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="restree"):
            analyze_document(library_document)
        assert "Analysed 'Library API' 1.2.0: 10 paths, 5 resources" in caplog.text

    def test_analysis_roundtrips_through_json(self, library_analysis: Analysis) -> None:
        restored = Analysis.model_validate_json(library_analysis.model_dump_json())
        assert restored == library_analysis


# ---------------------------------------------------------------------------
# parse_spec / parse_document
# ---------------------------------------------------------------------------


class TestParseSpec:
    def test_from_dict(self, swagger_raw: dict[str, Any]) -> None:
        analysis = parse_spec(swagger_raw)
        assert analysis.cache_key == source_key(swagger_raw)
        assert analysis.base_url == "https://clinic.example.com/v2"
        assert [node.key for node in analysis.resources] == ["pets", "store.inventory"]

    def test_from_file(self, library_file: Path) -> None:
        analysis = parse_spec(str(library_file))
        assert analysis.cache_key == str(library_file.resolve())
        assert analysis.title == "Library API"

    def test_explicit_cache_key(self, library_raw: dict[str, Any]) -> None:
        assert parse_spec(library_raw, cache_key="mine").cache_key == "mine"

    def test_options_are_applied(self, library_raw: dict[str, Any]) -> None:
        options = ParseOptions(schema_strategy=SchemaStrategy.AGGREGATE, max_depth=1)
        analysis = parse_spec(library_raw, options)
        assert analysis.stats.total_resources == 3

    def test_invalid_document_raises(self) -> None:
        with pytest.raises(SpecValidationError):
            parse_spec({"openapi": "3.0.0", "paths": {}})


class TestParseDocument:
    def test_fetches_remote_document(self, library_raw: dict[str, Any]) -> None:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, json=library_raw)

        async def run() -> Analysis:
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await parse_document("https://example.com/library.json", client=client)

        analysis = asyncio.run(run())
        assert requested == ["https://example.com/library.json"]
        assert analysis.cache_key == "https://example.com/library.json"
        assert analysis.stats.total_resources == 5

    def test_fetch_failure_aborts(self) -> None:
        async def run() -> Analysis:
            transport = httpx.MockTransport(lambda request: httpx.Response(500))
            async with httpx.AsyncClient(transport=transport) as client:
                return await parse_document("https://example.com/broken.json", client=client)

        with pytest.raises(FetchError, match="HTTP 500"):
            asyncio.run(run())

    def test_from_dict_needs_no_client(self, swagger_raw: dict[str, Any]) -> None:
        analysis = asyncio.run(parse_document(swagger_raw, cache_key="clinic"))
        assert analysis.cache_key == "clinic"
        assert analysis.title == "Pet Clinic"
