"""Load OpenAPI / Swagger documents from a URL, local file, or stdin.

This module handles all I/O for fetching raw documents and converting them
into Python dictionaries.  It supports both JSON and YAML formats with
automatic format detection, detects the document dialect (Swagger 2.0 or
OpenAPI 3.x), and validates the structure the rest of the pipeline relies on.

The public functions are:

* :func:`load_spec` -- Load and deserialise a document from any supported source.
* :func:`fetch_spec` / :func:`load_spec_async` -- The same over
  :class:`httpx.AsyncClient`; this is the only suspension point of a parse.
* :func:`detect_dialect` -- Return the :class:`~restree.models.Dialect` and
  version string, rejecting documents without a dialect marker.
* :func:`validate_document` -- Structural checks (``info.title``,
  ``info.version``, ``paths``).
* :func:`build_document` -- Validate a raw dict and wrap it in a frozen
  :class:`~restree.models.Document`.

Fetch failures raise :class:`~restree.exceptions.FetchError`; anything wrong
with the content itself raises :class:`~restree.exceptions.SpecParseError`
or its subclass :class:`~restree.exceptions.SpecValidationError`.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from restree.exceptions import FetchError, SpecParseError, SpecValidationError
from restree.models import Dialect, Document

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def is_url(source: str) -> bool:
    """Return ``True`` if *source* is an HTTP(S) URL."""
    return source.startswith(("http://", "https://"))


def load_spec(source: str, timeout: float = DEFAULT_TIMEOUT) -> dict[str, Any]:
    """Load a document from URL, file path, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https), file path, or '-' for stdin.
        timeout: Request timeout in seconds for URL sources.

    Returns:
        The deserialised document as a dictionary.

    Raises:
        FetchError: If a URL cannot be fetched or answers with a non-2xx status.
        SpecParseError: If the source cannot be read or parsed.
    """
    if source == "-":
        return _load_from_stdin()
    elif is_url(source):
        return _load_from_url(source, timeout)
    else:
        return _load_from_file(source)


async def fetch_spec(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Fetch and deserialise a remote document asynchronously.

    Args:
        url: The HTTP(S) URL to fetch.
        client: An existing :class:`httpx.AsyncClient` to reuse.  When
            omitted a short-lived client is created for this request.
        timeout: Request timeout in seconds.

    Returns:
        The deserialised document.

    Raises:
        FetchError: On network failure or a non-2xx status.
        SpecParseError: If the body is neither JSON nor YAML.
    """
    try:
        if client is not None:
            response = await client.get(url, timeout=timeout, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
                response = await owned.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise FetchError(
            f"HTTP {exc.response.status_code} fetching spec from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise FetchError(f"Failed to fetch spec from {url}: {exc}") from exc

    logger.debug("Fetched %s (%d bytes)", url, len(response.content))
    return _parse_content(response.text, hint=_hint_from_content_type(response))


async def load_spec_async(
    source: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Async counterpart of :func:`load_spec`.

    Only URL sources are awaited; files and stdin are read synchronously.
    """
    if is_url(source):
        return await fetch_spec(source, client=client, timeout=timeout)
    return load_spec(source, timeout=timeout)


def _load_from_stdin() -> dict[str, Any]:
    """Read a document from stdin.

    Raises:
        SpecParseError: If stdin is empty or content cannot be parsed.
    """
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SpecParseError("No input received from stdin")

    return _parse_content(content, hint="stdin")


def _load_from_url(url: str, timeout: float) -> dict[str, Any]:
    """Fetch a document from URL. Supports JSON and YAML responses."""
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise FetchError(
            f"HTTP {exc.response.status_code} fetching spec from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise FetchError(f"Failed to fetch spec from {url}: {exc}") from exc

    return _parse_content(response.text, hint=_hint_from_content_type(response))


def _hint_from_content_type(response: httpx.Response) -> str:
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"
    return ""


def _load_from_file(path: str) -> dict[str, Any]:
    """Load a document from a local file.

    Supports .json, .yaml, and .yml extensions. Falls back to content-based
    detection if the extension is not recognized.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Spec file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read spec file {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecParseError: If the content cannot be parsed as either format,
            or does not deserialise to an object.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
        else:
            return _require_object(result)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        yaml_error = exc
    else:
        return _require_object(result)

    msg = "Failed to parse spec as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecParseError(msg)


def _require_object(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise SpecParseError(f"Spec must be a JSON/YAML object (got {kind})")
    return result


# ---------------------------------------------------------------------------
# Dialect detection and validation
# ---------------------------------------------------------------------------


def detect_dialect(spec: dict[str, Any]) -> tuple[Dialect, str]:
    """Detect the document dialect from its ``openapi`` / ``swagger`` marker.

    Args:
        spec: The deserialised document.

    Returns:
        A ``(dialect, version)`` tuple, e.g. ``(Dialect.OPENAPI_3, "3.0.3")``.

    Raises:
        SpecValidationError: If neither marker is present, or the declared
            version is not 2.x / 3.x respectively.
    """
    if "openapi" in spec:
        version = str(spec["openapi"])
        if not version.startswith("3."):
            raise SpecValidationError(
                f"Unsupported OpenAPI version: {version}. "
                "Only OpenAPI 3.x and Swagger 2.0 are supported."
            )
        return Dialect.OPENAPI_3, version

    if "swagger" in spec:
        version = str(spec["swagger"])
        if not version.startswith("2."):
            raise SpecValidationError(f"Unsupported Swagger version: {version}")
        return Dialect.SWAGGER_2, version

    raise SpecValidationError(
        "Missing 'openapi' or 'swagger' field. Is this an OpenAPI document?"
    )


def validate_document(spec: dict[str, Any]) -> tuple[Dialect, str]:
    """Check the structure required before any resource extraction.

    Returns:
        The ``(dialect, version)`` tuple from :func:`detect_dialect`.

    Raises:
        SpecValidationError: On a missing dialect marker, missing
            ``info.title`` / ``info.version``, or a missing or non-object
            ``paths`` table.
    """
    dialect, version = detect_dialect(spec)

    info = spec.get("info")
    if not isinstance(info, dict):
        raise SpecValidationError("Missing 'info' object")
    for field in ("title", "version"):
        if info.get(field) in (None, ""):
            raise SpecValidationError(f"Missing required field 'info.{field}'")

    if "paths" not in spec:
        raise SpecValidationError("Missing 'paths' object")
    if not isinstance(spec["paths"], dict):
        raise SpecValidationError(
            f"'paths' must be an object (got {type(spec['paths']).__name__})"
        )

    return dialect, version


def build_document(spec: dict[str, Any]) -> Document:
    """Validate a deserialised document and wrap it in a :class:`Document`.

    Servers are normalised to plain URL strings regardless of dialect: the
    3.x ``servers`` list (with ``variables`` defaults substituted), or
    ``scheme://host + basePath`` for Swagger 2.0 (``http`` and ``localhost``
    when omitted).

    Raises:
        SpecValidationError: See :func:`validate_document`.
    """
    dialect, version = validate_document(spec)
    info = spec["info"]

    if dialect == Dialect.SWAGGER_2:
        servers = _swagger_servers(spec)
        definitions = spec.get("definitions") or {}
    else:
        servers = _openapi_servers(spec)
        definitions = (spec.get("components") or {}).get("schemas") or {}

    tags = [
        tag["name"]
        for tag in spec.get("tags") or []
        if isinstance(tag, dict) and tag.get("name")
    ]

    return Document(
        title=str(info["title"]),
        version=str(info["version"]),
        description=info.get("description"),
        dialect=dialect,
        spec_version=version,
        servers=servers,
        tags=tags,
        paths=spec["paths"],
        definitions=definitions if isinstance(definitions, dict) else {},
        raw=spec,
    )


def _openapi_servers(spec: dict[str, Any]) -> list[str]:
    servers: list[str] = []
    for server in spec.get("servers") or []:
        if not isinstance(server, dict) or not server.get("url"):
            continue
        url = str(server["url"])
        for name, variable in (server.get("variables") or {}).items():
            if isinstance(variable, dict) and "default" in variable:
                url = url.replace("{" + name + "}", str(variable["default"]))
        servers.append(url)
    return servers


def _swagger_servers(spec: dict[str, Any]) -> list[str]:
    host = spec.get("host") or "localhost"
    base_path = spec.get("basePath") or ""
    schemes = spec.get("schemes") or ["http"]
    return [f"{scheme}://{host}{base_path}" for scheme in schemes]
