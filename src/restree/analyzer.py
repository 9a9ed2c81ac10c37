"""The analysis pipeline: document in, :class:`~restree.models.Analysis` out.

:func:`analyze_document` is the synchronous core: given a document already in
memory it builds the resource tree, computes stats and stamps the result.  It
has no suspension points.  :func:`parse_spec` and :func:`parse_document` add
the loading step in front of it, the latter awaiting remote fetches through
:class:`httpx.AsyncClient`.

Fetch and structural-validation failures abort the whole parse; nothing
partial is returned.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from restree.hierarchy import build_resource_tree, calculate_stats, collect_tags
from restree.models import Analysis, Document, ParseOptions
from restree.parser import build_document, load_spec, load_spec_async
from restree.parser.loader import is_url
from restree.parser.resolver import SchemaResolver

logger = logging.getLogger(__name__)

Source = Union[str, dict[str, Any]]


def source_key(source: Source) -> str:
    """Derive the cache key of a source.

    URLs are used verbatim, file paths are made absolute, and in-memory
    documents are keyed by a SHA-256 of their canonical JSON form.  ``"-"``
    is returned as is; :class:`~restree.cache.AnalysisCache` reads stdin
    before keying so piped documents are keyed by content.
    """
    if isinstance(source, dict):
        digest = hashlib.sha256(
            json.dumps(source, sort_keys=True, default=str).encode()
        ).hexdigest()
        return f"sha256:{digest}"
    if is_url(source) or source == "-":
        return source
    return str(Path(source).expanduser().resolve())


def resolve_base_url(document: Document, options: ParseOptions) -> str:
    """Return the configured override, else the first server, without a trailing slash."""
    base_url = options.base_url or (document.servers[0] if document.servers else "")
    return base_url.rstrip("/")


def analyze_document(
    document: Document,
    options: Optional[ParseOptions] = None,
    cache_key: str = "",
) -> Analysis:
    """Build the :class:`Analysis` of a validated document.

    Args:
        document: Output of :func:`~restree.parser.loader.build_document`.
        options: Parse options; defaults to :class:`ParseOptions()`.
        cache_key: Key recorded on the result.

    Returns:
        The complete analysis.  Its nodes are not modified afterwards.
    """
    options = options or ParseOptions()
    base_url = resolve_base_url(document, options)
    resolver = SchemaResolver(document.raw, options.envelope_keys)

    resources = build_resource_tree(document, options, resolver, base_url)
    stats = calculate_stats(document, resources)

    logger.info(
        "Analysed '%s' %s: %d paths, %d resources",
        document.title,
        document.version,
        stats.total_paths,
        stats.total_resources,
    )
    return Analysis(
        cache_key=cache_key,
        title=document.title,
        version=document.version,
        description=document.description,
        dialect=document.dialect,
        spec_version=document.spec_version,
        base_url=base_url,
        servers=list(document.servers),
        tags=collect_tags(document),
        resources=resources,
        stats=stats,
    )


def parse_spec(
    source: Source,
    options: Optional[ParseOptions] = None,
    cache_key: Optional[str] = None,
) -> Analysis:
    """Load, validate and analyse a document synchronously.

    Args:
        source: A deserialised document, a URL, a file path, or ``"-"``.
        options: Parse options.
        cache_key: Key recorded on the result; derived with
            :func:`source_key` when omitted.

    Raises:
        FetchError: If a URL source cannot be fetched.
        SpecParseError: If the document cannot be parsed or validated.
    """
    raw = source if isinstance(source, dict) else load_spec(source)
    return analyze_document(
        build_document(raw), options, cache_key if cache_key is not None else source_key(source)
    )


async def parse_document(
    source: Source,
    options: Optional[ParseOptions] = None,
    client: Optional[httpx.AsyncClient] = None,
    cache_key: Optional[str] = None,
) -> Analysis:
    """Async counterpart of :func:`parse_spec`; remote fetches are awaited."""
    raw = source if isinstance(source, dict) else await load_spec_async(source, client=client)
    return analyze_document(
        build_document(raw), options, cache_key if cache_key is not None else source_key(source)
    )
