"""Inspect commands -- analyse a document and examine its resources.

Provides the ``restree inspect`` sub-command group with read-only commands
for viewing the analysis of an OpenAPI document: metadata and stats, the
resource tree, a flat resource table, single-resource lookups, and tree
counters.  Every sub-command takes the document SOURCE (URL, file path, or
``-`` for stdin) and goes through the persistent
:class:`~restree.cache.AnalysisCache`, so repeated invocations do not
re-fetch the document.
"""

from __future__ import annotations

import asyncio
import enum
import hashlib
from typing import Any, Optional

import typer

from restree.exceptions import NotFoundError, RestreeError
from restree.hierarchy.stats import iter_nodes
from restree.manager import ResourceManager
from restree.models import Analysis, ParseOptions, ResourceNode, SchemaStrategy
from restree.output import error, format_response, get_output


inspect_app = typer.Typer(no_args_is_help=True)


class LookupMode(str, enum.Enum):
    """How ``inspect find`` interprets its NAME argument."""

    NAME = "name"
    ID = "id"
    PATH = "path"


def _cache_key(source: str | dict[str, Any], options: ParseOptions) -> str:
    """Key an analysis by its source and the options it was built with."""
    from restree.analyzer import source_key

    fingerprint = hashlib.sha256(options.model_dump_json().encode()).hexdigest()[:12]
    return f"{source_key(source)}@{fingerprint}"


def _load_analysis(
    source: str,
    key: Optional[str] = None,
    refresh: bool = False,
    strategy: Optional[SchemaStrategy] = None,
    max_depth: Optional[int] = None,
) -> Analysis:
    """Resolve config and return the (possibly cached) analysis of *source*.

    Raises:
        typer.Exit: With the error's exit code when configuration, fetching
            or parsing fails.
    """
    from restree.cache import AnalysisCache
    from restree.config import get_cache_dir, resolve_config
    from restree.parser import load_spec

    try:
        config = resolve_config(
            cli_strategy=strategy.value if strategy else None,
            cli_max_depth=max_depth,
        )
        # stdin is keyed by its content
        document = load_spec(source) if source == "-" else source
        with AnalysisCache(get_cache_dir(), config.cache) as cache:
            cache_key = key or _cache_key(document, config.parse)
            parse = cache.reparse if refresh else cache.parse
            return asyncio.run(parse(document, config.parse, cache_key))
    except RestreeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


SourceArgument = typer.Argument(help="Document URL, file path, or '-' for stdin.")
KeyOption = typer.Option(None, "--key", help="Cache key (defaults to the source plus options).")
RefreshOption = typer.Option(False, "--refresh", help="Ignore any cached analysis.")
StrategyOption = typer.Option(None, "--strategy", help="Schema extraction strategy.")
MaxDepthOption = typer.Option(None, "--max-depth", min=1, help="Deepest resource chain kept.")


def _node_record(node: ResourceNode) -> dict[str, Any]:
    data = node.model_dump(mode="json", by_alias=True, exclude={"sub_resources", "operations"})
    data["methods"] = [m.upper() for m in data["methods"]]
    data["sub_resources"] = [child.key for child in node.sub_resources]
    data["operations"] = {
        method.value.upper(): op.operation_id or op.summary or op.path
        for method, op in node.operations.items()
    }
    return data


@inspect_app.command("info")
def inspect_info(
    source: str = SourceArgument,
    key: Optional[str] = KeyOption,
    refresh: bool = RefreshOption,
    strategy: Optional[SchemaStrategy] = StrategyOption,
    max_depth: Optional[int] = MaxDepthOption,
) -> None:
    """Show document metadata and whole-document stats.

    Example::

        restree inspect info openapi.json
        restree --json inspect info https://example.com/openapi.yaml
    """
    analysis = _load_analysis(source, key, refresh, strategy, max_depth)

    format_response({
        "title": analysis.title,
        "version": analysis.version,
        "spec_version": analysis.spec_version,
        "dialect": analysis.dialect.value,
        "description": analysis.description or "-",
        "base_url": analysis.base_url or "-",
        "servers": analysis.servers,
        "tags": analysis.tags,
        "total_paths": analysis.stats.total_paths,
        "total_operations": analysis.stats.total_operations,
        "total_resources": analysis.stats.total_resources,
        "restful_resources": analysis.stats.restful_resources,
        "method_counts": analysis.stats.method_counts,
        "cache_key": analysis.cache_key,
        "parsed_at": analysis.parsed_at.isoformat(),
    })


@inspect_app.command("tree")
def inspect_tree(
    source: str = SourceArgument,
    key: Optional[str] = KeyOption,
    refresh: bool = RefreshOption,
    strategy: Optional[SchemaStrategy] = StrategyOption,
    max_depth: Optional[int] = MaxDepthOption,
) -> None:
    """Show the resource tree.

    Example::

        restree inspect tree openapi.json
    """
    analysis = _load_analysis(source, key, refresh, strategy, max_depth)
    get_output().print_tree(analysis.resources, title=f"{analysis.title} {analysis.version}")


@inspect_app.command("resources")
def inspect_resources(
    source: str = SourceArgument,
    key: Optional[str] = KeyOption,
    refresh: bool = RefreshOption,
    strategy: Optional[SchemaStrategy] = StrategyOption,
    max_depth: Optional[int] = MaxDepthOption,
) -> None:
    """List every resource, nested ones included, as a table.

    Example::

        restree --plain inspect resources openapi.json
    """
    analysis = _load_analysis(source, key, refresh, strategy, max_depth)

    headers = ["Key", "Methods", "Type", "RESTful", "Path", "Identifier", "Fields"]
    rows: list[list[str]] = []
    for node in iter_nodes(analysis.resources):
        rows.append([
            node.key,
            ",".join(m.value.upper() for m in node.methods),
            node.classification.value,
            "yes" if node.is_restful else "no",
            node.path,
            node.identifier_field,
            str(len(node.schema_)),
        ])

    get_output().print_table(
        headers, rows, title=f"{analysis.title} -- Resources ({len(rows)})"
    )


@inspect_app.command("find")
def inspect_find(
    source: str = SourceArgument,
    name: str = typer.Argument(help="Resource name, key, or dotted name path."),
    by: LookupMode = typer.Option(LookupMode.NAME, "--by", help="Lookup mode."),
    deep: bool = typer.Option(
        False, "--deep", help="Plain depth-first name search instead of top-level first."
    ),
    key: Optional[str] = KeyOption,
    refresh: bool = RefreshOption,
    strategy: Optional[SchemaStrategy] = StrategyOption,
    max_depth: Optional[int] = MaxDepthOption,
) -> None:
    """Look up one resource and show its details.

    Exits with code 4 when nothing matches.

    Example::

        restree inspect find openapi.json reviews
        restree inspect find openapi.json books.notes --by path
    """
    analysis = _load_analysis(source, key, refresh, strategy, max_depth)
    manager = ResourceManager.from_analysis(analysis)

    if by == LookupMode.ID:
        node = manager.find_by_id(name)
    elif by == LookupMode.PATH:
        node = manager.find_by_path(name)
    else:
        node = manager.find_by_name(name, prefer_top_level=not deep)

    if node is None:
        exc = NotFoundError(f"No resource matches {by.value} '{name}'")
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    format_response(_node_record(node))


@inspect_app.command("stats")
def inspect_stats(
    source: str = SourceArgument,
    key: Optional[str] = KeyOption,
    refresh: bool = RefreshOption,
    strategy: Optional[SchemaStrategy] = StrategyOption,
    max_depth: Optional[int] = MaxDepthOption,
) -> None:
    """Show resource tree counters.

    Example::

        restree --json inspect stats openapi.json
    """
    analysis = _load_analysis(source, key, refresh, strategy, max_depth)
    format_response(ResourceManager.from_analysis(analysis).get_stats().model_dump())
