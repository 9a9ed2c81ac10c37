"""Build the resource tree from a loaded document.

This is the core of restree.  :func:`build_resource_tree` performs five
steps:

1. **Group** -- classify every path template into a resource chain
   (:func:`~restree.hierarchy.path_rules.extract_resource_chain`) and group
   templates by resource key.  Empty chains, chains deeper than
   ``max_depth``, and (when ``include_sub_resources`` is off) nested chains
   are skipped.
2. **Canonical path** -- each group displays the template chosen by
   :func:`~restree.hierarchy.path_rules.select_canonical_path`.
3. **Merge** -- member templates are visited in canonical order; methods,
   tags and fields are unioned with the first occurrence winning, and the
   first operation seen per method is kept.
4. **Describe** -- classification, RESTful flag, display name, base path and
   identifier field are derived for each node.
5. **Attach** -- nodes are attached under their parent key, else under the
   nearest existing ancestor, else promoted to the root list.  Every node
   appears exactly once in the result.

Field extraction follows ``ParseOptions.schema_strategy``: ``response``
reads the success responses of each operation and unwraps arrays and
paginated envelopes; ``aggregate`` merges every response, the request body
and every non-body parameter.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from restree.hierarchy.classifier import classify_methods, is_restful
from restree.hierarchy.path_rules import (
    canonical_sort_key,
    extract_resource_chain,
    resource_key,
    select_canonical_path,
    trailing_params,
)
from restree.models import (
    Document,
    FieldDefinition,
    HTTPMethod,
    OperationInfo,
    ParseOptions,
    PathEntry,
    ResourceNode,
    SchemaStrategy,
)
from restree.parser.extractor import extract_operations, success_response_schemas
from restree.parser.resolver import SchemaResolver

logger = logging.getLogger(__name__)

_COMMON_IDENTIFIERS = ("uuid", "guid", "key", "identifier", "code", "name")

_IDENTIFIER_ALIASES = {
    "id": "id",
    "identifier": "id",
    "key": "id",
    "uuid": "id",
    "guid": "id",
    "name": "name",
    "title": "name",
    "code": "code",
    "number": "number",
    "num": "number",
}


def build_resource_tree(
    document: Document,
    options: Optional[ParseOptions] = None,
    resolver: Optional[SchemaResolver] = None,
    base_url: str = "",
) -> list[ResourceNode]:
    """Derive the resource tree of *document*.

    Args:
        document: A validated document from
            :func:`~restree.parser.loader.build_document`.
        options: Parse options; defaults to :class:`ParseOptions()`.
        resolver: Resolver bound to ``document.raw``.  Created from
            *options* when omitted.
        base_url: Prefix of every node's ``base_path``.

    Returns:
        The root resource list.  Nested resources are reachable through
        ``sub_resources``.
    """
    options = options or ParseOptions()
    if resolver is None:
        resolver = SchemaResolver(document.raw, options.envelope_keys)

    groups = _group_paths(document, options)
    nodes = [
        _build_node(document, chain, entries, resolver, options, base_url)
        for chain, entries in groups.values()
    ]
    return attach_nodes(nodes)


def _group_paths(
    document: Document, options: ParseOptions
) -> dict[str, tuple[list[str], list[PathEntry]]]:
    groups: dict[str, tuple[list[str], list[PathEntry]]] = {}

    for entry in document.path_entries():
        chain = extract_resource_chain(
            entry.path, options.skip_segments, options.strip_prefix
        )
        if not chain:
            logger.debug("Skipping %s: no resource segments", entry.path)
            continue
        if len(chain) > options.max_depth:
            logger.debug("Skipping %s: deeper than %d", entry.path, options.max_depth)
            continue
        if len(chain) > 1 and not options.include_sub_resources:
            logger.debug("Skipping %s: sub-resources disabled", entry.path)
            continue

        key = resource_key(chain)
        if key not in groups:
            groups[key] = (chain, [])
        groups[key][1].append(entry)

    return groups


def _build_node(
    document: Document,
    chain: list[str],
    entries: list[PathEntry],
    resolver: SchemaResolver,
    options: ParseOptions,
    base_url: str,
) -> ResourceNode:
    members = sorted(entries, key=lambda e: canonical_sort_key(e.path))
    canonical = select_canonical_path(e.path for e in entries)
    name = chain[-1]

    operations: dict[HTTPMethod, OperationInfo] = {}
    fields: dict[str, FieldDefinition] = {}
    tags: list[str] = []

    for entry in members:
        for operation in extract_operations(document, entry, resolver):
            operations.setdefault(operation.method, operation)
            for tag in operation.tags:
                if tag not in tags:
                    tags.append(tag)
            for field in _operation_fields(document, entry, operation, resolver, options, name):
                fields.setdefault(field.name, field)

    methods = [m for m in HTTPMethod if m in operations]
    identifier = infer_identifier_field(
        name, [p for e in members for p in trailing_params(e.path, name)]
    )

    return ResourceNode(
        key=resource_key(chain),
        chain=list(chain),
        name=name,
        display_name=display_name(name),
        path=canonical,
        paths=[e.path for e in members],
        base_path=base_url.rstrip("/") + canonical,
        methods=methods,
        schema=list(fields.values()),
        operations={m: operations[m] for m in methods},
        classification=classify_methods(methods),
        is_restful=is_restful(methods),
        tags=tags,
        identifier_field=identifier,
    )


def _operation_fields(
    document: Document,
    entry: PathEntry,
    operation: OperationInfo,
    resolver: SchemaResolver,
    options: ParseOptions,
    name: str,
) -> list[FieldDefinition]:
    if options.schema_strategy == SchemaStrategy.RESPONSE:
        raw_operation = entry.operations[operation.method]
        fields: list[FieldDefinition] = []
        for schema in success_response_schemas(raw_operation, document.dialect, resolver):
            fields.extend(resolver.extract_resource_fields(schema, name))
        return fields

    fields = [f for response in operation.responses.values() for f in response]
    fields.extend(operation.request_body or [])
    fields.extend(
        resolver.create_field_definition(p.name, p.schema_, p.required)
        for p in operation.parameters
    )
    return fields


def attach_nodes(nodes: list[ResourceNode]) -> list[ResourceNode]:
    """Nest *nodes* under their ancestors and return the root list.

    Nodes are processed shallowest first.  A node whose immediate parent is
    missing is attached to the nearest ancestor prefix that exists, and
    promoted to the root list when none does.  ``parent_key`` is set to the
    key of the node it ends up under.
    """
    by_key = {node.key: node for node in nodes}
    roots: list[ResourceNode] = []

    for node in sorted(nodes, key=lambda n: len(n.chain)):
        node.parent_key = None
        for size in range(len(node.chain) - 1, 0, -1):
            ancestor = by_key.get(resource_key(node.chain[:size]))
            if ancestor is not None:
                ancestor.sub_resources.append(node)
                node.parent_key = ancestor.key
                break
        else:
            if len(node.chain) > 1:
                logger.debug("Promoting orphan %s to the root list", node.key)
            roots.append(node)

    return roots


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def display_name(name: str) -> str:
    """Capitalise the first letter: ``"books"`` -> ``"Books"``."""
    return name[:1].upper() + name[1:]


def singular_form(name: str) -> str:
    """Naive English singular: ``categories`` -> ``category``, ``boxes`` -> ``box``."""
    lower = name.lower()
    if lower.endswith("ies"):
        return lower[:-3] + "y"
    if lower.endswith(("ses", "xes", "zes", "ches", "shes")):
        return lower[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return lower[:-1]
    return lower


def infer_identifier_field(name: str, candidates: list[str]) -> str:
    """Infer which field of resource *name* identifies one instance.

    Candidates are the path parameters that follow the resource's own
    segment.  The best candidate is chosen and reduced to a plain field
    name, e.g. ``bookId`` -> ``id`` and ``bookName`` -> ``name``.  Defaults
    to ``"id"``.
    """
    unique = list(dict.fromkeys(candidates))
    if not unique:
        return "id"
    return normalize_identifier_field(name, select_best_identifier(name, unique))


def select_best_identifier(name: str, candidates: list[str]) -> str:
    """Pick the most specific identifier parameter among *candidates*.

    Priority: ``id``, then ``<singular>Id``, then ``<singular>`` plus
    Name/Code/Key/Identifier, then anything mentioning the singular, then
    common identifier words, then the first candidate.
    """
    singular = re.escape(singular_form(name))

    if "id" in candidates:
        return "id"

    for pattern in (rf"^{singular}id$", rf"^{singular}(name|code|key|identifier)$"):
        match = next((c for c in candidates if re.match(pattern, c, re.IGNORECASE)), None)
        if match:
            return match

    plain = singular_form(name)
    match = next((c for c in candidates if plain in c.lower()), None)
    if match:
        return match

    match = next(
        (c for c in candidates if any(word in c.lower() for word in _COMMON_IDENTIFIERS)),
        None,
    )
    return match or candidates[0]


def normalize_identifier_field(name: str, identifier: str) -> str:
    """Strip the resource name from a parameter: ``bookId`` -> ``id``, ``nameOfBook`` -> ``name``."""
    singular = singular_form(name)
    lower = identifier.lower()

    if lower == "id":
        return "id"
    if lower.startswith(singular) and len(identifier) > len(singular):
        return _normalize_field_name(identifier[len(singular) :])
    if lower.endswith(singular) and len(identifier) > len(singular):
        prefix = identifier[: -len(singular)]
        if prefix.lower().endswith("of"):
            prefix = prefix[:-2]
        return _normalize_field_name(prefix) if prefix else identifier
    return identifier


def _normalize_field_name(field: str) -> str:
    alias = _IDENTIFIER_ALIASES.get(field.lower())
    if alias:
        return alias
    return field[:1].lower() + field[1:]
