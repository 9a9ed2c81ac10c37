"""Whole-document counters and tag collection."""

from __future__ import annotations

from collections import Counter
from typing import Iterator

from restree.models import AnalysisStats, Document, ResourceNode


def iter_nodes(resources: list[ResourceNode]) -> Iterator[ResourceNode]:
    """Yield every node of a tree, depth-first, parents before children."""
    for node in resources:
        yield node
        yield from iter_nodes(node.sub_resources)


def calculate_stats(document: Document, resources: list[ResourceNode]) -> AnalysisStats:
    """Count paths, operations and resources.

    ``total_paths`` and ``total_operations`` cover every path in the
    document, including paths that produced no resource.  Resource counts
    cover every node of the tree, nested ones included.  Method names are
    reported upper-case.
    """
    method_counts: Counter[str] = Counter()
    tag_counts: Counter[str] = Counter()
    total_paths = 0

    for entry in document.path_entries():
        total_paths += 1
        for method, operation in entry.operations.items():
            method_counts[method.value.upper()] += 1
            for tag in operation.get("tags") or []:
                tag_counts[str(tag)] += 1

    nodes = list(iter_nodes(resources))
    return AnalysisStats(
        total_paths=total_paths,
        total_operations=sum(method_counts.values()),
        total_resources=len(nodes),
        restful_resources=sum(1 for node in nodes if node.is_restful),
        method_counts=dict(method_counts),
        tag_counts=dict(tag_counts),
    )


def collect_tags(document: Document) -> list[str]:
    """Return the document's tags: declared tags first, then operation tags, in first-seen order."""
    tags = list(dict.fromkeys(document.tags))
    for entry in document.path_entries():
        for operation in entry.operations.values():
            for tag in operation.get("tags") or []:
                if str(tag) not in tags:
                    tags.append(str(tag))
    return tags
