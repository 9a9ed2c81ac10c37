"""Query layer over a resource tree.

:class:`ResourceManager` answers the lookups renderers and navigation need:
by name, by key, by dotted name path, plus flattened views and counters.
Every lookup returns ``None`` or an empty list on a miss; nothing raises.

Name lookups follow a strict top-level-first rule: a root resource named
``reviews`` is always returned in preference to ``books.reviews``, even
though a naive depth-first walk could reach the nested one first.

The manager never modifies the tree it is given, so one tree can be shared
by any number of managers and readers without locking.
"""

from __future__ import annotations

from typing import Optional, Union

from restree.hierarchy.stats import iter_nodes
from restree.models import (
    Analysis,
    HTTPMethod,
    ResourceHierarchy,
    ResourceNode,
    ResourceStats,
)


class ResourceManager:
    """Read-only lookups over a list of root :class:`ResourceNode` objects.

    Args:
        resources: The root resource list, usually ``analysis.resources``.

    Example::

        manager = ResourceManager.from_analysis(analysis)
        manager.find_by_name("notes").key            # 'notes'
        manager.find_by_path("books.notes").key      # 'books.notes'
        manager.find_by_path("books.missing")        # None
    """

    def __init__(self, resources: list[ResourceNode]) -> None:
        self._resources = resources

    @classmethod
    def from_analysis(cls, analysis: Analysis) -> ResourceManager:
        return cls(analysis.resources)

    @property
    def resources(self) -> list[ResourceNode]:
        return self._resources

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_name(
        self,
        name: str,
        prefer_top_level: bool = True,
        include_sub_resources: bool = True,
    ) -> Optional[ResourceNode]:
        """Find a resource by its exact name.

        Args:
            name: The resource name (last chain segment).
            prefer_top_level: Scan each level completely before descending,
                so a shallower match always wins.  When ``False`` a plain
                depth-first search is used.
            include_sub_resources: Descend into ``sub_resources`` at all.

        Returns:
            The first match, or ``None``.
        """
        return _find_by_name(self._resources, name, prefer_top_level, include_sub_resources)

    def find_by_id(self, key: str) -> Optional[ResourceNode]:
        """Depth-first search by exact resource key (e.g. ``"books.notes"``)."""
        return next((node for node in iter_nodes(self._resources) if node.key == key), None)

    def find_by_path(self, path: str) -> Optional[ResourceNode]:
        """Resolve a dotted name path level by level.

        ``"books.notes"`` finds ``books`` among the roots, then ``notes``
        among its children.  Any missing segment yields ``None``.
        """
        names = [name for name in path.split(".") if name]
        if not names:
            return None

        level = self._resources
        found: Optional[ResourceNode] = None
        for name in names:
            found = next((node for node in level if node.name == name), None)
            if found is None:
                return None
            level = found.sub_resources
        return found

    def get_resource_hierarchy(self, name: str) -> Optional[ResourceHierarchy]:
        """Locate *name* with the top-level-first rule and report its name path and depth."""
        trail = _find_trail(self._resources, name)
        if trail is None:
            return None
        return ResourceHierarchy(
            resource=trail[-1],
            path=[node.name for node in trail],
            depth=len(trail) - 1,
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_top_level_resources(self) -> list[ResourceNode]:
        return [node for node in self._resources if node.parent_key is None]

    @staticmethod
    def get_all_sub_resources(resource: ResourceNode) -> list[ResourceNode]:
        """Return every descendant of *resource*, depth-first."""
        return list(iter_nodes(resource.sub_resources))

    @staticmethod
    def supports_operation(resource: ResourceNode, method: Union[str, HTTPMethod]) -> bool:
        """Return ``True`` if *resource* supports *method* (case-insensitive)."""
        wanted = (method.value if isinstance(method, HTTPMethod) else str(method)).lower()
        return any(m.value == wanted for m in resource.methods)

    def get_stats(self) -> ResourceStats:
        """Count nodes: all, RESTful, with at least one child, and top level."""
        nodes = list(iter_nodes(self._resources))
        return ResourceStats(
            total=len(nodes),
            restful=sum(1 for node in nodes if node.is_restful),
            with_sub_resources=sum(1 for node in nodes if node.sub_resources),
            top_level=len(self._resources),
        )


def _find_by_name(
    level: list[ResourceNode],
    name: str,
    prefer_top_level: bool,
    include_sub_resources: bool,
) -> Optional[ResourceNode]:
    if prefer_top_level:
        for node in level:
            if node.name == name:
                return node
        if not include_sub_resources:
            return None
        for node in level:
            found = _find_by_name(node.sub_resources, name, True, True)
            if found is not None:
                return found
        return None

    for node in level:
        if node.name == name:
            return node
        if include_sub_resources:
            found = _find_by_name(node.sub_resources, name, False, True)
            if found is not None:
                return found
    return None


def _find_trail(level: list[ResourceNode], name: str) -> Optional[list[ResourceNode]]:
    """Return the nodes from a root down to the match, top-level-first."""
    for node in level:
        if node.name == name:
            return [node]
    for node in level:
        trail = _find_trail(node.sub_resources, name)
        if trail is not None:
            return [node, *trail]
    return None
