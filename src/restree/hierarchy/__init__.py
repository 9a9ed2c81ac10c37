"""Resource hierarchy -- infer resources from paths and nest them into a tree.

This sub-package is the second half of the restree pipeline: taking a
validated :class:`~restree.models.Document` and producing the root list of
:class:`~restree.models.ResourceNode` objects plus whole-document stats.

Sub-modules:

* :mod:`~restree.hierarchy.path_rules` -- Turn path templates into resource
  chains and keys, and pick canonical templates.
* :mod:`~restree.hierarchy.builder` -- Group paths by key, merge their
  operations and fields, and attach nodes under their ancestors.
* :mod:`~restree.hierarchy.classifier` -- ``full_crud`` / ``read_only`` /
  ``custom`` labels and the RESTful flag.
* :mod:`~restree.hierarchy.stats` -- Path, operation, method and tag counters.
"""

from restree.hierarchy.builder import build_resource_tree
from restree.hierarchy.classifier import classify_methods, is_restful
from restree.hierarchy.path_rules import extract_resource_chain, resource_key
from restree.hierarchy.stats import calculate_stats, collect_tags

__all__ = [
    "build_resource_tree",
    "classify_methods",
    "is_restful",
    "extract_resource_chain",
    "resource_key",
    "calculate_stats",
    "collect_tags",
]
