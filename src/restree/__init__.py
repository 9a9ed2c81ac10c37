"""restree -- derive a navigable resource hierarchy from OpenAPI documents.

Feed restree an OpenAPI 3.x or Swagger 2.0 document and it infers the
RESTful resources behind the paths: which entities exist, how they nest,
which fields they carry and which operations they support.  Generic tooling
(tables, forms, navigation) can then be driven from the resulting
:class:`~restree.models.Analysis` without per-API code.

Typical usage::

    from restree import ResourceManager, parse_spec

    analysis = parse_spec("openapi.json")
    manager = ResourceManager(analysis.resources)
    notes = manager.find_by_path("books.notes")
"""

from restree.analyzer import analyze_document, parse_document, parse_spec
from restree.manager import ResourceManager

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "analyze_document",
    "parse_document",
    "parse_spec",
    "ResourceManager",
]
