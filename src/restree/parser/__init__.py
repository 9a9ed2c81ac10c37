"""OpenAPI document parser -- load, validate, resolve ``$ref`` pointers, extract operations.

This sub-package is the first half of the restree pipeline: turning a raw
OpenAPI 3.x or Swagger 2.0 document (JSON or YAML, local file or remote URL)
into a :class:`~restree.models.Document` plus the per-path operations and
field lists the hierarchy builder consumes.

Typical usage::

    from restree.parser import build_document, load_spec

    document = build_document(load_spec("https://petstore.swagger.io/v2/swagger.json"))

Sub-modules:

* :mod:`~restree.parser.loader` -- I/O layer (URL, file, stdin), format
  detection, dialect detection and structural validation.
* :mod:`~restree.parser.resolver` -- ``$ref`` resolution and schema
  flattening into :class:`~restree.models.FieldDefinition` lists, with
  circular-reference detection.
* :mod:`~restree.parser.extractor` -- Dialect-normalised
  :class:`~restree.models.OperationInfo` objects for one path item.
"""

from restree.parser.extractor import extract_operations
from restree.parser.loader import (
    build_document,
    detect_dialect,
    load_spec,
    load_spec_async,
    validate_document,
)
from restree.parser.resolver import SchemaKind, SchemaResolver, classify_schema

__all__ = [
    "load_spec",
    "load_spec_async",
    "detect_dialect",
    "validate_document",
    "build_document",
    "extract_operations",
    "SchemaResolver",
    "SchemaKind",
    "classify_schema",
]
