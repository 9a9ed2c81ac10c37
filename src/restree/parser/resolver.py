"""Turn JSON-Schema fragments into flat :class:`~restree.models.FieldDefinition` lists.

OpenAPI documents describe payloads with JSON-Schema-like fragments that may
point elsewhere in the document (``{"$ref": "#/components/schemas/Pet"}``),
compose other fragments (``allOf`` / ``oneOf`` / ``anyOf``), or wrap the
interesting shape in an array or a pagination envelope.  This module resolves
all of that into the field lists renderers consume.

Every fragment is first classified into one closed :class:`SchemaKind`
variant by :func:`classify_schema`; :meth:`SchemaResolver.extract_fields`
then dispatches on that variant:

* ``REF`` -- follow the JSON pointer through the document root.  External
  and unresolvable references yield no fields and a WARNING log entry.
* ``ALL_OF`` -- merge the fields of every branch, last write wins on a name
  collision.
* ``ONE_OF`` / ``ANY_OF`` -- only the first object branch is used; boolean
  and other non-object branches are skipped.
* ``OBJECT`` -- one field per property; ``required`` comes from the schema,
  else from the list inherited from the caller.
* ``ARRAY`` -- recurse into ``items``.
* ``SCALAR`` / ``EMPTY`` -- no fields.

Only internal references (``#/...``) are followed.  The set of references
currently being expanded is threaded through the recursion, so a schema that
refers to itself (directly or transitively) is cut off at the revisit: no
fields at the top level, an opaque ``object`` field when it appears as a
property.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Iterable, Optional

from restree.models import DEFAULT_ENVELOPE_KEYS, FieldDefinition, FieldType

logger = logging.getLogger(__name__)

_EMPTY_SEEN: frozenset[str] = frozenset()

# Array members of a paginated envelope, in order of preference.
ENVELOPE_MEMBER_NAMES = ("data", "items", "list", "results", "content", "records")

_STRING_FORMATS = {
    "date": FieldType.DATE,
    "date-time": FieldType.DATETIME,
    "email": FieldType.EMAIL,
    "uri": FieldType.URL,
    "url": FieldType.URL,
}

_SIMPLE_TYPES = {
    "integer": FieldType.INTEGER,
    "number": FieldType.NUMBER,
    "boolean": FieldType.BOOLEAN,
    "array": FieldType.ARRAY,
    "object": FieldType.OBJECT,
}

# FieldDefinition attribute -> JSON-Schema keyword
_CONSTRAINTS = {
    "minimum": "minimum",
    "maximum": "maximum",
    "min_length": "minLength",
    "max_length": "maxLength",
    "pattern": "pattern",
    "min_items": "minItems",
    "max_items": "maxItems",
    "unique_items": "uniqueItems",
    "multiple_of": "multipleOf",
}


class SchemaKind(str, enum.Enum):
    """The closed set of shapes a schema fragment can take."""

    REF = "ref"
    ALL_OF = "all_of"
    ONE_OF = "one_of"
    ANY_OF = "any_of"
    OBJECT = "object"
    ARRAY = "array"
    SCALAR = "scalar"
    EMPTY = "empty"


def schema_type(schema: Any) -> Optional[str]:
    """Return the effective JSON-Schema type name of *schema*.

    Handles OpenAPI 3.1 type arrays (e.g. ``["string", "null"]``) by
    returning the first non-null type.  When ``type`` is absent it is
    inferred from ``properties`` (object), ``items`` (array) or ``enum``
    (string).

    Returns:
        The type string, or ``None`` if nothing indicates one.
    """
    if not isinstance(schema, dict):
        return None

    type_value = schema.get("type")
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        type_value = non_null[0] if non_null else None
    if type_value:
        return str(type_value)

    if "properties" in schema:
        return "object"
    if "items" in schema:
        return "array"
    if "enum" in schema:
        return "string"
    return None


def classify_schema(schema: Any) -> SchemaKind:
    """Classify a fragment into exactly one :class:`SchemaKind`.

    Composition keywords are checked before the structural type so that
    ``{"type": "object", "allOf": [...]}`` is treated as a composition.
    """
    if not isinstance(schema, dict) or not schema:
        return SchemaKind.EMPTY
    if "$ref" in schema:
        return SchemaKind.REF
    if "allOf" in schema:
        return SchemaKind.ALL_OF
    if "oneOf" in schema:
        return SchemaKind.ONE_OF
    if "anyOf" in schema:
        return SchemaKind.ANY_OF

    kind = schema_type(schema)
    if kind == "object":
        return SchemaKind.OBJECT
    if kind == "array":
        return SchemaKind.ARRAY
    return SchemaKind.SCALAR


def map_field_type(type_name: Optional[str], format_name: Optional[str] = None) -> FieldType:
    """Map a JSON-Schema ``type`` / ``format`` pair to a :class:`FieldType`.

    Strings with a ``date``, ``date-time``, ``email``, ``uri`` or ``url``
    format map to the corresponding semantic type.  Unknown or missing
    types fall back to ``STRING``.
    """
    if type_name in _SIMPLE_TYPES:
        return _SIMPLE_TYPES[type_name]
    if format_name and format_name in _STRING_FORMATS:
        return _STRING_FORMATS[format_name]
    return FieldType.STRING


class SchemaResolver:
    """Resolve schema fragments against one document root.

    Args:
        root: The whole deserialised document; ``$ref`` pointers are
            evaluated against it.
        envelope_keys: Property names that mark an object response as a
            pagination wrapper (see :meth:`extract_resource_fields`).

    Example::

        resolver = SchemaResolver(document.raw)
        fields = resolver.extract_fields({"$ref": "#/components/schemas/Book"})
        [f.name for f in fields]
        # ['id', 'title', 'authorId']
    """

    def __init__(self, root: dict[str, Any], envelope_keys: Optional[Iterable[str]] = None) -> None:
        self._root = root
        self._envelope_keys = frozenset(
            envelope_keys if envelope_keys is not None else DEFAULT_ENVELOPE_KEYS
        )

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def resolve_ref(self, ref: str) -> Optional[dict[str, Any]]:
        """Resolve a single internal ``$ref`` string against the root.

        Parses JSON Pointer references like ``#/components/schemas/Pet`` and
        handles RFC 6901 escaping (``~0`` for ``~``, ``~1`` for ``/``).

        Returns:
            The referenced object, or ``None`` (with a WARNING log entry) if
            the reference is external, points nowhere, or does not point at
            an object.
        """
        if not isinstance(ref, str) or not ref.startswith("#/"):
            logger.warning("External $ref not supported: %s", ref)
            return None

        current: Any = self._root
        for segment in ref[2:].split("/"):
            segment = segment.replace("~1", "/").replace("~0", "~")
            if isinstance(current, dict) and segment in current:
                current = current[segment]
            elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
                current = current[int(segment)]
            else:
                logger.warning("Cannot resolve $ref '%s': '%s' not found", ref, segment)
                return None

        if not isinstance(current, dict):
            logger.warning("$ref '%s' does not point at an object", ref)
            return None
        return current

    def dereference(
        self, schema: Any, seen: frozenset[str] = _EMPTY_SEEN
    ) -> tuple[dict[str, Any], frozenset[str]]:
        """Follow a chain of ``$ref`` pointers down to a concrete fragment.

        Returns:
            The concrete fragment (``{}`` when the chain is broken or cyclic)
            and the set of references expanded on the way.
        """
        while classify_schema(schema) == SchemaKind.REF:
            ref = schema["$ref"]
            if ref in seen:
                logger.debug("Circular $ref %s cut off", ref)
                return {}, seen
            seen = seen | {ref}
            target = self.resolve_ref(ref)
            if target is None:
                return {}, seen
            schema = target
        return (schema if isinstance(schema, dict) else {}), seen

    # ------------------------------------------------------------------
    # Field extraction
    # ------------------------------------------------------------------

    def extract_fields(
        self,
        schema: Any,
        required: Optional[Iterable[str]] = None,
        seen: frozenset[str] = _EMPTY_SEEN,
    ) -> list[FieldDefinition]:
        """Flatten a schema fragment into a list of fields.

        Args:
            schema: Any schema fragment.
            required: Required property names inherited from the caller, used
                when the fragment carries no ``required`` list of its own.
            seen: References already being expanded on this call stack.

        Returns:
            The extracted fields in declaration order.  Never raises; broken
            fragments degrade to an empty list.
        """
        kind = classify_schema(schema)

        if kind == SchemaKind.REF:
            ref = schema["$ref"]
            if ref in seen:
                logger.debug("Circular $ref %s cut off", ref)
                return []
            target = self.resolve_ref(ref)
            if target is None:
                return []
            return self.extract_fields(target, required, seen | {ref})

        if kind == SchemaKind.ALL_OF:
            inherited = schema.get("required", required)
            merged: dict[str, FieldDefinition] = {}
            for branch in _branches(schema, "allOf"):
                for field in self.extract_fields(branch, inherited, seen):
                    merged[field.name] = field
            if "properties" in schema:
                own = {key: value for key, value in schema.items() if key != "allOf"}
                for field in self.extract_fields(own, inherited, seen):
                    merged[field.name] = field
            return list(merged.values())

        if kind in (SchemaKind.ONE_OF, SchemaKind.ANY_OF):
            keyword = "oneOf" if kind == SchemaKind.ONE_OF else "anyOf"
            branches = _branches(schema, keyword)
            if not branches:
                logger.warning("Ignoring '%s' without schema branches", keyword)
                return []
            return self.extract_fields(branches[0], schema.get("required", required), seen)

        if kind == SchemaKind.OBJECT:
            properties = schema.get("properties") or {}
            required_names = _required_names(schema.get("required", required))
            return [
                self.create_field_definition(name, prop, name in required_names, seen)
                for name, prop in properties.items()
                if isinstance(prop, dict)
            ]

        if kind == SchemaKind.ARRAY:
            return self.extract_fields(schema.get("items"), required, seen)

        # SCALAR and EMPTY fragments have no fields of their own.
        return []

    def create_field_definition(
        self,
        name: str,
        schema: dict[str, Any],
        required: bool = False,
        seen: frozenset[str] = _EMPTY_SEEN,
    ) -> FieldDefinition:
        """Build one :class:`FieldDefinition` for a property fragment.

        Nested arrays and objects are described recursively through
        ``items`` and ``properties``.
        """
        description = schema.get("description")
        kind = classify_schema(schema)

        if kind == SchemaKind.REF:
            ref = schema["$ref"]
            if ref in seen:
                logger.debug("Circular $ref %s at property '%s'", ref, name)
                return FieldDefinition(
                    name=name, type=FieldType.OBJECT, required=required, description=description
                )
            target = self.resolve_ref(ref)
            if target is None:
                return FieldDefinition(
                    name=name, type=FieldType.OBJECT, required=required, description=description
                )
            field = self.create_field_definition(name, target, required, seen | {ref})
            if description:
                field.description = description
            return field

        if kind == SchemaKind.ALL_OF:
            nested = self.extract_fields(schema, None, seen)
            return FieldDefinition(
                name=name,
                type=FieldType.OBJECT,
                required=required,
                description=description,
                properties={field.name: field for field in nested} or None,
            )

        if kind in (SchemaKind.ONE_OF, SchemaKind.ANY_OF):
            branches = _branches(schema, "oneOf" if kind == SchemaKind.ONE_OF else "anyOf")
            if branches:
                field = self.create_field_definition(name, branches[0], required, seen)
                if description:
                    field.description = description
                return field

        format_name = schema.get("format")
        field_type = map_field_type(schema_type(schema), format_name)
        field = FieldDefinition(
            name=name,
            type=field_type,
            format=format_name,
            description=description,
            required=required,
            enum=schema.get("enum"),
            example=schema.get("example"),
            default=schema.get("default"),
            **{attr: schema[key] for attr, key in _CONSTRAINTS.items() if key in schema},
        )

        if field_type == FieldType.ARRAY:
            items = schema.get("items")
            if isinstance(items, dict) and items:
                field.items = self.create_field_definition("items", items, False, seen)
        elif field_type == FieldType.OBJECT and "properties" in schema:
            nested = self.extract_fields(schema, None, seen)
            field.properties = {child.name: child for child in nested}

        return field

    # ------------------------------------------------------------------
    # Resource schemas
    # ------------------------------------------------------------------

    def extract_resource_fields(
        self, schema: Any, resource_name: Optional[str] = None
    ) -> list[FieldDefinition]:
        """Extract the fields of the entity a response schema describes.

        Unlike :meth:`extract_fields` this unwraps one level of container:
        a top-level array yields its item fields, and a paginated envelope
        (an object with an array member next to any of the configured
        envelope keys) yields the fields of that member's items.

        Args:
            schema: A response body schema.
            resource_name: Name of the resource being built; used as a
                fallback array member name when locating the envelope data.
        """
        concrete, seen = self.dereference(schema)
        kind = classify_schema(concrete)

        if kind == SchemaKind.ARRAY:
            return self.extract_fields(concrete.get("items"), None, seen)

        if kind == SchemaKind.OBJECT:
            member = self._envelope_member(concrete, resource_name, seen)
            if member is not None:
                member_name, member_schema = member
                logger.debug("Unwrapping paginated envelope member '%s'", member_name)
                items, item_seen = self.dereference(member_schema, seen)
                return self.extract_fields(items.get("items"), None, item_seen)

        return self.extract_fields(concrete, None, seen)

    def _envelope_member(
        self,
        schema: dict[str, Any],
        resource_name: Optional[str],
        seen: frozenset[str],
    ) -> Optional[tuple[str, Any]]:
        """Return ``(name, schema)`` of the data member of an envelope, if any."""
        properties = schema.get("properties") or {}
        if not self._envelope_keys.intersection(properties):
            return None

        arrays: dict[str, Any] = {}
        for name, prop in properties.items():
            concrete, _ = self.dereference(prop, seen)
            if classify_schema(concrete) == SchemaKind.ARRAY:
                arrays[name] = concrete
        if not arrays:
            return None

        preferred = list(ENVELOPE_MEMBER_NAMES)
        if resource_name:
            preferred.append(resource_name)
        for name in preferred:
            if name in arrays:
                return name, arrays[name]
        name = next(iter(arrays))
        return name, arrays[name]


def _branches(schema: dict[str, Any], keyword: str) -> list[Any]:
    value = schema.get(keyword)
    if not isinstance(value, list):
        return []
    return [branch for branch in value if isinstance(branch, dict)]


def _required_names(value: Any) -> set[str]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return {name for name in value if isinstance(name, str)}
    return set()
