"""Extract dialect-normalised operations from the path items of a document.

For each HTTP method present on a path item this module builds an
:class:`~restree.models.OperationInfo`: merged parameters, the request body
as a field list, and per-status-code response fields.  Swagger 2.0 and
OpenAPI 3.x express request bodies differently; both are folded into the
same shape here so nothing downstream needs to know the dialect.

* Swagger 2.0: an ``in: body`` parameter supplies the request-body schema,
  ``in: formData`` parameters become request-body fields, and parameters
  without a ``schema`` get one synthesised from ``type`` / ``format`` /
  ``enum`` / ``items``.
* OpenAPI 3.x: the schema of the ``requestBody`` object's first JSON media
  type (else its first media type) is used.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they share
the same ``name`` and ``in`` values.  Path parameters are always required.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from restree.models import (
    Dialect,
    Document,
    FieldDefinition,
    HTTPMethod,
    OperationInfo,
    Parameter,
    ParameterLocation,
    PathEntry,
)
from restree.parser.resolver import SchemaResolver

logger = logging.getLogger(__name__)

_BODY_LOCATIONS = frozenset({"body", "formData"})
_SCHEMA_KEYWORDS = (
    "type", "format", "enum", "items", "default",
    "minimum", "maximum", "minLength", "maxLength", "pattern",
)


def extract_operations(
    document: Document, entry: PathEntry, resolver: SchemaResolver
) -> list[OperationInfo]:
    """Build one :class:`OperationInfo` per method present on *entry*.

    Args:
        document: The document the path belongs to; its dialect decides how
            request bodies and response schemas are located.
        entry: The path template and its raw operation objects.
        resolver: Resolver bound to ``document.raw``.

    Returns:
        Operations in :class:`~restree.models.HTTPMethod` order.
    """
    path_params = _resolve_all(entry.parameters, resolver)
    operations: list[OperationInfo] = []

    for method in HTTPMethod:
        raw_operation = entry.operations.get(method)
        if raw_operation is None:
            continue

        op_params = _resolve_all(raw_operation.get("parameters") or [], resolver)
        merged = _merge_parameters(path_params, op_params)

        if document.dialect == Dialect.SWAGGER_2:
            request_body, content_types = _swagger_request_body(
                document, raw_operation, merged, resolver
            )
        else:
            request_body, content_types = _openapi_request_body(
                raw_operation.get("requestBody"), resolver
            )

        operations.append(
            OperationInfo(
                method=method,
                path=entry.path,
                operation_id=raw_operation.get("operationId"),
                summary=raw_operation.get("summary"),
                description=raw_operation.get("description"),
                parameters=normalize_parameters(merged),
                request_body=request_body,
                request_content_types=content_types,
                responses=_extract_responses(
                    raw_operation.get("responses") or {}, document.dialect, resolver
                ),
                tags=[str(tag) for tag in raw_operation.get("tags") or []],
                deprecated=bool(raw_operation.get("deprecated", False)),
            )
        )

    return operations


def _resolve_all(params: list[Any], resolver: SchemaResolver) -> list[dict[str, Any]]:
    """Resolve parameter ``$ref``s, dropping the ones that do not resolve."""
    resolved: list[dict[str, Any]] = []
    for param in params:
        if not isinstance(param, dict):
            continue
        if "$ref" in param:
            target = resolver.resolve_ref(param["$ref"])
            if target is None:
                continue
            param = target
        resolved.append(param)
    return resolved


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI spec.
    """
    op_keys = {(param.get("name", ""), param.get("in", "")) for param in op_params}

    merged = [
        param
        for param in path_params
        if (param.get("name", ""), param.get("in", "")) not in op_keys
    ]
    merged.extend(op_params)
    return merged


def normalize_parameters(params: list[dict[str, Any]]) -> list[Parameter]:
    """Convert raw parameter dicts into :class:`~restree.models.Parameter` models.

    Body and form parameters are skipped (they belong to the request body),
    as are parameters with an unrecognised ``in`` location.
    """
    parameters: list[Parameter] = []

    for param in params:
        location_str = param.get("in", "query")
        if location_str in _BODY_LOCATIONS:
            continue
        try:
            location = ParameterLocation(location_str)
        except ValueError:
            logger.debug("Skipping parameter %r with location %r", param.get("name"), location_str)
            continue

        required = bool(param.get("required", False))
        if location == ParameterLocation.PATH:
            required = True

        parameters.append(
            Parameter(
                name=param.get("name", ""),
                location=location,
                required=required,
                description=param.get("description"),
                schema=parameter_schema(param),
            )
        )

    return parameters


def parameter_schema(param: dict[str, Any]) -> dict[str, Any]:
    """Return the schema of a parameter, synthesising one for Swagger 2.0 style."""
    schema = param.get("schema")
    if isinstance(schema, dict):
        return schema
    return {key: param[key] for key in _SCHEMA_KEYWORDS if key in param}


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


def _swagger_request_body(
    document: Document,
    operation: dict[str, Any],
    params: list[dict[str, Any]],
    resolver: SchemaResolver,
) -> tuple[Optional[list[FieldDefinition]], list[str]]:
    body = next((p for p in params if p.get("in") == "body"), None)
    form = [p for p in params if p.get("in") == "formData"]
    if body is None and not form:
        return None, []

    consumes = operation.get("consumes") or document.raw.get("consumes")
    if body is not None:
        fields = resolver.extract_fields(body.get("schema"))
        content_types = list(consumes or ["application/json"])
    else:
        fields = [
            resolver.create_field_definition(
                p.get("name", ""), parameter_schema(p), bool(p.get("required", False))
            )
            for p in form
        ]
        content_types = list(consumes or ["application/x-www-form-urlencoded"])
    return fields, content_types


def _openapi_request_body(
    body: Any, resolver: SchemaResolver
) -> tuple[Optional[list[FieldDefinition]], list[str]]:
    if not isinstance(body, dict):
        return None, []
    if "$ref" in body:
        body = resolver.resolve_ref(body["$ref"])
        if body is None:
            return [], []

    content = body.get("content") or {}
    schema = media_type_schema(content)
    return resolver.extract_fields(schema), list(content.keys())


def media_type_schema(content: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Pick the schema of the first JSON media type, else of the first media type."""
    media_types = [(name, media) for name, media in content.items() if isinstance(media, dict)]
    for name, media in media_types:
        if "json" in name and "schema" in media:
            return media["schema"]
    for _, media in media_types:
        if "schema" in media:
            return media["schema"]
    return None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def response_schema(
    response: Any, dialect: Dialect, resolver: SchemaResolver
) -> Optional[dict[str, Any]]:
    """Return the body schema of one response object, resolving a response ``$ref``."""
    if not isinstance(response, dict):
        return None
    if "$ref" in response:
        response = resolver.resolve_ref(response["$ref"])
        if response is None:
            return None

    if dialect == Dialect.SWAGGER_2:
        schema = response.get("schema")
        return schema if isinstance(schema, dict) else None
    return media_type_schema(response.get("content") or {})


def success_response_schemas(
    operation: dict[str, Any], dialect: Dialect, resolver: SchemaResolver
) -> list[dict[str, Any]]:
    """Return the body schemas of the 2xx responses in status order.

    The ``default`` response is used only when no 2xx response has a body.
    """
    responses = operation.get("responses") or {}
    schemas: list[dict[str, Any]] = []
    for code in sorted(str(code) for code in responses if str(code).startswith("2")):
        raw = responses.get(code, responses.get(int(code)) if code.isdigit() else None)
        schema = response_schema(raw, dialect, resolver)
        if schema is not None:
            schemas.append(schema)

    if not schemas:
        schema = response_schema(responses.get("default"), dialect, resolver)
        if schema is not None:
            schemas.append(schema)
    return schemas


def _extract_responses(
    responses: dict[Any, Any], dialect: Dialect, resolver: SchemaResolver
) -> dict[str, list[FieldDefinition]]:
    return {
        str(status_code): resolver.extract_fields(response_schema(response, dialect, resolver))
        for status_code, response in responses.items()
    }
