"""Canonical Pydantic models shared across all restree modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`ParseOptions`, :class:`OutputConfig`, :class:`CacheConfig`, and
    :class:`GlobalConfig`.

**Document models** -- the loaded input, produced by
:mod:`restree.parser.loader`:
    :class:`Dialect`, :class:`HTTPMethod`, :class:`PathEntry`, and
    :class:`Document`.

**Analysis models** -- the derived resource hierarchy consumed by table/form
renderers, navigation, and REST clients:
    :class:`FieldType`, :class:`FieldDefinition`, :class:`Parameter`,
    :class:`OperationInfo`, :class:`ResourceClassification`,
    :class:`ResourceNode`, :class:`AnalysisStats`, :class:`Analysis`,
    :class:`ResourceStats`, and :class:`ResourceHierarchy`.

All models use Pydantic v2. Analysis models are built once per parse and are
treated as read-only afterwards; :class:`Document` is frozen outright.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Enumerations ---


class Dialect(str, enum.Enum):
    """The two mutually exclusive document dialects.

    They differ in how request bodies (``in: body`` parameter versus a
    ``requestBody`` object), servers (``host``/``basePath``/``schemes``
    versus a ``servers`` list) and type definitions (``definitions`` versus
    ``components/schemas``) are expressed.
    """

    SWAGGER_2 = "swagger_2"
    OPENAPI_3 = "openapi_3"


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised on a path item, in extraction order."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"


class ParameterLocation(str, enum.Enum):
    """Locations where an operation parameter can appear (OpenAPI ``in`` field).

    Swagger 2.0 ``body`` and ``formData`` parameters are folded into the
    request body and never appear with these locations.
    """

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"


class FieldType(str, enum.Enum):
    """Semantic field types that renderers switch on."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    DATE = "date"
    DATETIME = "datetime"
    EMAIL = "email"
    URL = "url"


class ResourceClassification(str, enum.Enum):
    """Capability label derived from a resource's method set."""

    FULL_CRUD = "full_crud"
    READ_ONLY = "read_only"
    CUSTOM = "custom"


class SchemaStrategy(str, enum.Enum):
    """Which parts of an operation contribute fields to a resource schema.

    ``RESPONSE`` reads only success responses (2xx, ``default`` as fallback) and
    unwraps top-level arrays and paginated envelopes.  ``AGGREGATE`` merges
    every response, the request body and every non-body parameter.
    """

    RESPONSE = "response"
    AGGREGATE = "aggregate"


# --- Configuration ---


DEFAULT_ENVELOPE_KEYS = ["total", "page", "pageSize", "hasMore"]


class ParseOptions(BaseModel):
    """Knobs for turning a document into a resource hierarchy.

    Stored under the ``parse`` key of :class:`GlobalConfig` and overridable
    from the environment and CLI flags (see
    :func:`~restree.config.resolve_config`).
    """

    include_sub_resources: bool = Field(
        default=True,
        description="Keep nested resources; when false only one-segment chains survive",
    )
    max_depth: int = Field(
        default=5, ge=1, description="Chains longer than this are not turned into resources"
    )
    schema_strategy: SchemaStrategy = Field(default=SchemaStrategy.RESPONSE)
    skip_segments: list[str] = Field(
        default_factory=list,
        description="Extra non-resource words removed from paths, on top of the built-in list",
    )
    strip_prefix: Optional[str] = Field(
        default=None, description="Prefix removed from every path before classification"
    )
    envelope_keys: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ENVELOPE_KEYS),
        description="Properties that mark an object response as a pagination wrapper",
    )
    base_url: Optional[str] = Field(
        default=None, description="Override the base URL derived from the document"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class CacheConfig(BaseModel):
    """Analysis cache settings stored in :class:`GlobalConfig`."""

    enabled: bool = Field(default=True, description="Enable analysis caching")
    persist: bool = Field(
        default=True, description="Also keep analyses on disk between processes"
    )
    ttl_seconds: Optional[int] = Field(
        default=None, description="Expiry for persisted analyses; None keeps them until cleared"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/restree/config.json``.

    Loaded and saved by :func:`~restree.config.load_global_config` and
    :func:`~restree.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags.
    """

    output: OutputConfig = Field(default_factory=OutputConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    parse: ParseOptions = Field(default_factory=ParseOptions)


# --- Document ---


class PathEntry(BaseModel):
    """One path template together with its raw per-method operation objects."""

    path: str
    operations: dict[HTTPMethod, dict[str, Any]] = Field(default_factory=dict)
    parameters: list[dict[str, Any]] = Field(
        default_factory=list, description="Path-level parameters shared by every method"
    )


class Document(BaseModel):
    """A loaded and structurally validated OpenAPI / Swagger document.

    ``raw`` keeps the whole deserialised document because ``$ref`` pointers
    are resolved against the document root.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    version: str
    description: Optional[str] = None
    dialect: Dialect
    spec_version: str = Field(description="Value of the 'openapi' or 'swagger' field")
    servers: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    paths: dict[str, Any] = Field(default_factory=dict)
    definitions: dict[str, Any] = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict)

    def path_entries(self) -> Iterator[PathEntry]:
        """Yield a :class:`PathEntry` for every object-valued path item."""
        for path, item in self.paths.items():
            if not isinstance(item, dict):
                continue
            operations = {
                method: item[method.value]
                for method in HTTPMethod
                if isinstance(item.get(method.value), dict)
            }
            yield PathEntry(
                path=path,
                operations=operations,
                parameters=item.get("parameters") or [],
            )


# --- Analysis ---


class FieldDefinition(BaseModel):
    """A single field of a resource, request body, or response schema.

    Arrays describe their element in ``items``; objects describe their
    members in ``properties``. Both nest to arbitrary depth.
    """

    name: str
    type: FieldType = FieldType.STRING
    format: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    enum: Optional[list[Any]] = None
    items: Optional[FieldDefinition] = None
    properties: Optional[dict[str, FieldDefinition]] = None
    example: Any = None
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: Optional[bool] = None
    multiple_of: Optional[float] = None


class Parameter(BaseModel):
    """A query, path, header, or cookie parameter, identical across dialects."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")


class OperationInfo(BaseModel):
    """One HTTP method handler on one path template, dialect-normalised."""

    method: HTTPMethod
    path: str
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: list[Parameter] = Field(default_factory=list)
    request_body: Optional[list[FieldDefinition]] = None
    request_content_types: list[str] = Field(default_factory=list)
    responses: dict[str, list[FieldDefinition]] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    deprecated: bool = False


class ResourceNode(BaseModel):
    """A RESTful entity inferred from one resource chain.

    ``key`` is the dot-joined chain and is unique within an
    :class:`Analysis`. ``parent_key`` names the node this one is nested
    under in the tree (``None`` for top-level nodes, including orphans that
    were promoted to the root list).
    """

    model_config = ConfigDict(populate_by_name=True)

    key: str
    chain: list[str]
    name: str
    display_name: str
    path: str = Field(description="Canonical path template")
    paths: list[str] = Field(default_factory=list, description="Every template mapped to this key")
    base_path: str = ""
    methods: list[HTTPMethod] = Field(default_factory=list)
    schema_: list[FieldDefinition] = Field(default_factory=list, alias="schema")
    operations: dict[HTTPMethod, OperationInfo] = Field(default_factory=dict)
    sub_resources: list[ResourceNode] = Field(default_factory=list)
    parent_key: Optional[str] = None
    classification: ResourceClassification = ResourceClassification.CUSTOM
    is_restful: bool = False
    tags: list[str] = Field(default_factory=list)
    identifier_field: str = "id"

    @property
    def depth(self) -> int:
        """Chain depth: ``0`` for one-segment chains."""
        return len(self.chain) - 1


class AnalysisStats(BaseModel):
    """Whole-document counters."""

    total_paths: int = 0
    total_operations: int = 0
    total_resources: int = 0
    restful_resources: int = 0
    method_counts: dict[str, int] = Field(default_factory=dict)
    tag_counts: dict[str, int] = Field(default_factory=dict)


class Analysis(BaseModel):
    """The complete result of analysing one document.

    Produced by :func:`~restree.analyzer.analyze_document`, cached by
    :class:`~restree.cache.AnalysisCache`, and queried through
    :class:`~restree.manager.ResourceManager`.
    """

    cache_key: str = ""
    title: str
    version: str
    description: Optional[str] = None
    dialect: Dialect
    spec_version: str
    base_url: str = ""
    servers: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    resources: list[ResourceNode] = Field(default_factory=list)
    stats: AnalysisStats = Field(default_factory=AnalysisStats)
    parsed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ResourceStats(BaseModel):
    """Tree-shape counters returned by :meth:`ResourceManager.get_stats`."""

    total: int = 0
    restful: int = 0
    with_sub_resources: int = 0
    top_level: int = 0


class ResourceHierarchy(BaseModel):
    """A located node together with the names leading to it."""

    resource: ResourceNode
    path: list[str]
    depth: int
