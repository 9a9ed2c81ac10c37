"""Classify resources by the HTTP methods they support."""

from __future__ import annotations

from typing import Iterable, Union

from restree.models import HTTPMethod, ResourceClassification

CRUD_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})


def _normalize(methods: Iterable[Union[HTTPMethod, str]]) -> set[str]:
    return {
        (m.value if isinstance(m, HTTPMethod) else str(m)).upper()
        for m in methods
    }


def classify_methods(methods: Iterable[Union[HTTPMethod, str]]) -> ResourceClassification:
    """Return the capability label of a method set.

    ``FULL_CRUD`` when it contains GET, POST, PUT and DELETE; ``READ_ONLY``
    when it is exactly ``{GET}``; ``CUSTOM`` otherwise.  Method names are
    compared case-insensitively.
    """
    names = _normalize(methods)
    if CRUD_METHODS <= names:
        return ResourceClassification.FULL_CRUD
    if names == {"GET"}:
        return ResourceClassification.READ_ONLY
    return ResourceClassification.CUSTOM


def is_restful(methods: Iterable[Union[HTTPMethod, str]]) -> bool:
    """Return ``True`` if any of GET, POST, PUT or DELETE is present.

    This is weaker than ``FULL_CRUD``: a POST-only resource is RESTful.
    """
    return bool(CRUD_METHODS & _normalize(methods))
