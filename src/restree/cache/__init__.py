"""Analysis caching for restree.

This package provides :class:`AnalysisCache`, which keeps finished
:class:`~restree.models.Analysis` objects keyed by source, de-duplicates
concurrent parses of the same source, and optionally persists analyses to
disk using :mod:`diskcache`.

The CLI constructs one per invocation from the ``cache`` section of the
user configuration (:class:`~restree.models.CacheConfig`).
"""

from restree.cache.cache import AnalysisCache

__all__ = ["AnalysisCache"]
