"""Analysis caching with in-flight de-duplication.

:class:`AnalysisCache` maps a cache key (see
:func:`~restree.analyzer.source_key`) to a finished
:class:`~restree.models.Analysis`.  An in-memory map is always consulted
first; when constructed with a ``cache_dir`` and ``config.persist`` enabled,
analyses are also written to a :class:`diskcache.Cache` under
``<cache_dir>/analyses`` as JSON and read back on a memory miss, so separate
processes share work.

Concurrent :meth:`~AnalysisCache.parse` calls for the same key share one
:class:`asyncio.Task`: the document is fetched and analysed once and every
caller receives the same result.  A failed parse is never stored.  Disk
reads and writes run in a worker thread via :func:`asyncio.to_thread`; the
maps are guarded by a :class:`threading.Lock`.

An in-flight task belongs to the event loop that started it, so one cache
instance must not be awaited from two loops at the same time.  Sequential
``asyncio.run`` calls are fine: tasks are discarded once they finish.

The cache is an explicitly constructed object; callers own its lifetime and
should :meth:`~AnalysisCache.close` it when done.

See Also:
    :class:`~restree.models.CacheConfig` -- the Pydantic model that
    controls ``enabled``, ``persist`` and ``ttl_seconds``.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import diskcache

from restree.analyzer import analyze_document, source_key
from restree.models import Analysis, CacheConfig, ParseOptions
from restree.parser import build_document, load_spec, load_spec_async

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[dict[str, Any]]]


class AnalysisCache:
    """Keyed store of finished analyses.

    Args:
        cache_dir: Root directory for persisted analyses.  An
            ``analyses/`` subdirectory is created inside it.  When ``None``
            the cache lives in memory only.
        config: Cache configuration (``enabled``, ``persist``,
            ``ttl_seconds``).  When ``enabled`` is false every
            :meth:`parse` fetches and analyses afresh.
        fetcher: Coroutine function turning a source string into a
            deserialised document.  Defaults to
            :func:`~restree.parser.loader.load_spec_async`.

    Example::

        cache = AnalysisCache()
        analysis = asyncio.run(cache.parse("https://example.com/openapi.json"))
        cache.is_cached(analysis.cache_key)   # True
    """

    def __init__(
        self,
        cache_dir: str | Path | None = None,
        config: Optional[CacheConfig] = None,
        fetcher: Optional[Fetcher] = None,
    ) -> None:
        self._config = config or CacheConfig()
        self._fetcher: Fetcher = fetcher or load_spec_async
        self._memory: dict[str, Analysis] = {}
        self._inflight: dict[str, asyncio.Task[Analysis]] = {}
        self._lock = threading.Lock()
        self._disk: Optional[diskcache.Cache] = None
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None
        if self._config.enabled and self._config.persist and self._cache_dir is not None:
            self._disk = diskcache.Cache(str(self._cache_dir / "analyses"))

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    async def parse(
        self,
        source: str | dict[str, Any],
        options: Optional[ParseOptions] = None,
        key: Optional[str] = None,
    ) -> Analysis:
        """Return the analysis of *source*, parsing it only on a cache miss.

        Args:
            source: A URL, file path, ``"-"``, or an already deserialised
                document.
            options: Parse options used on a miss.
            key: Cache key; derived from *source* when omitted.

        Raises:
            FetchError: If the document cannot be fetched.
            SpecParseError: If the document cannot be parsed or validated.
        """
        if source == "-":
            source = load_spec(source)
        key = key if key is not None else source_key(source)

        with self._lock:
            cached = self._memory.get(key) if self._config.enabled else None
            if cached is not None:
                logger.debug("Cache hit for %s", key)
                return cached
            task = self._inflight.get(key)
            if task is None:
                task = asyncio.ensure_future(self._load(source, options, key))
                self._inflight[key] = task
                task.add_done_callback(functools.partial(self._discard_inflight, key))
        return await asyncio.shield(task)

    async def reparse(
        self,
        source: str | dict[str, Any],
        options: Optional[ParseOptions] = None,
        key: Optional[str] = None,
    ) -> Analysis:
        """Drop any cached analysis for the key, then :meth:`parse` again."""
        if source == "-":
            source = load_spec(source)
        key = key if key is not None else source_key(source)
        self.invalidate(key)
        return await self.parse(source, options, key)

    async def _load(
        self, source: str | dict[str, Any], options: Optional[ParseOptions], key: str
    ) -> Analysis:
        if self._config.enabled and self._disk is not None:
            cached = await asyncio.to_thread(self.get, key)
            if cached is not None:
                logger.debug("Cache hit for %s on disk", key)
                return cached

        logger.debug("Cache miss for %s", key)
        raw = source if isinstance(source, dict) else await self._fetcher(source)
        analysis = analyze_document(build_document(raw), options, cache_key=key)
        if self._config.enabled:
            await asyncio.to_thread(self._store, key, analysis)
        return analysis

    def _discard_inflight(self, key: str, task: asyncio.Task[Analysis]) -> None:
        with self._lock:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    # ------------------------------------------------------------------
    # Direct access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Analysis]:
        """Return the cached analysis for *key* without parsing, or ``None``."""
        with self._lock:
            analysis = self._memory.get(key)
        if analysis is not None or self._disk is None:
            return analysis

        payload = self._disk.get(key)
        if payload is None:
            return None
        analysis = Analysis.model_validate_json(payload)
        with self._lock:
            self._memory[key] = analysis
        return analysis

    def is_cached(self, key: str) -> bool:
        with self._lock:
            if key in self._memory:
                return True
        return self._disk is not None and key in self._disk

    def invalidate(self, key: str) -> None:
        """Remove one entry from memory and disk."""
        with self._lock:
            self._memory.pop(key, None)
        if self._disk is not None:
            self._disk.delete(key)

    def clear(self) -> None:
        """Remove all entries from memory and disk."""
        with self._lock:
            self._memory.clear()
        if self._disk is not None:
            self._disk.clear()

    def keys(self) -> list[str]:
        """Return every cached key, memory first, then disk-only keys."""
        with self._lock:
            keys = list(self._memory)
        if self._disk is not None:
            keys.extend(k for k in self._disk.iterkeys() if k not in keys)
        return keys

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``enabled`` (bool), ``memory_entries`` (int),
            ``persisted`` (bool), and when persisted: ``size`` (number of
            entries on disk), ``directory`` (str path), and ``ttl_seconds``.
        """
        with self._lock:
            memory_entries = len(self._memory)
        result: dict[str, Any] = {
            "enabled": self._config.enabled,
            "memory_entries": memory_entries,
            "persisted": self._disk is not None,
        }
        if self._disk is not None and self._cache_dir is not None:
            result.update(
                size=len(self._disk),
                directory=str(self._cache_dir / "analyses"),
                ttl_seconds=self._config.ttl_seconds,
            )
        return result

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._disk is not None:
            self._disk.close()

    def __enter__(self) -> AnalysisCache:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _store(self, key: str, analysis: Analysis) -> None:
        with self._lock:
            self._memory[key] = analysis
        if self._disk is not None:
            self._disk.set(
                key,
                analysis.model_dump_json(by_alias=True),
                expire=self._config.ttl_seconds,
            )
