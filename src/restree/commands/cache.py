"""Cache commands -- view and clear persisted analyses.

Provides the ``restree cache`` sub-command group.  Analyses are stored by
:class:`~restree.cache.AnalysisCache` under the restree cache directory;
these commands report on and remove them.
"""

from __future__ import annotations

from typing import Optional

import typer

from restree.output import format_response, info, success, warning


cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("info")
def cache_info() -> None:
    """Show cache statistics and the cached keys.

    Example::

        restree cache info
        restree --json cache info
    """
    from restree.cache import AnalysisCache
    from restree.config import get_cache_dir

    with AnalysisCache(get_cache_dir()) as cache:
        stats = cache.stats()
        stats["keys"] = cache.keys()
    format_response(stats)


@cache_app.command("clear")
def cache_clear(
    key: Optional[str] = typer.Argument(
        None, help="Cache key to remove (all entries when omitted)."
    ),
) -> None:
    """Remove one cached analysis, or all of them.

    Example::

        restree cache clear
        restree cache clear "/home/me/openapi.json@3f2a9c01b7de"
    """
    from restree.cache import AnalysisCache
    from restree.config import get_cache_dir

    with AnalysisCache(get_cache_dir()) as cache:
        if key is None:
            count = len(cache.keys())
            cache.clear()
            success(f"Cleared {count} cached analyses.")
            return

        if not cache.is_cached(key):
            warning(f"No cached analysis for '{key}'.")
            info("Run 'restree cache info' to list cached keys.")
            return
        cache.invalidate(key)
    success(f"Removed cached analysis '{key}'.")
