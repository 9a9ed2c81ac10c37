"""Typer application and CLI entry point for restree.

This module wires together the top-level Typer application and registers the
built-in sub-command groups (``inspect``, ``cache``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~restree.exceptions.RestreeError` instances exit with their own
exit code; any other unhandled exception is written to a crash log under the
data directory.

See Also:
    :mod:`restree.config`: Configuration resolution.
    :mod:`restree.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

import typer
from rich.logging import RichHandler

from restree import __version__
from restree.commands.cache import cache_app
from restree.commands.config import config_app
from restree.commands.inspect import inspect_app
from restree.exit_codes import EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from restree.output import OutputFormat


app = typer.Typer(
    name="restree",
    help="Derive a resource hierarchy from OpenAPI 3.x / Swagger 2.0 documents.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(inspect_app, name="inspect", help="Analyse a document and inspect its resources.")
app.add_typer(cache_app, name="cache", help="Analysis cache management.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"restree {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, quiet: bool) -> None:
    """Route the ``restree`` logger through a :class:`RichHandler` on stderr.

    DEBUG with ``--verbose``, ERROR with ``--quiet``, WARNING otherwise.
    """
    from restree.output import get_output

    logger = logging.getLogger("restree")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=get_output().stderr_console,
        show_path=False,
        show_time=verbose,
        markup=False,
    )
    logger.addHandler(handler)
    logger.propagate = False
    if verbose:
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.ERROR)
    else:
        logger.setLevel(logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Output file path."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~restree.output.OutputManager` and the
    log handler from CLI flags, and stores the explicit format choice in the
    Typer context so that sub-commands can fall back to the configured
    default when none was given.
    """
    from restree.output import OutputFormat, OutputManager, set_output

    cli_format: Optional[str] = None
    if json_output:
        cli_format = OutputFormat.JSON.value
    elif plain_output:
        cli_format = OutputFormat.PLAIN.value

    fmt = OutputFormat(cli_format) if cli_format else _configured_format()

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            output_file=output_file,
        )
    )
    _configure_logging(verbose, quiet)

    ctx.ensure_object(dict)
    ctx.obj["format"] = cli_format
    ctx.obj["verbose"] = verbose


def _configured_format() -> OutputFormat:
    """Return the output format from config and environment, ``AUTO`` when unusable."""
    from restree.config import resolve_config
    from restree.exceptions import ConfigError
    from restree.output import OutputFormat

    try:
        return OutputFormat(resolve_config().output.format)
    except (ConfigError, ValueError):
        return OutputFormat.AUTO


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from restree.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``restree`` console script.

    Unhandled :class:`~restree.exceptions.RestreeError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from restree.exceptions import RestreeError
        from restree.output import error

        if isinstance(exc, RestreeError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
