"""Config commands -- view and modify global configuration.

Provides the ``restree config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~restree.models.GlobalConfig`).  Settings are persisted in the
restree config directory and control defaults such as output format, cache
behaviour, and parse options.
"""

from __future__ import annotations

import typer

from restree.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Loads the global config from disk and prints the config directory
    path followed by the full configuration.

    Example::

        restree config show
        restree --json config show
    """
    from restree.config import get_config_dir, load_global_config
    from restree.exceptions import ConfigError

    try:
        config = load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'parse.max_depth')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys.  The value is coerced to the
    existing field's type; list settings take a comma-separated value and an
    empty string clears an optional setting.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        restree config set output.format json
        restree config set parse.schema_strategy aggregate
        restree config set parse.skip_segments api,v1
    """
    from restree.config import load_global_config, save_global_config, set_config_value
    from restree.exceptions import ConfigError, InvalidUsageError

    try:
        new_config = set_config_value(load_global_config(), key, value)
    except ConfigError as exc:
        usage = InvalidUsageError(str(exc))
        error(str(usage))
        raise typer.Exit(code=usage.exit_code) from None

    save_global_config(new_config)
    success(f"Set {key} = {value}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults.

    Replaces the persisted global config with a fresh
    :class:`~restree.models.GlobalConfig`.  Asks for confirmation unless
    ``--force`` is given.

    Raises:
        typer.Exit: If the user declines confirmation.

    Example::

        restree config reset
        restree config reset --force
    """
    from restree.config import save_global_config
    from restree.models import GlobalConfig

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
