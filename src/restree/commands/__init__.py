"""Built-in CLI sub-commands for restree.

This package groups the Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~restree.commands.inspect` -- analyse a document and examine the
  resulting resource tree.
* :mod:`~restree.commands.cache` -- view and clear persisted analyses.
* :mod:`~restree.commands.config` -- view and modify global settings.

Each module exports a :class:`typer.Typer` sub-application that
:mod:`restree.app` registers on the root app.
"""
