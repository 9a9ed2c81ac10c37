"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~restree.exceptions.RestreeError` subclass.
Shell scripts wrapping ``restree`` can inspect the exit code to tell a
network failure apart from a broken document without parsing stderr.

Example::

    $ restree inspect find openapi.json reviews
    $ echo $?
    4   # EXIT_NOT_FOUND -- no resource named "reviews"
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NOT_FOUND = 4
"""The requested resource does not exist in the analysed document."""

EXIT_CONNECTION_ERROR = 6
"""The document could not be fetched (timeout, DNS failure, non-2xx status)."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI document could not be parsed or failed structural validation."""
