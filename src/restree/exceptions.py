"""Exception hierarchy for restree.

All exceptions inherit from :class:`RestreeError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`restree.exit_codes`.
The top-level error handler in :func:`restree.app.main` catches
``RestreeError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Only document-level failures are raised by the analysis pipeline.  A broken
``$ref`` inside one schema degrades that resource's field list and is logged;
it never surfaces as an exception.

Subclass hierarchy::

    RestreeError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- NotFoundError            (exit 4)
    +-- FetchError               (exit 6)
    +-- SpecParseError           (exit 7)
    |   +-- SpecValidationError  (exit 7)
    +-- ConfigError              (exit 1)
"""

from restree.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SPEC_PARSE_ERROR,
)


class RestreeError(Exception):
    """Base exception for all restree errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`restree.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RestreeError):
    """Raised for invalid CLI arguments or option values."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(RestreeError):
    """Raised by the CLI when a resource lookup comes back empty."""

    exit_code = EXIT_NOT_FOUND


class FetchError(RestreeError):
    """Raised when a remote document cannot be retrieved.

    Covers network-level failures (timeout, DNS resolution, connection
    refused) as well as non-2xx HTTP responses.
    """

    exit_code = EXIT_CONNECTION_ERROR


class SpecParseError(RestreeError):
    """Raised when a document cannot be read or deserialised."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class SpecValidationError(SpecParseError):
    """Raised when a deserialised document lacks the structure we need.

    Missing ``info.title`` / ``info.version``, a missing or non-object
    ``paths`` table, or no ``openapi`` / ``swagger`` marker.
    """


class ConfigError(RestreeError):
    """Raised for configuration problems (invalid JSON, bad values, unreadable files)."""

    exit_code = EXIT_GENERIC_FAILURE
