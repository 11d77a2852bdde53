"""Exception hierarchy for oauthview.

All exceptions inherit from :class:`OAuthViewError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oauthview.exit_codes`.
The top-level error handler in :func:`oauthview.app.main` catches
``OAuthViewError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

None of these are raised out of
:class:`~oauthview.monitor.navigation.NavigationMonitor` callbacks; the
monitor resolves every failure to a fallback action instead.

Subclass hierarchy::

    OAuthViewError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- CertificateError    (exit 3)
    +-- TrustStoreError     (exit 4)
    +-- EventLogError       (exit 5)
    +-- ConfigError         (exit 1)
"""

from oauthview.exit_codes import (
    EXIT_CERTIFICATE_ERROR,
    EXIT_EVENT_LOG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_TRUST_STORE_ERROR,
)


class OAuthViewError(Exception):
    """Base exception for all oauthview errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oauthview.exit_codes`. The entry point catches
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


class InvalidUsageError(OAuthViewError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class CertificateError(OAuthViewError):
    """Raised when certificate data cannot be read or parsed as X.509."""

    exit_code = EXIT_CERTIFICATE_ERROR


class TrustStoreError(OAuthViewError):
    """Raised when the known-servers store file is unreadable or corrupt."""

    exit_code = EXIT_TRUST_STORE_ERROR


class EventLogError(OAuthViewError):
    """Raised when a navigation event log cannot be loaded or fails validation."""

    exit_code = EXIT_EVENT_LOG_ERROR


class ConfigError(OAuthViewError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
