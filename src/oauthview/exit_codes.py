"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oauthview.exceptions.OAuthViewError` subclass.
External tooling (CI scripts, shell wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ oauthview trust add server.pem
    $ echo $?
    3   # EXIT_CERTIFICATE_ERROR -- the file is not an X.509 certificate
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_CERTIFICATE_ERROR = 3
"""A certificate could not be read or parsed."""

EXIT_TRUST_STORE_ERROR = 4
"""The known-servers trust store is unreadable or corrupt."""

EXIT_EVENT_LOG_ERROR = 5
"""A navigation event log could not be loaded or validated."""
