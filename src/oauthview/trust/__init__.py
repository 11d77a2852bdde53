"""TLS trust decisions for pages loaded in the embedded browser.

- :mod:`~oauthview.trust.certificates` -- parse and describe X.509
  certificates reported with a TLS error.
- :class:`KnownServersStore` -- persistent store of certificates the user
  accepted.
- :class:`ConsoleTrustDialog` / :class:`ConsoleCredentialsPrompt` -- terminal
  collaborators that ask the user.
"""

from oauthview.trust.certificates import (
    describe_certificate,
    extract_certificate,
    fingerprint_sha256,
    load_certificate_file,
)
from oauthview.trust.store import KnownServersStore
from oauthview.trust.prompts import (
    ConsoleCredentialsPrompt,
    ConsoleTrustDialog,
    RejectingCredentialsPrompt,
    RejectingTrustDialog,
)

__all__ = [
    "ConsoleCredentialsPrompt",
    "ConsoleTrustDialog",
    "KnownServersStore",
    "RejectingCredentialsPrompt",
    "RejectingTrustDialog",
    "describe_certificate",
    "extract_certificate",
    "fingerprint_sha256",
    "load_certificate_file",
]
