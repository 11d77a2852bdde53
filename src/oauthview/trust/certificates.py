"""X.509 helpers for TLS trust decisions.

The embedded browser reports a TLS failure with whatever certificate bytes it
could marshal out of its native certificate object. :func:`extract_certificate`
turns those bytes into a :class:`cryptography.x509.Certificate`, or ``None``
when nothing usable was presented -- it never raises, because a malformed
certificate must degrade to "untrusted" rather than break the flow.

The remaining helpers load certificates from disk for the ``oauthview trust``
commands and render them for dialogs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

from oauthview.exceptions import CertificateError
from oauthview.models import SslErrorInfo

_PEM_MARKER = b"-----BEGIN"


def parse_certificate(data: bytes) -> x509.Certificate:
    """Parse PEM or DER encoded certificate bytes.

    PEM is assumed when the data starts with a ``-----BEGIN`` armour line
    (leading whitespace ignored), DER otherwise.

    Raises:
        ValueError: If *data* is not a well-formed certificate.
    """
    if data.lstrip().startswith(_PEM_MARKER):
        return x509.load_pem_x509_certificate(data.strip())
    return x509.load_der_x509_certificate(data)


def extract_certificate(error: SslErrorInfo) -> Optional[x509.Certificate]:
    """Return the certificate presented with *error*, or ``None``.

    Missing, empty, or unparsable certificate data all yield ``None``.
    """
    if not error.certificate:
        return None
    try:
        return parse_certificate(error.certificate)
    except ValueError:
        return None


def load_certificate_file(path: str | Path) -> x509.Certificate:
    """Load a PEM or DER certificate from *path*.

    Raises:
        CertificateError: If the file is missing, unreadable, or not a
            certificate.
    """
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise CertificateError(f"Certificate file not found: {file_path}")
    try:
        data = file_path.read_bytes()
    except OSError as exc:
        raise CertificateError(f"Cannot read certificate file {file_path}: {exc}") from exc
    try:
        return parse_certificate(data)
    except ValueError as exc:
        raise CertificateError(f"Not an X.509 certificate: {file_path} ({exc})") from exc


def fingerprint_sha256(certificate: x509.Certificate) -> str:
    """SHA-256 fingerprint as colon-separated upper-case hex (``AB:CD:...``)."""
    digest = certificate.fingerprint(hashes.SHA256())
    return ":".join(f"{b:02X}" for b in digest)


def certificate_to_pem(certificate: x509.Certificate) -> str:
    return certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")


def describe_certificate(certificate: x509.Certificate) -> dict[str, Any]:
    """Summarise *certificate* for dialogs and CLI output.

    Returns:
        A JSON-friendly dict with ``subject``, ``issuer``, ``serial``,
        ``not_valid_before``, ``not_valid_after`` and ``fingerprint``.
    """
    return {
        "subject": certificate.subject.rfc4514_string(),
        "issuer": certificate.issuer.rfc4514_string(),
        "serial": f"{certificate.serial_number:X}",
        "not_valid_before": certificate.not_valid_before_utc.isoformat(),
        "not_valid_after": certificate.not_valid_after_utc.isoformat(),
        "fingerprint": fingerprint_sha256(certificate),
    }
