"""Persistent store of certificates the user chose to trust ("known servers").

Stores accepted certificates in ``~/.local/share/oauthview/known_servers.json``
(XDG) or the platform-equivalent directory. The file is written atomically via
:func:`~oauthview.config.atomic_write` with ``0o600`` permissions.

The store is keyed by SHA-256 fingerprint: a certificate is trusted when a
byte-identical certificate was accepted before. Host names are deliberately
not part of the key -- the TLS error the browser reported already says which
check failed, and the user accepted this exact certificate.

See Also:
    :class:`~oauthview.monitor.base.TrustedCertificateStore` -- the lookup
    interface the navigation monitor consumes.
    :class:`~oauthview.trust.prompts.ConsoleTrustDialog` -- adds entries
    when the user accepts a certificate.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from cryptography import x509
from pydantic import BaseModel, Field, ValidationError

from oauthview.config import atomic_write, get_trust_store_path
from oauthview.exceptions import TrustStoreError
from oauthview.models import KnownServer
from oauthview.monitor.base import TrustedCertificateStore
from oauthview.trust.certificates import (
    certificate_to_pem,
    fingerprint_sha256,
)

logger = logging.getLogger(__name__)


class _StoreFile(BaseModel):
    version: int = 1
    servers: list[KnownServer] = Field(default_factory=list)


def normalize_fingerprint(fingerprint: str) -> str:
    """Accept ``abcd...``, ``AB:CD:...`` or ``ab cd ...`` and return ``AB:CD:...``."""
    hex_digits = "".join(c for c in fingerprint if c not in ": ").upper()
    return ":".join(hex_digits[i:i + 2] for i in range(0, len(hex_digits), 2))


class KnownServersStore(TrustedCertificateStore):
    """Read/write the known-servers trust store.

    All writes are atomic: content is written to a temporary file in the
    same directory, fsynced, then renamed into place.

    Args:
        path: Store file. Defaults to
            :func:`~oauthview.config.get_trust_store_path`.

    Example::

        store = KnownServersStore()
        store.add(certificate)
        assert store.is_trusted(certificate)
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path if path is not None else get_trust_store_path()

    @property
    def path(self) -> Path:
        """The filesystem path to the store file."""
        return self._path

    def is_trusted(self, certificate: x509.Certificate) -> bool:
        """Return ``True`` if *certificate* was previously accepted.

        Raises:
            TrustStoreError: If the store file exists but is corrupt.
        """
        return self.get(fingerprint_sha256(certificate)) is not None

    def get(self, fingerprint: str) -> Optional[KnownServer]:
        wanted = normalize_fingerprint(fingerprint)
        for server in self._load().servers:
            if server.fingerprint == wanted:
                return server
        return None

    def entries(self) -> list[KnownServer]:
        """Return all accepted certificates, oldest first."""
        return list(self._load().servers)

    def add(self, certificate: x509.Certificate) -> KnownServer:
        """Record *certificate* as trusted. Adding it twice is a no-op.

        Returns:
            The stored :class:`~oauthview.models.KnownServer` entry.
        """
        data = self._load()
        fingerprint = fingerprint_sha256(certificate)
        for server in data.servers:
            if server.fingerprint == fingerprint:
                return server

        entry = KnownServer(
            fingerprint=fingerprint,
            subject=certificate.subject.rfc4514_string(),
            issuer=certificate.issuer.rfc4514_string(),
            not_valid_after=certificate.not_valid_after_utc,
            added_at=datetime.now(timezone.utc),
            pem=certificate_to_pem(certificate),
        )
        data.servers.append(entry)
        self._save(data)
        logger.info("Trusted certificate %s (%s)", fingerprint, entry.subject)
        return entry

    def remove(self, fingerprint: str) -> bool:
        """Forget the certificate with *fingerprint*.

        Returns:
            ``True`` if an entry was removed, ``False`` if none matched.
        """
        data = self._load()
        wanted = normalize_fingerprint(fingerprint)
        remaining = [s for s in data.servers if s.fingerprint != wanted]
        if len(remaining) == len(data.servers):
            return False
        data.servers = remaining
        self._save(data)
        return True

    def clear(self) -> None:
        """Delete the store file if it exists."""
        if self._path.is_file():
            self._path.unlink()

    def _load(self) -> _StoreFile:
        if not self._path.is_file():
            return _StoreFile()
        try:
            text = self._path.read_text(encoding="utf-8")
            return _StoreFile.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError, OSError) as exc:
            raise TrustStoreError(f"Invalid trust store at {self._path}: {exc}") from exc

    def _save(self, data: _StoreFile) -> None:
        text = json.dumps(data.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)
