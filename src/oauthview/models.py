"""Canonical Pydantic models shared across all oauthview modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`MonitorConfig`, :class:`TrustConfig`, :class:`OutputConfig`, and
    :class:`GlobalConfig`.

**Trust models** -- describe TLS errors reported by the embedded browser and
the certificates a user has chosen to trust:
    :class:`SslErrorKind`, :class:`SslErrorInfo`, and :class:`KnownServer`.

**Replay models** -- recorded navigation event logs and the report produced
by replaying them through a monitor:
    :class:`NavigationEventType`, :class:`NavigationEvent`, :class:`EventLog`,
    :class:`HostCommand`, and :class:`ReplayReport`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Trust Models ---


class SslErrorKind(str, enum.Enum):
    """Primary reason the embedded browser rejected a server certificate."""

    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    ID_MISMATCH = "id_mismatch"
    UNTRUSTED = "untrusted"
    DATE_INVALID = "date_invalid"
    INVALID = "invalid"


class SslErrorInfo(BaseModel):
    """A TLS error reported by the embedded browser host.

    This is the raw error context handed unchanged to the trust dialog. The
    ``certificate`` bytes are whatever the host could marshal out of its
    native certificate object -- PEM or DER -- and may be missing or garbage.

    Example::

        SslErrorInfo(
            url="https://idp.example.com/login",
            primary_error=SslErrorKind.UNTRUSTED,
            certificate=pem_bytes,
        )
    """

    url: str = Field(description="URL whose TLS handshake failed")
    primary_error: SslErrorKind = Field(default=SslErrorKind.UNTRUSTED)
    certificate: Optional[bytes] = Field(
        default=None, description="Presented certificate, PEM or DER encoded"
    )


class KnownServer(BaseModel):
    """A certificate the user explicitly accepted, persisted in the trust store."""

    fingerprint: str = Field(description="SHA-256 fingerprint, colon separated")
    subject: str
    issuer: str
    not_valid_after: Optional[datetime] = None
    added_at: datetime
    pem: str = Field(description="PEM encoding of the accepted certificate")


# --- Config Models ---


class MonitorConfig(BaseModel):
    """Navigation monitor defaults stored in :class:`GlobalConfig`."""

    target_prefix: Optional[str] = Field(
        default=None, description="Redirect URI prefix that ends the flow"
    )
    clear_cache_on_page_start: bool = Field(
        default=True, description="Clear the browser cache before every page"
    )


class TrustConfig(BaseModel):
    """Known-servers trust store settings stored in :class:`GlobalConfig`."""

    store_path: Optional[str] = Field(
        default=None, description="Override path of the known-servers JSON file"
    )
    prompt_on_untrusted: bool = Field(
        default=True, description="Ask before trusting an unknown certificate"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/oauthview/config.json``.

    Loaded and saved by :func:`~oauthview.config.load_global_config` and
    :func:`~oauthview.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~oauthview.config.resolve_config`
    for the full precedence chain.
    """

    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    trust: TrustConfig = Field(default_factory=TrustConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    log_level: str = Field(default="WARNING", description="Root logging level")


# --- Replay Models ---


class NavigationEventType(str, enum.Enum):
    """Kinds of callbacks an embedded browser host delivers to the monitor."""

    PAGE_STARTED = "page_started"
    PAGE_FINISHED = "page_finished"
    RECEIVED_ERROR = "received_error"
    FORM_RESUBMISSION = "form_resubmission"
    SHOULD_INTERCEPT = "should_intercept"
    SSL_ERROR = "ssl_error"
    HTTP_AUTH = "http_auth"
    SET_TARGET_PREFIX = "set_target_prefix"


class NavigationEvent(BaseModel):
    """One recorded host callback.

    Only the fields relevant to ``type`` need to be present; the rest are
    ignored. Certificates for ``ssl_error`` events are given inline as PEM
    text or as a path relative to the working directory.
    """

    model_config = ConfigDict(extra="forbid")

    type: NavigationEventType
    url: Optional[str] = None
    error_code: int = 0
    description: str = ""
    host: Optional[str] = None
    realm: Optional[str] = None
    primary_error: SslErrorKind = SslErrorKind.UNTRUSTED
    certificate_pem: Optional[str] = None
    certificate_file: Optional[str] = None
    prefix: Optional[str] = None


class EventLog(BaseModel):
    """A recorded navigation session, loaded from JSON or YAML."""

    target_prefix: Optional[str] = None
    events: list[NavigationEvent] = Field(default_factory=list)


class HostCommand(BaseModel):
    """A command the monitor issued to the host (or to a decision handle)."""

    action: str
    args: dict[str, Any] = Field(default_factory=dict)


class ReplayReport(BaseModel):
    """Outcome of replaying an :class:`EventLog` through a monitor."""

    target_prefix: str
    commands: list[HostCommand] = Field(default_factory=list)
    captured_uri: Optional[str] = None
    captured_query: dict[str, list[str]] = Field(default_factory=dict)
