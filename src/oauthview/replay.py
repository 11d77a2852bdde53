"""Replay recorded navigation sessions through a :class:`NavigationMonitor`.

A navigation event log is the sequence of callbacks an embedded browser
delivered during one sign-in, written as JSON or YAML::

    target_prefix: https://app.example.com/callback
    events:
      - {type: page_started, url: https://idp.example.com/login}
      - {type: received_error, url: https://idp.example.com/login, error_code: 503}
      - {type: page_finished, url: https://idp.example.com/login}
      - {type: ssl_error, url: https://idp.example.com/mfa, certificate_file: idp.pem}
      - {type: page_finished, url: "https://app.example.com/callback?code=abc"}

:func:`replay` feeds every event to a fresh monitor attached to a
:class:`RecordingHost`, and returns a :class:`~oauthview.models.ReplayReport`
listing each command the monitor issued and the redirect it captured. This
is how the ``oauthview replay`` command reproduces field reports without a
browser.

Logs are loaded with :func:`load_event_log` from a file, stdin (``-``), or an
http(s) URL.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional
from urllib.parse import SplitResult, parse_qs

import httpx
import yaml
from pydantic import ValidationError

from oauthview.exceptions import EventLogError
from oauthview.models import (
    EventLog,
    HostCommand,
    NavigationEvent,
    NavigationEventType,
    ReplayReport,
    SslErrorInfo,
)
from oauthview.monitor.base import (
    BrowserHost,
    CredentialsPrompt,
    FormResubmission,
    HttpAuthHandle,
    RedirectListener,
    SslDecisionHandle,
    TrustDialogPresenter,
    TrustedCertificateStore,
)
from oauthview.monitor.dispatch import ImmediateContext
from oauthview.monitor.navigation import NavigationMonitor

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Loading
# ------------------------------------------------------------------ #


def load_event_log(source: str) -> EventLog:
    """Load a navigation event log from a URL, file path, or stdin ('-').

    Supports JSON and YAML formats, detected from the extension or
    content type and falling back to trying both.

    Raises:
        EventLogError: If the source cannot be read, parsed, or validated.
    """
    if source == "-":
        content, hint = sys.stdin.read(), ""
    elif source.startswith(("http://", "https://")):
        content, hint = _fetch(source)
    else:
        content, hint = _read_file(source)

    if not content.strip():
        raise EventLogError(f"Event log is empty: {source}")

    data = _parse_content(content, hint)
    try:
        return EventLog.model_validate(data)
    except ValidationError as exc:
        raise EventLogError(f"Invalid event log {source}: {exc}") from exc


def _fetch(url: str) -> tuple[str, str]:
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise EventLogError(
            f"HTTP {exc.response.status_code} fetching event log from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise EventLogError(f"Failed to fetch event log from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    return response.text, hint


def _read_file(path: str) -> tuple[str, str]:
    file_path = Path(path)
    if not file_path.is_file():
        raise EventLogError(f"Event log not found: {path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EventLogError(f"Failed to read event log {path}: {exc}") from exc

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"
    return content, hint


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON or YAML; JSON first unless hinted as YAML."""
    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise EventLogError(f"Invalid JSON: {exc}") from exc
        else:
            if not isinstance(result, dict):
                raise EventLogError(
                    f"Event log must be an object (got {type(result).__name__})"
                )
            return result

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise EventLogError(f"Failed to parse event log as JSON or YAML: {exc}") from exc
    if not isinstance(result, dict):
        raise EventLogError(
            "Event log must be an object (got "
            f"{type(result).__name__ if result is not None else 'empty document'})"
        )
    return result


# ------------------------------------------------------------------ #
# Recording collaborators
# ------------------------------------------------------------------ #


class RecordingHost(BrowserHost):
    """A browser host that only records the commands it receives."""

    def __init__(self) -> None:
        self.commands: list[HostCommand] = []

    def record(self, action: str, **args: Any) -> None:
        self.commands.append(HostCommand(action=action, args=args))

    def reload(self) -> None:
        self.record("reload")

    def hide(self) -> None:
        self.record("hide")

    def clear_cache(self, include_disk_files: bool = True) -> None:
        self.record("clear_cache", include_disk_files=include_disk_files)

    def handle_error_default(self, url: str, error_code: int, description: str) -> None:
        self.record("default_error", url=url, error_code=error_code, description=description)


class _OneShot:
    """Records the first resolution of a handle and ignores any later one."""

    def __init__(self, host: RecordingHost, kind: str, url: str) -> None:
        self._host = host
        self._kind = kind
        self._url = url
        self.outcome: Optional[str] = None

    def _resolve(self, outcome: str) -> None:
        if self.outcome is not None:
            logger.warning(
                "%s handle for %s already resolved (%s), ignoring %s",
                self._kind, self._url, self.outcome, outcome,
            )
            return
        self.outcome = outcome
        self._host.record(f"{self._kind}.{outcome}", url=self._url)


class RecordedSslDecision(_OneShot, SslDecisionHandle):
    def __init__(self, host: RecordingHost, url: str) -> None:
        super().__init__(host, "ssl", url)

    def proceed(self) -> None:
        self._resolve("proceed")

    def cancel(self) -> None:
        self._resolve("cancel")


class RecordedAuthDecision(_OneShot, HttpAuthHandle):
    def __init__(self, host: RecordingHost, url: str) -> None:
        super().__init__(host, "http_auth", url)

    def proceed(self, username: str, password: str) -> None:
        # Credentials are never written to the report.
        self._resolve("proceed")

    def cancel(self) -> None:
        self._resolve("cancel")


class RecordedResubmission(_OneShot, FormResubmission):
    def __init__(self, host: RecordingHost, url: str) -> None:
        super().__init__(host, "form", url)

    def resend(self) -> None:
        self._resolve("resend")

    def dont_resend(self) -> None:
        self._resolve("dont_resend")


class CapturingListener(RedirectListener):
    """Keeps the captured redirect URI."""

    def __init__(self) -> None:
        self.uri: Optional[SplitResult] = None

    def on_authorization_redirect_captured(self, uri: SplitResult) -> None:
        self.uri = uri


# ------------------------------------------------------------------ #
# Replay
# ------------------------------------------------------------------ #


def replay(
    log: EventLog,
    *,
    trust_store: TrustedCertificateStore,
    trust_dialog: TrustDialogPresenter,
    credentials_prompt: CredentialsPrompt,
    target_prefix: Optional[str] = None,
    base_dir: Optional[Path] = None,
    clear_cache_on_page_start: bool = True,
) -> ReplayReport:
    """Run every event of *log* through a fresh :class:`NavigationMonitor`.

    Args:
        log: The recorded session.
        trust_store: Consulted on ``ssl_error`` events.
        trust_dialog: Resolves untrusted ``ssl_error`` events.
        credentials_prompt: Resolves ``http_auth`` events.
        target_prefix: Overrides ``log.target_prefix``.
        base_dir: Directory ``certificate_file`` paths are relative to.
            Defaults to the current directory.
        clear_cache_on_page_start: Forwarded to the monitor.

    Returns:
        The commands the monitor issued, in order, and the captured URI.

    Raises:
        EventLogError: If an event lacks a field its type requires or
            references an unreadable certificate file.
    """
    host = RecordingHost()
    listener = CapturingListener()
    monitor = NavigationMonitor(
        ImmediateContext(),
        listener,
        trust_store=trust_store,
        trust_dialog=trust_dialog,
        credentials_prompt=credentials_prompt,
        clear_cache_on_page_start=clear_cache_on_page_start,
    )
    prefix = target_prefix if target_prefix is not None else log.target_prefix
    if prefix is not None:
        monitor.configure_target_prefix(prefix)

    for index, event in enumerate(log.events):
        _dispatch(monitor, host, event, index, base_dir or Path.cwd())

    report = ReplayReport(target_prefix=monitor.target_prefix, commands=host.commands)
    if listener.uri is not None:
        report.captured_uri = listener.uri.geturl()
        report.captured_query = parse_qs(listener.uri.query)
    return report


def _require(event: NavigationEvent, index: int, field: str) -> str:
    value = getattr(event, field)
    if value is None:
        raise EventLogError(f"Event {index} ({event.type.value}) requires '{field}'")
    return value


def _dispatch(
    monitor: NavigationMonitor,
    host: RecordingHost,
    event: NavigationEvent,
    index: int,
    base_dir: Path,
) -> None:
    kind = event.type
    if kind == NavigationEventType.SET_TARGET_PREFIX:
        monitor.configure_target_prefix(_require(event, index, "prefix"))
        return

    if kind == NavigationEventType.HTTP_AUTH:
        auth_host = _require(event, index, "host")
        handle = RecordedAuthDecision(host, event.url or auth_host)
        monitor.on_http_auth_challenge(host, handle, auth_host, event.realm or "")
        return

    url = _require(event, index, "url")
    if kind == NavigationEventType.PAGE_STARTED:
        monitor.on_page_started(host, url)
    elif kind == NavigationEventType.PAGE_FINISHED:
        monitor.on_page_finished(host, url)
    elif kind == NavigationEventType.RECEIVED_ERROR:
        monitor.on_received_error(host, url, event.error_code, event.description)
    elif kind == NavigationEventType.FORM_RESUBMISSION:
        monitor.on_form_resubmission(host, RecordedResubmission(host, url))
    elif kind == NavigationEventType.SHOULD_INTERCEPT:
        intercepted = monitor.should_intercept_navigation(host, url)
        host.record("intercept", url=url, intercept=intercepted)
    elif kind == NavigationEventType.SSL_ERROR:
        error = SslErrorInfo(
            url=url,
            primary_error=event.primary_error,
            certificate=_certificate_bytes(event, index, base_dir),
        )
        monitor.on_trust_decision_requested(host, RecordedSslDecision(host, url), error)


def _certificate_bytes(event: NavigationEvent, index: int, base_dir: Path) -> Optional[bytes]:
    if event.certificate_pem is not None:
        return event.certificate_pem.encode("utf-8")
    if event.certificate_file is not None:
        path = base_dir / event.certificate_file
        try:
            return path.read_bytes()
        except OSError as exc:
            raise EventLogError(
                f"Event {index}: cannot read certificate file {path}: {exc}"
            ) from exc
    return None
