"""Navigation monitor that catches the end of an OAuth2 authorization flow.

:class:`NavigationMonitor` is attached to an embedded browser running the
identity provider's sign-in pages. It watches page loads until one finishes
on the application's redirect URI, then hides the browser and posts the URI
to a :class:`~oauthview.monitor.base.RedirectListener` exactly once.

While the user signs in it also:

* reloads a page once when it fails to load, then falls back to the host's
  own error handling if the same URL fails again;
* proceeds silently through TLS errors for certificates the user already
  trusted, and asks a :class:`~oauthview.monitor.base.TrustDialogPresenter`
  about every other one;
* forwards HTTP auth challenges to a
  :class:`~oauthview.monitor.base.CredentialsPrompt`.

No callback raises into the host. Every failure resolves to a fallback
action: reload once, ask the user, drop the notification, or fail closed.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Optional
from urllib.parse import SplitResult, urlsplit

from oauthview.models import SslErrorInfo
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
from oauthview.monitor.dispatch import ExecutionContext
from oauthview.trust.certificates import extract_certificate

logger = logging.getLogger(__name__)

UNSET_TARGET_PREFIX = "fake://url.to.be.set"
"""Initial target prefix; no page a browser can load starts with it."""


class NavigationMonitor:
    """React to embedded-browser callbacks during an OAuth2 sign-in.

    The host calls the ``on_*`` methods serially from its own thread. The
    listener is held through a weak reference: once it is garbage collected,
    a capture is silently dropped, which is how an abandoned flow cancels
    itself.

    Args:
        context: Where the listener notification is posted. ``None``
            disables delivery entirely.
        listener: Receiver of the captured redirect URI, or ``None``.
        trust_store: Certificates the user already accepted.
        trust_dialog: Asks about certificates that are not in the store.
        credentials_prompt: Answers HTTP basic/digest challenges.
        clear_cache_on_page_start: Clear the host cache on every page start.
        log: Logger for navigation events; defaults to this module's.

    Example::

        monitor = NavigationMonitor(
            ThreadContext(),
            listener,
            trust_store=store,
            trust_dialog=ConsoleTrustDialog(store),
            credentials_prompt=ConsoleCredentialsPrompt(),
        )
        monitor.configure_target_prefix("https://app.example.com/callback")
    """

    def __init__(
        self,
        context: Optional[ExecutionContext],
        listener: Optional[RedirectListener],
        *,
        trust_store: TrustedCertificateStore,
        trust_dialog: TrustDialogPresenter,
        credentials_prompt: CredentialsPrompt,
        clear_cache_on_page_start: bool = True,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._context = context
        self._listener_ref: Optional[weakref.ref[RedirectListener]] = (
            weakref.ref(listener) if listener is not None else None
        )
        self._trust_store = trust_store
        self._trust_dialog = trust_dialog
        self._credentials_prompt = credentials_prompt
        self._clear_cache_on_page_start = clear_cache_on_page_start
        self._log = log if log is not None else logger

        self._target_prefix = UNSET_TARGET_PREFIX
        self._last_failed_url: Optional[str] = None
        self._captured = False
        self._capture_lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def target_prefix(self) -> str:
        return self._target_prefix

    @property
    def captured(self) -> bool:
        """Whether the redirect has been captured. Never resets."""
        return self._captured

    @property
    def last_failed_url(self) -> Optional[str]:
        """URL awaiting its single reload retry, if any."""
        return self._last_failed_url

    def configure_target_prefix(self, prefix: str) -> None:
        """Set the redirect URI prefix that marks the end of the flow.

        May be called any number of times, e.g. once the flow configuration
        has been fetched. Has no effect on a capture that already happened.
        """
        self._target_prefix = prefix

    # ------------------------------------------------------------------ #
    # Navigation lifecycle
    # ------------------------------------------------------------------ #

    def on_page_started(self, host: BrowserHost, url: str) -> None:
        self._log.debug("Page started: %s", url)
        if self._clear_cache_on_page_start:
            host.clear_cache(include_disk_files=True)

    def on_form_resubmission(self, host: BrowserHost, resubmission: FormResubmission) -> None:
        """Always resend, so a login form survives a reload of its result page."""
        self._log.debug("Form resubmission requested, resending")
        resubmission.resend()

    def should_intercept_navigation(self, host: BrowserHost, url: str) -> bool:
        """Let the host load every URL itself; outcomes are observed on finish."""
        return False

    def on_received_error(
        self, host: BrowserHost, url: str, error_code: int, description: str
    ) -> None:
        """Reload once per failing URL, then defer to the host.

        A second consecutive failure of the same URL clears the record and
        hands the error to :meth:`BrowserHost.handle_error_default`, so a
        permanently broken page never loops.
        """
        self._log.error(
            "Page load error: %s, code %s, description: %s", url, error_code, description
        )
        if url != self._last_failed_url:
            self._last_failed_url = url
            host.reload()
        else:
            self._last_failed_url = None
            host.handle_error_default(url, error_code, description)

    def on_page_finished(self, host: BrowserHost, url: str) -> None:
        """Capture *url* if it is the first finished load under the target prefix.

        Any finished load clears the pending reload record, whichever URL it
        belonged to.
        """
        self._log.debug("Page finished: %s", url)
        self._last_failed_url = None

        if not url.startswith(self._target_prefix):
            return

        with self._capture_lock:
            if self._captured:
                return
            self._captured = True

        host.hide()

        try:
            uri = urlsplit(url)
        except ValueError as exc:
            self._log.error("Captured redirect is not a valid URI: %s (%s)", url, exc)
            return
        self._log.debug("Authorization response included in: %s", uri.query)

        if self._context is None or self._listener_ref is None:
            return
        try:
            self._context.post(lambda: self._deliver(uri))
        except RuntimeError as exc:
            # Context shut down or loop closed: nobody is left to notify.
            self._log.error("Could not post captured redirect, dropping it: %s", exc)

    def _deliver(self, uri: SplitResult) -> None:
        listener = self._listener_ref() if self._listener_ref is not None else None
        if listener is None:
            self._log.debug("Redirect listener is gone, dropping captured URI")
            return
        listener.on_authorization_redirect_captured(uri)

    # ------------------------------------------------------------------ #
    # Trust and authentication
    # ------------------------------------------------------------------ #

    def on_trust_decision_requested(
        self, host: BrowserHost, handle: SslDecisionHandle, error: SslErrorInfo
    ) -> None:
        """Proceed through a TLS error for known servers, ask about the rest.

        The trust store is consulted synchronously. A lookup failure counts
        as "not trusted". The dialog is only started here; it resolves
        *handle* on its own schedule.
        """
        self._log.warning("TLS error on %s: %s", error.url, error.primary_error.value)
        certificate = extract_certificate(error)

        trusted = False
        if certificate is not None:
            try:
                trusted = self._trust_store.is_trusted(certificate)
            except Exception as exc:
                self._log.error("Trusted certificate lookup failed: %s", exc)

        if trusted:
            handle.proceed()
        else:
            self._trust_dialog.present_untrusted(certificate, error, handle)

    def on_http_auth_challenge(
        self, host: BrowserHost, handle: HttpAuthHandle, auth_host: str, realm: str
    ) -> None:
        self._log.debug("HTTP auth challenge from %s (realm %r)", auth_host, realm)
        self._credentials_prompt.present_auth_challenge(host, auth_host, realm, handle)
