"""Collaborator interfaces the navigation monitor observes and commands.

The monitor owns no browser, no dialogs and no certificate storage. It talks
to each of those through one of the narrow abstract base classes below:

- :class:`BrowserHost` -- the embedded browser surface. Delivers navigation
  callbacks and accepts commands (reload, hide, clear cache, default error
  handling).
- :class:`SslDecisionHandle`, :class:`HttpAuthHandle`,
  :class:`FormResubmission` -- one-shot handles the host passes along with a
  callback; whoever ends up deciding resolves them.
- :class:`TrustedCertificateStore` -- answers "has the user already trusted
  this certificate?".
- :class:`TrustDialogPresenter` and :class:`CredentialsPrompt` -- ask a
  human, asynchronously, and resolve the handle they were given.
- :class:`RedirectListener` -- receives the captured redirect URI.

See Also:
    :class:`oauthview.monitor.navigation.NavigationMonitor` for the state
    machine wired to these interfaces.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import SplitResult

if TYPE_CHECKING:
    from cryptography import x509

    from oauthview.models import SslErrorInfo


class BrowserHost(ABC):
    """The embedded browser surface the monitor is attached to.

    Implementations adapt a concrete web view (Qt, GTK, CEF, a headless
    driver, or a recorder in tests) to the handful of commands the monitor
    needs.
    """

    @abstractmethod
    def reload(self) -> None:
        """Reload the page that is currently loading or displayed."""
        ...

    @abstractmethod
    def hide(self) -> None:
        """Stop rendering the browser surface; the flow is over for the user."""
        ...

    @abstractmethod
    def clear_cache(self, include_disk_files: bool = True) -> None:
        """Drop cached page state before the next page renders."""
        ...

    @abstractmethod
    def handle_error_default(self, url: str, error_code: int, description: str) -> None:
        """Fall back to the host's own handling of a page-load error."""
        ...


class SslDecisionHandle(ABC):
    """Resolves a pending TLS handshake the host is waiting on."""

    @abstractmethod
    def proceed(self) -> None:
        """Continue the connection as though the certificate were valid."""
        ...

    @abstractmethod
    def cancel(self) -> None:
        """Abort the connection."""
        ...


class HttpAuthHandle(ABC):
    """Resolves a pending HTTP basic/digest authentication challenge."""

    @abstractmethod
    def proceed(self, username: str, password: str) -> None:
        ...

    @abstractmethod
    def cancel(self) -> None:
        ...


class FormResubmission(ABC):
    """The choice the host offers when a page reload would re-POST a form."""

    @abstractmethod
    def resend(self) -> None:
        ...

    @abstractmethod
    def dont_resend(self) -> None:
        ...


class TrustedCertificateStore(ABC):
    """Lookup service for certificates the user has already accepted."""

    @abstractmethod
    def is_trusted(self, certificate: x509.Certificate) -> bool:
        """Return ``True`` when *certificate* was recorded as trusted.

        May raise; callers must treat any exception as "not trusted".
        """
        ...


class TrustDialogPresenter(ABC):
    """Asks a human whether an untrusted certificate should be accepted."""

    @abstractmethod
    def present_untrusted(
        self,
        certificate: Optional[x509.Certificate],
        error: SslErrorInfo,
        handle: SslDecisionHandle,
    ) -> None:
        """Start the trust dialog and return without waiting for an answer.

        The presenter owns the interaction and must eventually call
        ``handle.proceed()`` or ``handle.cancel()``.

        Args:
            certificate: The parsed certificate, or ``None`` when the host
                presented nothing usable.
            error: The raw error context reported by the host.
            handle: Decision handle to resolve.
        """
        ...


class CredentialsPrompt(ABC):
    """Asks a human for credentials answering an HTTP auth challenge."""

    @abstractmethod
    def present_auth_challenge(
        self,
        surface: Any,
        auth_host: str,
        realm: str,
        handle: HttpAuthHandle,
    ) -> None:
        """Start the credentials prompt and return without waiting.

        Args:
            surface: The browser surface that received the challenge (the
                :class:`BrowserHost`), for presenters that anchor a dialog
                to it.
            auth_host: Host name issuing the challenge.
            realm: Authentication realm announced by the server.
            handle: Challenge handle to resolve.
        """
        ...


class RedirectListener(ABC):
    """Receives the OAuth2 redirect URI once the browser lands on it."""

    @abstractmethod
    def on_authorization_redirect_captured(self, uri: SplitResult) -> None:
        """Called at most once, on the monitor's execution context.

        Args:
            uri: The captured redirect, split into its components. Query
                parameters (``code``, ``state``, ``error``) are left to the
                caller to interpret.
        """
        ...
