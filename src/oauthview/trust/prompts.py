"""Terminal implementations of the trust dialog and credentials prompt.

:class:`ConsoleTrustDialog` shows an untrusted certificate on stderr and asks
whether to continue. Accepting records the certificate in the
:class:`~oauthview.trust.store.KnownServersStore`, so the next TLS error for
the same certificate proceeds without asking. :class:`ConsoleCredentialsPrompt`
asks for a user name and password when a page behind HTTP basic/digest auth
is loaded.

Both require an interactive terminal and cancel the pending handle when
stdin is not a TTY. The ``Rejecting*`` variants cancel unconditionally and
back the ``--no-input`` CLI flag.

Presentation is posted onto an optional
:class:`~oauthview.monitor.dispatch.ExecutionContext`, so the navigation
monitor that started the dialog is never blocked by the user.
"""

from __future__ import annotations

import sys
from typing import Any, Callable, Optional

import typer
from cryptography import x509

from oauthview.exceptions import TrustStoreError
from oauthview.models import SslErrorInfo
from oauthview.monitor.base import (
    CredentialsPrompt,
    HttpAuthHandle,
    SslDecisionHandle,
    TrustDialogPresenter,
)
from oauthview.monitor.dispatch import ExecutionContext
from oauthview.output import info, warning
from oauthview.trust.certificates import describe_certificate
from oauthview.trust.store import KnownServersStore


def _run(context: Optional[ExecutionContext], callback: Callable[[], None]) -> None:
    if context is None:
        callback()
    else:
        context.post(callback)


def _stdin_is_tty() -> bool:
    return hasattr(sys.stdin, "isatty") and sys.stdin.isatty()


class ConsoleTrustDialog(TrustDialogPresenter):
    """Ask on the terminal whether to trust a certificate.

    Args:
        store: Where accepted certificates are recorded.
        context: Where the dialog runs. ``None`` runs it inline.
        interactive: Force interactive mode on or off. ``None`` checks
            whether stdin is a TTY at presentation time.
    """

    def __init__(
        self,
        store: KnownServersStore,
        context: Optional[ExecutionContext] = None,
        interactive: Optional[bool] = None,
    ) -> None:
        self._store = store
        self._context = context
        self._interactive = interactive

    def present_untrusted(
        self,
        certificate: Optional[x509.Certificate],
        error: SslErrorInfo,
        handle: SslDecisionHandle,
    ) -> None:
        _run(self._context, lambda: self._ask(certificate, error, handle))

    def _ask(
        self,
        certificate: Optional[x509.Certificate],
        error: SslErrorInfo,
        handle: SslDecisionHandle,
    ) -> None:
        if certificate is None:
            warning(f"{error.url} presented no readable certificate; connection refused.")
            handle.cancel()
            return

        interactive = self._interactive if self._interactive is not None else _stdin_is_tty()
        if not interactive:
            warning(
                f"Untrusted certificate for {error.url} "
                f"({error.primary_error.value}); cannot ask without a terminal."
            )
            handle.cancel()
            return

        details = describe_certificate(certificate)
        warning(f"The server at {error.url} presented an untrusted certificate "
                f"({error.primary_error.value}).")
        for key in ("subject", "issuer", "not_valid_before", "not_valid_after", "fingerprint"):
            info(f"  {key.replace('_', ' ').capitalize()}: {details[key]}")

        try:
            accepted = typer.confirm(
                "Trust this certificate and continue?", default=False, err=True
            )
        except (typer.Abort, KeyboardInterrupt):
            accepted = False

        if not accepted:
            handle.cancel()
            return

        try:
            self._store.add(certificate)
        except (TrustStoreError, OSError) as exc:
            warning(f"Could not remember this certificate: {exc}")
        handle.proceed()


class ConsoleCredentialsPrompt(CredentialsPrompt):
    """Ask on the terminal for credentials answering an HTTP auth challenge.

    Args:
        context: Where the prompt runs. ``None`` runs it inline.
        interactive: Force interactive mode on or off. ``None`` checks
            whether stdin is a TTY at presentation time.
    """

    def __init__(
        self,
        context: Optional[ExecutionContext] = None,
        interactive: Optional[bool] = None,
    ) -> None:
        self._context = context
        self._interactive = interactive

    def present_auth_challenge(
        self,
        surface: Any,
        auth_host: str,
        realm: str,
        handle: HttpAuthHandle,
    ) -> None:
        _run(self._context, lambda: self._ask(auth_host, realm, handle))

    def _ask(self, auth_host: str, realm: str, handle: HttpAuthHandle) -> None:
        interactive = self._interactive if self._interactive is not None else _stdin_is_tty()
        if not interactive:
            warning(f"{auth_host} requires a login (realm {realm!r}); cannot ask without a terminal.")
            handle.cancel()
            return

        info(f"{auth_host} requires a login (realm {realm!r}).")
        try:
            username = typer.prompt("User name", err=True)
            password = typer.prompt("Password", hide_input=True, err=True)
        except (typer.Abort, KeyboardInterrupt):
            handle.cancel()
            return
        handle.proceed(username, password)


class RejectingTrustDialog(TrustDialogPresenter):
    """Refuse every certificate the trust store does not already know."""

    def present_untrusted(
        self,
        certificate: Optional[x509.Certificate],
        error: SslErrorInfo,
        handle: SslDecisionHandle,
    ) -> None:
        handle.cancel()


class RejectingCredentialsPrompt(CredentialsPrompt):
    """Refuse every HTTP auth challenge."""

    def present_auth_challenge(
        self,
        surface: Any,
        auth_host: str,
        realm: str,
        handle: HttpAuthHandle,
    ) -> None:
        handle.cancel()
