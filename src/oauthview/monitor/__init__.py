"""Navigation monitoring for OAuth2 sign-in inside an embedded browser.

The main entry points are:

- :class:`NavigationMonitor` -- the state machine the browser host feeds with
  navigation, TLS and auth-challenge callbacks.
- The collaborator interfaces in :mod:`oauthview.monitor.base` that a host
  integration implements.
- The execution contexts in :mod:`oauthview.monitor.dispatch` that decide
  where the captured redirect is delivered.

Typical usage::

    from oauthview.monitor import NavigationMonitor, ThreadContext

    monitor = NavigationMonitor(ThreadContext(), listener, trust_store=store,
                                trust_dialog=dialog, credentials_prompt=prompt)
    monitor.configure_target_prefix(redirect_uri)
    # wire monitor.on_page_finished etc. to the web view's signals
"""

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
from oauthview.monitor.dispatch import (
    AsyncioContext,
    ExecutionContext,
    ImmediateContext,
    ThreadContext,
)
from oauthview.monitor.navigation import UNSET_TARGET_PREFIX, NavigationMonitor

__all__ = [
    "AsyncioContext",
    "BrowserHost",
    "CredentialsPrompt",
    "ExecutionContext",
    "FormResubmission",
    "HttpAuthHandle",
    "ImmediateContext",
    "NavigationMonitor",
    "RedirectListener",
    "SslDecisionHandle",
    "ThreadContext",
    "TrustDialogPresenter",
    "TrustedCertificateStore",
    "UNSET_TARGET_PREFIX",
]
