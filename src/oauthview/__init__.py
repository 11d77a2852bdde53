"""oauthview -- Capture OAuth2 redirects from an embedded browser.

This package watches the navigation events of an embedded browser surface
while a user signs in to an identity provider, recognises the moment the
browser lands on the application's redirect URI, and hands that URI to the
owning authentication flow exactly once. Along the way it arbitrates TLS
trust decisions against a store of user-approved certificates and forwards
HTTP auth challenges to a credentials prompt.

Typical usage::

    from oauthview.monitor import NavigationMonitor, ThreadContext

    monitor = NavigationMonitor(ThreadContext(), listener, trust_store=store,
                                trust_dialog=dialog, credentials_prompt=prompt)
    monitor.configure_target_prefix("https://app.example.com/callback")

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    replay: Replays recorded navigation event logs through a monitor.
"""

__version__ = "0.3.0"
