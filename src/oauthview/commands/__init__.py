"""Built-in CLI sub-commands for oauthview.

Each module defines a Typer app or command that is registered on the root
application in :func:`oauthview.app.main`:

- :mod:`~oauthview.commands.trust` -- ``oauthview trust ...``
- :mod:`~oauthview.commands.config` -- ``oauthview config ...``
- :mod:`~oauthview.commands.replay` -- ``oauthview replay``
"""
