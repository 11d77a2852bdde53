"""Replay command -- run a recorded navigation session through the monitor.

Prints a report of every command the monitor issued to the browser host
(reloads, hides, TLS decisions) and the redirect URI it captured. Untrusted
certificates are put to the user through the terminal trust dialog, or
refused under ``--no-input``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from oauthview.output import format_response, success, warning


def replay_command(
    ctx: typer.Context,
    source: str = typer.Argument(help="Event log: JSON/YAML file, URL, or '-' for stdin."),
    target_prefix: Optional[str] = typer.Option(
        None, "--target-prefix", "-t", help="Redirect URI prefix that ends the flow."
    ),
) -> None:
    """Replay a recorded navigation event log.

    The target prefix comes from ``--target-prefix``, then the log's own
    ``target_prefix``, then the resolved configuration.

    Raises:
        InvalidUsageError: If no target prefix is available from any source.
        typer.Exit: With code 1 when no redirect was captured.

    Example::

        oauthview replay session.yaml
        oauthview --no-input --json replay session.json -t https://app.example.com/cb
    """
    from oauthview.config import get_trust_store_path, resolve_config
    from oauthview.exceptions import InvalidUsageError
    from oauthview.models import NavigationEventType
    from oauthview.replay import load_event_log, replay
    from oauthview.trust.prompts import (
        ConsoleCredentialsPrompt,
        ConsoleTrustDialog,
        RejectingCredentialsPrompt,
        RejectingTrustDialog,
    )
    from oauthview.trust.store import KnownServersStore

    obj = ctx.obj or {}
    config = obj.get("config") or resolve_config()
    no_input = obj.get("no_input", False)

    log = load_event_log(source)
    if target_prefix is None and log.target_prefix is None:
        target_prefix = config.monitor.target_prefix
    if target_prefix is None and log.target_prefix is None and not any(
        event.type == NavigationEventType.SET_TARGET_PREFIX for event in log.events
    ):
        raise InvalidUsageError(
            "No target prefix: pass --target-prefix, set it in the event log, "
            "or run 'oauthview config set monitor.target_prefix <uri>'"
        )

    store = KnownServersStore(get_trust_store_path(config))
    if no_input or not config.trust.prompt_on_untrusted:
        trust_dialog = RejectingTrustDialog()
    else:
        trust_dialog = ConsoleTrustDialog(store)
    credentials_prompt = RejectingCredentialsPrompt() if no_input else ConsoleCredentialsPrompt()

    base_dir = Path(source).parent if source != "-" and "://" not in source else None
    report = replay(
        log,
        trust_store=store,
        trust_dialog=trust_dialog,
        credentials_prompt=credentials_prompt,
        target_prefix=target_prefix,
        base_dir=base_dir,
        clear_cache_on_page_start=config.monitor.clear_cache_on_page_start,
    )
    format_response(report.model_dump(mode="json"), title="Replay report")

    if report.captured_uri is None:
        warning(f"No page finished under {report.target_prefix}")
        raise typer.Exit(code=1)
    success(f"Captured {report.captured_uri}")
