"""Trust commands -- manage the known-servers certificate store.

Provides the ``oauthview trust`` sub-command group to list, add, check and
remove certificates the navigation monitor should accept without asking.

Typical workflow::

    oauthview trust check idp.pem   # is it trusted already?
    oauthview trust add idp.pem     # trust it
    oauthview trust list            # show everything trusted
    oauthview trust remove AB:CD:...
"""

from __future__ import annotations

import typer

from oauthview.output import error, format_response, info, print_table, success, suggest


trust_app = typer.Typer(no_args_is_help=True)


def _open_store(ctx: typer.Context):
    from oauthview.config import get_trust_store_path
    from oauthview.trust.store import KnownServersStore

    config = ctx.obj.get("config") if ctx.obj else None
    return KnownServersStore(get_trust_store_path(config))


@trust_app.command("list")
def trust_list(ctx: typer.Context) -> None:
    """List trusted certificates.

    Example::

        oauthview trust list
        oauthview --json trust list
    """
    store = _open_store(ctx)
    servers = store.entries()
    if not servers:
        info(f"No trusted certificates in {store.path}.")
        return

    rows = [
        [
            s.fingerprint,
            s.subject,
            s.not_valid_after.isoformat() if s.not_valid_after else "",
            s.added_at.isoformat(),
        ]
        for s in servers
    ]
    print_table(
        ["fingerprint", "subject", "not_valid_after", "added_at"],
        rows,
        title="Trusted certificates",
    )


@trust_app.command("add")
def trust_add(
    ctx: typer.Context,
    cert_file: str = typer.Argument(help="PEM or DER certificate file."),
) -> None:
    """Trust a certificate from a file.

    Shows the certificate and asks for confirmation unless ``--force`` is
    active.

    Raises:
        typer.Exit: If the user declines confirmation.

    Example::

        oauthview trust add idp.pem
        oauthview --force trust add idp.der
    """
    from oauthview.trust.certificates import describe_certificate, load_certificate_file

    certificate = load_certificate_file(cert_file)
    details = describe_certificate(certificate)
    for key, value in details.items():
        info(f"{key}: {value}")

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Trust this certificate?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    store = _open_store(ctx)
    entry = store.add(certificate)
    success(f"Trusted {entry.fingerprint}")


@trust_app.command("check")
def trust_check(
    ctx: typer.Context,
    cert_file: str = typer.Argument(help="PEM or DER certificate file."),
) -> None:
    """Report whether a certificate is trusted.

    Exits with code 1 when the certificate is not in the store, so the
    command can gate shell scripts.

    Example::

        oauthview trust check idp.pem && echo trusted
    """
    from oauthview.trust.certificates import describe_certificate, load_certificate_file

    certificate = load_certificate_file(cert_file)
    store = _open_store(ctx)
    details = describe_certificate(certificate)
    details["trusted"] = store.is_trusted(certificate)
    format_response(details, title="Certificate")
    if not details["trusted"]:
        suggest(f"Trust it: oauthview trust add {cert_file}")
        raise typer.Exit(code=1)


@trust_app.command("remove")
def trust_remove(
    ctx: typer.Context,
    fingerprint: str = typer.Argument(help="SHA-256 fingerprint (with or without colons)."),
) -> None:
    """Stop trusting a certificate.

    Raises:
        typer.Exit: With code 2 if no certificate matches.
    """
    store = _open_store(ctx)
    if not store.remove(fingerprint):
        error(f"No trusted certificate with fingerprint {fingerprint}")
        raise typer.Exit(code=2)
    success(f"Removed {fingerprint}")


@trust_app.command("clear")
def trust_clear(ctx: typer.Context) -> None:
    """Forget every trusted certificate.

    Asks for confirmation unless ``--force`` is active.
    """
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Remove all trusted certificates?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    _open_store(ctx).clear()
    success("Trust store cleared.")
