"""CLI entry point for tls-sig.

Invoked as::

    tls-sig [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m tls_sig.cli.main

Commands
--------
version               Show version information
gen                   Issue a UserSig
gen-private-map-key   Issue a PrivateMapKey for a numeric or string room
verify                Verify a UserSig / PrivateMapKey
inspect               Decode a token without verifying it
"""
from __future__ import annotations

import datetime
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from tls_sig import __version__

console = Console()

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="tls-sig")
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Issue and verify UserSig and PrivateMapKey tokens"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    console.print(f"[bold]tls-sig[/bold] v{__version__}")


# ------------------------------------------------------------------
# gen
# ------------------------------------------------------------------


_key_option = click.option(
    "--key",
    envvar="TLS_SIG_KEY",
    required=True,
    help="Shared signing key (or set TLS_SIG_KEY).",
)
_expire_option = click.option(
    "--expire",
    type=click.IntRange(min=1),
    default=None,
    help="Token lifetime in seconds [default: TLS_SIG_DEFAULT_EXPIRE or 180 days].",
)


@cli.command(name="gen")
@click.argument("sdkappid", type=click.IntRange(min=0))
@click.argument("identifier")
@_key_option
@_expire_option
def gen_command(sdkappid: int, identifier: str, key: str, expire: int | None) -> None:
    """Issue a UserSig for IDENTIFIER in application SDKAPPID."""
    from tls_sig.api import TLSSigAPI

    api = TLSSigAPI(sdkappid, key)
    click.echo(api.gen_user_sig(identifier, expire))


@cli.command(name="gen-private-map-key")
@click.argument("sdkappid", type=click.IntRange(min=0))
@click.argument("identifier")
@_key_option
@_expire_option
@click.option("--room-id", type=click.IntRange(min=0, max=0xFFFFFFFF), default=None, help="Numeric room id.")
@click.option("--room-str", default=None, help="String room id.")
@click.option(
    "--privilege-map",
    type=click.IntRange(min=0, max=255),
    default=255,
    show_default=True,
    help="Privilege bits (255 = all privileges).",
)
def gen_private_map_key_command(
    sdkappid: int,
    identifier: str,
    key: str,
    expire: int | None,
    room_id: int | None,
    room_str: str | None,
    privilege_map: int,
) -> None:
    """Issue a PrivateMapKey restricting IDENTIFIER to one room."""
    from tls_sig.api import TLSSigAPI

    if (room_id is None) == (not room_str):
        console.print("[red]Error:[/red] pass exactly one of --room-id or --room-str")
        sys.exit(2)

    api = TLSSigAPI(sdkappid, key)
    if room_str:
        token = api.gen_private_map_key_with_string_room_id(identifier, room_str, privilege_map, expire)
    else:
        token = api.gen_private_map_key(identifier, room_id or 0, privilege_map, expire)
    click.echo(token)


# ------------------------------------------------------------------
# verify
# ------------------------------------------------------------------


@cli.command(name="verify")
@click.argument("sdkappid", type=click.IntRange(min=0))
@click.argument("identifier")
@click.argument("token")
@_key_option
@click.option(
    "--now",
    type=int,
    default=None,
    help="Verification time as UNIX seconds (default: current time).",
)
@click.option(
    "--userbuf-hex",
    default=None,
    help="Expected user buffer as hex; required for PrivateMapKey tokens.",
)
def verify_command(
    sdkappid: int,
    identifier: str,
    token: str,
    key: str,
    now: int | None,
    userbuf_hex: str | None,
) -> None:
    """Verify TOKEN for IDENTIFIER in application SDKAPPID."""
    from tls_sig.api import verify_user_sig_with_buf

    userbuf: bytes | None = None
    if userbuf_hex is not None:
        try:
            userbuf = bytes.fromhex(userbuf_hex)
        except ValueError as exc:
            console.print(f"[red]Error:[/red] --userbuf-hex is not valid hex: {exc}")
            sys.exit(2)

    result = verify_user_sig_with_buf(sdkappid, key, identifier, token, now, userbuf)
    if result.valid:
        console.print(f"  [green]PASS[/green]  {result.status.value}")
        return
    console.print(f"  [red]FAIL[/red]  {result.status.value}: {result.reason}")
    sys.exit(1)


# ------------------------------------------------------------------
# inspect
# ------------------------------------------------------------------


@cli.command(name="inspect")
@click.argument("token")
def inspect_command(token: str) -> None:
    """Decode TOKEN and show its fields. The signature is NOT checked."""
    from tls_sig.envelope import unpack
    from tls_sig.errors import MalformedTokenError, UserBufDecodingError
    from tls_sig.userbuf import decode_userbuf

    try:
        document = unpack(token)
    except MalformedTokenError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    table = Table(title="UserSig", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("TLS.ver", document.version)
    table.add_row("TLS.identifier", document.identifier)
    table.add_row("TLS.sdkappid", str(document.sdkappid))
    table.add_row("TLS.time", f"{document.time} ({_iso(document.time)})")
    table.add_row("TLS.expire", str(document.expire))
    table.add_row("expires at", f"{document.expires_at} ({_iso(document.expires_at)})")
    table.add_row("TLS.userbuf", document.userbuf.hex() if document.userbuf is not None else "(absent)")
    table.add_row("TLS.sig", document.signature.hex())
    console.print(table)

    if document.userbuf is None:
        return
    try:
        record = decode_userbuf(document.userbuf)
    except UserBufDecodingError as exc:
        console.print(f"[yellow]Warning:[/yellow] {exc}")
        return

    buf_table = Table(title="User buffer", show_header=True)
    buf_table.add_column("Field", style="cyan")
    buf_table.add_column("Value")
    for name, value in record.to_dict().items():
        buf_table.add_row(name, str(value))
    buf_table.add_row("privileges", str(record.privileges))
    console.print(buf_table)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _iso(timestamp: int) -> str:
    try:
        return datetime.datetime.fromtimestamp(timestamp, datetime.timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return "out of range"


if __name__ == "__main__":
    cli()
