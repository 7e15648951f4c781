"""
Command-line interface for passxc.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

import click

from passxc.client.application.runner import Runner
from passxc.client.infrastructure.config_loader import ConfigLoader
from passxc.common import setup_logger
from passxc.common.config import Verbosity
from passxc.common.exceptions import PassXCError
from passxc.common.models import ClientConfig


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _run(ctx: click.Context, operation: Callable[[Any], Any]) -> Any:
    loader: ConfigLoader = ctx.obj
    try:
        return Runner(loader).run(operation)
    except PassXCError as err:
        raise click.ClickException(str(err)) from err


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--quiet", is_flag=True, help="Only log warnings and errors")
@click.option(
    "--socket",
    "socket_path",
    default=None,
    type=click.Path(path_type=Path),
    help="Daemon socket path (default: from PASSXC_SOCKET_PATH or XDG_RUNTIME_DIR)",
)
@click.option(
    "--storage",
    "storage_path",
    default=None,
    type=click.Path(path_type=Path),
    help="Profile store file (default: from PASSXC_STORAGE_PATH or ~/.config/passxc.json)",
)
@click.option("--profile", default=None, help="Stored profile to use instead of the default")
@click.option(
    "--no-recover",
    is_flag=True,
    help="Fail instead of re-associating when the stored profile is rejected",
)
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool,  # noqa: FBT001
    quiet: bool,  # noqa: FBT001
    socket_path: Path | None,
    storage_path: Path | None,
    profile: str | None,
    no_recover: bool,  # noqa: FBT001
) -> None:
    """Password-manager browser protocol client"""
    verbosity = Verbosity.NORMAL
    if debug:
        verbosity = Verbosity.DEBUG
    elif quiet:
        verbosity = Verbosity.QUIET
    setup_logger(logging.getLogger("passxc"), verbosity.log_level)

    ctx.obj = ConfigLoader(
        ClientConfig(
            socket_path=socket_path,
            storage_path=storage_path,
            profile=profile,
            verbosity=verbosity,
            recover_stale=not no_recover,
        )
    )


@cli.command()
@click.option("-u", "--url", default="", help="URL for search")
@click.pass_context
def logins(ctx: click.Context, url: str) -> None:
    """Print credentials matching a URL"""
    entries = _run(ctx, lambda client: client.get_logins(url))
    _echo_json([entry.model_dump(exclude_none=True) for entry in entries])


@cli.command("generate-password")
@click.pass_context
def generate_password(ctx: click.Context) -> None:
    """Ask the daemon to generate a password"""
    _echo_json(_run(ctx, lambda client: client.generate_password()))


@cli.command("database-hash")
@click.pass_context
def database_hash(ctx: click.Context) -> None:
    """Print the hash identifying the open database"""
    click.echo(_run(ctx, lambda client: client.get_database_hash()))


@cli.command()
@click.pass_context
def lock(ctx: click.Context) -> None:
    """Lock the open database"""
    _run(ctx, lambda client: client.lock_database())
    click.echo("Database locked")


@cli.command()
@click.pass_context
def profiles(ctx: click.Context) -> None:
    """List stored profiles"""
    loader: ConfigLoader = ctx.obj
    try:
        store = loader.load_store()
    except PassXCError as err:
        raise click.ClickException(str(err)) from err
    _echo_json(
        {
            "default_profile": store.default_profile,
            "profiles": [profile.name for profile in store.profiles],
        }
    )


@cli.command()
@click.argument("name")
@click.pass_context
def forget(ctx: click.Context, name: str) -> None:
    """Remove a stored profile"""
    loader: ConfigLoader = ctx.obj
    try:
        store = loader.load_store()
        store.remove_profile(name)
        store.commit()
    except PassXCError as err:
        raise click.ClickException(str(err)) from err
    click.echo(f"Profile {name} removed")


if __name__ == "__main__":
    cli()
