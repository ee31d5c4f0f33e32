"""Command line interface: ``bliss pull``, ``bliss push``, ``bliss profiles``."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from lemmybliss import __version__
from lemmybliss.client import EXCLUDABLE_FIELDS, BlissClient
from lemmybliss.config import DEFAULT_PROFILES_DIR, BlissConfig
from lemmybliss.errors import BlissError
from lemmybliss.observability import set_level
from lemmybliss.session import Identity
from lemmybliss.store import ASSET_KINDS, SnapshotStore

SOURCE_PASSWORD_ENV = "LEMMY_SRC_PW"
DESTINATION_PASSWORD_ENV = "LEMMY_DST_PW"


def _identity(user: str, instance: str) -> Identity:
    try:
        return Identity(user, instance)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--instance") from exc


def _password(env_var: str, identity: Identity) -> str:
    password = os.environ.get(env_var)
    if password:
        return password
    return click.prompt(f"Password for {identity}", hide_input=True)


def _fail(exc: BlissError) -> None:
    code = getattr(exc.code, "value", exc.code)
    click.echo(f"Error: {exc.message} [{code}]", err=True)
    sys.exit(1)


def _account_options(func):
    func = click.option("--totp", "totp_token", default=None, help="Two-factor token.")(func)
    func = click.option("-p", "--profile", required=True, help="Local profile name.")(func)
    func = click.option(
        "-i", "--instance", required=True, help="Instance URL, e.g. https://lemmy.ml"
    )(func)
    func = click.option("-u", "--user", required=True, help="Username or email.")(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="bliss")
@click.option(
    "--profiles-dir",
    default=str(DEFAULT_PROFILES_DIR),
    envvar="BLISS_PROFILES_DIR",
    type=click.Path(file_okay=False),
    help="Directory holding local profiles.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
@click.pass_context
def main(ctx: click.Context, profiles_dir: str, verbose: bool):
    """Copy Lemmy account state between instances.

    Pull an account into a named local profile, then push the profile onto
    another account.
    """
    if verbose:
        set_level("DEBUG")
    ctx.obj = BlissConfig(profiles_dir=Path(profiles_dir))


@main.command()
@_account_options
@click.pass_obj
def pull(config: BlissConfig, user: str, instance: str, profile: str, totp_token: str | None):
    """Capture an account's settings and relations into a local profile."""
    identity = _identity(user, instance)
    try:
        password = _password(SOURCE_PASSWORD_ENV, identity)
        with BlissClient.login(identity, password, profile, totp_token, config) as client:
            saved = client.pull()
    except BlissError as exc:
        _fail(exc)
        return
    info = saved.info
    click.echo(
        f"Saved {identity} to profile {profile!r}: "
        f"{len(info.communities_follows)} follows, "
        f"{len(info.communities_blocks)} community blocks, "
        f"{len(info.people_blocks)} user blocks"
    )


@main.command()
@_account_options
@click.option(
    "--subtractive",
    is_flag=True,
    help="Also undo follows and blocks that are not in the profile.",
)
@click.option(
    "--exclude",
    multiple=True,
    metavar="FIELD",
    help=f"Field to leave untouched: {', '.join(sorted(EXCLUDABLE_FIELDS))}.",
)
@click.option(
    "--include",
    "include_extra",
    multiple=True,
    metavar="ASSET",
    help=f"Stored asset to upload: {', '.join(sorted(ASSET_KINDS))}.",
)
@click.pass_obj
def push(
    config: BlissConfig,
    user: str,
    instance: str,
    profile: str,
    totp_token: str | None,
    subtractive: bool,
    exclude: tuple[str, ...],
    include_extra: tuple[str, ...],
):
    """Apply a local profile to an account."""
    identity = _identity(user, instance)
    try:
        password = _password(DESTINATION_PASSWORD_ENV, identity)
        with BlissClient.login(identity, password, profile, totp_token, config) as client:
            result = client.push(
                subtractive=subtractive,
                exclude=exclude,
                include_extra=include_extra,
            )
    except BlissError as exc:
        _fail(exc)
        return
    for warning in result.warnings:
        click.echo(f"Warning: {warning.message}", err=True)
    summary = result.summary
    click.echo(
        f"Pushed profile {profile!r} to {identity}: "
        f"{summary.succeeded} of {summary.attempted} changes applied, "
        f"{summary.failed} failed"
    )


@main.command()
@click.pass_obj
def profiles(config: BlissConfig):
    """List stored profiles."""
    names = SnapshotStore(config.profiles_dir).list_profiles()
    if not names:
        click.echo(f"No profiles in {config.profiles_dir}")
        return
    for name in names:
        click.echo(name)
