"""Main module for cli tool."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any

import asyncclick as click
from rich.logging import RichHandler

from hilink.client import HiLinkClient
from hilink.credentials import Credentials
from hilink.deviceconfig import DeviceConfig
from hilink.exceptions import RateLimitError
from hilink.keystore import BaseKeyStore, JsonFileKeyStore, MemoryKeyStore
from hilink.login import LoginEvent, LoginSession, LoginState

from .common import CatchAllExceptions, echo, error, json_formatter_cb


@dataclass
class CliState:
    """Objects shared by the cli commands."""

    config: DeviceConfig | None
    key_store: BaseKeyStore


pass_state = click.make_pass_decorator(CliState)


@click.group(
    invoke_without_command=True,
    cls=CatchAllExceptions(click.Group),
    result_callback=json_formatter_cb,
)
@click.option(
    "--host",
    envvar="HILINK_HOST",
    required=False,
    help="The host name or IP address of the device to connect to.",
)
@click.option(
    "--port",
    envvar="HILINK_PORT",
    required=False,
    type=int,
    help="The port of the web interface, if not the default one.",
)
@click.option(
    "--https/--no-https",
    envvar="HILINK_HTTPS",
    default=False,
    is_flag=True,
    type=bool,
    help="Set flag if the web interface is served over https.",
)
@click.option(
    "--timeout",
    envvar="HILINK_TIMEOUT",
    default=DeviceConfig.DEFAULT_TIMEOUT,
    required=False,
    show_default=True,
    help="Timeout in seconds for each request of the login.",
)
@click.option(
    "--username",
    default=None,
    required=False,
    envvar="HILINK_USERNAME",
    help="Username of the web administration account.",
)
@click.option(
    "--password",
    default=None,
    required=False,
    envvar="HILINK_PASSWORD",
    help="Password of the web administration account.",
)
@click.option(
    "--key-store",
    default=None,
    required=False,
    envvar="HILINK_KEY_STORE",
    type=click.Path(dir_okay=False),
    help="JSON file keeping the public key of the last verified device.",
)
@click.option(
    "-d",
    "--debug",
    envvar="HILINK_DEBUG",
    default=False,
    is_flag=True,
    help="Print debug output",
)
@click.option(
    "--json/--no-json",
    envvar="HILINK_JSON",
    default=False,
    is_flag=True,
    help="Output the result as JSON.",
)
@click.version_option(package_name="python-hilink")
@click.pass_context
async def cli(
    ctx,
    host,
    port,
    https,
    timeout,
    username,
    password,
    key_store,
    debug,
    json,
):
    """A tool for logging into Huawei HiLink devices."""
    # no need to perform any checks if we are just displaying the help
    if "--help" in sys.argv:
        # Context object is required to avoid crashing on sub-groups
        ctx.obj = object()
        return

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(show_time=False)],
    )

    if bool(password) != bool(username):
        raise click.BadOptionUsage(
            "username", "Using authentication requires both --username and --password"
        )

    config = None
    if host is not None:
        config = DeviceConfig(
            host=host,
            port_override=port,
            https=https,
            timeout=timeout,
            credentials=Credentials(username, password) if username else None,
        )

    store = JsonFileKeyStore(key_store) if key_store else MemoryKeyStore()
    ctx.obj = CliState(config=config, key_store=store)

    if ctx.invoked_subcommand is None:
        return await ctx.invoke(login)


def _print_event(event: LoginEvent) -> None:
    if event.state is LoginState.FAILED:
        echo(f"[red]{event.state.name.lower()}[/red]")
    else:
        echo(f"[dim]{event.state.name.lower()}[/dim]")


@cli.command()
@pass_state
async def login(state: CliState) -> LoginSession:
    """Log into the device and verify its identity."""
    if state.config is None:
        error("--host is required to log in")
    if state.config.credentials is None:
        error("--username and --password are required to log in")

    async with HiLinkClient(config=state.config, key_store=state.key_store) as client:
        try:
            session = await client.login(listener=_print_event)
        except RateLimitError as ex:
            if ex.wait_minutes is None:
                raise
            error(
                f"Too many incorrect login attempts, "
                f"try again in {ex.wait_minutes} minutes."
            )

    echo(f"[bold green]Logged into {client.host}[/bold green]")
    echo(f"Verification token: {session.token}")
    echo(
        f"Trusted public key: rsan={session.device_key.modulus}, "
        f"rsae={session.device_key.exponent}"
    )
    return session


@cli.command("trusted-key")
@pass_state
async def trusted_key(state: CliState) -> Any:
    """Show the public key of the last verified device."""
    key = await state.key_store.load()
    if key is None:
        echo("No trusted key stored")
        return None

    echo(f"rsan={key.modulus}")
    echo(f"rsae={key.exponent}")
    return key
