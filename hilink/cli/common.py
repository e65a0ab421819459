"""Common cli module."""

from __future__ import annotations

import asyncio
import sys
from functools import singledispatch
from gettext import gettext
from typing import Any, NoReturn

import asyncclick as click
from rich import print as _echo

from hilink.json import dumps as json_dumps
from hilink.keystore import TrustedDeviceKey
from hilink.login import LoginSession


def echo(*args, **kwargs) -> None:
    """Print a message unless json output was requested."""
    ctx = click.get_current_context().find_root()
    if "json" not in ctx.params or ctx.params["json"] is False:
        _echo(*args, **kwargs)


def error(msg: str) -> NoReturn:
    """Print an error and exit."""
    echo(f"[bold red]{msg}[/bold red]")
    sys.exit(1)


@singledispatch
def to_serializable(val: Any) -> Any:
    """Regular obj-to-string for json serialization."""
    return str(val)


@to_serializable.register(TrustedDeviceKey)
def _key_to_serializable(val: TrustedDeviceKey) -> dict[str, str]:
    return val.to_dict()


@to_serializable.register(LoginSession)
def _session_to_serializable(val: LoginSession) -> dict[str, Any]:
    return {"token": val.token, "device_key": val.device_key.to_dict()}


def json_formatter_cb(result: Any, **kwargs) -> None:
    """Format and output the result as JSON, if requested."""
    if not kwargs.get("json") or result is None:
        return
    print(json_dumps(to_serializable(result), indent=True))


def CatchAllExceptions(cls):
    """Capture all exceptions and prints them nicely.

    Idea from https://stackoverflow.com/a/44347763 and
    https://stackoverflow.com/questions/52213375
    """

    def _handle_exception(debug, exc) -> None:
        if isinstance(exc, click.ClickException):
            raise
        # Handle exit request from click.
        if isinstance(exc, click.exceptions.Exit):
            sys.exit(exc.exit_code)
        if isinstance(exc, click.exceptions.Abort):
            sys.exit(0)

        echo(f"Raised error: {exc}")
        if debug:
            raise
        echo("Run with --debug enabled to see stacktrace")
        sys.exit(1)

    class _CommandCls(cls):
        _debug = False

        async def make_context(self, info_name, args, parent=None, **extra):
            self._debug = any([arg for arg in args if arg in ["--debug", "-d"]])
            try:
                return await super().make_context(
                    info_name, args, parent=parent, **extra
                )
            except Exception as exc:
                _handle_exception(self._debug, exc)

        async def invoke(self, ctx):
            try:
                return await super().invoke(ctx)
            except Exception as exc:
                _handle_exception(self._debug, exc)

        def __call__(self, *args, **kwargs):
            """Run the coroutine in the event loop and print any exceptions.

            asyncclick doesn't properly handle a coroutine receiving
            CancelledError on a KeyboardInterrupt, so it is caught here once
            asyncio.run has re-raised it.
            """
            try:
                asyncio.run(self.main(*args, **kwargs))
            except KeyboardInterrupt:
                click.echo(gettext("\nAborted!"), file=sys.stderr)
                sys.exit(1)

    return _CommandCls
