# mlmtool - commands
# Copyright (C) 2025  mlmtool authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.

import errno
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import update_wrapper
from pathlib import Path
from typing import Concatenate, NoReturn

import click
from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.markup import escape
from rich.theme import Theme

from mlmtool.config import Config, ServerConfig
from mlmtool.credentials import (
    Credentials,
    CredentialsError,
    load_spacecmd_credentials,
    resolve_credentials,
)
from mlmtool.errors import MLMError
from mlmtool.logger import logger as root_logger
from mlmtool.suma import logger as suma_logger
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.client import SumaClient

logger = root_logger.getChild("cmds")


class Ctx:
    config_path: Path | None
    config: Config | None
    server: str | None
    user: str | None
    password: str | None
    insecure: bool

    def __init__(self) -> None:
        self.config_path = None
        self.config = None
        self.server = None
        self.user = None
        self.password = None
        self.insecure = False


pass_ctx = click.make_pass_decorator(Ctx, ensure=True)


def with_config[R, **P](
    f: Callable[Concatenate[Config, P], R],
) -> Callable[P, R]:
    """Pass the loaded configuration from the context to the function."""

    def inner(*args: P.args, **kwargs: P.kwargs) -> R:
        curr_ctx = click.get_current_context()
        ctx = curr_ctx.find_object(Ctx)
        if not ctx:
            perror(f"missing context for '{f.__name__}'")
            sys.exit(errno.ENOTRECOVERABLE)
        if not ctx.config:
            perror("configuration not loaded")
            sys.exit(errno.EINVAL)
        return f(ctx.config, *args, **kwargs)

    return update_wrapper(inner, f)


def with_credentials[R, **P](
    f: Callable[Concatenate[Config, Credentials, P], R],
) -> Callable[P, R]:
    """Pass the configuration and the primary server's credentials."""

    @with_config
    def inner(config: Config, *args: P.args, **kwargs: P.kwargs) -> R:
        ctx = click.get_current_context().find_object(Ctx)
        assert ctx

        try:
            credentials = resolve_credentials(
                host=ctx.server,
                user=ctx.user,
                password=ctx.password,
                insecure=ctx.insecure,
                fallbacks=[
                    config.suman.get_credentials(),
                    load_spacecmd_credentials(config.spacecmd),
                ],
            )
        except CredentialsError as e:
            perror(f"unable to obtain credentials: {e}")
            sys.exit(e.ec)

        return f(config, credentials, *args, **kwargs)

    return update_wrapper(inner, f)


@contextmanager
def suma_api(credentials: Credentials, server: ServerConfig) -> Iterator[SumaAPI]:
    """Provide an API handle for the server in `credentials`."""
    with SumaClient(
        suma_logger.getChild("client"),
        credentials.host,
        verify=not credentials.insecure,
        timeout=server.timeout,
        retry_count=server.retry_count,
        retry_delay=server.retry_delay,
    ) as client:
        yield SumaAPI(suma_logger.getChild("api"), client)


def fail(e: MLMError, prefix: str | None = None) -> NoReturn:
    perror(f"{prefix}: {e}" if prefix else str(e))
    sys.exit(e.ec)


class _MLMHighlighter(RegexHighlighter):
    base_style: str = "mlm."
    highlights: list[str] = [  # noqa: RUF012
        r"(?P<release>\b\w{4}-(?:special-)?\d{6}-r\d{3}\b)",
        r"(?P<step>\[R\d [\w-]+\])",
    ]


_theme = Theme(
    {
        "mlm.release": "gold1",
        "mlm.step": "purple",
    }
)
console = Console(stderr=True, highlighter=_MLMHighlighter(), theme=_theme)


def perror(s: str) -> None:
    console.print(f"[bold][red]error:[/red] {escape(s)}[/bold]")


def pinfo(s: str) -> None:
    console.print(escape(s), style="cyan")


def psuccess(s: str) -> None:
    console.print(escape(s), style="bold green")


def pwarn(s: str) -> None:
    console.print(f"[bold yellow]warning:[/bold yellow] {escape(s)}")
