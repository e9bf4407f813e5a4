#!/usr/bin/env python3

# mlmtool - lifecycle tasks for SUSE Manager / Uyuni servers
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

import logging
import sys
from pathlib import Path

import click

from mlmtool import __version__
from mlmtool.cmds import (
    Ctx,
    activationkeys,
    channels,
    console,
    pass_ctx,
    perror,
    profiles,
    projects,
    releases,
)
from mlmtool.cmds import logger as parent_logger
from mlmtool.config import DEFAULT_CONFIG_PATH, Config, ConfigError
from mlmtool.logger import setup_logging

logger = parent_logger.getChild("main")


@click.group()
@click.option(
    "-d", "--debug", help="Enable debug output", is_flag=True, envvar="MLMTOOL_DEBUG"
)
@click.option(
    "-c",
    "--config",
    "config_path",
    help="Path to configuration file.",
    type=click.Path(
        exists=False,
        dir_okay=False,
        file_okay=True,
        readable=True,
        resolve_path=True,
        path_type=Path,
    ),
    envvar="MLMTOOL_CONFIG",
    default=DEFAULT_CONFIG_PATH,
)
@click.option(
    "-s",
    "--server",
    type=str,
    metavar="HOST",
    envvar="MLMTOOL_SERVER",
    help="Management server to talk to.",
)
@click.option(
    "-u",
    "--user",
    type=str,
    envvar="MLMTOOL_USER",
    help="User to log in as.",
)
@click.option(
    "-p",
    "--password",
    type=str,
    envvar="MLMTOOL_PASSWORD",
    help="Password to log in with.",
)
@click.option(
    "--insecure",
    is_flag=True,
    default=False,
    help="Do not verify the server's TLS certificate.",
)
@pass_ctx
def cmd_main(
    ctx: Ctx,
    debug: bool,
    config_path: Path,
    server: str | None,
    user: str | None,
    password: str | None,
    insecure: bool,
) -> None:
    try:
        config = Config.load(config_path)
    except ConfigError as e:
        perror(f"unable to read configuration file: {e}")
        sys.exit(e.ec)

    level: int | str = logging.DEBUG if debug else config.logging.level
    setup_logging(level, log_file=config.logging.file, console=console)
    logger.debug(f"using config at '{config_path}'")

    ctx.config_path = config_path
    ctx.config = config
    ctx.server = server
    ctx.user = user
    ctx.password = password
    ctx.insecure = insecure


@click.command("version", help="Show the tool's version.")
def cmd_version() -> None:
    click.echo(f"mlmtool {__version__}")


cmd_main.add_command(cmd_version)
cmd_main.add_command(releases.cmd_create_os_release)
cmd_main.add_command(projects.cmd_create_software_project)
cmd_main.add_command(projects.cmd_sync_stage)
cmd_main.add_command(channels.cmd_sync_software_channels)
cmd_main.add_command(profiles.cmd_create_autoyast_profile)
cmd_main.add_command(activationkeys.cmd_create_activation_keys)


if __name__ == "__main__":
    cmd_main()
