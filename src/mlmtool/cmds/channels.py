# mlmtool - software channel commands
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
from pathlib import Path

import click

from mlmtool.channels import logger
from mlmtool.channels.sync import HubConfig, sync_software_channels
from mlmtool.config import Config
from mlmtool.credentials import Credentials
from mlmtool.errors import MLMError
from mlmtool.runner import SubprocessRunner

from . import fail, perror, pinfo, psuccess, pwarn, suma_api, with_credentials


@click.command(
    "sync-software-channels",
    help="Mirror software channels missing on the secondary server.",
)
@click.option(
    "--hub-config",
    "hub_config_path",
    type=click.Path(
        exists=False,
        dir_okay=False,
        file_okay=True,
        readable=True,
        path_type=Path,
    ),
    required=False,
    help="Path to the hub configuration, overriding the config file.",
)
@with_credentials
def cmd_sync_software_channels(
    config: Config,
    credentials: Credentials,
    hub_config_path: Path | None,
) -> None:
    secondary_config = config.secondary
    secondary_credentials = (
        secondary_config.get_credentials() if secondary_config else None
    )
    if secondary_config is None or secondary_credentials is None:
        perror("secondary server not configured")
        sys.exit(errno.EINVAL)

    try:
        hub = HubConfig.load(hub_config_path or config.hub_config)
        with (
            suma_api(credentials, config.suman) as primary,
            suma_api(secondary_credentials, secondary_config) as secondary,
        ):
            synced, failed = sync_software_channels(
                logger,
                primary,
                credentials,
                secondary,
                secondary_credentials,
                SubprocessRunner(logger),
                hub,
            )
    except MLMError as e:
        fail(e, "unable to sync software channels")

    if not synced and not failed:
        pinfo(f"no channels missing on '{secondary_credentials.host}'")
        return

    for channel in failed:
        pwarn(f"unable to sync channel '{channel}'")
    psuccess(f"synced {len(synced)} channels to '{secondary_credentials.host}'")
