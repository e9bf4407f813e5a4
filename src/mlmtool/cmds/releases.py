# mlmtool - OS release commands
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

import click
from rich.padding import Padding
from rich.panel import Panel

from mlmtool.config import Config
from mlmtool.credentials import Credentials
from mlmtool.errors import MLMError
from mlmtool.releases import logger
from mlmtool.releases.builder import MANUAL_KERNEL_OPTIONS
from mlmtool.releases.create import create_os_release
from mlmtool.runner import SubprocessRunner

from . import console, fail, pinfo, psuccess, pwarn, suma_api, with_credentials


@click.command("create-os-release")
@click.argument("release_id", metavar="RELEASE", type=str, required=True)
@with_credentials
def cmd_create_os_release(
    config: Config, credentials: Credentials, release_id: str
) -> None:
    """
    Create the content project and distribution for OS release RELEASE.

    RELEASE looks like 'mi52-230318-r001' (product, date, environment), or
    'mi52-special-230318-r001' for special releases.
    """
    try:
        with suma_api(credentials, config.suman) as api:
            res = create_os_release(
                logger, api, credentials, SubprocessRunner(logger), release_id
            )
    except MLMError as e:
        fail(e, f"unable to create OS release '{release_id}'")

    for label in res.missing_channels:
        pwarn(f"channel '{label}' not found, not attached")

    if res.kernel_options_pending:
        console.print(
            Padding(
                Panel(
                    "add the following to the kernel options of distribution "
                    + f"'{res.release}':\n\n  {MANUAL_KERNEL_OPTIONS}",
                    title="action required",
                    border_style="yellow",
                ),
                (1, 0, 1, 0),
            )
        )

    pinfo(f"project '{res.project_label}' building (action {res.build_id})")
    psuccess(f"created OS release '{res.release}'")
