# mlmtool - activation key commands
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

from mlmtool.activationkeys import logger
from mlmtool.activationkeys.release import create_activation_keys
from mlmtool.config import Config
from mlmtool.credentials import Credentials
from mlmtool.errors import MLMError
from mlmtool.runner import SubprocessRunner

from . import fail, pinfo, psuccess, pwarn, suma_api, with_credentials


@click.command("create-activation-keys")
@with_credentials
def cmd_create_activation_keys(config: Config, credentials: Credentials) -> None:
    """
    Create activation keys for all OS release base channels.

    Keys of releases whose base channel no longer exists are deleted.
    """
    try:
        with suma_api(credentials, config.suman) as api:
            res = create_activation_keys(
                logger, api, credentials, SubprocessRunner(logger)
            )
    except MLMError as e:
        fail(e, "unable to create activation keys")

    for key in res.bootstrap_failed:
        pwarn(f"no bootstrap script for activation key '{key}'")
    for key in res.deleted:
        pinfo(f"deleted activation key '{key}'")
    psuccess(f"created {len(res.created)} activation keys")
