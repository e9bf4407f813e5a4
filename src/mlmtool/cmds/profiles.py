# mlmtool - autoinstall profile commands
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
import pydantic

from mlmtool.config import Config
from mlmtool.credentials import Credentials
from mlmtool.errors import MLMError
from mlmtool.profiles import logger
from mlmtool.profiles.autoyast import (
    AUTOYAST_PROFILES,
    DEFAULT_AUTOYAST_DIR,
    DEFAULT_AUTOYAST_TREE,
    AutoyastProfileSpec,
    create_autoyast_profile,
)

from . import fail, perror, psuccess, suma_api, with_credentials


@click.command("create-autoyast-profile")
@click.option(
    "-n",
    "--profilename",
    "profile_name",
    type=click.Choice(list(AUTOYAST_PROFILES)),
    required=True,
    help="Profile to create.",
)
@click.option(
    "-l",
    "--locationxml",
    "location",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=DEFAULT_AUTOYAST_DIR,
    show_default=True,
    help="Directory holding one '<profile>/autoyast.xml' per profile.",
)
@click.option(
    "--distribution",
    "tree_label",
    type=str,
    default=DEFAULT_AUTOYAST_TREE,
    show_default=True,
    help="Autoinstallable distribution the profile installs.",
)
@click.option(
    "-r",
    "--replace",
    is_flag=True,
    default=False,
    help="Replace the profile if it already exists.",
)
@with_credentials
def cmd_create_autoyast_profile(
    config: Config,
    credentials: Credentials,
    profile_name: str,
    location: Path,
    tree_label: str,
    replace: bool,
) -> None:
    """Create an autoinstall profile from an autoyast file."""
    try:
        spec = AutoyastProfileSpec(
            name=profile_name,
            location=location,
            tree_label=tree_label,
            replace=replace,
        )
    except pydantic.ValidationError as e:
        perror(f"invalid arguments: {e}")
        sys.exit(errno.EINVAL)

    try:
        with suma_api(credentials, config.suman) as api:
            replaced = create_autoyast_profile(logger, api, credentials, spec)
    except MLMError as e:
        fail(e, f"unable to create autoyast profile '{profile_name}'")

    if replaced:
        psuccess(f"replaced autoyast profile '{profile_name}'")
    else:
        psuccess(f"created autoyast profile '{profile_name}'")
