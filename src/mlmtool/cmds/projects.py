# mlmtool - content project commands
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

import click
import pydantic

from mlmtool.config import Config
from mlmtool.credentials import Credentials
from mlmtool.errors import MLMError
from mlmtool.projects import logger
from mlmtool.projects.software import (
    SoftwareProjectSpec,
    create_software_project,
    split_labels,
)
from mlmtool.projects.stage import sync_stage

from . import fail, perror, psuccess, suma_api, with_credentials


@click.command("create-software-project", help="Create a software project.")
@click.option(
    "--project", "project", type=str, required=True, help="Project label."
)
@click.option(
    "--basechannel",
    "base_channel",
    type=str,
    required=True,
    help="Base channel of the project.",
)
@click.option(
    "--environment",
    "environments",
    type=str,
    required=True,
    help="Comma separated environments, in promotion order.",
)
@click.option(
    "--addchannel",
    "add_channels",
    type=str,
    required=False,
    help="Comma separated channels to attach.",
)
@click.option(
    "--deletechannel",
    "delete_channels",
    type=str,
    required=False,
    help="Comma separated channels to detach.",
)
@click.option(
    "--description", type=str, required=False, help="Project description."
)
@with_credentials
def cmd_create_software_project(
    config: Config,
    credentials: Credentials,
    project: str,
    base_channel: str,
    environments: str,
    add_channels: str | None,
    delete_channels: str | None,
    description: str | None,
) -> None:
    try:
        spec = SoftwareProjectSpec(
            project=project,
            base_channel=base_channel,
            environments=split_labels(environments),
            add_channels=split_labels(add_channels),
            delete_channels=split_labels(delete_channels),
            description=description,
        )
    except pydantic.ValidationError as e:
        perror(f"invalid arguments: {e}")
        sys.exit(errno.EINVAL)

    try:
        with suma_api(credentials, config.suman) as api:
            created = create_software_project(logger, api, credentials, spec)
    except MLMError as e:
        fail(e, f"unable to set up software project '{project}'")

    if created:
        psuccess(f"created software project '{project}'")
    else:
        psuccess(f"updated software project '{project}'")


@click.command("sync-stage", help="Build or promote a project environment.")
@click.option(
    "--project", "project", type=str, required=True, help="Project label."
)
@click.option(
    "--environment", "environment", type=str, required=True, help="Environment."
)
@click.option(
    "--wait",
    is_flag=True,
    default=False,
    help="Wait for the environment to be built.",
)
@with_credentials
def cmd_sync_stage(
    config: Config,
    credentials: Credentials,
    project: str,
    environment: str,
    wait: bool,
) -> None:
    try:
        with suma_api(credentials, config.suman) as api:
            action = sync_stage(
                logger, api, credentials, project, environment, wait=wait
            )
    except MLMError as e:
        fail(e, f"unable to sync '{environment}' of project '{project}'")

    if wait:
        psuccess(f"environment '{environment}' of project '{project}' built")
    else:
        psuccess(
            f"environment '{environment}' of project '{project}' "
            + f"syncing (action {action})"
        )
