# mlmtool - OS releases - create
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

from mlmtool.credentials import Credentials
from mlmtool.releases.builder import BuildResult, ReleaseBuilder
from mlmtool.releases.checks import check_preconditions
from mlmtool.releases.osrelease import parse_release_id
from mlmtool.runner import CommandRunner
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.session import with_session


def create_os_release(
    logger: logging.Logger,
    api: SumaAPI,
    credentials: Credentials,
    runner: CommandRunner,
    raw_id: str,
) -> BuildResult:
    """Create the OS release `raw_id` on the server behind `api`.

    The id is validated before talking to the server. Once logged in, the
    release's preconditions are checked and the release is built; the session
    is logged out however this ends.
    """
    release = parse_release_id(raw_id)
    logger.info(f"create OS release '{release}' on '{api.host}'")

    with with_session(logger, api, credentials) as session:
        profile = check_preconditions(logger, api, session, release)
        builder = ReleaseBuilder(logger, api, runner, session, release, profile)
        res = builder.run()

    logger.info(
        f"OS release '{release}' created, build {res.build_id}, "
        + f"distribution {res.distribution_id}"
    )
    return res
