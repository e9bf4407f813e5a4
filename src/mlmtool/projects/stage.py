# mlmtool - content projects - stages
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
import time
from collections.abc import Callable

from mlmtool.credentials import Credentials
from mlmtool.errors import NotFoundError, NotReadyError
from mlmtool.projects.software import lookup_project
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.errors import RemoteRejectedError
from mlmtool.suma.models import ContentEnvironment
from mlmtool.suma.session import Session, with_session

WAIT_INTERVAL = 30.0

STATUS_BUILT = "built"
NOT_BUILT_STATUSES = ("unknown",)
BUSY_STATUSES = ("building", "generating_repodata")


def lookup_environment(
    logger: logging.Logger,
    api: SumaAPI,
    session: Session,
    project: str,
    env: str,
) -> ContentEnvironment | None:
    try:
        return api.cm_lookup_environment(session, project, env)
    except RemoteRejectedError as e:
        logger.debug(f"environment '{env}' of '{project}' not found: {e}")
        return None


def _require_environment(
    logger: logging.Logger,
    api: SumaAPI,
    session: Session,
    project: str,
    env: str,
) -> ContentEnvironment:
    environment = lookup_environment(logger, api, session, project, env)
    if environment is None:
        msg = f"environment '{env}' of project '{project}' does not exist"
        logger.error(msg)
        raise NotFoundError(msg)
    return environment


def validate_stage(
    logger: logging.Logger,
    api: SumaAPI,
    session: Session,
    project: str,
    env: str,
) -> ContentEnvironment:
    """Check that `env` of `project` can be synchronised from its predecessor."""
    if lookup_project(logger, api, session, project) is None:
        msg = f"project '{project}' does not exist"
        logger.error(msg)
        raise NotFoundError(msg)

    environment = _require_environment(logger, api, session, project, env)
    previous = environment.previous_environment_label
    if not previous:
        return environment

    predecessor = _require_environment(logger, api, session, project, previous)
    if predecessor.status in NOT_BUILT_STATUSES:
        msg = f"previous environment '{previous}' has never been built"
        logger.error(msg)
        raise NotReadyError(msg)
    if predecessor.status in BUSY_STATUSES:
        msg = f"previous environment '{previous}' is still being built"
        logger.error(msg)
        raise NotReadyError(msg)

    return environment


def wait_until_built(
    logger: logging.Logger,
    api: SumaAPI,
    session: Session,
    project: str,
    env: str,
    *,
    interval: float = WAIT_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    while True:
        environment = _require_environment(logger, api, session, project, env)
        if environment.status == STATUS_BUILT:
            logger.info(f"environment '{env}' of '{project}' built")
            return
        logger.info(
            f"waiting for environment '{env}' to be built "
            + f"(status: {environment.status})"
        )
        sleep(interval)


def sync_stage(
    logger: logging.Logger,
    api: SumaAPI,
    credentials: Credentials,
    project: str,
    env: str,
    *,
    wait: bool = False,
    interval: float = WAIT_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Build the first environment of a project, or promote into a later one.

    Returns the id of the started action.
    """
    with with_session(logger, api, credentials) as session:
        environment = validate_stage(logger, api, session, project, env)
        previous = environment.previous_environment_label

        if not previous:
            logger.info(f"build project '{project}'")
            res = api.cm_build_project(session, project)
        else:
            logger.info(f"promote '{previous}' of project '{project}' into '{env}'")
            res = api.cm_promote_project(session, project, previous)

        if wait:
            wait_until_built(
                logger, api, session, project, env, interval=interval, sleep=sleep
            )

    return res
