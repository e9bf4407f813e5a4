# mlmtool - OS releases - preconditions
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

from mlmtool.errors import AlreadyExistsError, in_step
from mlmtool.releases.catalog import (
    BASE_CHANNEL_EXTRA,
    CHANNEL_ARCH,
    ReleaseProfile,
    get_profile,
)
from mlmtool.releases.errors import UnknownProductError
from mlmtool.releases.osrelease import OsReleaseId
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.errors import RemoteRejectedError
from mlmtool.suma.session import Session

STEP_PROJECT = "check-project"
STEP_CHANNELS = "check-channels"
STEP_DISTRIBUTION = "check-distribution"
STEP_EXTRA_CHANNELS = "ensure-extra-channels"


def check_project_absent(
    logger: logging.Logger, api: SumaAPI, session: Session, release: OsReleaseId
) -> None:
    label = release.project_label
    for project in api.cm_list_projects(session):
        if project.label == label:
            msg = f"project '{label}' already exists"
            logger.error(msg)
            raise AlreadyExistsError(msg)
    logger.debug(f"project '{label}' not found")


def check_base_channel_absent(
    logger: logging.Logger, api: SumaAPI, session: Session, release: OsReleaseId
) -> None:
    # Plain substring match, for standard and special ids alike.
    base_channels = [c.label for c in api.list_software_channels(session) if c.is_base]
    for label in base_channels:
        if release.value in label:
            msg = f"base channel '{label}' already exists for '{release}'"
            logger.error(msg)
            raise AlreadyExistsError(msg)
    logger.debug(f"no base channel for '{release}' among {len(base_channels)}")


def check_distribution_absent(
    logger: logging.Logger, api: SumaAPI, session: Session, release: OsReleaseId
) -> None:
    """Ensure no distribution tree is labelled after the release.

    The server rejects looking up an unknown tree; that rejection is the
    expected outcome here.
    """
    try:
        _ = api.kickstart_tree_get_details(session, release.value)
    except RemoteRejectedError as e:
        logger.debug(f"distribution '{release}' not found: {e}")
        return

    msg = f"distribution '{release}' already exists"
    logger.error(msg)
    raise AlreadyExistsError(msg)


def ensure_extra_channels(
    logger: logging.Logger, api: SumaAPI, session: Session, profile: ReleaseProfile
) -> list[str]:
    """Create the shared extra base channel and the product's extra children.

    Returns the labels of the channels that were created.
    """
    created: list[str] = []

    if not api.software_is_existing(session, BASE_CHANNEL_EXTRA):
        logger.info(f"create base channel '{BASE_CHANNEL_EXTRA}'")
        _ = api.software_create(
            session,
            BASE_CHANNEL_EXTRA,
            BASE_CHANNEL_EXTRA,
            BASE_CHANNEL_EXTRA,
            CHANNEL_ARCH,
            "",
        )
        created.append(BASE_CHANNEL_EXTRA)

    for child in profile.extra_child_channels:
        if api.software_is_existing(session, child):
            continue
        logger.info(f"create channel '{child}' under '{BASE_CHANNEL_EXTRA}'")
        _ = api.software_create(
            session, child, child, child, CHANNEL_ARCH, BASE_CHANNEL_EXTRA
        )
        created.append(child)

    return created


def check_preconditions(
    logger: logging.Logger, api: SumaAPI, session: Session, release: OsReleaseId
) -> ReleaseProfile:
    """Check that `release` can be built, returning its product's profile.

    Stops at the first failing check. Nothing is modified on the server, with
    the exception of creating missing extra channels for the product.
    """
    profile = get_profile(release.product_code)
    if profile is None:
        raise UnknownProductError(f"unknown product '{release.product_code}'")

    with in_step(STEP_PROJECT):
        check_project_absent(logger, api, session, release)
    with in_step(STEP_CHANNELS):
        check_base_channel_absent(logger, api, session, release)
    with in_step(STEP_DISTRIBUTION):
        check_distribution_absent(logger, api, session, release)
    with in_step(STEP_EXTRA_CHANNELS):
        created = ensure_extra_channels(logger, api, session, profile)

    if created:
        logger.info(f"created extra channels: {', '.join(created)}")
    return profile
