# mlmtool - software channels - synchronise a secondary server
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

from __future__ import annotations

import logging
from pathlib import Path

import pydantic
import yaml

from mlmtool.config import ConfigError
from mlmtool.credentials import Credentials
from mlmtool.runner import CommandRunner, LocalIOError
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.session import Session, with_session

INTER_SYNC_CMD = "/usr/bin/mgr-inter-sync"
HUB_ALL = "all"


class HubEntry(pydantic.BaseModel):
    basechannels: list[str] = pydantic.Field(default=[])
    clmprojects: list[str] = pydantic.Field(default=[])


class HubConfig(pydantic.RootModel[dict[str, HubEntry]]):
    """Channels to mirror, for all secondaries or keyed by secondary host."""

    @classmethod
    def load(cls, path: Path) -> HubConfig:
        try:
            raw = yaml.safe_load(path.read_text())
            return HubConfig.model_validate(raw or {})
        except (OSError, yaml.YAMLError, pydantic.ValidationError) as e:
            msg = f"error loading hub config at '{path}': {e}"
            raise ConfigError(msg) from e

    def entries_for(self, host: str) -> list[HubEntry]:
        return [
            entry for key, entry in self.root.items() if key in (HUB_ALL, host)
        ]


def wanted_base_channels(
    entries: list[HubEntry], base_channels: list[str]
) -> list[str]:
    """Select the primary's base channels to mirror, in configuration order."""

    def _matching(needle: str) -> list[str]:
        return [bc for bc in base_channels if needle in bc]

    wanted: list[str] = []
    for entry in entries:
        for channel in entry.basechannels:
            if _matching(channel):
                wanted.append(channel)
        for project in entry.clmprojects:
            wanted.extend(_matching(project))

    # keep the first occurrence only
    return list(dict.fromkeys(wanted))


def channels_to_sync(
    logger: logging.Logger,
    primary: SumaAPI,
    primary_session: Session,
    secondary: SumaAPI,
    secondary_session: Session,
    hub: HubConfig,
) -> list[str]:
    entries = hub.entries_for(secondary.host)
    if not entries:
        logger.info(f"no hub entries for '{secondary.host}'")
        return []

    base_channels = [
        c.label for c in primary.list_software_channels(primary_session) if c.is_base
    ]
    needed: list[str] = []
    for base in wanted_base_channels(entries, base_channels):
        needed.append(base)
        needed.extend(
            c.label for c in primary.software_list_children(primary_session, base)
        )

    present = {c.label for c in secondary.list_software_channels(secondary_session)}
    return [c for c in dict.fromkeys(needed) if c not in present]


def sync_software_channels(
    logger: logging.Logger,
    primary: SumaAPI,
    primary_credentials: Credentials,
    secondary: SumaAPI,
    secondary_credentials: Credentials,
    runner: CommandRunner,
    hub: HubConfig,
) -> tuple[list[str], list[str]]:
    """Mirror channels missing on the secondary server.

    Returns the channels that were, and that failed to be, synchronised.
    """
    synced: list[str] = []
    failed: list[str] = []

    with (
        with_session(logger, primary, primary_credentials) as primary_session,
        with_session(logger, secondary, secondary_credentials) as secondary_session,
    ):
        to_sync = channels_to_sync(
            logger, primary, primary_session, secondary, secondary_session, hub
        )
        logger.info(f"channels to sync to '{secondary.host}': {to_sync}")

        for channel in to_sync:
            try:
                _ = runner.run(INTER_SYNC_CMD, ["-c", channel])
            except LocalIOError as e:
                logger.error(f"unable to sync channel '{channel}': {e}")
                failed.append(channel)
                continue
            logger.info(f"synced channel '{channel}'")
            synced.append(channel)

    return (synced, failed)
