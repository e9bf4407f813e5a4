# mlmtool - activation keys - release keys
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
from pathlib import Path

import pydantic

from mlmtool.credentials import Credentials
from mlmtool.runner import CommandRunner, LocalIOError
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.errors import ResponseShapeError, SumaError
from mlmtool.suma.session import Session, with_session

ORG_PREFIX = "1-"
RELEASE_MARKER = "-r00"
STALE_MARKER = "-r0"
SPECIAL_MARKER = "special"
SKIPPED_PREFIXES = ("suse-", "sle-pr", "custom")
SKIPPED_MARKER = "repo"

MONITORING_ENTITLEMENT = "monitoring_entitled"
MONITORED_PRODUCTS = ("s15", "sm")
DEFAULT_SYSTEM_GROUP = "general"

BOOTSTRAP_CMD = "/usr/bin/mgr-bootstrap"
SED_CMD = "/usr/bin/sed"
BOOTSTRAP_DIR = Path("/srv/www/htdocs/pub/bootstrap")
FORCE_VENV_SALT_MINION = "s/FORCE_VENV_SALT_MINION=0/FORCE_VENV_SALT_MINION=1/"


def activation_key_for(channel: str) -> str | None:
    """Key of a release base channel, with the organisation prefix.

    Product and custom channels have no key. The key is made of the first
    three dash separated fields of the label, four for special releases.
    """
    if channel.startswith(SKIPPED_PREFIXES) or SKIPPED_MARKER in channel:
        return None

    fields = channel.split("-")
    n = 4 if SPECIAL_MARKER in channel else 3
    if len(fields) < n:
        return None
    return ORG_PREFIX + "-".join(fields[:n])


def entitlements_for(channel: str) -> list[str]:
    if any(p in channel[:4] for p in MONITORED_PRODUCTS):
        return [MONITORING_ENTITLEMENT]
    return []


def short_key(key: str) -> str:
    """Drop the organisation prefix from `key`."""
    return key.partition("-")[2]


class ActivationKeysResult(pydantic.BaseModel):
    created: list[str] = pydantic.Field(default=[])
    deleted: list[str] = pydantic.Field(default=[])
    bootstrap_failed: list[str] = pydantic.Field(default=[])


class ActivationKeyManager:
    """Keep one activation key per release base channel.

    Keys are created for release base channels lacking one, along with their
    bootstrap script. Release keys whose base channel is gone are deleted.
    """

    bootstrap_dir: Path

    _logger: logging.Logger
    _api: SumaAPI
    _runner: CommandRunner
    _session: Session

    def __init__(
        self,
        logger: logging.Logger,
        api: SumaAPI,
        runner: CommandRunner,
        session: Session,
        bootstrap_dir: Path = BOOTSTRAP_DIR,
    ) -> None:
        self._logger = logger
        self._api = api
        self._runner = runner
        self._session = session
        self.bootstrap_dir = bootstrap_dir

    def _expect_one(self, what: str, res: int) -> None:
        if res != 1:
            msg = f"unable to {what}, server answered {res}"
            self._logger.error(msg)
            raise ResponseShapeError(msg)

    def run(self) -> ActivationKeysResult:
        result = ActivationKeysResult()

        existing = [k.key for k in self._api.activationkey_list(self._session)]
        bases = [
            c.label
            for c in self._api.list_software_channels(self._session)
            if c.is_base
        ]

        known = set(existing)
        for channel in bases:
            key = activation_key_for(channel)
            if key is None or key in known or RELEASE_MARKER not in channel:
                continue

            self.create(key, channel)
            known.add(key)
            result.created.append(key)
            if not self.bootstrap(key):
                result.bootstrap_failed.append(key)

        result.deleted = self.delete_stale(existing, bases)
        return result

    def create(self, key: str, channel: str) -> None:
        self._logger.info(f"create activation key '{key}' for '{channel}'")
        res = self._api.activationkey_create(
            self._session,
            short_key(key),
            channel,
            channel,
            entitlements_for(channel),
        )
        if res != key:
            msg = f"requested activation key '{key}', server created '{res}'"
            self._logger.error(msg)
            raise ResponseShapeError(msg)

        children = [
            c.label for c in self._api.software_list_children(self._session, channel)
        ]
        if children:
            self._expect_one(
                f"add child channels to '{key}'",
                self._api.activationkey_add_child_channels(
                    self._session, key, children
                ),
            )

        try:
            group = self._api.systemgroup_get_details(
                self._session, DEFAULT_SYSTEM_GROUP
            )
        except SumaError as e:
            self._logger.warning(
                f"system group '{DEFAULT_SYSTEM_GROUP}' not added to '{key}': {e}"
            )
        else:
            self._expect_one(
                f"add system group '{group.name}' to '{key}'",
                self._api.activationkey_add_server_groups(
                    self._session, key, [group.id]
                ),
            )

        # packages added by default
        details = self._api.activationkey_get_details(self._session, key)
        if details.packages:
            self._expect_one(
                f"remove packages from '{key}'",
                self._api.activationkey_remove_packages(
                    self._session, key, details.packages
                ),
            )

    def bootstrap(self, key: str) -> bool:
        """Create the key's bootstrap script, unless it exists already."""
        name = short_key(key)
        script = self.bootstrap_dir / f"{name}.sh"
        if script.exists():
            self._logger.debug(f"bootstrap script '{script}' exists")
            return True

        try:
            _ = self._runner.run(
                BOOTSTRAP_CMD, [f"--activation-keys={key}", f"--script={name}.sh"]
            )
            _ = self._runner.run(SED_CMD, ["-i", FORCE_VENV_SALT_MINION, str(script)])
        except LocalIOError as e:
            self._logger.error(f"unable to create bootstrap script for '{key}': {e}")
            return False

        self._logger.info(f"created bootstrap script '{script}'")
        return True

    def delete_stale(self, keys: list[str], bases: list[str]) -> list[str]:
        deleted: list[str] = []
        for key in keys:
            name = short_key(key)
            if STALE_MARKER not in key or any(name in b for b in bases):
                continue

            self._logger.info(f"delete activation key '{key}'")
            if self._api.activationkey_delete(self._session, key) != 1:
                self._logger.error(f"unable to delete activation key '{key}'")
                continue
            deleted.append(key)

        return deleted


def create_activation_keys(
    logger: logging.Logger,
    api: SumaAPI,
    credentials: Credentials,
    runner: CommandRunner,
    bootstrap_dir: Path = BOOTSTRAP_DIR,
) -> ActivationKeysResult:
    with with_session(logger, api, credentials) as session:
        return ActivationKeyManager(
            logger, api, runner, session, bootstrap_dir
        ).run()
