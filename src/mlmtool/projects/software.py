# mlmtool - content projects - software projects
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

import pydantic

from mlmtool.credentials import Credentials
from mlmtool.errors import NotFoundError
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.errors import RemoteRejectedError
from mlmtool.suma.models import ContentProject
from mlmtool.suma.session import Session, with_session


class SoftwareProjectSpec(pydantic.BaseModel):
    project: str = pydantic.Field(min_length=1)
    base_channel: str = pydantic.Field(min_length=1)
    environments: list[str] = pydantic.Field(min_length=1)
    add_channels: list[str] = pydantic.Field(default=[])
    delete_channels: list[str] = pydantic.Field(default=[])
    description: str | None = None


def split_labels(value: str | None) -> list[str]:
    """Split a comma separated list of labels, dropping empty entries."""
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def lookup_project(
    logger: logging.Logger, api: SumaAPI, session: Session, label: str
) -> ContentProject | None:
    try:
        return api.cm_lookup_project(session, label)
    except RemoteRejectedError as e:
        logger.debug(f"project '{label}' not found: {e}")
        return None


class SoftwareProjectCreator:
    """Create a content project, or adjust the sources of an existing one."""

    spec: SoftwareProjectSpec

    _logger: logging.Logger
    _api: SumaAPI
    _session: Session

    def __init__(
        self,
        logger: logging.Logger,
        api: SumaAPI,
        session: Session,
        spec: SoftwareProjectSpec,
    ) -> None:
        self._logger = logger
        self._api = api
        self._session = session
        self.spec = spec

    @property
    def description(self) -> str:
        return self.spec.description or self.spec.project

    def run(self) -> bool:
        """Returns `True` if the project was created."""
        if not self._api.software_is_existing(self._session, self.spec.base_channel):
            msg = f"base channel '{self.spec.base_channel}' does not exist"
            self._logger.error(msg)
            raise NotFoundError(msg)

        project = lookup_project(
            self._logger, self._api, self._session, self.spec.project
        )
        if project is None:
            self._create()
            return True

        self._logger.info(
            f"project '{self.spec.project}' already exists, "
            + "only adding and removing channels"
        )
        self.attach(self.spec.add_channels)
        self.detach(self.spec.delete_channels)
        return False

    def _create(self) -> None:
        label = self.spec.project
        self._logger.info(f"create project '{label}'")
        _ = self._api.cm_create_project(self._session, label, label, self.description)

        predecessor = ""
        for env in self.spec.environments:
            self._logger.debug(f"create environment '{env}' after '{predecessor}'")
            _ = self._api.cm_create_environment(
                self._session, label, predecessor, env, env, self.description
            )
            predecessor = env

        channels = [self.spec.base_channel]
        if self.spec.add_channels:
            channels.extend(self.spec.add_channels)
        else:
            channels.extend(
                c.label
                for c in self._api.software_list_children(
                    self._session, self.spec.base_channel
                )
            )

        self.attach(channels)
        self.detach(self.spec.delete_channels)

    def _existing(self, channels: list[str]) -> list[str]:
        res: list[str] = []
        for channel in channels:
            if self._api.software_is_existing(self._session, channel):
                res.append(channel)
            else:
                self._logger.debug(f"channel '{channel}' not found, skip")
        return res

    def attach(self, channels: list[str]) -> None:
        for channel in self._existing(channels):
            self._logger.debug(f"attach '{channel}' to '{self.spec.project}'")
            _ = self._api.cm_attach_source(self._session, self.spec.project, channel)

    def detach(self, channels: list[str]) -> None:
        for channel in self._existing(channels):
            self._logger.debug(f"detach '{channel}' from '{self.spec.project}'")
            _ = self._api.cm_detach_source(self._session, self.spec.project, channel)


def create_software_project(
    logger: logging.Logger,
    api: SumaAPI,
    credentials: Credentials,
    spec: SoftwareProjectSpec,
) -> bool:
    with with_session(logger, api, credentials) as session:
        return SoftwareProjectCreator(logger, api, session, spec).run()
