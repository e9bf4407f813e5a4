# mlmtool - OS releases - builder
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

from mlmtool.errors import in_step
from mlmtool.releases.catalog import (
    BASE_CHANNEL_EXTRA,
    CHANNEL_ARCH,
    CREATEREPO_CMD,
    EXTRA_REPO_DIR,
    INSTALL_TYPE,
    ReleaseProfile,
)
from mlmtool.releases.osrelease import OsReleaseId, filter_date
from mlmtool.runner import CommandRunner
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.errors import SumaError
from mlmtool.suma.models import FilterCriteria
from mlmtool.suma.session import Session

STEP_EXTRA_REPO_FS = "R1 extra-repo-fs"
STEP_EXTRA_REPO = "R2 extra-repo"
STEP_PROJECT = "R3 project"
STEP_SOURCES = "R4 sources"
STEP_FILTER = "R5 filter"
STEP_ENVIRONMENT = "R6 environment"
STEP_BUILD = "R7 build"
STEP_DISTRIBUTION = "R8 distribution"

REPO_TYPE = "yum"
FILTER_RULE = "deny"
FILTER_ENTITY = "erratum"
FILTER_FIELD = "issue_date"
FILTER_MATCHER = "greatereq"

MANUAL_KERNEL_OPTIONS = "useonlinerepo=1 insecure=1 audit=1 rootdelay=5"


def kernel_options(host: str, release: OsReleaseId) -> str:
    return (
        f"{MANUAL_KERNEL_OPTIONS} install=http://{host}/ks/dist/{release} "
        + "self_update=0"
    )


def extra_repo_path(release: OsReleaseId) -> Path:
    return EXTRA_REPO_DIR / release.extra_channel_label


class BuildResult(pydantic.BaseModel):
    """Outcome of a successful release build."""

    release: str
    project_label: str
    filter_id: int
    build_id: int
    distribution_id: int
    missing_channels: list[str] = pydantic.Field(default=[])
    kernel_options_pending: bool = False


class ReleaseBuilder:
    """Build a release's content project and distribution.

    Steps run strictly in order, and nothing is undone if a later step
    fails. Errors are labelled with the step that raised them.
    """

    release: OsReleaseId
    profile: ReleaseProfile

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
        release: OsReleaseId,
        profile: ReleaseProfile,
    ) -> None:
        self._logger = logger
        self._api = api
        self._runner = runner
        self._session = session
        self.release = release
        self.profile = profile

    def run(self) -> BuildResult:
        with in_step(STEP_EXTRA_REPO_FS):
            path = self.prepare_extra_repo()
        with in_step(STEP_EXTRA_REPO):
            self.register_extra_repo(path)
        with in_step(STEP_PROJECT):
            self.create_project()
        with in_step(STEP_SOURCES):
            missing = self.attach_sources()
        with in_step(STEP_FILTER):
            filter_id = self.attach_filter()
        with in_step(STEP_ENVIRONMENT):
            self.create_environment()
        with in_step(STEP_BUILD):
            build_id = self.build_project()
        with in_step(STEP_DISTRIBUTION):
            distribution_id, pending = self.create_distribution()

        return BuildResult(
            release=self.release.value,
            project_label=self.release.project_label,
            filter_id=filter_id,
            build_id=build_id,
            distribution_id=distribution_id,
            missing_channels=missing,
            kernel_options_pending=pending,
        )

    def prepare_extra_repo(self) -> Path:
        path = extra_repo_path(self.release)
        self._logger.info(f"prepare extra repository at '{path}'")
        self._runner.mkdir(path)
        _ = self._runner.run(CREATEREPO_CMD, [str(path)])
        return path

    def register_extra_repo(self, path: Path) -> None:
        label = self.release.extra_channel_label
        self._logger.info(f"register extra channel '{label}'")

        try:
            _ = self._api.software_create_repo(
                self._session, label, REPO_TYPE, f"file://{path}"
            )
        except SumaError as e:
            self._logger.warning(f"repository '{label}' assumed to exist: {e}")

        _ = self._api.software_create(
            self._session, label, label, label, CHANNEL_ARCH, BASE_CHANNEL_EXTRA
        )
        _ = self._api.software_associate_repo(self._session, label, label)
        _ = self._api.software_sync_repo(self._session, label)

    def create_project(self) -> None:
        label = self.release.project_label
        self._logger.info(f"create project '{label}'")
        _ = self._api.cm_create_project(
            self._session, label, label, self.release.value
        )

    def attach_sources(self) -> list[str]:
        """Attach the release's channels, returning the ones not found."""
        project = self.release.project_label
        parent = self.profile.parent_channel_label

        children = {
            c.label for c in self._api.software_list_children(self._session, parent)
        }
        extra_children = {
            c.label
            for c in self._api.software_list_children(
                self._session, BASE_CHANNEL_EXTRA
            )
        }

        to_attach: list[str] = [parent]
        missing: list[str] = []
        for wanted, available in (
            (self.profile.default_child_channels, children),
            (self.profile.extra_child_channels, extra_children),
        ):
            for label in wanted:
                if label in available:
                    to_attach.append(label)
                else:
                    self._logger.warning(f"channel '{label}' does not exist, skip")
                    missing.append(label)
        to_attach.append(self.release.extra_channel_label)

        for label in to_attach:
            self._logger.debug(f"attach '{label}' to project '{project}'")
            _ = self._api.cm_attach_source(self._session, project, label)

        return missing

    def attach_filter(self) -> int:
        project = self.release.project_label
        name = self.release.filter_name

        filter_id: int | None = None
        for f in self._api.cm_list_filters(self._session):
            if f.name == name:
                self._logger.debug(f"reuse filter '{name}' (id {f.id})")
                filter_id = f.id
                break

        if filter_id is None:
            criteria = FilterCriteria(
                field=FILTER_FIELD,
                matcher=FILTER_MATCHER,
                value=filter_date(self.release.date_yymmdd),
            )
            self._logger.info(f"create filter '{name}' from {criteria.value}")
            created = self._api.cm_create_filter(
                self._session, name, FILTER_RULE, FILTER_ENTITY, criteria
            )
            filter_id = created.id

        _ = self._api.cm_attach_filter(self._session, project, filter_id)
        return filter_id

    def create_environment(self) -> None:
        env = self.release.env_tag
        self._logger.info(f"create environment '{env}'")
        _ = self._api.cm_create_environment(
            self._session,
            self.release.project_label,
            "",
            env,
            env,
            f"Release{self.release}",
        )

    def build_project(self) -> int:
        label = self.release.project_label
        self._logger.info(f"build project '{label}'")
        return self._api.cm_build_project(self._session, label)

    def create_distribution(self) -> tuple[int, bool]:
        """Create the distribution tree.

        Returns its id, and whether the kernel options could not be set and
        must be added by hand.
        """
        label = self.release.value
        base_path = self.profile.tree_base_path
        channel = f"{label}-{self.profile.parent_channel_label}"

        try:
            res = self._api.kickstart_tree_create_with_kernel(
                self._session,
                label,
                base_path,
                channel,
                INSTALL_TYPE,
                kernel_options(self._api.host, self.release),
                "",
            )
            self._logger.info(f"created distribution '{label}'")
            return (res, False)
        except SumaError as e:
            self._logger.warning(
                f"unable to create distribution '{label}' with kernel options: {e}"
            )

        res = self._api.kickstart_tree_create(
            self._session, label, base_path, channel, INSTALL_TYPE
        )
        self._logger.info("=" * 72)
        self._logger.info(
            f"add the following kernel options to distribution '{label}':"
        )
        self._logger.info(MANUAL_KERNEL_OPTIONS)
        self._logger.info("=" * 72)
        return (res, True)
