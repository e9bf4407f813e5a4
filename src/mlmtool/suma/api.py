# mlmtool - management server API - endpoints
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

# pyright: reportExplicitAny=false

import logging
from typing import Any

import pydantic

from mlmtool.suma.client import SumaClient
from mlmtool.suma.errors import ResponseShapeError
from mlmtool.suma.models import (
    ActivationKey,
    ActivationKeyPackage,
    ChannelRef,
    ContentEnvironment,
    ContentFilter,
    ContentProject,
    ContentSource,
    FilterCriteria,
    KickstartProfile,
    KickstartTree,
    RepoDetails,
    SoftwareChannel,
    SystemGroup,
)
from mlmtool.suma.session import Session

SOURCE_TYPE_SOFTWARE = "software"


class SumaAPI:
    """Typed access to the management server endpoints used by mlmtool.

    Every authenticated method takes the `Session` as its first argument; the
    underlying client refuses to use a session that is closed or bound to a
    different host.
    """

    _client: SumaClient
    _logger: logging.Logger

    def __init__(self, logger: logging.Logger, client: SumaClient) -> None:
        self._logger = logger
        self._client = client

    @property
    def host(self) -> str:
        return self._client.host

    def _get[T](
        self, session: Session, ep: str, shape: type[T], **params: Any
    ) -> T:
        return self._client.get(ep, shape, session=session, params=params or None)

    def _post[T](self, session: Session, ep: str, shape: type[T], **data: Any) -> T:
        return self._client.post(ep, shape, session=session, data=data)

    def _lookup[M: pydantic.BaseModel](
        self, session: Session, ep: str, model: type[M], **params: Any
    ) -> M | None:
        """Look up an entity; the server answers an empty result if not found."""
        raw = self._get(session, ep, dict[str, Any] | None, **params)
        if not raw:
            return None
        try:
            return model.model_validate(raw)
        except pydantic.ValidationError as e:
            msg = f"unexpected result from '{ep}': {raw!r}"
            self._logger.error(msg)
            raise ResponseShapeError(msg) from e

    # auth

    def auth_login(self, user: str, password: str) -> str:
        self._logger.debug(f"login to '{self.host}' as '{user}'")
        return self._client.login(user, password)

    def auth_logout(self, session: Session) -> None:
        _ = self._post(session, "auth/logout", Any)

    # channels

    def list_software_channels(self, session: Session) -> list[SoftwareChannel]:
        return self._get(session, "channel/listSoftwareChannels", list[SoftwareChannel])

    def software_list_children(
        self, session: Session, parent: str
    ) -> list[ChannelRef]:
        return self._get(
            session,
            "channel/software/listChildren",
            list[ChannelRef],
            channelLabel=parent,
        )

    def software_is_existing(self, session: Session, label: str) -> bool:
        return self._get(
            session, "channel/software/isExisting", bool, channelLabel=label
        )

    def software_create(
        self,
        session: Session,
        label: str,
        name: str,
        summary: str,
        arch_label: str,
        parent_label: str,
    ) -> int:
        return self._post(
            session,
            "channel/software/create",
            int,
            label=label,
            name=name,
            summary=summary,
            archLabel=arch_label,
            parentLabel=parent_label,
        )

    def software_create_repo(
        self, session: Session, label: str, type: str, url: str
    ) -> RepoDetails:
        return self._post(
            session,
            "channel/software/createRepo",
            RepoDetails,
            label=label,
            type=type,
            url=url,
        )

    def software_associate_repo(
        self, session: Session, channel_label: str, repo_label: str
    ) -> ChannelRef:
        return self._post(
            session,
            "channel/software/associateRepo",
            ChannelRef,
            channelLabel=channel_label,
            repoLabel=repo_label,
        )

    def software_sync_repo(self, session: Session, channel_label: str) -> int:
        return self._post(
            session, "channel/software/syncRepo", int, channelLabel=channel_label
        )

    # content lifecycle management

    def cm_list_projects(self, session: Session) -> list[ContentProject]:
        return self._get(
            session, "contentmanagement/listProjects", list[ContentProject]
        )

    def cm_lookup_project(
        self, session: Session, project_label: str
    ) -> ContentProject | None:
        return self._lookup(
            session,
            "contentmanagement/lookupProject",
            ContentProject,
            projectLabel=project_label,
        )

    def cm_create_project(
        self, session: Session, project_label: str, name: str, description: str
    ) -> ContentProject:
        return self._post(
            session,
            "contentmanagement/createProject",
            ContentProject,
            projectLabel=project_label,
            name=name,
            description=description,
        )

    def cm_attach_source(
        self,
        session: Session,
        project_label: str,
        source_label: str,
        *,
        source_type: str = SOURCE_TYPE_SOFTWARE,
    ) -> ContentSource:
        return self._post(
            session,
            "contentmanagement/attachSource",
            ContentSource,
            projectLabel=project_label,
            sourceType=source_type,
            sourceLabel=source_label,
        )

    def cm_detach_source(
        self,
        session: Session,
        project_label: str,
        source_label: str,
        *,
        source_type: str = SOURCE_TYPE_SOFTWARE,
    ) -> int:
        return self._post(
            session,
            "contentmanagement/detachSource",
            int,
            projectLabel=project_label,
            sourceType=source_type,
            sourceLabel=source_label,
        )

    def cm_list_filters(self, session: Session) -> list[ContentFilter]:
        return self._get(session, "contentmanagement/listFilters", list[ContentFilter])

    def cm_create_filter(
        self,
        session: Session,
        name: str,
        rule: str,
        entity_type: str,
        criteria: FilterCriteria,
    ) -> ContentFilter:
        return self._post(
            session,
            "contentmanagement/createFilter",
            ContentFilter,
            name=name,
            rule=rule,
            entityType=entity_type,
            criteria=criteria.model_dump(),
        )

    def cm_attach_filter(
        self, session: Session, project_label: str, filter_id: int
    ) -> ContentFilter:
        return self._post(
            session,
            "contentmanagement/attachFilter",
            ContentFilter,
            projectLabel=project_label,
            filterId=filter_id,
        )

    def cm_create_environment(
        self,
        session: Session,
        project_label: str,
        predecessor_label: str,
        env_label: str,
        name: str,
        description: str,
    ) -> ContentEnvironment:
        return self._post(
            session,
            "contentmanagement/createEnvironment",
            ContentEnvironment,
            projectLabel=project_label,
            predecessorLabel=predecessor_label,
            envLabel=env_label,
            name=name,
            description=description,
        )

    def cm_lookup_environment(
        self, session: Session, project_label: str, env_label: str
    ) -> ContentEnvironment | None:
        return self._lookup(
            session,
            "contentmanagement/lookupEnvironment",
            ContentEnvironment,
            projectLabel=project_label,
            envLabel=env_label,
        )

    def cm_build_project(self, session: Session, project_label: str) -> int:
        return self._post(
            session,
            "contentmanagement/buildProject",
            int,
            projectLabel=project_label,
        )

    def cm_promote_project(
        self, session: Session, project_label: str, env_label: str
    ) -> int:
        """Promote the content of environment `env_label` to its successor."""
        return self._post(
            session,
            "contentmanagement/promoteProject",
            int,
            projectLabel=project_label,
            envLabel=env_label,
        )

    # autoinstallable distributions

    def kickstart_tree_get_details(self, session: Session, label: str) -> KickstartTree:
        return self._get(
            session, "kickstart/tree/getDetails", KickstartTree, treeLabel=label
        )

    def kickstart_tree_create(
        self,
        session: Session,
        label: str,
        base_path: str,
        channel_label: str,
        install_type: str,
    ) -> int:
        return self._post(
            session,
            "kickstart/tree/create",
            int,
            treeLabel=label,
            basePath=base_path,
            channelLabel=channel_label,
            installType=install_type,
        )

    def kickstart_tree_create_with_kernel(
        self,
        session: Session,
        label: str,
        base_path: str,
        channel_label: str,
        install_type: str,
        kernel_opts: str,
        post_kernel_opts: str,
    ) -> int:
        return self._post(
            session,
            "kickstart/tree/create",
            int,
            treeLabel=label,
            basePath=base_path,
            channelLabel=channel_label,
            installType=install_type,
            kernelOptions=kernel_opts,
            postKernelOptions=post_kernel_opts,
        )

    # autoinstall profiles

    def kickstart_list_kickstarts(self, session: Session) -> list[KickstartProfile]:
        return self._get(session, "kickstart/listKickstarts", list[KickstartProfile])

    def kickstart_delete_profile(self, session: Session, profile_label: str) -> int:
        return self._post(
            session, "kickstart/deleteProfile", int, ksLabel=profile_label
        )

    def kickstart_import_raw_file(
        self,
        session: Session,
        profile_label: str,
        virt_type: str,
        tree_label: str,
        contents: str,
    ) -> int:
        return self._post(
            session,
            "kickstart/importRawFile",
            int,
            profileLabel=profile_label,
            virtualizationType=virt_type,
            kickstartableTreeLabel=tree_label,
            kickstartFileContents=contents,
        )

    def kickstart_profile_set_variables(
        self, session: Session, profile_label: str, variables: dict[str, str]
    ) -> int:
        return self._post(
            session,
            "kickstart/profile/setVariables",
            int,
            ksLabel=profile_label,
            variables=variables,
        )

    # activation keys

    def activationkey_list(self, session: Session) -> list[ActivationKey]:
        return self._get(
            session, "activationkey/listActivationKeys", list[ActivationKey]
        )

    def activationkey_create(
        self,
        session: Session,
        key: str,
        description: str,
        base_channel_label: str,
        entitlements: list[str],
    ) -> str:
        """Create a key, returning it as prefixed by the server."""
        return self._post(
            session,
            "activationkey/create",
            str,
            key=key,
            description=description,
            baseChannelLabel=base_channel_label,
            entitlements=entitlements,
            universalDefault=False,
        )

    def activationkey_get_details(self, session: Session, key: str) -> ActivationKey:
        return self._get(session, "activationkey/getDetails", ActivationKey, key=key)

    def activationkey_add_child_channels(
        self, session: Session, key: str, channels: list[str]
    ) -> int:
        return self._post(
            session,
            "activationkey/addChildChannels",
            int,
            keys=[key],
            childChannelLabels=channels,
        )

    def activationkey_add_server_groups(
        self, session: Session, key: str, group_ids: list[int]
    ) -> int:
        return self._post(
            session,
            "activationkey/addServerGroups",
            int,
            keys=[key],
            serverGroupIds=group_ids,
        )

    def activationkey_remove_packages(
        self, session: Session, key: str, packages: list[ActivationKeyPackage]
    ) -> int:
        return self._post(
            session,
            "activationkey/removePackages",
            int,
            key=key,
            packages=[p.model_dump(exclude_none=True) for p in packages],
        )

    def activationkey_delete(self, session: Session, key: str) -> int:
        return self._post(session, "activationkey/delete", int, key=key)

    # system groups

    def systemgroup_get_details(self, session: Session, name: str) -> SystemGroup:
        return self._get(
            session, "systemgroup/getDetails", SystemGroup, systemGroupName=name
        )
