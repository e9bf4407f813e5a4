# mlmtool - management server API - models
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

from typing import Annotated, Any, ClassVar

import pydantic


class Envelope(pydantic.BaseModel):
    """Wrapper returned by every management server endpoint."""

    success: pydantic.StrictBool
    result: Any = None
    messages: list[str] = pydantic.Field(default=[])
    message: str | None = None

    def all_messages(self) -> list[str]:
        msgs = list(self.messages)
        if self.message:
            msgs.append(self.message)
        return msgs


class SumaModel(pydantic.BaseModel):
    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        validate_by_alias=True,
        validate_by_name=True,
        serialize_by_alias=True,
        extra="ignore",
    )


class ChannelRef(SumaModel):
    """A software channel, as listed by `channel.software.listChildren`."""

    label: str
    name: str | None = None


class SoftwareChannel(ChannelRef):
    """A software channel, as listed by `channel.listSoftwareChannels`."""

    parent_label: str | None = None

    @property
    def is_base(self) -> bool:
        return not self.parent_label


class RepoDetails(SumaModel):
    label: str
    type: str | None = None
    source_url: Annotated[str | None, pydantic.Field(alias="sourceUrl")] = None


class ContentProject(SumaModel):
    label: str
    name: str | None = None
    description: str | None = None
    id: int | None = None


class ContentSource(SumaModel):
    content_project_label: Annotated[
        str | None, pydantic.Field(alias="contentProjectLabel")
    ] = None
    channel_label: Annotated[str | None, pydantic.Field(alias="channelLabel")] = None
    type: str | None = None
    state: str | None = None


class FilterCriteria(SumaModel):
    field: str
    matcher: str
    value: str


class ContentFilter(SumaModel):
    id: int
    name: str
    rule: str | None = None
    entity_type: Annotated[str | None, pydantic.Field(alias="entityType")] = None
    criteria: FilterCriteria | None = None


class ContentEnvironment(SumaModel):
    label: str
    name: str | None = None
    description: str | None = None
    status: str | None = None
    content_project_label: Annotated[
        str | None, pydantic.Field(alias="contentProjectLabel")
    ] = None
    previous_environment_label: Annotated[
        str | None, pydantic.Field(alias="previousEnvironmentLabel")
    ] = None


class KickstartTree(SumaModel):
    label: str
    abs_path: str | None = None
    channel_id: int | None = None


class KickstartProfile(SumaModel):
    """An autoinstall profile, as listed by `kickstart.listKickstarts`."""

    label: str
    name: str | None = None
    tree_label: str | None = None
    active: bool | None = None


class ActivationKeyPackage(SumaModel):
    name: str
    arch: str | None = None


class ActivationKey(SumaModel):
    key: str
    description: str | None = None
    base_channel_label: str | None = None
    child_channel_labels: list[str] = pydantic.Field(default=[])
    entitlements: list[str] = pydantic.Field(default=[])
    server_group_ids: list[int] = pydantic.Field(default=[])
    packages: list[ActivationKeyPackage] = pydantic.Field(default=[])
    universal_default: bool | None = None


class SystemGroup(SumaModel):
    id: int
    name: str
    description: str | None = None
    system_count: int | None = None
