# mlmtool - OS releases - catalog
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

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import ClassVar

import pydantic

# Parent of the per-release extra channels and of the products' extra children.
BASE_CHANNEL_EXTRA = "base-channel-extra"
EXTRA_REPO_DIR = Path("/srv/www/htdocs/pub/repositories/extra")
CREATEREPO_CMD = "/usr/bin/createrepo"

CHANNEL_ARCH = "channel-x86_64"
INSTALL_TYPE = "sles15generic"

ALLOWED_ENVIRONMENTS: frozenset[str] = frozenset(("r001",))


class ReleaseProfile(pydantic.BaseModel):
    """Channels and distribution tree used when building a product's release."""

    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(frozen=True)

    parent_channel_label: str
    tree_base_path: str
    default_child_channels: tuple[str, ...] = ()
    extra_child_channels: tuple[str, ...] = ()


def _micro_profile(version: str, parent: str, updates: str) -> ReleaseProfile:
    return ReleaseProfile(
        parent_channel_label=parent,
        tree_base_path=f"/srv/www/distributions/sle-micro-{version}-x86_64",
        default_child_channels=(
            updates,
            f"sle-manager-tools-for-micro5-pool-x86_64-{version}",
            f"sle-manager-tools-for-micro5-updates-x86_64-{version}",
        ),
        extra_child_channels=(
            f"micro-{version}-extra-tools-x86_64",
            f"micro-{version}-extra-monitoring-x86_64",
        ),
    )


def _sles_profile(sp: str) -> ReleaseProfile:
    return ReleaseProfile(
        parent_channel_label=f"sle-product-sles15-{sp}-pool-x86_64",
        tree_base_path=f"/srv/www/distributions/sles-15-{sp}-x86_64",
        default_child_channels=(
            f"sle-product-sles15-{sp}-updates-x86_64",
            f"sle-module-basesystem15-{sp}-pool-x86_64",
            f"sle-module-basesystem15-{sp}-updates-x86_64",
            f"sle-module-server-applications15-{sp}-pool-x86_64",
            f"sle-module-server-applications15-{sp}-updates-x86_64",
            f"sle-manager-tools15-pool-x86_64-{sp}",
            f"sle-manager-tools15-updates-x86_64-{sp}",
        ),
        extra_child_channels=(
            f"sles-15-{sp}-extra-tools-x86_64",
            f"sles-15-{sp}-extra-monitoring-x86_64",
        ),
    )


CATALOG: Mapping[str, ReleaseProfile] = MappingProxyType(
    {
        "mi52": _micro_profile(
            "5.2",
            "suse-microos-5.2-pool-x86_64",
            "suse-microos-5.2-updates-x86_64",
        ),
        "mi53": _micro_profile(
            "5.3",
            "sle-micro-5.3-pool-x86_64",
            "sle-micro-5.3-updates-x86_64",
        ),
        "mi54": _micro_profile(
            "5.4",
            "sle-micro-5.4-pool-x86_64",
            "sle-micro-5.4-updates-x86_64",
        ),
        "mi55": _micro_profile(
            "5.5",
            "sle-micro-5.5-pool-x86_64",
            "sle-micro-5.5-updates-x86_64",
        ),
        "sl54": _sles_profile("sp4"),
        "sl55": _sles_profile("sp5"),
        "sl56": _sles_profile("sp6"),
    }
)


def get_profile(product_code: str) -> ReleaseProfile | None:
    return CATALOG.get(product_code)
