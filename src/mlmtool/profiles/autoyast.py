# mlmtool - autoinstall profiles - autoyast
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

import errno
import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import ClassVar
from xml.etree import ElementTree

import pydantic

from mlmtool.credentials import Credentials
from mlmtool.errors import AlreadyExistsError, MLMError, NotFoundError
from mlmtool.runner import LocalIOError
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.errors import SumaError
from mlmtool.suma.session import Session, with_session

DEFAULT_AUTOYAST_DIR = Path("/srv/www/htdocs/pub/autoyast")
DEFAULT_AUTOYAST_TREE = "sles15sp5-autoyast"
AUTOYAST_FILE = "autoyast.xml"
AUTOYAST_ROOT_TAG = "profile"
VIRT_TYPE = "none"

# profile name -> variables set on the profile once imported
AUTOYAST_PROFILES: Mapping[str, Mapping[str, str]] = MappingProxyType(
    {
        "sles-server": MappingProxyType(
            {"keymap": "english-us", "timezone": "UTC", "role": "server"}
        ),
        "sles-minimal": MappingProxyType({}),
        "micro-server": MappingProxyType(
            {"keymap": "english-us", "timezone": "UTC", "role": "micro"}
        ),
    }
)


class InvalidProfileError(MLMError):
    """An autoyast profile is unknown, or its file is not a profile."""

    kind: ClassVar[str] = "InvalidProfile"
    default_ec: ClassVar[int] = errno.EINVAL


class AutoyastProfileSpec(pydantic.BaseModel):
    name: str = pydantic.Field(min_length=1)
    location: Path = DEFAULT_AUTOYAST_DIR
    tree_label: str = pydantic.Field(default=DEFAULT_AUTOYAST_TREE, min_length=1)
    replace: bool = False

    @property
    def xml_path(self) -> Path:
        return self.location / self.name / AUTOYAST_FILE


def read_autoyast_xml(logger: logging.Logger, spec: AutoyastProfileSpec) -> str:
    """Check the profile's name and file, returning the file's contents."""
    if spec.name not in AUTOYAST_PROFILES:
        msg = (
            f"unknown profile '{spec.name}', expected one of: "
            + ", ".join(AUTOYAST_PROFILES)
        )
        logger.error(msg)
        raise InvalidProfileError(msg)

    path = spec.xml_path
    if not path.is_file():
        msg = f"no autoyast file at '{path}'"
        logger.error(msg)
        raise NotFoundError(msg)

    try:
        contents = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        msg = f"unable to read '{path}': {e}"
        logger.error(msg)
        raise LocalIOError(msg) from e

    try:
        root = ElementTree.fromstring(contents)  # noqa: S314
    except ElementTree.ParseError as e:
        msg = f"malformed autoyast file '{path}': {e}"
        logger.error(msg)
        raise InvalidProfileError(msg) from e

    # the root element is namespaced
    tag = root.tag.rpartition("}")[2]
    if tag != AUTOYAST_ROOT_TAG:
        msg = f"'{path}' is not an autoyast profile, found root '{tag}'"
        logger.error(msg)
        raise InvalidProfileError(msg)

    logger.debug(f"autoyast file for '{spec.name}' at '{path}'")
    return contents


class AutoyastProfileCreator:
    """Import an autoyast file as an autoinstall profile."""

    spec: AutoyastProfileSpec
    contents: str

    _logger: logging.Logger
    _api: SumaAPI
    _session: Session

    def __init__(
        self,
        logger: logging.Logger,
        api: SumaAPI,
        session: Session,
        spec: AutoyastProfileSpec,
        contents: str,
    ) -> None:
        self._logger = logger
        self._api = api
        self._session = session
        self.spec = spec
        self.contents = contents

    def exists(self) -> bool:
        name = self.spec.name
        try:
            profiles = self._api.kickstart_list_kickstarts(self._session)
        except SumaError as e:
            self._logger.warning(
                f"unable to list profiles, assuming '{name}' absent: {e}"
            )
            return False
        return any(name in (p.label, p.name) for p in profiles)

    def run(self) -> bool:
        """Returns `True` if an existing profile was replaced."""
        name = self.spec.name
        replaced = self.exists()
        if replaced:
            if not self.spec.replace:
                msg = f"profile '{name}' already exists and replacing was not asked"
                self._logger.error(msg)
                raise AlreadyExistsError(msg)

            self._logger.info(f"delete existing profile '{name}'")
            _ = self._api.kickstart_delete_profile(self._session, name)

        self._logger.info(f"import profile '{name}' for '{self.spec.tree_label}'")
        _ = self._api.kickstart_import_raw_file(
            self._session, name, VIRT_TYPE, self.spec.tree_label, self.contents
        )

        variables = dict(AUTOYAST_PROFILES[name])
        if variables:
            self._logger.debug(f"set variables of '{name}': {variables}")
            _ = self._api.kickstart_profile_set_variables(
                self._session, name, variables
            )

        return replaced


def create_autoyast_profile(
    logger: logging.Logger,
    api: SumaAPI,
    credentials: Credentials,
    spec: AutoyastProfileSpec,
) -> bool:
    contents = read_autoyast_xml(logger, spec)
    with with_session(logger, api, credentials) as session:
        return AutoyastProfileCreator(logger, api, session, spec, contents).run()
