# mlmtool - credentials
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

import configparser
import errno
from pathlib import Path
from typing import ClassVar

import pydantic

from mlmtool.errors import MLMError
from mlmtool.logger import logger as root_logger

logger = root_logger.getChild("credentials")

DEFAULT_SPACECMD_CONFIG = Path("/root/.spacecmd/config")


class CredentialsError(MLMError):
    kind: ClassVar[str] = "Credentials"
    default_ec: ClassVar[int] = errno.EACCES


class Credentials(pydantic.BaseModel):
    """Credentials for a management server."""

    host: str
    user: str
    password: pydantic.SecretStr
    insecure: bool = False


def load_spacecmd_credentials(path: Path) -> Credentials | None:
    """Read the `[spacecmd]` section of a spacecmd configuration file.

    Returns `None` if the file does not exist or is incomplete.
    """
    if not path.exists():
        logger.debug(f"spacecmd config at '{path}' not found")
        return None

    parser = configparser.ConfigParser(interpolation=None)
    try:
        with path.open("r") as f:
            parser.read_file(f)
    except (OSError, configparser.Error) as e:
        msg = f"unable to read spacecmd config at '{path}': {e}"
        logger.error(msg)
        raise CredentialsError(msg) from e

    if not parser.has_section("spacecmd"):
        logger.debug(f"no 'spacecmd' section in '{path}'")
        return None

    section = parser["spacecmd"]
    server = section.get("server")
    user = section.get("username")
    password = section.get("password")
    if not server or not user or not password:
        logger.debug(f"incomplete credentials in '{path}'")
        return None

    return Credentials(
        host=server,
        user=user,
        password=pydantic.SecretStr(password),
    )


def resolve_credentials(
    *,
    host: str | None,
    user: str | None,
    password: str | None,
    insecure: bool,
    fallbacks: list[Credentials | None],
) -> Credentials:
    """Obtain credentials, preferring explicit values over `fallbacks`.

    Each missing field is taken from the first fallback providing credentials.
    """
    fallback = next((c for c in fallbacks if c is not None), None)

    if fallback is not None:
        host = host or fallback.host
        user = user or fallback.user
        password = password or fallback.password.get_secret_value()
        insecure = insecure or fallback.insecure

    missing = [
        what
        for what, value in (("server", host), ("user", user), ("password", password))
        if not value
    ]
    if missing:
        msg = f"missing {', '.join(missing)}"
        logger.error(f"unable to resolve credentials: {msg}")
        raise CredentialsError(msg)

    assert host and user and password
    return Credentials(
        host=host,
        user=user,
        password=pydantic.SecretStr(password),
        insecure=insecure,
    )
