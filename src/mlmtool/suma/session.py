# mlmtool - management server API - sessions
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
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import pydantic

from mlmtool.credentials import Credentials
from mlmtool.errors import MLMError

if TYPE_CHECKING:
    from mlmtool.suma.api import SumaAPI


class Session(pydantic.BaseModel):
    """An authenticated session, bound to the host that issued it."""

    token: pydantic.SecretStr
    host: str
    alive: bool = True

    def close(self) -> None:
        self.alive = False


@contextmanager
def with_session(
    logger: logging.Logger, api: SumaAPI, credentials: Credentials
) -> Iterator[Session]:
    """
    Log in to the API's host and yield a live session.

    The session is logged out on every exit path, including interrupts. A
    failing logout is reported and does not alter the outcome of the block.
    """
    token = api.auth_login(credentials.user, credentials.password.get_secret_value())
    session = Session(token=pydantic.SecretStr(token), host=api.host)
    logger.debug(f"logged in to '{session.host}' as '{credentials.user}'")

    try:
        yield session
    finally:
        try:
            api.auth_logout(session)
            logger.debug(f"logged out from '{session.host}'")
        except MLMError as e:
            logger.warning(f"unable to log out from '{session.host}': {e}")
        finally:
            session.close()
