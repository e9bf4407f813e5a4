# mlmtool - session tests
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
import pytest

from mlmtool.credentials import Credentials
from mlmtool.errors import AlreadyExistsError
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.errors import RemoteRejectedError, SessionLostError
from mlmtool.suma.session import Session, with_session

from .conftest import HOST, TOKEN, USER, FakeSumaServer


class TestWithSession:
    def test_login_and_logout(
        self,
        logger: logging.Logger,
        api: SumaAPI,
        server: FakeSumaServer,
        credentials: Credentials,
    ):
        with with_session(logger, api, credentials) as session:
            assert session.alive
            assert session.host == HOST
            assert session.token.get_secret_value() == TOKEN
            assert not server.logged_out

        assert server.logged_out
        assert not session.alive
        assert server.endpoints() == ["auth/login", "auth/logout"]

    def test_logout_on_error(
        self,
        logger: logging.Logger,
        api: SumaAPI,
        server: FakeSumaServer,
        credentials: Credentials,
    ):
        with pytest.raises(AlreadyExistsError):
            with with_session(logger, api, credentials):
                raise AlreadyExistsError("conflict")

        assert server.logged_out

    def test_logout_on_interrupt(
        self,
        logger: logging.Logger,
        api: SumaAPI,
        server: FakeSumaServer,
        credentials: Credentials,
    ):
        with pytest.raises(KeyboardInterrupt):
            with with_session(logger, api, credentials):
                raise KeyboardInterrupt

        assert server.logged_out

    def test_logout_failure_swallowed(
        self,
        logger: logging.Logger,
        api: SumaAPI,
        server: FakeSumaServer,
        credentials: Credentials,
        caplog: pytest.LogCaptureFixture,
    ):
        server.reject["auth/logout"] = ["session expired"]

        with caplog.at_level(logging.WARNING, logger=logger.name):
            with with_session(logger, api, credentials) as session:
                res = api.list_software_channels(session)

        assert res == []
        assert not session.alive
        assert "unable to log out" in caplog.text

    def test_logout_failure_keeps_original_error(
        self,
        logger: logging.Logger,
        api: SumaAPI,
        server: FakeSumaServer,
        credentials: Credentials,
    ):
        server.reject["auth/logout"] = ["session expired"]

        with pytest.raises(AlreadyExistsError):
            with with_session(logger, api, credentials):
                raise AlreadyExistsError("conflict")

    def test_login_rejected(
        self, logger: logging.Logger, api: SumaAPI, server: FakeSumaServer
    ):
        credentials = Credentials(
            host=HOST, user=USER, password=pydantic.SecretStr("wrong")
        )
        with pytest.raises(RemoteRejectedError):
            with with_session(logger, api, credentials):
                pytest.fail("block must not run")

        assert server.endpoints() == ["auth/login"]

    def test_session_unusable_after_block(
        self,
        logger: logging.Logger,
        api: SumaAPI,
        server: FakeSumaServer,
        credentials: Credentials,
    ):
        with with_session(logger, api, credentials) as session:
            pass

        with pytest.raises(SessionLostError):
            _ = api.list_software_channels(session)
        assert server.endpoints() == ["auth/login", "auth/logout"]


class TestSession:
    def test_close(self):
        session = Session(token=pydantic.SecretStr(TOKEN), host=HOST)
        assert session.alive
        session.close()
        assert not session.alive

    def test_token_not_rendered(self):
        session = Session(token=pydantic.SecretStr(TOKEN), host=HOST)
        assert TOKEN not in repr(session)
