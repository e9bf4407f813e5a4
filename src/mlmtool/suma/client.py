# mlmtool - management server API - client
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

# pyright: reportExplicitAny=false, reportAny=false

import json
import logging
import time
from types import TracebackType
from typing import Any, Self

import httpx
import pydantic

from mlmtool.suma.errors import (
    RemoteRejectedError,
    ResponseShapeError,
    SessionLostError,
    TransportError,
)
from mlmtool.suma.models import Envelope
from mlmtool.suma.session import Session

SUMA_API_PATH = "rhn/manager/api"
SESSION_COOKIE = "pxt-session-cookie"

DEFAULT_TIMEOUT = 120.0
DEFAULT_RETRY_COUNT = 5
DEFAULT_RETRY_DELAY = 2.0


class SumaClient:
    """
    Low-level client for a management server's HTTP API.

    Takes care of retrying transport failures, of carrying the session cookie,
    and of unwrapping the `{success, result, messages}` envelope returned by
    every endpoint.
    """

    host: str
    retry_count: int
    retry_delay: float

    _client: httpx.Client
    _logger: logging.Logger

    def __init__(
        self,
        logger: logging.Logger,
        host: str,
        *,
        verify: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._logger = logger
        self.host = host.strip().rstrip("/")
        self.retry_count = max(retry_count, 1)
        self.retry_delay = retry_delay

        self._client = httpx.Client(
            base_url=f"https://{self.host}/{SUMA_API_PATH}",
            headers={"Content-Type": "application/json"},
            verify=verify,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _check_session(self, ep: str, session: Session) -> None:
        if not session.alive:
            msg = f"session for '{session.host}' is closed, calling '{ep}'"
            self._logger.error(msg)
            raise SessionLostError(msg)
        if session.host != self.host:
            msg = (
                f"session bound to '{session.host}' used against '{self.host}', "
                + f"calling '{ep}'"
            )
            self._logger.error(msg)
            raise SessionLostError(msg)

    def _send(
        self,
        method: str,
        ep: str,
        *,
        session: Session | None,
        params: dict[str, Any] | None,
        data: dict[str, Any] | None,
    ) -> httpx.Response:
        """Send a request, retrying on transport failures."""
        # The jar only ever carries the cookie of the session in use.
        cookies: dict[str, str] = {}
        if session is not None:
            self._check_session(ep, session)
            cookies[SESSION_COOKIE] = session.token.get_secret_value()
        self._client.cookies = cookies

        last_error = "no attempt made"
        for attempt in range(1, self.retry_count + 1):
            if attempt > 1 and self.retry_delay > 0:
                time.sleep(self.retry_delay)

            self._logger.debug(
                f"{method} '{ep}' (attempt {attempt}/{self.retry_count})"
            )
            try:
                res = self._client.request(method, ep, params=params, json=data)
            except httpx.TransportError as e:
                last_error = f"error connecting to '{self._client.base_url}': {e}"
                self._logger.warning(f"{last_error}, attempt {attempt}")
                continue

            if res.status_code == httpx.codes.OK:
                return res

            # A rejection may come with an error status; it is not transient.
            if _maybe_envelope(res) is not None:
                return res

            last_error = f"error calling '{ep}': HTTP {res.status_code}"
            if not res.is_server_error:
                self._logger.error(last_error)
                raise TransportError(last_error)

            self._logger.warning(f"{last_error}, attempt {attempt}")

        msg = f"giving up after {self.retry_count} attempts: {last_error}"
        self._logger.error(msg)
        raise TransportError(msg)

    def _unwrap(self, ep: str, res: httpx.Response) -> Envelope:
        envelope = _maybe_envelope(res)
        if envelope is None:
            msg = f"malformed response from '{ep}': {res.text[:200]}"
            self._logger.error(msg)
            raise ResponseShapeError(msg)

        if not envelope.success:
            messages = envelope.all_messages()
            msg = f"'{ep}' rejected by '{self.host}'"
            self._logger.debug(f"{msg}: {messages}")
            raise RemoteRejectedError(msg, messages=messages)

        if res.status_code != httpx.codes.OK:
            msg = f"error calling '{ep}': HTTP {res.status_code}"
            self._logger.error(msg)
            raise TransportError(msg)

        return envelope

    def call[T](
        self,
        method: str,
        ep: str,
        shape: type[T],
        *,
        session: Session | None = None,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> T:
        """Call an endpoint, returning its result validated against `shape`."""
        ep = ep.lstrip("/")
        res = self._send(method, ep, session=session, params=params, data=data)
        envelope = self._unwrap(ep, res)

        ta = pydantic.TypeAdapter(shape)
        try:
            return ta.validate_python(envelope.result)
        except pydantic.ValidationError as e:
            msg = f"unexpected result from '{ep}': {envelope.result!r}"
            self._logger.error(msg)
            raise ResponseShapeError(msg) from e

    def get[T](
        self,
        ep: str,
        shape: type[T],
        *,
        session: Session | None = None,
        params: dict[str, Any] | None = None,
    ) -> T:
        """Call a read-only endpoint, passing its arguments as query parameters."""
        return self.call("GET", ep, shape, session=session, params=params)

    def post[T](
        self,
        ep: str,
        shape: type[T],
        *,
        session: Session | None = None,
        data: dict[str, Any] | None = None,
    ) -> T:
        """Call an endpoint, passing its arguments as a JSON object."""
        return self.call("POST", ep, shape, session=session, data=data)

    def login(self, user: str, password: str) -> str:
        """Authenticate, returning the session token issued by the server."""
        ep = "auth/login"
        res = self._send(
            "POST",
            ep,
            session=None,
            params=None,
            data={"login": user, "password": password},
        )
        _ = self._unwrap(ep, res)

        # An expired cookie sent along with the live one never reaches the jar.
        token = res.cookies.get(SESSION_COOKIE)
        if not token:
            msg = f"no session cookie in login response from '{self.host}'"
            self._logger.error(msg)
            raise ResponseShapeError(msg)

        return token


def _maybe_envelope(res: httpx.Response) -> Envelope | None:
    try:
        return Envelope.model_validate(res.json())
    except (json.JSONDecodeError, UnicodeDecodeError, pydantic.ValidationError):
        return None
