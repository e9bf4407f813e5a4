# mlmtool - management server API - errors
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
from typing import ClassVar, override

from mlmtool.errors import MLMError


class SumaError(MLMError):
    """Failure talking to a management server."""


class TransportError(SumaError):
    """Transport-level failure, after exhausting all retries."""

    kind: ClassVar[str] = "Transport"
    default_ec: ClassVar[int] = errno.ECONNABORTED


class RemoteRejectedError(SumaError):
    """The management server answered with `success: false`."""

    kind: ClassVar[str] = "RemoteRejected"
    default_ec: ClassVar[int] = errno.EREMOTEIO

    messages: list[str]

    def __init__(
        self,
        msg: str | None = None,
        *,
        messages: list[str] | None = None,
        step: str | None = None,
    ) -> None:
        super().__init__(msg, step=step)
        self.messages = messages or []

    @override
    def __str__(self) -> str:
        res = super().__str__()
        if self.messages:
            res += " (" + "; ".join(self.messages) + ")"
        return res


class ResponseShapeError(SumaError):
    """The response could not be decoded into the expected shape."""

    kind: ClassVar[str] = "ResponseShape"
    default_ec: ClassVar[int] = errno.EBADMSG


class SessionLostError(SumaError):
    """An authenticated call was attempted without a live session."""

    kind: ClassVar[str] = "SessionLost"
    default_ec: ClassVar[int] = errno.ENOTCONN
