# mlmtool - errors
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
from collections.abc import Iterator
from contextlib import contextmanager
from typing import ClassVar, override


class MLMError(Exception):
    """Base error for all mlmtool failures.

    `kind` is the short classification tag shown to the operator, `ec` the
    exit code used when the error reaches the command line, and `step` the
    workflow step that was running when the error was raised, if any.
    """

    kind: ClassVar[str] = "Error"
    default_ec: ClassVar[int] = errno.ENOTRECOVERABLE

    msg: str | None
    ec: int
    step: str | None

    def __init__(
        self,
        msg: str | None = None,
        *,
        ec: int | None = None,
        step: str | None = None,
    ) -> None:
        super().__init__()
        self.msg = msg
        self.ec = ec if ec is not None else self.default_ec
        self.step = step

    @override
    def __str__(self) -> str:
        return (
            self.kind
            + (f" [{self.step}]" if self.step else "")
            + (f": {self.msg}" if self.msg else "")
        )


class AlreadyExistsError(MLMError):
    """A conflicting entity already exists on the management server."""

    kind: ClassVar[str] = "AlreadyExists"
    default_ec: ClassVar[int] = errno.EEXIST


class NotFoundError(MLMError):
    """A required entity does not exist on the management server."""

    kind: ClassVar[str] = "NotFound"
    default_ec: ClassVar[int] = errno.ENOENT


class NotReadyError(MLMError):
    """An entity is not in a state allowing the requested operation."""

    kind: ClassVar[str] = "NotReady"
    default_ec: ClassVar[int] = errno.EAGAIN


@contextmanager
def in_step(step: str) -> Iterator[None]:
    """Label errors raised within the block with `step`, unless already labelled."""
    try:
        yield
    except MLMError as e:
        if e.step is None:
            e.step = step
        raise
