# mlmtool - local command runner
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
import subprocess
from pathlib import Path
from typing import ClassVar, Protocol

from mlmtool.errors import MLMError


class LocalIOError(MLMError):
    """Failure touching the local filesystem or running a local command."""

    kind: ClassVar[str] = "LocalIO"
    default_ec: ClassVar[int] = errno.EIO


class CommandRunner(Protocol):
    def mkdir(self, path: Path) -> None: ...

    def run(self, cmd: str, args: list[str]) -> list[str]: ...


class SubprocessRunner:
    """Run commands on the local host, synchronously."""

    _logger: logging.Logger

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def mkdir(self, path: Path) -> None:
        self._logger.debug(f"create directory '{path}'")
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"unable to create directory '{path}': {e}"
            self._logger.error(msg)
            raise LocalIOError(msg) from e

    def run(self, cmd: str, args: list[str]) -> list[str]:
        """Run `cmd` with `args`, returning its output lines."""
        full_cmd = [cmd, *args]
        self._logger.debug(f"sync run '{full_cmd}'")
        try:
            p = subprocess.run(full_cmd, capture_output=True)  # noqa: S603
        except OSError as e:
            msg = f"error running '{full_cmd}': {e}"
            self._logger.error(msg)
            raise LocalIOError(msg) from e

        if p.returncode != 0:
            stderr = p.stderr.decode("utf-8", errors="replace").strip()
            msg = f"error running '{full_cmd}': retcode = {p.returncode}"
            self._logger.error(f"{msg}, res: {stderr}")
            raise LocalIOError(msg + (f": {stderr}" if stderr else ""))

        return p.stdout.decode("utf-8", errors="replace").splitlines()
