# mlmtool - OS releases - errors
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
from typing import ClassVar

from mlmtool.errors import MLMError


class ReleaseIdError(MLMError):
    """The release id was rejected."""

    default_ec: ClassVar[int] = errno.EINVAL


class WrongFormatError(ReleaseIdError):
    kind: ClassVar[str] = "WrongFormat"


class UnknownProductError(ReleaseIdError):
    kind: ClassVar[str] = "UnknownProduct"


class InvalidDateError(ReleaseIdError):
    kind: ClassVar[str] = "InvalidDate"


class InvalidEnvironmentError(ReleaseIdError):
    kind: ClassVar[str] = "InvalidEnvironment"
