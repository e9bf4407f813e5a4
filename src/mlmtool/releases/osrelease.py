# mlmtool - OS releases - release ids
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

import datetime
from collections.abc import Collection
from typing import ClassVar, override

import pydantic

from mlmtool.releases.catalog import ALLOWED_ENVIRONMENTS, CATALOG
from mlmtool.releases.errors import (
    InvalidDateError,
    InvalidEnvironmentError,
    UnknownProductError,
    WrongFormatError,
)

STANDARD_LEN = 16
SPECIAL_LEN = 24
SPECIAL_INFIX = "-special-"

DATE_FORMAT = "%y%m%d"
FILTER_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class OsReleaseId(pydantic.BaseModel):
    """A validated release id.

    Standard ids look like `mi52-230318-r001`, special ids like
    `mi52-special-230318-r001`. Instances are only obtained through
    `parse_release_id()`.
    """

    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(frozen=True)

    value: str
    special: bool = False

    @override
    def __str__(self) -> str:
        return self.value

    @property
    def product_code(self) -> str:
        return self.value[0:4]

    @property
    def project_label(self) -> str:
        return self.value[0:19] if self.special else self.value[0:11]

    @property
    def date_yymmdd(self) -> str:
        return self.value[13:19] if self.special else self.value[5:11]

    @property
    def env_tag(self) -> str:
        return self.value[20:24] if self.special else self.value[12:16]

    @property
    def extra_channel_label(self) -> str:
        return f"{self.value}-extra"

    @property
    def filter_name(self) -> str:
        return f"release-{self.project_label}"

    @property
    def release_date(self) -> datetime.datetime:
        return _parse_date(self.date_yymmdd)


def _is_standard_shape(raw: str) -> bool:
    return len(raw) == STANDARD_LEN and raw[4] == "-" and raw[11] == "-"


def _is_special_shape(raw: str) -> bool:
    return (
        len(raw) == SPECIAL_LEN
        and raw[4:13] == SPECIAL_INFIX
        and raw[19] == "-"
    )


def _parse_date(yymmdd: str) -> datetime.datetime:
    # strptime is lenient with padding, e.g. accepts ' 1' for '%d'.
    if len(yymmdd) != 6 or not (yymmdd.isascii() and yymmdd.isdigit()):
        raise ValueError(f"'{yymmdd}' is not a YYMMDD date")
    return datetime.datetime.strptime(yymmdd, DATE_FORMAT)


def parse_release_id(
    raw: str,
    *,
    products: Collection[str] | None = None,
    environments: Collection[str] | None = None,
) -> OsReleaseId:
    """Validate `raw` as a release id.

    Checks, in order, its shape, product code, date and environment tag,
    raising on the first one that fails.
    """
    products = products if products is not None else CATALOG.keys()
    environments = environments if environments is not None else ALLOWED_ENVIRONMENTS

    if _is_standard_shape(raw):
        release = OsReleaseId(value=raw)
    elif _is_special_shape(raw):
        release = OsReleaseId(value=raw, special=True)
    else:
        raise WrongFormatError(
            f"'{raw}' should look like 'ppvv-yymmdd-r001' or "
            + "'ppvv-special-yymmdd-r001'"
        )

    if release.product_code not in products:
        raise UnknownProductError(f"unknown product '{release.product_code}'")

    try:
        _ = release.release_date
    except ValueError as e:
        raise InvalidDateError(
            f"invalid date '{release.date_yymmdd}' in '{raw}'"
        ) from e

    if release.env_tag not in environments:
        raise InvalidEnvironmentError(
            f"environment '{release.env_tag}' not allowed, "
            + f"expected one of {', '.join(sorted(environments))}"
        )

    return release


def filter_date(yymmdd: str) -> str:
    """Render a `YYMMDD` date at midnight as used by errata filter criteria."""
    return _parse_date(yymmdd).strftime(FILTER_DATE_FORMAT)


def filter_date_to_yymmdd(value: str) -> str:
    return datetime.datetime.strptime(value, FILTER_DATE_FORMAT).strftime(DATE_FORMAT)
