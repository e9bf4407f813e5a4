# mlmtool - config
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

import errno
from pathlib import Path
from typing import Annotated, ClassVar

import pydantic
import yaml

from mlmtool.credentials import DEFAULT_SPACECMD_CONFIG, Credentials
from mlmtool.errors import MLMError
from mlmtool.logger import logger as root_logger
from mlmtool.suma.client import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
)

logger = root_logger.getChild("config")

DEFAULT_CONFIG_PATH = Path("mlmtool.config.yaml")
DEFAULT_HUB_CONFIG = Path("/opt/uyunihub/uyunihub.yaml")


class ConfigError(MLMError):
    kind: ClassVar[str] = "Config"
    default_ec: ClassVar[int] = errno.EINVAL


class ServerConfig(pydantic.BaseModel):
    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        validate_by_alias=True,
        validate_by_name=True,
        serialize_by_alias=True,
    )

    server: str | None = None
    user: str | None = None
    password: pydantic.SecretStr | None = None
    timeout: float = DEFAULT_TIMEOUT
    ssl_certificate_check: Annotated[
        bool, pydantic.Field(alias="ssl-certificate-check")
    ] = True
    retry_count: Annotated[int, pydantic.Field(alias="retry-count", ge=1)] = (
        DEFAULT_RETRY_COUNT
    )
    retry_delay: Annotated[float, pydantic.Field(alias="retry-delay", ge=0)] = (
        DEFAULT_RETRY_DELAY
    )

    def get_credentials(self) -> Credentials | None:
        """Obtain credentials, if the section defines all of them."""
        if not self.server or not self.user or not self.password:
            return None
        return Credentials(
            host=self.server,
            user=self.user,
            password=self.password,
            insecure=not self.ssl_certificate_check,
        )


class LoggingConfig(pydantic.BaseModel):
    level: str = "info"
    file: Path | None = None


class Config(pydantic.BaseModel):
    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        validate_by_alias=True,
        validate_by_name=True,
        serialize_by_alias=True,
    )

    suman: ServerConfig = pydantic.Field(default_factory=ServerConfig)
    secondary: ServerConfig | None = None
    logging: LoggingConfig = pydantic.Field(default_factory=LoggingConfig)
    spacecmd: Path = DEFAULT_SPACECMD_CONFIG
    hub_config: Annotated[Path, pydantic.Field(alias="hub-config")] = (
        DEFAULT_HUB_CONFIG
    )

    @classmethod
    def load(cls, path: Path) -> Config:
        """Load the config from `path`, falling back to defaults if missing."""
        if not path.exists():
            logger.debug(f"config file '{path}' not found, using defaults")
            return Config()

        if not path.is_file():
            raise ConfigError(f"config file '{path}' is not a file")

        try:
            raw_data = path.read_text()
            if path.suffix.lower() in (".yaml", ".yml"):
                config = Config.model_validate(yaml.safe_load(raw_data) or {})
            else:
                config = Config.model_validate_json(raw_data)

        except (yaml.YAMLError, pydantic.ValidationError) as e:
            msg = f"error loading config at '{path}': {e}"
            logger.error(msg)
            raise ConfigError(msg) from e
        except OSError as e:
            msg = f"unable to read config at '{path}': {e}"
            logger.error(msg)
            raise ConfigError(msg) from e

        return config
