"""
Runtime settings, read from the environment.

    WHATSNEW_SNAPSHOT_DIR      directory holding java-<version>.json files
    WHATSNEW_MINIMAL_VERSION   oldest release reported as new (default 5.0)
    WHATSNEW_IGNORE_PACKAGES   comma-separated packages skipped on load
    WHATSNEW_LOG_LEVEL         logging level name (default INFO)
"""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Mapping, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from .version import Version

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

ENV_SNAPSHOT_DIR     = "WHATSNEW_SNAPSHOT_DIR"
ENV_MINIMAL_VERSION  = "WHATSNEW_MINIMAL_VERSION"
ENV_IGNORE_PACKAGES  = "WHATSNEW_IGNORE_PACKAGES"
ENV_LOG_LEVEL        = "WHATSNEW_LOG_LEVEL"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    snapshot_dir: Path = Path("data")
    minimal_version: str = "5.0"
    ignore_packages: tuple[str, ...] = ()
    log_level: str = "INFO"

    @field_validator("minimal_version")
    @classmethod
    def _valid_version(cls, value: str) -> str:
        Version.parse(value)
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        environ = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if environ.get(ENV_SNAPSHOT_DIR):
            values["snapshot_dir"] = Path(environ[ENV_SNAPSHOT_DIR])
        if environ.get(ENV_MINIMAL_VERSION):
            values["minimal_version"] = environ[ENV_MINIMAL_VERSION]
        if environ.get(ENV_IGNORE_PACKAGES):
            values["ignore_packages"] = split_list(environ[ENV_IGNORE_PACKAGES])
        if environ.get(ENV_LOG_LEVEL):
            values["log_level"] = environ[ENV_LOG_LEVEL]
        return cls(**values)


def split_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO), format=LOG_FORMAT)
