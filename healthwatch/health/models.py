"""Watchdog configuration — loads a TOML/YAML file into frozen pydantic models.

A config file has three sections:

    [request]   the health request to send each cycle
    [command]   the remediation command to run when checks keep failing
    [grace]     timing and retry policy (all keys optional)
"""

from __future__ import annotations

import logging
import tomllib
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}

NonNegativeInt = Annotated[int, Field(ge=0, strict=True)]


class ConfigError(Exception):
    """Raised when the config file is missing, unparsable or invalid."""


# ── Body variants ────────────────────────────────────────────────────────────


class EmptyBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["empty"] = "empty"


class StringBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["string"] = "string"
    text: str


class FileBody(BaseModel):
    """Body read from ``path`` as UTF-8 text every time the request is built."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"
    path: Path


Body = Annotated[Union[EmptyBody, StringBody, FileBody], Field(discriminator="kind")]


def _parse_body(raw: Any) -> Any:
    """Accept the config-file forms: ``"empty"``, ``{string = ...}``, ``{file = ...}``."""
    if raw is None or raw == "empty":
        return {"kind": "empty"}
    if isinstance(raw, str):
        raise ValueError(f"unknown body variant '{raw}' (expected 'empty', 'string' or 'file')")
    if isinstance(raw, dict) and "kind" not in raw:
        if len(raw) != 1:
            raise ValueError(f"body must have exactly one of 'string' or 'file', got {sorted(raw)}")
        ((tag, value),) = raw.items()
        if tag == "string":
            return {"kind": "string", "text": value}
        if tag == "file":
            return {"kind": "file", "path": value}
        raise ValueError(f"unknown body variant '{tag}' (expected 'empty', 'string' or 'file')")
    return raw


# ── Sections ─────────────────────────────────────────────────────────────────


class Request(BaseModel):
    """The health request sent on every check."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: str
    url: str
    # A list value sends the header once per element
    headers: dict[str, Union[str, list[str]]] = Field(default_factory=dict)
    body: Body = Field(default_factory=EmptyBody)

    @field_validator("body", mode="before")
    @classmethod
    def _tagged_body(cls, value: Any) -> Any:
        return _parse_body(value)

    def header_items(self) -> list[tuple[str, str]]:
        """Flatten headers into (name, value) pairs in config order."""
        items: list[tuple[str, str]] = []
        for name, value in self.headers.items():
            if isinstance(value, list):
                items.extend((name, v) for v in value)
            else:
                items.append((name, value))
        return items


class Command(BaseModel):
    """Remediation command, run through ``sh -c``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    command: str
    working_dir: Path | None = None  # defaults to the current directory


class Grace(BaseModel):
    """Timeouts and retry counts, so one failed check does not trigger the command."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    check_interval_ms: NonNegativeInt = 1_000  # 1 second
    check_interval_failed_ms: NonNegativeInt | None = None
    retry_count: NonNegativeInt = 3
    timeout_ms: NonNegativeInt = 30_000  # 30 seconds
    wait_after_command_ms: NonNegativeInt = 30_000  # 30 seconds

    @property
    def check_interval(self) -> timedelta:
        return timedelta(milliseconds=self.check_interval_ms)

    @property
    def check_interval_failed(self) -> timedelta:
        if self.check_interval_failed_ms is None:
            return self.check_interval
        return timedelta(milliseconds=self.check_interval_failed_ms)

    @property
    def timeout(self) -> timedelta:
        return timedelta(milliseconds=self.timeout_ms)

    @property
    def wait_after_command(self) -> timedelta:
        return timedelta(milliseconds=self.wait_after_command_ms)


class Config(BaseModel):
    """Main configuration for the health check and the command to run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    request: Request
    command: Command
    grace: Grace


# ── Loader ───────────────────────────────────────────────────────────────────


def load_config(path: Path | str) -> Config:
    """Read and validate a config file. Raises ConfigError on any problem."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e

    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            raw = yaml.safe_load(text)
        else:
            raw = tomllib.loads(text)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a table/mapping at the top level")

    try:
        config = Config.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {_format_errors(e)}") from e

    logger.info("Loaded config from %s", path)
    return config


def _format_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
