"""Request configuration: base URL, bearer token, global headers, timeout.

A RequestConfig is immutable, so the copy handed to an executor at the start
of a run is the snapshot used for every request of that run.
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from api_easyportal.exceptions import ConfigError

DEFAULT_BASE_URL = "https://api.example.com"
BASE_URL_ENV = "API_BASE_URL"
TOKEN_ENV = "API_TOKEN"


class HeaderEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: str = ""


class RequestConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_BASE_URL
    token: str = ""
    headers: tuple[HeaderEntry, ...] = ()
    timeout: float | None = None  # seconds; None waits indefinitely

    @field_validator("headers", mode="before")
    @classmethod
    def _headers_from_mapping(cls, value):
        # YAML configs may write headers as a plain mapping
        if isinstance(value, dict):
            return [{"key": k, "value": "" if v is None else str(v)} for k, v in value.items()]
        return value

    def with_overrides(self, **changes) -> "RequestConfig":
        """Return a copy with every non-None override applied."""
        data = self.model_dump()
        data.update({k: v for k, v in changes.items() if v is not None})
        return RequestConfig.model_validate(data)


def parse_header(text: str) -> HeaderEntry:
    """Parse a `Key: Value` header string."""
    key, sep, value = text.partition(":")
    if not sep or not key.strip():
        raise ConfigError(f"Invalid header '{text}', expected 'Key: Value'")
    return HeaderEntry(key=key.strip(), value=value.strip())


def load_config(file_path: Path | None = None, env: dict | None = None) -> RequestConfig:
    """Build a RequestConfig from an optional YAML file, then the environment.

    Environment variables (API_BASE_URL, API_TOKEN) override file values.
    """
    env = os.environ if env is None else env
    data = {}

    if file_path is not None:
        try:
            loaded = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {file_path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"Config {file_path} must be a mapping")
        data.update(loaded or {})

    if env.get(BASE_URL_ENV):
        data["base_url"] = env[BASE_URL_ENV]
    if env.get(TOKEN_ENV):
        data["token"] = env[TOKEN_ENV]

    try:
        return RequestConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
