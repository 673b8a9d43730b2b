"""Connection settings for the Tuya Cloud API."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, field_validator

from tuyalink._constants import (
    ENV_AUTH_KEY,
    ENV_BACKEND_URL,
    ENV_BASE_URL,
    ENV_CALLBACK_URL,
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_DEEP_LINK,
    ENV_PROJECT_CODE,
)
from tuyalink.errors import ConfigurationError

_REQUIRED = {
    "client_id": ENV_CLIENT_ID,
    "client_secret": ENV_CLIENT_SECRET,
    "base_url": ENV_BASE_URL,
    "callback_url": ENV_CALLBACK_URL,
}

_OPTIONAL = {
    "auth_key": ENV_AUTH_KEY,
    "project_code": ENV_PROJECT_CODE,
    "backend_url": ENV_BACKEND_URL,
    "deep_link_url": ENV_DEEP_LINK,
}


class Config(BaseModel):
    """Immutable Tuya project settings.

    Build one at startup (usually via :meth:`from_env`) and pass it to the
    components that need it.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str
    base_url: str
    callback_url: str
    auth_key: str | None = None
    project_code: str | None = None
    backend_url: str | None = None
    deep_link_url: str | None = None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Read settings from environment variables.

        Whitespace is trimmed and empty values count as unset.

        Raises:
            ConfigurationError: If any of ``TUYA_CLIENT_ID``,
                ``TUYA_CLIENT_SECRET``, ``TUYA_REGION_BASE_URL`` or
                ``TUYA_CALLBACK_URL`` is missing.
        """
        env = os.environ if environ is None else environ
        values = {field: _read(env, name) for field, name in {**_REQUIRED, **_OPTIONAL}.items()}

        missing = [name for field, name in _REQUIRED.items() if values[field] is None]
        if missing:
            raise ConfigurationError(
                f"Missing Tuya configuration. Please ensure {', '.join(missing)} "
                f"{'is' if len(missing) == 1 else 'are'} set."
            )
        return cls(**values)


def _read(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name)
    if value is None:
        return None
    return value.strip() or None
