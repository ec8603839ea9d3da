"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from autotagger.errors import ConfigurationError

# Setting name -> environment variable
ENV_VARS = {
    'tmdb_api_key': 'TMDB_API_KEY',
    'ost_api_key': 'OST_API_KEY',
    'ost_username': 'OST_USERNAME',
    'ost_password': 'OST_PASSWORD',
    'bdsup2sub_path': 'BDSUP2SUB_PATH',
    'http_timeout': 'AUTOTAGGER_HTTP_TIMEOUT',
    'max_workers': 'AUTOTAGGER_WORKERS',
}


@dataclass
class Settings:
    """Configuration for a single run.

    Built once by the CLI and handed to every component that needs an API key,
    a tool path or a tuning value. Nothing here is global.
    """

    tmdb_api_key: Optional[str] = None
    ost_api_key: Optional[str] = None
    ost_username: Optional[str] = None
    ost_password: Optional[str] = None
    bdsup2sub_path: Optional[str] = None
    user_agent: str = "plex-autotagger"
    http_timeout: Optional[float] = 30.0
    max_workers: Optional[int] = None
    ocr_language: str = "eng"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Create settings from environment variables (unset variables keep defaults)."""
        if environ is None:
            environ = os.environ

        values = {}
        for name, env_var in ENV_VARS.items():
            raw = environ.get(env_var)
            if raw is None or raw.strip() == "":
                continue
            raw = raw.strip()
            if name == 'http_timeout':
                try:
                    timeout = float(raw)
                except ValueError as e:
                    raise ConfigurationError(f"{env_var} must be a number of seconds, got {raw!r}") from e
                # 0 disables the timeout
                values[name] = timeout if timeout > 0 else None
            elif name == 'max_workers':
                try:
                    values[name] = int(raw)
                except ValueError as e:
                    raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from e
                if values[name] < 1:
                    raise ConfigurationError(f"{env_var} must be at least 1")
            else:
                values[name] = raw
        return cls(**values)

    def require(self, name: str) -> str:
        """Return a setting that must be present, or raise ConfigurationError."""
        if name not in {f.name for f in fields(self)}:
            raise KeyError(name)
        value = getattr(self, name)
        if not value:
            env_var = ENV_VARS.get(name, name.upper())
            raise ConfigurationError(
                f"{name} not found. Please specify it with the {env_var} environment variable"
            )
        return value
