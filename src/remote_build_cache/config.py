"""Configuration management for the remote build cache.

Handles loading, saving, and validating TOML configuration stored in:
- macOS: ~/.config/build-cache/config.toml
- Linux: ~/.config/build-cache/config.toml (XDG_CONFIG_HOME)
- Windows: %APPDATA%\\build-cache\\config.toml

Environment variables (BUILD_CACHE_*) take precedence over the file.
"""

import os
import sys
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

import tomllib
import tomli_w

from remote_build_cache.errors import ConfigurationError

ENV_OVERRIDES = {
    "bucket": "BUILD_CACHE_BUCKET",
    "credentials_file_path": "BUILD_CACHE_CREDENTIALS_FILE",
    "credentials_inline": "BUILD_CACHE_CREDENTIALS_INLINE",
    "expire_after_seconds": "BUILD_CACHE_EXPIRE_AFTER_SECONDS",
    "endpoint_url": "BUILD_CACHE_ENDPOINT_URL",
    "region": "BUILD_CACHE_REGION",
}


@dataclass(frozen=True)
class CacheConfig:
    """Configuration for one cache backend.

    Credential sources are tried in order: file path, inline payload,
    ambient environment. The first non-empty one wins.

    Attributes:
        bucket: Object store bucket name (required)
        credentials_file_path: Path to a JSON credentials file
        credentials_inline: JSON credentials payload
        expire_after_seconds: Age after which a loaded entry is rewritten
            to reset its creation time (0 disables refresh)
        endpoint_url: S3-compatible endpoint, or file:// for a local directory
        region: Region name for the storage client
        refresh_in_background: Run refresh rewrites on a worker thread
    """

    bucket: str
    credentials_file_path: str = ""
    credentials_inline: str = ""
    expire_after_seconds: int = 0

    # Storage endpoint
    endpoint_url: str = ""
    region: str = ""

    refresh_in_background: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.bucket, str) or not self.bucket.strip():
            raise ConfigurationError("Bucket name was not defined", field="bucket")
        if (
            isinstance(self.expire_after_seconds, bool)
            or not isinstance(self.expire_after_seconds, int)
            or self.expire_after_seconds < 0
        ):
            raise ConfigurationError(
                f"must be a non-negative integer, got {self.expire_after_seconds!r}",
                field="expire_after_seconds",
            )

    @property
    def uses_local_directory(self) -> bool:
        """Whether the endpoint points at a local directory."""
        return self.endpoint_url.startswith("file://")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "CacheConfig":
        """Load configuration from TOML file.

        Args:
            path: Path to config file (defaults to standard location)

        Returns:
            CacheConfig instance with loaded values

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If the file or an override is malformed
        """
        if path is None:
            path = get_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e

        values = dict(data.get("cache", {}))
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown keys in [cache]: {', '.join(sorted(unknown))}"
            )

        # Environment variables take precedence over the file
        for name, env_var in ENV_OVERRIDES.items():
            env_value = os.environ.get(env_var)
            if env_value:
                values[name] = env_value

        if isinstance(values.get("expire_after_seconds"), str):
            values["expire_after_seconds"] = _parse_int(
                values["expire_after_seconds"], "expire_after_seconds"
            )

        return cls(bucket=values.pop("bucket", ""), **values)

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to TOML file.

        Inline credentials are never written to disk.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "cache": {
                "bucket": self.bucket,
                "credentials_file_path": self.credentials_file_path,
                "expire_after_seconds": self.expire_after_seconds,
                "endpoint_url": self.endpoint_url,
                "region": self.region,
                "refresh_in_background": self.refresh_in_background,
            }
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def with_value(self, key: str, value: str) -> "CacheConfig":
        """Return a copy with one field set from its string form.

        Args:
            key: Field name
            value: New value, coerced to the field's current type

        Returns:
            New CacheConfig instance

        Raises:
            ValueError: If the key is not a configuration field
            ConfigurationError: If the new value is invalid
        """
        if key not in {f.name for f in fields(self)}:
            raise ValueError(f"Invalid config key: {key}")

        current = getattr(self, key)
        if isinstance(current, bool):
            new_value = value.lower() in ("true", "1", "yes")
        elif isinstance(current, int):
            new_value = _parse_int(value, key)
        else:
            new_value = value

        return replace(self, **{key: new_value})


def _parse_int(value: str, field: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"not an integer: {value!r}", field=field) from e


def get_config_dir() -> Path:
    """Get the platform-specific config directory.

    Returns:
        Path to the config directory for build-cache.
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "build-cache"
        return Path.home() / "AppData" / "Roaming" / "build-cache"

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "build-cache"
    return Path.home() / ".config" / "build-cache"


def get_config_path() -> Path:
    """Get the path to the config.toml file."""
    return get_config_dir() / "config.toml"
