"""Credential resolution for the object store client.

Turns the credential fields of a CacheConfig into an authenticated boto3
session. Exactly one source is used, in this order:

1. credentials_file_path - JSON credentials read from a file
2. credentials_inline - the same JSON payload given directly
3. the ambient boto3 credential chain (environment, shared config,
   instance or container role)

The JSON payload accepts snake_case keys (access_key_id, secret_access_key,
session_token, region), the same keys with an ``aws_`` prefix, or the
shape returned by ``aws sts assume-role`` (optionally under "Credentials").
"""

import json
import logging
from pathlib import Path
from typing import Optional

import boto3

from remote_build_cache.config import CacheConfig
from remote_build_cache.errors import ConfigurationError

logger = logging.getLogger(__name__)

_KEY_ALIASES = {
    "aws_access_key_id": ("access_key_id", "aws_access_key_id", "AccessKeyId"),
    "aws_secret_access_key": ("secret_access_key", "aws_secret_access_key", "SecretAccessKey"),
    "aws_session_token": ("session_token", "aws_session_token", "SessionToken"),
    "region_name": ("region", "region_name"),
}


def parse_credentials(text: str, field: str) -> dict[str, str]:
    """Parse a JSON credentials payload into boto3 session arguments.

    Args:
        text: JSON document
        field: Config field the payload came from, for error messages

    Returns:
        Keyword arguments for boto3.session.Session

    Raises:
        ConfigurationError: If the payload is not valid credentials JSON
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"credentials are not valid JSON: {e.msg}", field=field) from e

    if not isinstance(payload, dict):
        raise ConfigurationError("credentials must be a JSON object", field=field)

    if isinstance(payload.get("Credentials"), dict):
        payload = payload["Credentials"]

    kwargs: dict[str, str] = {}
    for name, aliases in _KEY_ALIASES.items():
        for alias in aliases:
            value = payload.get(alias)
            if value:
                if not isinstance(value, str):
                    raise ConfigurationError(f"'{alias}' must be a string", field=field)
                kwargs[name] = value
                break

    missing = [
        aliases[0]
        for name, aliases in _KEY_ALIASES.items()
        if name in ("aws_access_key_id", "aws_secret_access_key") and name not in kwargs
    ]
    if missing:
        raise ConfigurationError(f"credentials missing {', '.join(missing)}", field=field)

    return kwargs


def _read_credentials_file(path: str) -> str:
    try:
        return Path(path).expanduser().read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"cannot read credentials file {path}: {e.strerror or e}",
            field="credentials_file_path",
        ) from e


def resolve_session(config: CacheConfig) -> boto3.session.Session:
    """Build an authenticated boto3 session from the configuration.

    Args:
        config: Cache configuration

    Returns:
        boto3 Session carrying the resolved credentials

    Raises:
        ConfigurationError: If the selected source is unreadable or malformed,
            or no ambient credentials can be found
    """
    region: Optional[str] = config.region or None

    if config.credentials_file_path:
        text = _read_credentials_file(config.credentials_file_path)
        kwargs = parse_credentials(text, "credentials_file_path")
    elif config.credentials_inline:
        kwargs = parse_credentials(config.credentials_inline, "credentials_inline")
    else:
        session = boto3.session.Session(region_name=region)
        if session.get_credentials() is None:
            raise ConfigurationError(
                "no credentials configured and none found in the environment",
                field="credentials",
            )
        logger.debug("Using application default credentials")
        return session

    # An explicit region in the config wins over the payload's
    if region:
        kwargs["region_name"] = region
    logger.debug(f"Using credentials {describe_credentials(config)}")
    return boto3.session.Session(**kwargs)


def describe_credentials(config: CacheConfig) -> str:
    """Describe the credential source without revealing secrets."""
    if config.credentials_file_path:
        return f"from file: {config.credentials_file_path}"
    if config.credentials_inline:
        return "inline"
    return "application default"
