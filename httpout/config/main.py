import configparser
import logging
import os
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, NamedTuple, Optional, Union

import httpx

from httpout.constants import CONFIG, ENV_PREFIX, REQUEST_TIMEOUT
from httpout.errors import ConfigurationError
from httpout.serializers import normalize_http_method, normalize_serializer
from .log_codes import OUTPUT_RESOLVED

logger = logging.getLogger(__name__)

OUTPUT_SECTION_NAME = "http"

AUTH_NONE = "none"
AUTH_BASIC = "basic"

SECRET_MASK = "********"

DEFAULTS: Dict[str, Any] = {
    "endpoint_url": None,
    "ssl_no_verify": False,
    "http_method": "post",
    "serializer": "form",
    "rate_limit_msec": 0,
    "raise_on_error": True,
    "recoverable_status_codes": "503",
    "custom_headers": "{}",
    "authentication": AUTH_NONE,
    "username": "",
    "password": "",
    "bulk_request": False,
    "timeout": REQUEST_TIMEOUT,
}

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off", "")


class OutputConfig(NamedTuple):
    """
    Read-only settings of an HTTP output.

    http_method and serializer are already normalized: the method is one of
    GET, PUT, POST or DELETE and the serializer is 'x_ndjson' whenever
    bulk_request is set.
    """

    endpoint_url: str
    ssl_no_verify: bool = False
    http_method: str = "POST"
    serializer: str = "form"
    rate_limit_msec: int = 0
    raise_on_error: bool = True
    recoverable_status_codes: FrozenSet[int] = frozenset({503})
    custom_headers: str = "{}"
    authentication: str = AUTH_NONE
    username: str = ""
    password: str = ""
    bulk_request: bool = False
    timeout: float = float(REQUEST_TIMEOUT)

    def as_dict(self) -> Dict[str, Any]:
        """
        Convert the configuration to a dictionary safe for logging.

        Returns:
            dict: The settings, with the password and custom headers masked.
        """
        data = self._asdict()
        data["recoverable_status_codes"] = sorted(self.recoverable_status_codes)
        if self.password:
            data["password"] = SECRET_MASK
        # headers often carry tokens
        if self.custom_headers not in ("", "{}"):
            data["custom_headers"] = SECRET_MASK
        return data


def _parse_bool(value: Union[str, bool], name: str) -> bool:
    if isinstance(value, bool):
        return value

    normalized = str(value).strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False

    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _parse_int(value: Union[str, int], name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _parse_timeout(value: Union[str, float], name: str) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e

    if timeout <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return timeout


def _parse_status_codes(value: Union[str, Iterable[int]], name: str) -> FrozenSet[int]:
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",") if item.strip()]
    else:
        items = list(value)

    return frozenset(_parse_int(item, name) for item in items)


def _parse_endpoint(value: Optional[str]) -> str:
    if not value or not str(value).strip():
        raise ConfigurationError("endpoint_url is required")

    endpoint = str(value).strip()
    try:
        url = httpx.URL(endpoint)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"Invalid endpoint_url: {endpoint!r}") from e

    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            f"endpoint_url must be an absolute http or https URL, got {endpoint!r}"
        )
    return endpoint


def _parse_authentication(value: Optional[str]) -> str:
    if value and value.strip().lower() == AUTH_BASIC:
        return AUTH_BASIC
    return AUTH_NONE


def _read_config_section(config_path: Path) -> Dict[str, str]:
    config = configparser.ConfigParser()
    config_files = config.read([config_path])

    if not config_files or not config.has_section(OUTPUT_SECTION_NAME):
        return {}

    return dict(config[OUTPUT_SECTION_NAME])


def _resolve(
    key: str, options: Dict[str, Any], section: Dict[str, str]
) -> Any:
    """
    Resolve one setting: explicit option, then environment, then config.ini,
    then the default.
    """
    if options.get(key) is not None:
        return options[key]

    env_value = os.getenv(f"{ENV_PREFIX}{key.upper()}")
    if env_value is not None:
        return env_value

    if key in section:
        return section[key]

    return DEFAULTS[key]


def get_output_config(config_path: Path = CONFIG, **options: Any) -> OutputConfig:
    """
    Build the output configuration.

    Each setting is taken from the first source defining it:
      1. Keyword options (CLI flags or host pipeline settings)
      2. Environment variables (HTTPOUT_ENDPOINT_URL, HTTPOUT_SERIALIZER, ...)
      3. config.ini [http] section
      4. Built-in defaults

    Args:
        config_path (Path): The path to the config.ini file.
        **options: Explicit settings, None values are ignored.

    Returns:
        OutputConfig: The validated configuration.

    Raises:
        ConfigurationError: If a setting is missing or malformed.
    """
    unknown = set(options) - set(DEFAULTS)
    if unknown:
        raise ConfigurationError(f"Unknown settings: {', '.join(sorted(unknown))}")

    section = _read_config_section(config_path)

    def get(key: str) -> Any:
        return _resolve(key, options, section)

    rate_limit_msec = _parse_int(get("rate_limit_msec"), "rate_limit_msec")
    if rate_limit_msec < 0:
        raise ConfigurationError(
            f"rate_limit_msec must not be negative, got {rate_limit_msec}"
        )

    bulk_request = _parse_bool(get("bulk_request"), "bulk_request")

    config = OutputConfig(
        endpoint_url=_parse_endpoint(get("endpoint_url")),
        ssl_no_verify=_parse_bool(get("ssl_no_verify"), "ssl_no_verify"),
        http_method=normalize_http_method(get("http_method")),
        serializer=normalize_serializer(get("serializer"), bulk_request),
        rate_limit_msec=rate_limit_msec,
        raise_on_error=_parse_bool(get("raise_on_error"), "raise_on_error"),
        recoverable_status_codes=_parse_status_codes(
            get("recoverable_status_codes"), "recoverable_status_codes"
        ),
        custom_headers=str(get("custom_headers")),
        authentication=_parse_authentication(get("authentication")),
        username=str(get("username")),
        password=str(get("password")),
        bulk_request=bulk_request,
        timeout=_parse_timeout(get("timeout"), "timeout"),
    )

    logger.info(
        OUTPUT_RESOLVED, extra={"config_path": str(config_path), **config.as_dict()}
    )
    return config
