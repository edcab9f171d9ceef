"""
Certificate checking for the output's HTTP client.

The endpoint's certificate is checked against the certifi bundle unless a CA
bundle is configured. ssl_no_verify turns checking off.
"""

import logging
import os
import ssl
from configparser import ConfigParser
from pathlib import Path
from typing import NamedTuple, Optional, Union

import certifi

from httpout.constants import CONFIG
from httpout.errors import ConfigurationError
from .log_codes import TLS_RESOLVED, TLS_VERIFY_DISABLED

logger = logging.getLogger(__name__)

TLS_SECTION_NAME = "tls"
CA_BUNDLE_KEY = "ca_bundle"
ENV_CA_BUNDLE = "HTTPOUT_CA_BUNDLE"


class TLSConfig(NamedTuple):
    """
    How the endpoint's certificate is checked.

    ``verify`` goes to httpx unchanged: a context trusting ``ca_bundle`` (or
    certifi when it is None), or False when nothing is checked.
    """

    verify: Union[ssl.SSLContext, bool]
    ca_bundle: Optional[Path] = None

    @property
    def verifies_peer(self) -> bool:
        return self.verify is not False


def _configured_ca_bundle(config_path: Path) -> Optional[str]:
    env_value = os.getenv(ENV_CA_BUNDLE)
    if env_value:
        return env_value

    config = ConfigParser()
    if not config.read([config_path]) or not config.has_section(TLS_SECTION_NAME):
        return None

    return config[TLS_SECTION_NAME].get(CA_BUNDLE_KEY, "").strip() or None


def get_tls_config(
    ssl_no_verify: bool = False,
    ca_bundle: Optional[Union[str, Path]] = None,
    config_path: Path = CONFIG,
) -> TLSConfig:
    """
    Resolve how the endpoint's certificate is checked.

    The CA bundle comes from the first source defining it:
      1. The ca_bundle argument
      2. HTTPOUT_CA_BUNDLE
      3. config.ini [tls] ca_bundle
      4. The certifi bundle

    Args:
        ssl_no_verify (bool): Skip checking, any CA bundle is ignored.
        ca_bundle (Optional[Union[str, Path]]): Path to a PEM CA bundle.
        config_path (Path): The path to the config.ini file.

    Returns:
        TLSConfig: The verification settings for the HTTP client.

    Raises:
        ConfigurationError: If the CA bundle is missing or cannot be loaded.
    """
    if ssl_no_verify:
        logger.warning(TLS_VERIFY_DISABLED)
        return TLSConfig(verify=False)

    raw_bundle = ca_bundle or _configured_ca_bundle(config_path)
    bundle = Path(raw_bundle).expanduser() if raw_bundle else None

    if bundle is not None and not bundle.is_file():
        raise ConfigurationError(f"ca_bundle is not a file: {bundle}")

    cafile = str(bundle) if bundle else certifi.where()
    try:
        context = ssl.create_default_context(cafile=cafile)
    except OSError as e:
        raise ConfigurationError(f"ca_bundle could not be loaded: {cafile}") from e

    logger.info(
        TLS_RESOLVED,
        extra={"ca_bundle": cafile, "config_path": str(config_path)},
    )
    return TLSConfig(verify=context, ca_bundle=bundle)
