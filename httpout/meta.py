from importlib.metadata import PackageNotFoundError, version
import logging
import platform
from typing import Dict, Optional


LOG = logging.getLogger(__name__)


def get_version() -> Optional[str]:
    """
    Get the version of the httpout package.

    Returns:
      Optional[str]: The httpout version if found, otherwise None.
    """
    try:
        return version("httpout")
    except PackageNotFoundError:
        LOG.exception("Unable to get httpout version.")
        return None


def get_user_agent() -> str:
    """
    Get the user agent string for HTTP requests.

    Returns:
      str: The user agent string in the format: httpout/{version} ({os}; Python/{python_version})
    """
    httpout_version = get_version() or "unknown"
    os_name = platform.system()
    python_version = platform.python_version()

    return f"httpout/{httpout_version} ({os_name}; Python/{python_version})"


def get_meta_http_headers() -> Dict[str, str]:
    return {"User-Agent": get_user_agent()}
