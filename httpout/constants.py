# -*- coding: utf-8 -*-
import os
from pathlib import Path


def get_user_dir() -> Path:
    """
    Get the user directory holding the httpout configuration.

    Returns:
        Path: The user configuration directory.
    """
    if custom_dir := os.getenv("HTTPOUT_CONFIG_DIR"):
        return Path(custom_dir).expanduser()

    return Path("~", ".httpout").expanduser()


USER_CONFIG_DIR = get_user_dir()
CONFIG_FILE_NAME = "config.ini"
CONFIG = USER_CONFIG_DIR / CONFIG_FILE_NAME

ENV_PREFIX = "HTTPOUT_"

# Fetch the REQUEST_TIMEOUT from the environment variable, defaulting to 30 if not set
REQUEST_TIMEOUT = int(os.getenv("HTTPOUT_REQUEST_TIMEOUT", 30))

# Exit codes
EXIT_CODE_OK = 0
EXIT_CODE_INVALID_CONFIG = 1
EXIT_CODE_DELIVERY_FAILED = 2
