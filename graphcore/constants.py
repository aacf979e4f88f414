"""Shared constants for the Graph client and CLI.

Config locations, Microsoft Graph endpoints, timeouts and list defaults.
"""

from __future__ import annotations

import os
from typing import Tuple

# -----------------------------------------------------------------------------
# Config paths
# -----------------------------------------------------------------------------

APP_DIR_NAME = "m365"


def _config_roots() -> list[str]:
    """Return ordered list of config root directories."""
    roots: list[str] = []
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        roots.append(os.path.expanduser(xdg))
    roots.append(os.path.expanduser("~/.config"))
    return roots


def default_config_dir() -> str:
    """Directory holding config.yaml and the MSAL token cache."""
    env_cfg = os.environ.get("M365_CONFIG")
    if env_cfg:
        return os.path.dirname(os.path.expanduser(env_cfg)) or "."
    return os.path.join(_config_roots()[0], APP_DIR_NAME)


def default_config_path() -> str:
    env_cfg = os.environ.get("M365_CONFIG")
    if env_cfg:
        return os.path.expanduser(env_cfg)
    return os.path.join(default_config_dir(), "config.yaml")


def default_token_cache_path() -> str:
    return os.path.join(default_config_dir(), "token_cache.json")


# -----------------------------------------------------------------------------
# Microsoft Graph API
# -----------------------------------------------------------------------------

GRAPH_API_URL = "https://graph.microsoft.com/v1.0"
GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"
GRAPH_API_SCOPES = [GRAPH_DEFAULT_SCOPE]
LOGIN_AUTHORITY_URL = "https://login.microsoftonline.com"

# Graph list payload keys
VALUE_KEY = "value"
NEXT_LINK_KEY = "@odata.nextLink"

# OData pagination query keys
PARAM_TOP = "$top"
PARAM_SKIP = "$skip"
PARAM_SKIPTOKEN = "$skiptoken"
PARAM_FILTER = "$filter"
PARAM_ORDERBY = "$orderby"


# -----------------------------------------------------------------------------
# HTTP and timeouts
# -----------------------------------------------------------------------------

# Default timeout for HTTP requests: (connect_seconds, read_seconds)
DEFAULT_REQUEST_TIMEOUT: Tuple[int, int] = (10, 30)


# -----------------------------------------------------------------------------
# CLI defaults
# -----------------------------------------------------------------------------

PLUGIN_PREFIX = "m365-"
DEFAULT_MAIL_PAGE_SIZE = 100
DEFAULT_MEETING_MINUTES = 30
DEFAULT_FIND_TIME_CANDIDATES = 5
SCHEDULE_INTERVAL_MINUTES = 30

# strftime formats
FMT_DATETIME_SEC = "%Y-%m-%dT%H:%M:%S"
FMT_DAY = "%Y-%m-%d"
