"""External ``m365-<name>`` plugin discovery and execution."""
from __future__ import annotations

import logging
import os
import shutil
import stat
import subprocess  # nosec B404 - plugins are user-installed executables
from typing import List, Optional, Sequence

from .cli_errors import NotFoundError
from .constants import PLUGIN_PREFIX

LOG = logging.getLogger(__name__)


def plugin_executable_name(name: str) -> str:
    return f"{PLUGIN_PREFIX}{name}"


def find_plugin(name: str, path_env: Optional[str] = None) -> str:
    """Return the full path of ``m365-<name>`` on PATH."""
    exe = plugin_executable_name(name)
    found = shutil.which(exe, path=path_env)
    if not found:
        raise NotFoundError(f"plugin '{exe}' not found in PATH")
    return found


def execute_plugin(name: str, args: Sequence[str], path_env: Optional[str] = None) -> int:
    """Run a plugin with inherited stdio; returns its exit status."""
    path = find_plugin(name, path_env=path_env)
    LOG.debug("exec plugin %s %s", path, list(args))
    completed = subprocess.run([path, *args], check=False)  # nosec B603
    return completed.returncode


def _is_executable_file(path: str) -> bool:
    try:
        st = os.stat(path)
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode) and bool(st.st_mode & 0o111)


def list_plugins(path_env: Optional[str] = None) -> List[str]:
    """Names (without prefix) of executable plugins on PATH, sorted and unique."""
    if path_env is None:
        path_env = os.environ.get("PATH", "")
    found = set()
    for directory in path_env.split(os.pathsep):
        if not directory:
            continue
        try:
            entries = os.listdir(directory)
        except OSError:
            continue
        for entry in entries:
            if not entry.startswith(PLUGIN_PREFIX) or entry == PLUGIN_PREFIX:
                continue
            if _is_executable_file(os.path.join(directory, entry)):
                found.add(entry[len(PLUGIN_PREFIX):])
    return sorted(found)
