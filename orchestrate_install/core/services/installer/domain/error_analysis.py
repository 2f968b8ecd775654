"""
L1 Domain — Error analysis (pure).

Sorts a failed attempt into a coarse category from its exit code and
captured stderr, and picks the repair step to run before retrying an
apt install. No I/O, no subprocess.
"""

from __future__ import annotations

import re

from orchestrate_install.core.models import ErrorCategory

# apt-get: generic error (broken deps, unmet dependencies, ...)
APT_EXIT_BROKEN = 100
# apt-get: command-line or index problem
APT_EXIT_INDEX = 2

_PATTERNS: list[tuple[ErrorCategory, re.Pattern]] = [
    (ErrorCategory.PACKAGE_LOCK, re.compile(
        r"could not get lock|unable to acquire the dpkg|dpkg was interrupted|lock-frontend",
        re.IGNORECASE,
    )),
    (ErrorCategory.DISK_SPACE, re.compile(
        r"no space left on device|enough free space|disk full",
        re.IGNORECASE,
    )),
    (ErrorCategory.NETWORK, re.compile(
        r"temporary failure resolving|could not resolve|connection (?:refused|timed out|reset)"
        r"|network is unreachable|failed to fetch|unable to connect",
        re.IGNORECASE,
    )),
    (ErrorCategory.PERMISSION, re.compile(
        r"permission denied|are you root|a password is required|not in the sudoers",
        re.IGNORECASE,
    )),
]


def categorize_failure(
    exit_code: int | None,
    stderr: str = "",
    *,
    timed_out: bool = False,
) -> ErrorCategory:
    """Classify one failed attempt.

    Exit codes 126/127 are decided by the code alone (shell
    conventions). Anything else is matched against stderr in order:
    lock, disk space, network, permission.
    """
    if timed_out:
        return ErrorCategory.TIMEOUT
    if exit_code == 126:
        return ErrorCategory.PERMISSION
    if exit_code == 127:
        return ErrorCategory.COMMAND_NOT_FOUND
    for category, pattern in _PATTERNS:
        if stderr and pattern.search(stderr):
            return category
    return ErrorCategory.GENERAL


def apt_repair_step(exit_code: int | None) -> str | None:
    """Which repair to run before retrying a failed apt install.

    Returns:
        ``"fix_broken"`` (``apt-get install -f``) for exit 100,
        ``"update"`` (``apt-get update``) for exit 2, else ``None``.
    """
    if exit_code == APT_EXIT_BROKEN:
        return "fix_broken"
    if exit_code == APT_EXIT_INDEX:
        return "update"
    return None
