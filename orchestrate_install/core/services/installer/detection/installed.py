"""
L3 Detection — Is the requested package already there?

Read-only probes for binary and package availability, used by the
executor before any manager is invoked. Subprocess calls go through
``run_query`` and never raise.
"""

from __future__ import annotations

import logging
import re
import shutil

from orchestrate_install.core.models import ManagerName, StrategyPlan
from orchestrate_install.core.services.installer.domain.version_constraint import satisfies
from orchestrate_install.core.services.installer.execution.subprocess_runner import run_query

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"v?(\d+\.\d+(?:\.\d+)?)")

# dpkg versions look like "1:2.43.0-1ubuntu7": epoch, upstream, revision
_DPKG_UPSTREAM_RE = re.compile(r"^(?:\d+:)?(\d+(?:\.\d+){0,2})")


def find_binary(binary: str) -> str | None:
    """Absolute path of ``binary`` on PATH, or None."""
    return shutil.which(binary)


def get_binary_version(binary: str) -> str | None:
    """Version reported by ``<binary> --version``, or None."""
    r = run_query([binary, "--version"], timeout=10)
    if not r["ok"]:
        return None
    m = _VERSION_RE.search(r["stdout"])
    return m.group(1) if m else None


def get_package_version(manager: ManagerName, package: str) -> str | None:
    """Installed version of ``package`` according to ``manager``.

    Uses the appropriate checker for the manager:
      apt  → dpkg-query -W -f='${Status}\\t${Version}' PKG
      snap → snap list PKG

    Returns:
        The version string, ``""`` when installed with an unparseable
        version, or None when not installed (or the check failed).
    """
    if manager == ManagerName.APT:
        r = run_query(["dpkg-query", "-W", "-f=${Status}\t${Version}", package], timeout=10)
        if not r["ok"]:
            return None
        status, _, version = r["stdout"].partition("\t")
        if "install ok installed" not in status:
            return None
        m = _DPKG_UPSTREAM_RE.match(version.strip())
        return m.group(1) if m else ""

    if manager == ManagerName.SNAP:
        r = run_query(["snap", "list", package], timeout=10)
        if not r["ok"]:
            return None
        # Header line, then "Name  Version  Rev  Tracking  Publisher  Notes"
        for line in r["stdout"].splitlines()[1:]:
            parts = line.split()
            if len(parts) >= 2 and parts[0] == package:
                m = _VERSION_RE.search(parts[1])
                return m.group(1) if m else ""
        return None

    # Manual installs leave no package record; only PATH can tell.
    return None


def check_present(plan: StrategyPlan, *, dry_run: bool = False) -> dict:
    """Decide whether ``plan``'s request is already satisfied.

    1. The plan's binary on PATH (with a version constraint, its
       ``--version`` must satisfy it).
    2. Otherwise each strategy's manager is asked whether its package
       is installed.

    In dry-run mode only step 1's PATH lookup runs, so nothing is
    spawned; a constrained request is then never reported present.

    Returns::

        {"present": True, "via": "path", "version": "2.43.0"}
        {"present": False}
    """
    constraint = plan.request.version_constraint

    path = find_binary(plan.binary)
    if path:
        if not constraint:
            logger.debug("%s found on PATH at %s", plan.binary, path)
            return {"present": True, "via": "path", "path": path}
        if not dry_run:
            version = get_binary_version(plan.binary)
            if satisfies(version, constraint):
                return {"present": True, "via": "path", "path": path, "version": version}
            logger.info(
                "%s %s on PATH does not satisfy %s",
                plan.binary, version or "(unknown version)", constraint,
            )

    if dry_run:
        return {"present": False}

    for strategy in plan.strategies:
        version = get_package_version(strategy.manager, strategy.package)
        if version is None:
            continue
        if not constraint or satisfies(version, constraint):
            logger.debug("%s installed via %s (%s)", strategy.package, strategy.manager, version)
            return {"present": True, "via": strategy.manager.value, "version": version}

    return {"present": False}
