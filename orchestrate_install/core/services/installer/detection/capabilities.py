"""
L3 Detection — Package manager capability probe.

For each manager: is its executable on PATH, and does it answer a
cheap version query (broken shims exist, e.g. ``snap`` on WSL without
systemd)? Results are memoized per manager and environment kind.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from orchestrate_install.core.models import (
    CapabilitySet,
    Environment,
    InitSystem,
    ManagerCapability,
    ManagerName,
)
from orchestrate_install.core.services.installer.execution.subprocess_runner import run_query
from orchestrate_install.core.services.result_cache import ResultCache

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TTL = 3600
PROBE_TIMEOUT = 5

_SNAP_ROOT = Path("/snap")

# manager → (executable, version query argv)
_PROBES: dict[ManagerName, tuple[str, list[str]]] = {
    ManagerName.APT: ("apt-get", ["apt-get", "--version"]),
    ManagerName.SNAP: ("snap", ["snap", "version"]),
    ManagerName.MANUAL: ("curl", ["curl", "--version"]),
}


def cache_key(manager: ManagerName, env: Environment) -> str:
    return f"capability:{manager.value}:{env.kind.value}"


def _first_line(text: str) -> str | None:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return None


def probe_manager(manager: ManagerName, env: Environment) -> ManagerCapability:
    """Probe one manager. Never raises."""
    executable, version_cmd = _PROBES[manager]

    path = shutil.which(executable)
    if path is None:
        return ManagerCapability(
            name=manager, reason=f"{executable} not found on PATH",
        )

    metadata: dict = {}
    if manager == ManagerName.SNAP:
        if env.init_system != InitSystem.SYSTEMD:
            # snapd runs as a systemd service
            return ManagerCapability(
                name=manager, path=path,
                reason="snapd requires systemd as init",
            )
        metadata["classic"] = _SNAP_ROOT.exists()

    r = run_query(version_cmd, timeout=PROBE_TIMEOUT)
    if not r["ok"]:
        logger.info("%s present at %s but version query failed: %s", executable, path, r["error"])
        return ManagerCapability(
            name=manager, path=path, metadata=metadata,
            reason=f"{' '.join(version_cmd)} failed: {r['error'] or 'exit ' + str(r['returncode'])}",
        )

    return ManagerCapability(
        name=manager,
        available=True,
        path=path,
        version=_first_line(r["stdout"]),
        metadata=metadata,
    )


def probe(
    env: Environment,
    cache: ResultCache | None = None,
    ttl_seconds: float = DEFAULT_PROBE_TTL,
) -> CapabilitySet:
    """Probe every known manager for ``env``.

    Args:
        env: The classified environment.
        cache: Memoizes each manager's result under
            ``capability:<manager>:<kind>``. None probes every time.
        ttl_seconds: Cache TTL.

    Returns:
        A CapabilitySet covering apt, snap and manual.
    """
    managers: dict[ManagerName, ManagerCapability] = {}
    for manager in _PROBES:
        if cache is None:
            cap = probe_manager(manager, env)
        else:
            raw = cache.get_or_compute(
                cache_key(manager, env),
                ttl_seconds,
                lambda m=manager: probe_manager(m, env).model_dump(mode="json"),
            )
            cap = ManagerCapability.model_validate(raw)
        managers[manager] = cap
        logger.debug(
            "capability %s: available=%s%s",
            manager, cap.available, f" ({cap.reason})" if cap.reason else "",
        )

    return CapabilitySet(managers=managers)
