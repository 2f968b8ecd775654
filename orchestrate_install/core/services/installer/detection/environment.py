"""
L3 Detection — Host environment classification.

Read-only probes that decide whether we are on WSL2, a native desktop
or a headless server, plus desktop flavor and init system. Nothing
here spawns a subprocess.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import distro

from orchestrate_install.core.errors import ClassificationError
from orchestrate_install.core.models import (
    DesktopFlavor,
    Environment,
    EnvironmentKind,
    InitSystem,
)

logger = logging.getLogger(__name__)

_OSRELEASE_PATH = Path("/proc/sys/kernel/osrelease")
_SYSTEMD_RUN_DIR = Path("/run/systemd/system")
_PID1_COMM_PATH = Path("/proc/1/comm")

_WSL_MARKERS = ("microsoft", "wsl")


def _read_kernel_release() -> str:
    """Kernel release string, from procfs or ``uname``.

    Raises:
        ClassificationError: Neither source produced a usable value.
    """
    try:
        release = _OSRELEASE_PATH.read_text(encoding="utf-8").strip()
        if release:
            return release
    except OSError as e:
        logger.debug("Cannot read %s: %s", _OSRELEASE_PATH, e)

    try:
        release = os.uname().release.strip()
    except (AttributeError, OSError) as e:
        raise ClassificationError(f"kernel release unreadable: {e}") from e

    if not release:
        raise ClassificationError("kernel release unreadable: empty value")
    return release


def _is_wsl(kernel_release: str) -> bool:
    lowered = kernel_release.lower()
    return any(marker in lowered for marker in _WSL_MARKERS)


def _wsl_version(kernel_release: str) -> int:
    # WSL2 kernels are built as "...-microsoft-standard-WSL2"
    return 2 if "microsoft-standard" in kernel_release.lower() else 1


def _detect_desktop_flavor(environ: Mapping[str, str]) -> DesktopFlavor:
    raw = environ.get("XDG_CURRENT_DESKTOP") or environ.get("DESKTOP_SESSION") or ""
    value = raw.lower()
    if "gnome" in value or "ubuntu" in value:
        return DesktopFlavor.GNOME
    if "kde" in value or "plasma" in value:
        return DesktopFlavor.KDE
    if value:
        logger.debug("Unrecognised desktop %r, treating as none", raw)
    return DesktopFlavor.NONE


def _detect_init_system() -> InitSystem:
    if _SYSTEMD_RUN_DIR.is_dir():
        return InitSystem.SYSTEMD
    try:
        if _PID1_COMM_PATH.read_text(encoding="utf-8").strip() == "systemd":
            return InitSystem.SYSTEMD
    except OSError:
        pass
    return InitSystem.OTHER


def classify(environ: Mapping[str, str] | None = None) -> Environment:
    """Classify the host.

    Args:
        environ: Environment variables to inspect (default: ``os.environ``).

    Returns:
        A frozen Environment.

    Raises:
        ClassificationError: The kernel release cannot be determined.
    """
    env = os.environ if environ is None else environ
    release = _read_kernel_release()

    if _is_wsl(release):
        kind = EnvironmentKind.WSL2
        wsl_version: int | None = _wsl_version(release)
    else:
        wsl_version = None
        has_display = bool(env.get("DISPLAY") or env.get("WAYLAND_DISPLAY"))
        kind = EnvironmentKind.NATIVE_DESKTOP if has_display else EnvironmentKind.NATIVE_HEADLESS

    flavor = (
        DesktopFlavor.NONE
        if kind == EnvironmentKind.NATIVE_HEADLESS
        else _detect_desktop_flavor(env)
    )

    result = Environment(
        kind=kind,
        desktop_flavor=flavor,
        init_system=_detect_init_system(),
        kernel_release=release,
        wsl_version=wsl_version,
        distro_id=distro.id(),
        distro_version=distro.version(),
    )
    logger.info(
        "Environment: %s (flavor=%s, init=%s, kernel=%s)",
        result.kind, result.desktop_flavor, result.init_system, release,
    )
    return result
