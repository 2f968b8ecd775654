"""
Environment and capability models — what the host is and what it can do.

Both are produced by the detection layer once per run and shared
read-only by every downstream component, so they are frozen.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EnvironmentKind(StrEnum):
    """Host classification."""

    WSL2 = "wsl2"
    NATIVE_DESKTOP = "native_desktop"
    NATIVE_HEADLESS = "native_headless"


class DesktopFlavor(StrEnum):
    """Desktop environment family of a graphical session."""

    GNOME = "gnome"
    KDE = "kde"
    NONE = "none"


class InitSystem(StrEnum):
    """PID 1 family."""

    SYSTEMD = "systemd"
    OTHER = "other"


class ManagerName(StrEnum):
    """Installation managers the orchestrator knows how to drive."""

    APT = "apt"
    SNAP = "snap"
    MANUAL = "manual"


class Environment(BaseModel):
    """Immutable snapshot of the host environment."""

    model_config = ConfigDict(frozen=True)

    kind: EnvironmentKind
    desktop_flavor: DesktopFlavor = DesktopFlavor.NONE
    init_system: InitSystem = InitSystem.OTHER
    kernel_release: str

    wsl_version: int | None = None   # 1 or 2 under WSL, else None
    distro_id: str = ""              # e.g. "ubuntu"
    distro_version: str = ""         # e.g. "24.04"

    @property
    def is_wsl(self) -> bool:
        return self.kind == EnvironmentKind.WSL2


class ManagerCapability(BaseModel):
    """Availability of one manager on this host."""

    model_config = ConfigDict(frozen=True)

    name: ManagerName
    available: bool = False
    path: str | None = None
    version: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    reason: str | None = None   # why it is unavailable


class CapabilitySet(BaseModel):
    """Manager name → capability, derived from an Environment."""

    model_config = ConfigDict(frozen=True)

    managers: dict[ManagerName, ManagerCapability] = Field(default_factory=dict)

    def get(self, name: str) -> ManagerCapability | None:
        try:
            return self.managers.get(ManagerName(name))
        except ValueError:
            return None

    def is_available(self, name: str) -> bool:
        cap = self.get(name)
        return bool(cap and cap.available)

    @property
    def available_managers(self) -> list[ManagerName]:
        return [name for name, cap in self.managers.items() if cap.available]

    @classmethod
    def from_flags(cls, **flags: bool) -> CapabilitySet:
        """Build a set from ``apt=True, snap=False`` style flags.

        Snap entries built this way report classic confinement support.
        """
        managers: dict[ManagerName, ManagerCapability] = {}
        for name, available in flags.items():
            manager = ManagerName(name)
            metadata = {"classic": True} if manager == ManagerName.SNAP else {}
            managers[manager] = ManagerCapability(
                name=manager, available=available, metadata=metadata,
            )
        return cls(managers=managers)
