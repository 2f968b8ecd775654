"""
Request and plan models — the resolver's input and output contract.

An ``InstallRequest`` is what the caller asks for. The resolver turns
it into either a ``StrategyPlan`` (ordered, never empty) or a
``ResolutionFailure``; the executor consumes the plan exactly once.
"""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from orchestrate_install.core.models.environment import ManagerName

# Debian and snap package names: alnum start, then alnum/+/./-/_
PACKAGE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9+._-]*$")

# ">=1.2", "==3.1.4", "~=2.0" or a bare "1.2.3" (exact)
VERSION_CONSTRAINT_RE = re.compile(r"^(==|>=|~=)?v?\d+(\.\d+){0,2}$")


class PackageClass(StrEnum):
    """How a package is classified for strategy ordering."""

    DESKTOP = "desktop"   # GUI application: snap first
    SYSTEM = "system"     # library / CLI utility: apt first
    ANY = "any"           # equally applicable: failure counter decides


class FailureReason(StrEnum):
    NO_MANAGER_AVAILABLE = "no_manager_available"


class InstallRequest(BaseModel):
    """One requested package, immutable for the duration of an attempt."""

    model_config = ConfigDict(frozen=True)

    package_name: str
    snap_alias: str | None = None
    version_constraint: str | None = None
    dry_run: bool = False

    @field_validator("package_name", "snap_alias")
    @classmethod
    def _valid_name(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not PACKAGE_NAME_RE.match(value):
            raise ValueError(f"invalid package name: {value!r}")
        return value

    @field_validator("version_constraint")
    @classmethod
    def _valid_constraint(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not VERSION_CONSTRAINT_RE.match(value):
            raise ValueError(f"invalid version constraint: {value!r}")
        return value

    @classmethod
    def parse(cls, token: str, *, dry_run: bool = False) -> InstallRequest:
        """Parse the CLI form ``<package>[:<snapAlias>][@<constraint>]``.

        Raises:
            ValueError: On an empty name, empty alias or empty constraint,
                or on characters a package name cannot contain.
        """
        text = token.strip()
        constraint: str | None = None
        if "@" in text:
            text, constraint = text.split("@", 1)
            if not constraint:
                raise ValueError(f"empty version constraint in {token!r}")

        alias: str | None = None
        if ":" in text:
            text, alias = text.split(":", 1)
            if not alias:
                raise ValueError(f"empty snap alias in {token!r}")

        if not text:
            raise ValueError(f"empty package name in {token!r}")

        return cls(
            package_name=text,
            snap_alias=alias,
            version_constraint=constraint,
            dry_run=dry_run,
        )


class Strategy(BaseModel):
    """One concrete way to install a package with one manager."""

    model_config = ConfigDict(frozen=True)

    manager: ManagerName
    package: str
    command: list[str]
    needs_sudo: bool = True
    env: dict[str, str] = Field(default_factory=dict)


class StrategyPlan(BaseModel):
    """Ordered strategies for one request. Never empty."""

    model_config = ConfigDict(frozen=True)

    request: InstallRequest
    binary: str
    package_class: PackageClass = PackageClass.SYSTEM
    strategies: list[Strategy] = Field(min_length=1)

    @property
    def managers(self) -> list[ManagerName]:
        return [s.manager for s in self.strategies]


class ResolutionFailure(BaseModel):
    """The resolver found no usable manager for a request."""

    model_config = ConfigDict(frozen=True)

    request: InstallRequest
    reason: FailureReason = FailureReason.NO_MANAGER_AVAILABLE
    message: str = ""
