"""
InstallResult and RunReport models — the execution contract.

The executor turns a plan into an InstallResult. It NEVER raises for a
failed strategy: failures are captured here, with a structured
ErrorDetail instead of raw subprocess noise. The orchestrator appends
one result per request to the RunReport, in request order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from orchestrate_install.core.models.environment import (
    CapabilitySet,
    Environment,
    ManagerName,
)

_STDERR_TAIL = 2000


class InstallStatus(StrEnum):
    """Outcome of one request. Values are the CLI status words."""

    ALREADY_PRESENT = "AlreadyPresent"
    INSTALLED = "Installed"
    FAILED = "Failed"
    SKIPPED = "Skipped"


class ErrorKind(StrEnum):
    NO_MANAGER_AVAILABLE = "no_manager_available"
    EXECUTION_FAILURE = "execution_failure"
    EXECUTION_TIMEOUT = "execution_timeout"


class ErrorCategory(StrEnum):
    """Coarse cause of a failed attempt, read from exit code and stderr."""

    NETWORK = "network"
    DISK_SPACE = "disk_space"
    PACKAGE_LOCK = "package_lock"
    PERMISSION = "permission"
    COMMAND_NOT_FOUND = "command_not_found"
    TIMEOUT = "timeout"
    GENERAL = "general"


class ErrorDetail(BaseModel):
    """Structured summary of why a request failed."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    strategy: ManagerName | None = None
    exit_code: int | None = None
    stderr: str = ""
    category: ErrorCategory | None = None

    @classmethod
    def from_output(
        cls,
        kind: ErrorKind,
        message: str,
        *,
        strategy: ManagerName | None = None,
        exit_code: int | None = None,
        stderr: str = "",
        category: ErrorCategory | None = None,
    ) -> ErrorDetail:
        """Build a detail, keeping only the tail of the captured stderr."""
        return cls(
            kind=kind,
            message=message,
            strategy=strategy,
            exit_code=exit_code,
            stderr=stderr.strip()[-_STDERR_TAIL:] if stderr else "",
            category=category,
        )


class InstallResult(BaseModel):
    """Outcome of executing a plan for one request."""

    model_config = ConfigDict(frozen=True)

    package_name: str
    status: InstallStatus
    strategy_used: ManagerName | None = None
    duration_ms: int = 0
    error_detail: ErrorDetail | None = None
    attempts: list[ManagerName] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether the request ended in a non-failed state."""
        return self.status != InstallStatus.FAILED

    @property
    def failed(self) -> bool:
        return self.status == InstallStatus.FAILED

    def status_line(self) -> str:
        """``<packageName>: <status>[ via <strategy>]``."""
        line = f"{self.package_name}: {self.status.value}"
        if self.strategy_used is not None:
            line += f" via {self.strategy_used.value}"
        return line

    @classmethod
    def already_present(cls, package_name: str, **kwargs: Any) -> InstallResult:
        return cls(package_name=package_name, status=InstallStatus.ALREADY_PRESENT, **kwargs)

    @classmethod
    def installed(
        cls,
        package_name: str,
        strategy: ManagerName,
        **kwargs: Any,
    ) -> InstallResult:
        return cls(
            package_name=package_name,
            status=InstallStatus.INSTALLED,
            strategy_used=strategy,
            **kwargs,
        )

    @classmethod
    def skipped(
        cls,
        package_name: str,
        strategy: ManagerName,
        **kwargs: Any,
    ) -> InstallResult:
        return cls(
            package_name=package_name,
            status=InstallStatus.SKIPPED,
            strategy_used=strategy,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        package_name: str,
        error: ErrorDetail,
        **kwargs: Any,
    ) -> InstallResult:
        return cls(
            package_name=package_name,
            status=InstallStatus.FAILED,
            error_detail=error,
            **kwargs,
        )


@dataclass
class RunReport:
    """Result of one orchestrator run."""

    environment: Environment | None = None
    capabilities: CapabilitySet | None = None
    results: list[InstallResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    def _count(self, status: InstallStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def installed(self) -> int:
        return self._count(InstallStatus.INSTALLED)

    @property
    def already_present(self) -> int:
        return self._count(InstallStatus.ALREADY_PRESENT)

    @property
    def skipped(self) -> int:
        return self._count(InstallStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(InstallStatus.FAILED)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        """0 when nothing failed, 1 otherwise. Never encodes which request."""
        return 0 if self.all_ok else 1

    def to_dict(self) -> dict:
        return {
            "environment": (
                self.environment.model_dump(mode="json") if self.environment else None
            ),
            "capabilities": (
                self.capabilities.model_dump(mode="json") if self.capabilities else None
            ),
            "total": self.total,
            "installed": self.installed,
            "already_present": self.already_present,
            "skipped": self.skipped,
            "failed": self.failed,
            "results": [r.model_dump(mode="json") for r in self.results],
        }
