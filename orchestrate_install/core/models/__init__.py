"""
Domain models — Pydantic types for the orchestrator.

All models are re-exported here for convenient access:

    from orchestrate_install.core.models import Environment, InstallRequest, InstallResult
"""

from orchestrate_install.core.models.environment import (
    CapabilitySet,
    DesktopFlavor,
    Environment,
    EnvironmentKind,
    InitSystem,
    ManagerCapability,
    ManagerName,
)
from orchestrate_install.core.models.request import (
    FailureReason,
    InstallRequest,
    PackageClass,
    ResolutionFailure,
    Strategy,
    StrategyPlan,
)
from orchestrate_install.core.models.result import (
    ErrorCategory,
    ErrorDetail,
    ErrorKind,
    InstallResult,
    InstallStatus,
    RunReport,
)

__all__ = [
    # environment.py
    "CapabilitySet",
    "DesktopFlavor",
    "Environment",
    "EnvironmentKind",
    "InitSystem",
    "ManagerCapability",
    "ManagerName",
    # request.py
    "FailureReason",
    "InstallRequest",
    "PackageClass",
    "ResolutionFailure",
    "Strategy",
    "StrategyPlan",
    # result.py
    "ErrorCategory",
    "ErrorDetail",
    "ErrorKind",
    "InstallResult",
    "InstallStatus",
    "RunReport",
]
