"""
L2 Resolver — Strategy selection.

Turns a request + recipe + capability set into an ordered, non-empty
StrategyPlan, or a ResolutionFailure when no manager can serve it.
Pure: no I/O, no subprocess.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from orchestrate_install.core.models import (
    CapabilitySet,
    FailureReason,
    InstallRequest,
    ManagerName,
    PackageClass,
    ResolutionFailure,
    Strategy,
    StrategyPlan,
)
from orchestrate_install.core.services.installer.data.catalog import get_recipe
from orchestrate_install.core.services.installer.domain.version_constraint import (
    parse_constraint,
)

logger = logging.getLogger(__name__)

APT_LOCK_TIMEOUT = 30
APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def _recipe_for(request: InstallRequest, catalog: Mapping[str, dict] | None) -> dict:
    """Catalog recipe for the request, or the implicit system recipe."""
    recipe = get_recipe(request.package_name, dict(catalog) if catalog else None)
    if recipe is None:
        logger.debug("%s not in catalog, treating as a system package", request.package_name)
        recipe = {
            "category": PackageClass.SYSTEM.value,
            "cli": request.package_name,
            "apt": request.package_name,
        }
    recipe = dict(recipe)
    if request.snap_alias:
        recipe["snap"] = request.snap_alias
    return recipe


def _build_apt_cmd(package: str, version_constraint: str | None) -> list[str]:
    target = package
    if version_constraint:
        rule = parse_constraint(version_constraint)
        if rule["type"] == "exact":
            target = f"{package}={rule['reference']}*"
    return [
        "apt-get", "install", "-y",
        "-o", f"DPkg::Lock::Timeout={APT_LOCK_TIMEOUT}",
        target,
    ]


def _build_snap_cmd(name: str, classic: bool) -> list[str]:
    cmd = ["snap", "install", name]
    if classic:
        cmd.append("--classic")
    return cmd


def _manager_order(
    package_class: PackageClass,
    failure_counts: Mapping[str, int] | None,
) -> list[ManagerName]:
    """Order apt and snap by package class.

    ``any`` puts the manager with fewer recorded failures first;
    ties go to apt.
    """
    if package_class == PackageClass.DESKTOP:
        return [ManagerName.SNAP, ManagerName.APT]
    if package_class == PackageClass.ANY:
        counts = failure_counts or {}
        apt_fails = counts.get(ManagerName.APT.value, 0)
        snap_fails = counts.get(ManagerName.SNAP.value, 0)
        if snap_fails < apt_fails:
            return [ManagerName.SNAP, ManagerName.APT]
    return [ManagerName.APT, ManagerName.SNAP]


def _build_strategy(
    manager: ManagerName,
    recipe: dict,
    request: InstallRequest,
    caps: CapabilitySet,
) -> Strategy | None:
    if not caps.is_available(manager):
        return None

    if manager == ManagerName.APT:
        package = recipe.get("apt")
        if not package:
            return None
        return Strategy(
            manager=manager,
            package=package,
            command=_build_apt_cmd(package, request.version_constraint),
            needs_sudo=True,
            env=dict(APT_ENV),
        )

    if manager == ManagerName.SNAP:
        name = recipe.get("snap")
        if not name:
            return None
        classic = bool(recipe.get("classic", False))
        cap = caps.get(manager)
        if classic and not (cap and cap.metadata.get("classic", False)):
            logger.info("Dropping snap for %s: classic confinement unsupported", name)
            return None
        return Strategy(
            manager=manager,
            package=name,
            command=_build_snap_cmd(name, classic),
            needs_sudo=True,
        )

    argv = recipe.get("manual")
    if not argv:
        return None
    return Strategy(
        manager=manager,
        package=request.package_name,
        command=list(argv),
        needs_sudo=bool(recipe.get("manual_needs_sudo", False)),
    )


def resolve(
    request: InstallRequest,
    caps: CapabilitySet,
    *,
    catalog: Mapping[str, dict] | None = None,
    failure_counts: Mapping[str, int] | None = None,
) -> StrategyPlan | ResolutionFailure:
    """Resolve a request into an ordered plan.

    Args:
        request: What to install.
        caps: Manager availability on this host.
        catalog: Extra recipes overriding the built-in catalog.
        failure_counts: Failed attempts so far per manager name; orders
            equally applicable managers.

    Returns:
        A StrategyPlan (never empty) or a ResolutionFailure.
    """
    recipe = _recipe_for(request, catalog)
    package_class = PackageClass(recipe.get("category", PackageClass.SYSTEM.value))

    order = _manager_order(package_class, failure_counts) + [ManagerName.MANUAL]

    strategies: list[Strategy] = []
    for manager in order:
        strategy = _build_strategy(manager, recipe, request, caps)
        if strategy is not None:
            strategies.append(strategy)

    if not strategies:
        available = ", ".join(caps.available_managers) or "none"
        message = (
            f"No available manager can install {request.package_name} "
            f"(available: {available})"
        )
        logger.info(message)
        return ResolutionFailure(
            request=request,
            reason=FailureReason.NO_MANAGER_AVAILABLE,
            message=message,
        )

    plan = StrategyPlan(
        request=request,
        binary=recipe.get("cli") or request.package_name,
        package_class=package_class,
        strategies=strategies,
    )
    logger.debug(
        "Plan for %s (%s): %s",
        request.package_name, package_class, " → ".join(plan.managers),
    )
    return plan
