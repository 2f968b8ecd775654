"""
L5 Orchestration — Run coordinator.

Ties everything together for one invocation: pre-flight checks,
environment classification and capability probing (both memoized),
then resolve → execute for each request in order.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Mapping, Sequence

from orchestrate_install.core.config.loader import Settings
from orchestrate_install.core.errors import MissingDependencyError
from orchestrate_install.core.models import (
    CapabilitySet,
    Environment,
    ErrorDetail,
    ErrorKind,
    InstallRequest,
    InstallResult,
    InstallStatus,
    ResolutionFailure,
    RunReport,
)
from orchestrate_install.core.services.installer.detection.capabilities import probe
from orchestrate_install.core.services.installer.detection.environment import classify
from orchestrate_install.core.services.installer.execution.executor import InstallerExecutor
from orchestrate_install.core.services.installer.execution.subprocess_runner import is_root
from orchestrate_install.core.services.installer.resolver.strategy import resolve
from orchestrate_install.core.services.result_cache import ResultCache

logger = logging.getLogger(__name__)

ENVIRONMENT_CACHE_KEY = "environment"


class Orchestrator:
    """Coordinates one run over a list of install requests.

    Args:
        settings: Effective settings (TTL, timeout, index refresh, attempts).
        cache: Result cache for classifier and probe results. Defaults
            to a file-backed cache in ``settings.cache_dir``.
        executor: Plan executor. Defaults to an InstallerExecutor built
            from ``settings``.
        catalog: Extra recipes overriding the built-in catalog.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        cache: ResultCache | None = None,
        executor: InstallerExecutor | None = None,
        catalog: Mapping[str, dict] | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache if cache is not None else ResultCache(settings.cache_dir)
        self.executor = executor or InstallerExecutor(
            settings.strategy_timeout,
            refresh_indexes=settings.refresh_indexes,
            max_attempts=settings.install_attempts,
        )
        self.catalog = dict(catalog) if catalog else {}
        self.failure_counts: dict[str, int] = {}
        self._environment: Environment | None = None
        self._capabilities: CapabilitySet | None = None

    # ── Discovery ───────────────────────────────────────────────

    @property
    def environment(self) -> Environment:
        """The classified environment, computed once per orchestrator.

        Raises:
            ClassificationError: The host cannot be classified.
        """
        if self._environment is None:
            raw = self.cache.get_or_compute(
                ENVIRONMENT_CACHE_KEY,
                self.settings.cache_ttl_seconds,
                lambda: classify().model_dump(mode="json"),
            )
            self._environment = Environment.model_validate(raw)
        return self._environment

    @property
    def capabilities(self) -> CapabilitySet:
        if self._capabilities is None:
            self._capabilities = probe(
                self.environment,
                cache=self.cache,
                ttl_seconds=self.settings.cache_ttl_seconds,
            )
        return self._capabilities

    def environment_report(self) -> RunReport:
        """Environment and capabilities only, with no requests processed."""
        return RunReport(environment=self.environment, capabilities=self.capabilities)

    # ── Run ─────────────────────────────────────────────────────

    def preflight(self, requests: Sequence[InstallRequest]) -> None:
        """Check what the orchestrator itself needs.

        Raises:
            MissingDependencyError: A real install would need ``sudo``
                and it is not on PATH.
        """
        needs_install = any(not r.dry_run for r in requests)
        if needs_install and not is_root() and shutil.which("sudo") is None:
            raise MissingDependencyError(
                "sudo", "sudo is required to install packages as a non-root user",
            )

    def _record_failures(self, result: InstallResult) -> None:
        failed = list(result.attempts)
        if result.status == InstallStatus.INSTALLED and failed:
            failed = failed[:-1]   # last attempt succeeded
        for manager in failed:
            self.failure_counts[manager.value] = self.failure_counts.get(manager.value, 0) + 1

    def install_one(self, request: InstallRequest) -> InstallResult:
        """Resolve and execute a single request. Never raises for install failures."""
        plan = resolve(
            request,
            self.capabilities,
            catalog=self.catalog,
            failure_counts=self.failure_counts,
        )
        if isinstance(plan, ResolutionFailure):
            return InstallResult.failure(
                request.package_name,
                ErrorDetail(kind=ErrorKind.NO_MANAGER_AVAILABLE, message=plan.message),
            )

        result = self.executor.execute(plan, dry_run=request.dry_run)
        self._record_failures(result)
        return result

    def run(self, requests: Sequence[InstallRequest]) -> RunReport:
        """Process ``requests`` in order.

        Returns:
            RunReport whose results align positionally with ``requests``.

        Raises:
            MissingDependencyError: Pre-flight failed.
            ClassificationError: The host cannot be classified; no
                request is processed.
        """
        self.preflight(requests)

        report = RunReport(environment=self.environment, capabilities=self.capabilities)
        logger.info(
            "Processing %d request(s) on %s (managers: %s)",
            len(requests),
            report.environment.kind if report.environment else "?",
            ", ".join(self.capabilities.available_managers) or "none",
        )

        for request in requests:
            result = self.install_one(request)
            report.results.append(result)
            if result.failed:
                logger.info(
                    "%s failed: %s",
                    request.package_name,
                    result.error_detail.message if result.error_detail else "unknown error",
                )

        logger.info(
            "Done: %d installed, %d already present, %d skipped, %d failed",
            report.installed, report.already_present, report.skipped, report.failed,
        )
        return report
