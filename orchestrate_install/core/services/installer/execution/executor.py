"""
L4 Execution — Strategy plan executor.

Runs one StrategyPlan: idempotency check, dry-run short-circuit, then
each strategy in order with fallback. Per-attempt failures are caught
here and turned into an ErrorDetail; ``execute`` itself never raises
for a failed install.

apt strategies get up to ``max_attempts`` tries. Between tries the
executor repairs what the exit code points at (``apt-get install -f``
after exit 100, ``apt-get update`` after exit 2) and backs off.
Timeouts are never retried.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from orchestrate_install.core.errors import ExecutionError, ExecutionTimeout
from orchestrate_install.core.models import (
    ErrorDetail,
    ErrorKind,
    InstallResult,
    ManagerName,
    Strategy,
    StrategyPlan,
)
from orchestrate_install.core.services.installer.detection.installed import check_present
from orchestrate_install.core.services.installer.domain.error_analysis import (
    apt_repair_step,
    categorize_failure,
)
from orchestrate_install.core.services.installer.execution.subprocess_runner import run_command

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY_TIMEOUT = 600
DEFAULT_MAX_ATTEMPTS = 3

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
APT_UPDATE_CMD = ["apt-get", "update", "-q"]
APT_FIX_BROKEN_CMD = ["apt-get", "install", "-f", "-y"]

# Backoff before retry n (1-based): n * factor seconds
_INSTALL_BACKOFF = 2
_UPDATE_BACKOFF = 5


class InstallerExecutor:
    """Executes plans against the real package managers.

    Args:
        timeout: Seconds allowed per strategy attempt.
        refresh_indexes: Run ``apt-get update`` once before the first
            apt attempt of this executor's lifetime.
        max_attempts: Tries per apt strategy, and per index refresh.
        sleep: Backoff function (default ``time.sleep``).
    """

    def __init__(
        self,
        timeout: int = DEFAULT_STRATEGY_TIMEOUT,
        *,
        refresh_indexes: bool = True,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.timeout = timeout
        self.refresh_indexes = refresh_indexes
        self.max_attempts = max(1, max_attempts)
        self._sleep = sleep if sleep is not None else time.sleep
        self._apt_refreshed = False

    # ── apt maintenance ─────────────────────────────────────────

    def _run_apt(self, cmd: list[str]) -> None:
        run_command(cmd, needs_sudo=True, timeout=self.timeout, env_overrides=APT_ENV)

    def _refresh_apt(self) -> bool:
        """``apt-get update`` with retries. Returns whether it succeeded."""
        self._apt_refreshed = True
        for attempt in range(1, self.max_attempts + 1):
            try:
                self._run_apt(APT_UPDATE_CMD)
                return True
            except ExecutionError as e:
                logger.info(
                    "apt-get update failed (attempt %d/%d): %s",
                    attempt, self.max_attempts, e,
                )
                if isinstance(e, ExecutionTimeout):
                    break
                if attempt < self.max_attempts:
                    self._sleep(attempt * _UPDATE_BACKOFF)
        logger.info("Continuing with stale apt indexes")
        return False

    def _repair_apt(self, exit_code: int | None) -> None:
        step = apt_repair_step(exit_code)
        if step is None:
            return
        cmd = APT_FIX_BROKEN_CMD if step == "fix_broken" else APT_UPDATE_CMD
        logger.debug("Repair before retry: %s", " ".join(cmd))
        try:
            self._run_apt(cmd)
        except ExecutionError as e:
            logger.debug("Repair step failed: %s", e)

    # ── Attempts ────────────────────────────────────────────────

    def _run_strategy(self, strategy: Strategy) -> None:
        run_command(
            strategy.command,
            needs_sudo=strategy.needs_sudo,
            timeout=self.timeout,
            env_overrides=strategy.env or None,
        )

    def _attempt(self, strategy: Strategy) -> None:
        """Run one strategy. Raises ExecutionTimeout / ExecutionFailure."""
        if strategy.manager != ManagerName.APT:
            self._run_strategy(strategy)
            return

        if self.refresh_indexes and not self._apt_refreshed:
            self._refresh_apt()

        for attempt in range(1, self.max_attempts + 1):
            try:
                self._run_strategy(strategy)
                return
            except ExecutionTimeout:
                raise
            except ExecutionError as e:
                if attempt == self.max_attempts:
                    raise
                logger.info(
                    "apt install attempt %d/%d failed (exit %s), retrying",
                    attempt, self.max_attempts, e.exit_code,
                )
                self._repair_apt(e.exit_code)
                self._sleep(attempt * _INSTALL_BACKOFF)

    @staticmethod
    def _error_detail(strategy: Strategy, e: ExecutionError) -> ErrorDetail:
        timed_out = isinstance(e, ExecutionTimeout)
        return ErrorDetail.from_output(
            ErrorKind.EXECUTION_TIMEOUT if timed_out else ErrorKind.EXECUTION_FAILURE,
            f"{strategy.manager}: {e}",
            strategy=strategy.manager,
            exit_code=e.exit_code,
            stderr=e.stderr,
            category=categorize_failure(e.exit_code, e.stderr, timed_out=timed_out),
        )

    def execute(self, plan: StrategyPlan, *, dry_run: bool = False) -> InstallResult:
        """Execute ``plan`` and report the outcome.

        Returns:
            AlreadyPresent, Skipped (dry run), Installed (first strategy
            that succeeded) or Failed (last attempt's error).
        """
        start = time.monotonic()
        name = plan.request.package_name

        def _elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        presence = check_present(plan, dry_run=dry_run)
        if presence["present"]:
            logger.info("%s already present (%s)", name, presence["via"])
            return InstallResult.already_present(name, duration_ms=_elapsed())

        if dry_run:
            first = plan.strategies[0]
            logger.info("[dry-run] would run: %s", " ".join(first.command))
            return InstallResult.skipped(name, first.manager, duration_ms=_elapsed())

        attempts: list[ManagerName] = []
        last_error: ErrorDetail | None = None
        for strategy in plan.strategies:
            attempts.append(strategy.manager)
            try:
                self._attempt(strategy)
            except ExecutionError as e:
                last_error = self._error_detail(strategy, e)
                logger.info(
                    "%s via %s failed (%s)%s",
                    name, strategy.manager, e,
                    ", falling back" if strategy is not plan.strategies[-1] else "",
                )
                continue

            logger.info("%s installed via %s", name, strategy.manager)
            return InstallResult.installed(
                name, strategy.manager, duration_ms=_elapsed(), attempts=attempts,
            )

        if last_error is None:
            last_error = ErrorDetail(
                kind=ErrorKind.EXECUTION_FAILURE, message="no strategy was attempted",
            )
        return InstallResult.failure(
            name, last_error, duration_ms=_elapsed(), attempts=attempts,
        )
