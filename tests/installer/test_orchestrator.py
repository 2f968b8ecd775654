"""
Installer — Orchestrator tests (end-to-end over the fake host).
"""

from __future__ import annotations

import pytest

from orchestrate_install.core.errors import ClassificationError, MissingDependencyError
from orchestrate_install.core.models import (
    Environment,
    EnvironmentKind,
    ErrorKind,
    InstallRequest,
    InstallStatus,
    ManagerName,
)
from orchestrate_install.core.services.installer.execution.executor import InstallerExecutor
from orchestrate_install.core.services.installer.orchestration import orchestrator as orchmod
from orchestrate_install.core.services.installer.orchestration.orchestrator import Orchestrator
from orchestrate_install.core.services.result_cache import ResultCache

SNAP = ManagerName.SNAP


def _requests(*tokens: str, dry_run: bool = False) -> list[InstallRequest]:
    return [InstallRequest.parse(t, dry_run=dry_run) for t in tokens]


@pytest.fixture
def orch(fake_system, settings) -> Orchestrator:
    return Orchestrator(settings, cache=ResultCache())


# ── Scenarios ─────────────────────────────────────────────────

class TestScenarios:
    def test_a_desktop_app_via_snap(self, orch, fake_system):
        report = orch.run(_requests("vscode"))
        assert report.environment.kind == EnvironmentKind.NATIVE_DESKTOP
        result = report.results[0]
        assert result.status_line() == "vscode: Installed via snap"

    def test_b_headless_without_snap(self, orch, fake_system):
        fake_system.environment = Environment(
            kind=EnvironmentKind.NATIVE_HEADLESS, kernel_release="6.8.0-45-generic",
        )
        report = orch.run(_requests("curl"))
        assert not report.capabilities.is_available("snap")
        assert report.results[0].status_line() == "curl: Installed via apt"
        assert [c for c in fake_system.install_calls() if "snap" in c] == []

    def test_c_no_manager_is_failed_and_run_continues(self, orch, fake_system):
        # Neither apt nor snap; only the manual route (curl) is usable
        fake_system.on_path = {"sudo", "curl"}
        report = orch.run(_requests("jq", "docker"))
        assert report.results[0].status == InstallStatus.FAILED
        assert report.results[0].error_detail.kind == ErrorKind.NO_MANAGER_AVAILABLE
        assert report.results[1].status_line() == "docker: Installed via manual"
        assert report.exit_code == 1

    def test_d_already_present_invokes_no_manager(self, orch, fake_system):
        fake_system.installed["curl"] = "8.5.0"
        report = orch.run(_requests("curl"))
        assert report.results[0].status == InstallStatus.ALREADY_PRESENT
        assert fake_system.install_calls() == []


# ── Run properties ────────────────────────────────────────────

class TestRunProperties:
    def test_order_preserved(self, orch, fake_system):
        fake_system.installed["git"] = "2.43.0"
        tokens = ("vscode", "git", "spotify", "cowsay", "jq")
        report = orch.run(_requests(*tokens))
        assert [r.package_name for r in report.results] == list(tokens)

    def test_partial_failure_isolated(self, orch, fake_system):
        fake_system.outcomes["apt"] = "fail"
        report = orch.run(_requests("cowsay", "spotify", "jq"))
        statuses = [r.status for r in report.results]
        assert statuses == [InstallStatus.FAILED, InstallStatus.INSTALLED, InstallStatus.INSTALLED]
        assert report.results[2].strategy_used == SNAP

    def test_dry_run_never_installs(self, orch, fake_system):
        report = orch.run(_requests("vscode", "curl", "docker", "cowsay", dry_run=True))
        assert all(r.status == InstallStatus.SKIPPED for r in report.results)
        assert fake_system.install_calls() == []

    def test_idempotent_across_runs(self, orch, fake_system):
        fake_system.installed["curl"] = "8.5.0"
        first = orch.run(_requests("curl"))
        calls = len(fake_system.calls)
        second = orch.run(_requests("curl"))
        assert first.results[0].status == second.results[0].status == InstallStatus.ALREADY_PRESENT
        assert len(fake_system.calls) == calls

    def test_environment_computed_once(self, orch, fake_system):
        orch.run(_requests("curl"))
        orch.run(_requests("jq"))
        assert fake_system.classify_calls == 1
        assert orch.environment is orch.environment


# ── Failure counter ───────────────────────────────────────────

class TestFailureCounter:
    def test_failed_attempts_counted(self, orch, fake_system):
        fake_system.outcomes["snap"] = "fail"
        orch.run(_requests("vscode"))
        assert orch.failure_counts == {"snap": 1}

    def test_counter_reorders_equally_applicable(self, orch, fake_system):
        fake_system.outcomes["apt"] = "fail"
        report = orch.run(_requests("cowsay", "node"))
        # cowsay failed on apt, so node (any) tries snap first
        assert report.results[1].attempts == [SNAP]
        assert report.results[1].strategy_used == SNAP


# ── Fatal errors ──────────────────────────────────────────────

class TestFatal:
    def test_classification_error_aborts_before_requests(self, orch, fake_system, monkeypatch):
        def broken(environ=None):
            raise ClassificationError("kernel release unreadable")

        monkeypatch.setattr(orchmod, "classify", broken)
        with pytest.raises(ClassificationError):
            orch.run(_requests("curl"))
        assert fake_system.calls == []

    def test_missing_sudo(self, orch, fake_system):
        fake_system.on_path.discard("sudo")
        with pytest.raises(MissingDependencyError) as exc:
            orch.run(_requests("curl"))
        assert exc.value.dependency == "sudo"

    def test_missing_sudo_ok_for_dry_run(self, orch, fake_system):
        fake_system.on_path.discard("sudo")
        report = orch.run(_requests("curl", dry_run=True))
        assert report.results[0].status == InstallStatus.SKIPPED

    def test_missing_sudo_ok_as_root(self, orch, fake_system):
        fake_system.on_path.discard("sudo")
        fake_system.root = True
        report = orch.run(_requests("curl"))
        assert report.results[0].status == InstallStatus.INSTALLED


class TestEnvironmentReport:
    def test_report_has_no_results(self, orch, fake_system):
        report = orch.environment_report()
        assert report.results == []
        assert report.capabilities.is_available("apt")

    def test_default_executor_uses_settings(self, fake_system, settings):
        orch = Orchestrator(
            settings.model_copy(update={"strategy_timeout": 42, "install_attempts": 1}),
        )
        assert isinstance(orch.executor, InstallerExecutor)
        assert orch.executor.timeout == 42
        assert orch.executor.refresh_indexes is False
        assert orch.executor.max_attempts == 1
