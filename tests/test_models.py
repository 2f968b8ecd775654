"""
Tests for domain models — requests, plans, results and the run report.
"""

import pytest
from pydantic import ValidationError

from orchestrate_install.core.models import (
    CapabilitySet,
    Environment,
    EnvironmentKind,
    ErrorDetail,
    ErrorKind,
    InstallRequest,
    InstallResult,
    InstallStatus,
    ManagerName,
    RunReport,
    Strategy,
    StrategyPlan,
)


class TestInstallRequestParse:
    def test_plain_name(self):
        req = InstallRequest.parse("curl")
        assert req.package_name == "curl"
        assert req.snap_alias is None
        assert req.version_constraint is None
        assert req.dry_run is False

    def test_snap_alias(self):
        req = InstallRequest.parse("vscode:code")
        assert req.package_name == "vscode"
        assert req.snap_alias == "code"

    def test_constraint(self):
        req = InstallRequest.parse("node@>=18")
        assert req.package_name == "node"
        assert req.version_constraint == ">=18"

    def test_alias_and_constraint(self):
        req = InstallRequest.parse("go:go@~=1.22", dry_run=True)
        assert (req.package_name, req.snap_alias, req.version_constraint) == ("go", "go", "~=1.22")
        assert req.dry_run is True

    @pytest.mark.parametrize("token", ["", ":code", "vscode:", "node@", "bad name", "-rf", "x@latest"])
    def test_invalid_tokens(self, token):
        with pytest.raises(ValueError):
            InstallRequest.parse(token)

    def test_request_is_frozen(self):
        req = InstallRequest.parse("curl")
        with pytest.raises(ValidationError):
            req.package_name = "wget"


class TestStrategyPlan:
    def test_empty_plan_rejected(self):
        with pytest.raises(ValidationError):
            StrategyPlan(request=InstallRequest.parse("curl"), binary="curl", strategies=[])

    def test_managers_in_order(self):
        plan = StrategyPlan(
            request=InstallRequest.parse("vlc"),
            binary="vlc",
            strategies=[
                Strategy(manager=ManagerName.SNAP, package="vlc", command=["snap", "install", "vlc"]),
                Strategy(manager=ManagerName.APT, package="vlc", command=["apt-get", "install", "-y", "vlc"]),
            ],
        )
        assert plan.managers == [ManagerName.SNAP, ManagerName.APT]


class TestCapabilitySet:
    def test_unknown_manager_unavailable(self):
        caps = CapabilitySet.from_flags(apt=True)
        assert caps.is_available("apt")
        assert not caps.is_available("snap")
        assert not caps.is_available("flatpak")

    def test_from_flags_snap_supports_classic(self):
        caps = CapabilitySet.from_flags(snap=True)
        assert caps.get("snap").metadata == {"classic": True}


class TestInstallResult:
    def test_status_line_with_strategy(self):
        result = InstallResult.installed("vscode", ManagerName.SNAP)
        assert result.status_line() == "vscode: Installed via snap"

    def test_status_line_without_strategy(self):
        assert InstallResult.already_present("curl").status_line() == "curl: AlreadyPresent"

    def test_failure_carries_detail(self):
        err = ErrorDetail(kind=ErrorKind.NO_MANAGER_AVAILABLE, message="nothing")
        result = InstallResult.failure("ghost", err)
        assert result.failed
        assert result.status_line() == "ghost: Failed"
        assert result.error_detail.kind == ErrorKind.NO_MANAGER_AVAILABLE

    def test_stderr_tail_bounded(self):
        err = ErrorDetail.from_output(
            ErrorKind.EXECUTION_FAILURE, "boom", stderr="x" * 5000 + "END",
        )
        assert len(err.stderr) == 2000
        assert err.stderr.endswith("END")


class TestRunReport:
    def _report(self, *statuses: InstallStatus) -> RunReport:
        results = []
        for i, status in enumerate(statuses):
            if status == InstallStatus.FAILED:
                results.append(InstallResult.failure(
                    f"p{i}", ErrorDetail(kind=ErrorKind.EXECUTION_FAILURE, message="x"),
                ))
            else:
                results.append(InstallResult(package_name=f"p{i}", status=status))
        return RunReport(
            environment=Environment(kind=EnvironmentKind.NATIVE_HEADLESS, kernel_release="6.8.0"),
            results=results,
        )

    def test_all_ok_exit_zero(self):
        report = self._report(InstallStatus.INSTALLED, InstallStatus.ALREADY_PRESENT, InstallStatus.SKIPPED)
        assert report.all_ok
        assert report.exit_code == 0

    def test_any_failure_exit_one(self):
        report = self._report(InstallStatus.INSTALLED, InstallStatus.FAILED)
        assert report.exit_code == 1
        assert report.failed == 1
        assert report.installed == 1

    def test_to_dict(self):
        data = self._report(InstallStatus.SKIPPED).to_dict()
        assert data["environment"]["kind"] == "native_headless"
        assert data["skipped"] == 1
        assert data["results"][0]["status"] == "Skipped"
