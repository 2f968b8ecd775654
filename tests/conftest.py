"""
Shared test fixtures and configuration.

No test may reach a real package manager: the subprocess runner's
``subprocess.run`` and the PATH lookups are patched per test.
"""

import os
import shutil
import subprocess
import time
from pathlib import Path

import pytest

from orchestrate_install.core.config.loader import Settings
from orchestrate_install.core.models import (
    CapabilitySet,
    DesktopFlavor,
    Environment,
    EnvironmentKind,
    InitSystem,
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path):
    """Keep ORCH_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("ORCH_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))


@pytest.fixture
def tmp_cache_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for cache files."""
    cache_dir = tmp_path / "cache"
    cache_dir.mkdir()
    return cache_dir


@pytest.fixture
def settings(tmp_cache_dir: Path) -> Settings:
    return Settings(cache_dir=tmp_cache_dir, refresh_indexes=False)


@pytest.fixture
def desktop_env() -> Environment:
    return Environment(
        kind=EnvironmentKind.NATIVE_DESKTOP,
        desktop_flavor=DesktopFlavor.GNOME,
        init_system=InitSystem.SYSTEMD,
        kernel_release="6.8.0-45-generic",
    )


@pytest.fixture
def wsl_env() -> Environment:
    return Environment(
        kind=EnvironmentKind.WSL2,
        init_system=InitSystem.OTHER,
        kernel_release="5.15.167.4-microsoft-standard-WSL2",
        wsl_version=2,
    )


@pytest.fixture
def all_managers() -> CapabilitySet:
    return CapabilitySet.from_flags(apt=True, snap=True, manual=True)


# ── Fake host ─────────────────────────────────────────────────


class FakeSystem:
    """Stands in for PATH, uid and every subprocess the installer spawns.

    ``outcomes`` maps a manager name to ``"ok"``, ``"fail"`` or
    ``"timeout"`` for its install command (default ``"ok"``), or to a
    list of those consumed one per attempt (the last one repeats).
    ``fail_codes`` sets the exit status of a failure (default 100).
    ``update_failures`` makes that many ``apt-get update`` runs fail.
    ``installed`` maps binaries already on PATH to their version. curl,
    which the manual strategy needs, starts off PATH.
    """

    def __init__(self, environment: Environment):
        self.environment = environment
        self.on_path = {"apt-get", "snap", "sudo"}
        self.installed: dict[str, str] = {}
        self.outcomes: dict[str, str | list[str]] = {}
        self.fail_codes: dict[str, int] = {}
        self.update_failures = 0
        self.sleeps: list[float] = []
        self.calls: list[list[str]] = []
        self.classify_calls = 0
        self.root = False

    # PATH / uid
    def which(self, name):
        if name in self.on_path or name in self.installed:
            return f"/usr/bin/{name}"
        return None

    def geteuid(self):
        return 0 if self.root else 1000

    def classify(self, environ=None):
        self.classify_calls += 1
        return self.environment

    # subprocess
    @staticmethod
    def _strip_sudo(argv: list[str]) -> list[str]:
        cmd = list(argv)
        if cmd[:2] == ["sudo", "-n"]:
            cmd = cmd[2:]
            if cmd and cmd[0] == "env":
                cmd = cmd[1:]
                while cmd and "=" in cmd[0]:
                    cmd = cmd[1:]
        return cmd

    def install_calls(self) -> list[list[str]]:
        return [
            c for c in self.calls
            if "install" in self._strip_sudo(c)[:2] and "-f" not in c
        ]

    def repair_calls(self) -> list[list[str]]:
        return [c for c in self.calls if self._strip_sudo(c)[:3] == ["apt-get", "install", "-f"]]

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def _next_outcome(self, manager: str) -> str:
        outcome = self.outcomes.get(manager, "ok")
        if isinstance(outcome, list):
            return outcome.pop(0) if len(outcome) > 1 else outcome[0]
        return outcome

    def run(self, argv, **kwargs):
        self.calls.append(list(argv))
        cmd = self._strip_sudo(argv)

        def done(rc=0, out="", err=""):
            return subprocess.CompletedProcess(argv, rc, out, err)

        if cmd[0] == "dpkg-query" or cmd[:2] == ["snap", "list"]:
            return done(1, err="not installed")
        if cmd[1:] == ["--version"] and cmd[0] in self.installed:
            return done(out=f"{cmd[0]} version {self.installed[cmd[0]]}\n")
        if cmd in (["apt-get", "--version"], ["snap", "version"], ["curl", "--version"]):
            return done(out=f"{cmd[0]} 1.0\n")
        if cmd[:2] == ["apt-get", "update"]:
            if self.update_failures:
                self.update_failures -= 1
                return done(100, err="E: Failed to fetch http://archive.ubuntu.com")
            return done()
        if cmd[:3] == ["apt-get", "install", "-f"]:
            return done()

        manager = {"apt-get": "apt", "snap": "snap"}.get(cmd[0], "manual")
        outcome = self._next_outcome(manager)
        if outcome == "timeout":
            raise subprocess.TimeoutExpired(argv, kwargs.get("timeout"))
        if outcome == "fail":
            return done(self.fail_codes.get(manager, 100), err=f"E: {manager} install failed")
        return done(out="done\n")


@pytest.fixture
def fake_system(monkeypatch, tmp_path: Path, desktop_env) -> FakeSystem:
    from orchestrate_install.core.services.installer.detection import capabilities
    from orchestrate_install.core.services.installer.orchestration import orchestrator

    fake = FakeSystem(desktop_env)
    snap_root = tmp_path / "snap"
    snap_root.mkdir()

    monkeypatch.setattr(shutil, "which", fake.which)
    monkeypatch.setattr(subprocess, "run", fake.run)
    monkeypatch.setattr(os, "geteuid", fake.geteuid)
    monkeypatch.setattr(time, "sleep", fake.sleep)
    monkeypatch.setattr(orchestrator, "classify", fake.classify)
    monkeypatch.setattr(capabilities, "_SNAP_ROOT", snap_root)
    return fake
