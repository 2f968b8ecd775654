"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called. Strategy
attempts go through ``run_command`` (raises on failure); read-only
probes go through ``run_query`` (never raises).
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Any

from orchestrate_install.core.errors import ExecutionFailure, ExecutionTimeout

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 2000

# Exit status a shell reports for "command not found"
_EXIT_NOT_FOUND = 127


def is_root() -> bool:
    """Whether this process already runs with uid 0."""
    return os.geteuid() == 0


def _tail(text: str | bytes | None) -> str:
    if not text:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    return text[-_OUTPUT_TAIL:]


def build_argv(
    cmd: list[str],
    *,
    needs_sudo: bool = False,
    env_overrides: dict[str, str] | None = None,
) -> list[str]:
    """Final argv for a strategy command.

    Root-requiring commands get ``sudo -n`` (never prompts) unless we
    are already root. sudo resets the environment, so overrides are
    passed through ``env`` on the command line.
    """
    if not needs_sudo or is_root():
        return list(cmd)
    argv = ["sudo", "-n"]
    if env_overrides:
        argv.append("env")
        argv.extend(f"{key}={value}" for key, value in env_overrides.items())
    return argv + list(cmd)


def run_command(
    cmd: list[str],
    *,
    needs_sudo: bool = False,
    timeout: int = 600,
    env_overrides: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Run one strategy command to completion.

    Output is captured, never streamed to the caller's terminal.

    Args:
        cmd: Command list for ``subprocess.run()``.
        needs_sudo: Whether the command requires root.
        timeout: Seconds before the attempt is abandoned.
        env_overrides: Extra env vars (e.g. ``DEBIAN_FRONTEND``).

    Returns:
        ``{"ok": True, "stdout": "...", "elapsed_ms": N}``.

    Raises:
        ExecutionTimeout: The command exceeded ``timeout``.
        ExecutionFailure: Non-zero exit, or the command could not be spawned.
    """
    argv = build_argv(cmd, needs_sudo=needs_sudo, env_overrides=env_overrides)

    env = os.environ.copy()
    if env_overrides:
        env.update(env_overrides)

    logger.info("Running: %s", " ".join(argv))
    start = time.monotonic()
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            stdin=subprocess.DEVNULL,
            env=env,
        )
    except subprocess.TimeoutExpired as e:
        raise ExecutionTimeout(
            f"Command timed out ({timeout}s)",
            stderr=_tail(e.stderr),
            stdout=_tail(e.stdout),
        ) from e
    except FileNotFoundError as e:
        raise ExecutionFailure(
            f"Command not found: {argv[0]}",
            exit_code=_EXIT_NOT_FOUND,
            stderr=str(e),
        ) from e
    except OSError as e:
        raise ExecutionFailure(f"Cannot run {argv[0]}: {e}", stderr=str(e)) from e

    elapsed_ms = int((time.monotonic() - start) * 1000)

    if result.returncode != 0:
        logger.debug("Exit %d after %dms: %s", result.returncode, elapsed_ms, argv)
        raise ExecutionFailure(
            f"Command failed (exit {result.returncode})",
            exit_code=result.returncode,
            stderr=_tail(result.stderr),
            stdout=_tail(result.stdout),
        )

    return {
        "ok": True,
        "stdout": _tail(result.stdout),
        "elapsed_ms": elapsed_ms,
    }


def run_query(cmd: list[str], *, timeout: int = 5) -> dict[str, Any]:
    """Run a read-only probe command.

    Never raises: a missing binary, a timeout or an OS error are all
    reported as ``{"ok": False, ...}``.

    Returns:
        ``{"ok": bool, "returncode": int | None, "stdout": "...", "error": "..."}``
    """
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            stdin=subprocess.DEVNULL,
        )
    except FileNotFoundError:
        return {"ok": False, "returncode": None, "stdout": "", "error": "not found"}
    except subprocess.TimeoutExpired:
        logger.info("Timeout (%ss) running probe: %s", timeout, " ".join(cmd))
        return {"ok": False, "returncode": None, "stdout": "", "error": "timeout"}
    except OSError as exc:
        logger.info("OS error running probe %s: %s", " ".join(cmd), exc)
        return {"ok": False, "returncode": None, "stdout": "", "error": str(exc)}

    return {
        "ok": result.returncode == 0,
        "returncode": result.returncode,
        "stdout": result.stdout or "",
        "error": "" if result.returncode == 0 else _tail(result.stderr),
    }
