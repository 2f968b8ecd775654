"""
orchestrate-install — CLI entrypoint.

Usage:
    orchestrate-install --help
    orchestrate-install curl jq vscode
    orchestrate-install spotify:spotify --dry-run
    orchestrate-install node@>=18 --json
    orchestrate-install --show-env

Exit codes:
    0    every request Installed / AlreadyPresent / Skipped
    1    one or more requests Failed, or the host could not be classified
    2    invalid arguments or configuration
    127  a dependency of the orchestrator itself (sudo) is missing
"""

from __future__ import annotations

import json
import sys

import click

from orchestrate_install import __version__
from orchestrate_install.core.config.loader import ConfigError, load_catalog, load_settings
from orchestrate_install.core.errors import ClassificationError, MissingDependencyError
from orchestrate_install.core.models import InstallRequest, RunReport
from orchestrate_install.core.observability.logging_config import resolve_level, setup_logging
from orchestrate_install.core.services.installer import Orchestrator
from orchestrate_install.core.services.result_cache import ResultCache

EXIT_MISSING_DEPENDENCY = 127


def _emit_error(payload: dict) -> None:
    """One JSON object on stderr."""
    click.echo(json.dumps(payload, sort_keys=True), err=True)


def _parse_requests(tokens: tuple[str, ...], dry_run: bool) -> list[InstallRequest]:
    requests: list[InstallRequest] = []
    for token in tokens:
        try:
            requests.append(InstallRequest.parse(token, dry_run=dry_run))
        except ValueError as e:
            raise click.BadParameter(
                f"{token!r}: {e}", param_hint="PACKAGES",
            ) from e
    return requests


def _print_environment(report: RunReport, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    env = report.environment
    click.secho("Environment", bold=True)
    if env is None:
        click.echo("   (not classified)")
        return
    click.echo(f"   kind:     {env.kind}")
    if env.wsl_version is not None:
        click.echo(f"   wsl:      {env.wsl_version}")
    click.echo(f"   desktop:  {env.desktop_flavor}")
    click.echo(f"   init:     {env.init_system}")
    click.echo(f"   kernel:   {env.kernel_release}")
    if env.distro_id:
        click.echo(f"   distro:   {env.distro_id} {env.distro_version}".rstrip())

    click.echo()
    click.secho("Managers", bold=True)
    caps = report.capabilities
    if caps is None:
        return
    for name, cap in caps.managers.items():
        if cap.available:
            click.echo(f"   ✓ {name:<7} {cap.version or ''}".rstrip())
        else:
            click.secho(f"   ✗ {name:<7} {cap.reason or 'unavailable'}", fg="yellow")


def _print_report(report: RunReport, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        for result in report.results:
            click.echo(result.status_line())

    for result in report.results:
        if result.failed:
            _emit_error({
                "package": result.package_name,
                "status": result.status.value,
                "error": (
                    result.error_detail.model_dump(mode="json")
                    if result.error_detail else None
                ),
            })


@click.command()
@click.version_option(version=__version__, prog_name="orchestrate-install")
@click.argument("packages", nargs=-1, metavar="PACKAGE[:SNAP][@CONSTRAINT]...")
@click.option("--dry-run", is_flag=True, help="Resolve and report, install nothing.")
@click.option(
    "--timeout",
    type=click.IntRange(min=1),
    default=None,
    help="Seconds allowed per strategy attempt (default: ORCH_STRATEGY_TIMEOUT or 600).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--no-cache", is_flag=True, help="Ignore the on-disk discovery cache.")
@click.option("--show-env", is_flag=True, help="Show environment and managers, then exit.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
def cli(
    packages: tuple[str, ...],
    dry_run: bool,
    timeout: int | None,
    as_json: bool,
    no_cache: bool,
    show_env: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Install packages with the right manager for this host (apt, snap, manual)."""
    try:
        settings = load_settings()
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    # ── Logging setup (once, at process start) ──────────────────
    debug = debug or settings.debug
    try:
        setup_logging(
            level=resolve_level(debug=debug, verbose=verbose, env_level=settings.log_level),
            log_file=settings.log_file,
            quiet_third_party=not debug,
        )
    except OSError as e:
        raise click.UsageError(f"Cannot open ORCH_LOG_FILE {settings.log_file!r}: {e}") from e

    if timeout is not None:
        settings = settings.model_copy(update={"strategy_timeout": timeout})

    catalog: dict[str, dict] = {}
    if settings.catalog_path:
        try:
            catalog = load_catalog(settings.catalog_path)
        except ConfigError as e:
            raise click.UsageError(str(e)) from e

    if not packages and not show_env:
        raise click.UsageError("No packages given.")

    # --show-env ignores package arguments
    requests = [] if show_env else _parse_requests(packages, dry_run)

    cache = ResultCache(None if no_cache else settings.cache_dir)
    orchestrator = Orchestrator(settings, cache=cache, catalog=catalog)

    try:
        if show_env:
            _print_environment(orchestrator.environment_report(), as_json)
            return
        report = orchestrator.run(requests)
    except ClassificationError as e:
        _emit_error({"error": "classification_error", "message": str(e)})
        sys.exit(1)
    except MissingDependencyError as e:
        _emit_error({
            "error": "missing_dependency",
            "dependency": e.dependency,
            "message": str(e),
        })
        sys.exit(EXIT_MISSING_DEPENDENCY)

    _print_report(report, as_json)
    sys.exit(report.exit_code)


if __name__ == "__main__":
    cli()
