"""
dotstrap — CLI entrypoint.

Usage:
    dotstrap --help
    dotstrap bootstrap --dry-run
    dotstrap bootstrap --skip-full-install
    dotstrap detect
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from dotstrap import __version__
from dotstrap.core.observability.logging_config import (
    LOG_FILE_ENV,
    LOG_FILE_LEVEL_ENV,
    resolve_level,
    setup_logging,
)


class BootstrapGroup(click.Group):
    """Command group whose usage errors exit with 1 instead of click's 2."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as e:
            e.exit_code = 1
            raise

    def invoke(self, ctx):
        # Subcommand parsing happens in here
        try:
            return super().invoke(ctx)
        except click.UsageError as e:
            e.exit_code = 1
            raise


@click.group(cls=BootstrapGroup)
@click.version_option(version=__version__, prog_name="dotstrap")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to bootstrap.yml (default: $DOTSTRAP_CONFIG or ~/.config/dotstrap/bootstrap.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """dotstrap — bootstrap a workstation from zero."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet, environ=os.environ),
        log_file=os.environ.get(LOG_FILE_ENV),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_ENV),
        quiet_third_party=not debug,
    )


# ── bootstrap ───────────────────────────────────────────────────────

_STATUS_STYLE = {
    "ok": ("✓", "green"),
    "skipped": ("⊘", "yellow"),
    "failed": ("✗", "red"),
}


def _print_phase_event(verbose: bool):
    """Build the runner listener that prints banners and outcome lines."""

    def listener(event, phase, result):
        if event == "started":
            click.secho(f"\n▶ Phase {phase.ordinal}: {phase.title}", fg="cyan", bold=True)
            return

        marker, color = _STATUS_STYLE.get(result.status.value, ("•", "white"))
        if result.failed and not phase.fatal:
            color = "yellow"
        click.secho(f"   {marker} {result.message or result.status.value}", fg=color)
        for action in result.actions if verbose else []:
            click.echo(f"     │ {action}")
        for warning in result.warnings:
            click.secho(f"     ⚠ {warning}", fg="yellow")

    return listener


@cli.command()
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes.")
@click.option(
    "--skip-full-install",
    "--skip-brew-bundle",
    "skip_full_install",
    is_flag=True,
    help="Skip the long full package install (Brewfile / package list).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the run report as JSON.")
@click.option("--mock", is_flag=True, help="Use mock adapters (no host changes, everything succeeds).")
@click.pass_context
def bootstrap(
    ctx: click.Context,
    dry_run: bool,
    skip_full_install: bool,
    as_json: bool,
    mock: bool,
) -> None:
    """Bootstrap this machine: packages, dotfiles, runtimes, shell.

    Every phase checks current state first, so running it again is safe.

    Examples:

        dotstrap bootstrap

        dotstrap bootstrap --dry-run

        dotstrap bootstrap --skip-brew-bundle
    """
    from dotstrap.core.models.run import RunConfig
    from dotstrap.core.use_cases.bootstrap import run_bootstrap

    quiet = ctx.obj.get("quiet", False)
    config = RunConfig(dry_run=dry_run, skip_full_install=skip_full_install)

    if not as_json and not quiet:
        mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
        click.secho(f"\n🚀 {mode_label}dotstrap {__version__}", fg="cyan", bold=True)
        if dry_run:
            click.secho("   DRY RUN MODE — no changes will be made", fg="yellow")

    listener = None if as_json or quiet else _print_phase_event(ctx.obj.get("verbose", False))
    result = run_bootstrap(
        config,
        config_path=ctx.obj.get("config_path"),
        listener=listener,
        mock_mode=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.exit_code:
            sys.exit(result.exit_code)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None

    if report.halted:
        failed = report.get(report.halted_at or "")
        click.echo()
        click.secho(f"❌ Fatal failure in phase '{report.halted_at}'", fg="red", bold=True)
        if failed is not None:
            click.echo(f"   {failed.message}")
            if failed.failed_command:
                click.echo(f"   Command: {failed.failed_command}")
        sys.exit(report.exit_code)

    summary = report.get("summary")
    steps = summary.details.get("manual_steps", []) if summary else []
    if steps and not quiet:
        click.echo()
        click.secho("   Remaining manual steps:", fg="white", bold=True)
        for step in steps:
            click.echo(f"     -> {step}")

    click.echo()
    color = "yellow" if report.failed or report.warning_count else "green"
    click.secho(
        f"   Result: {report.succeeded} ok, {report.skipped} skipped, "
        f"{report.failed} failed, {report.warning_count} warnings",
        fg=color,
        bold=True,
    )
    click.echo()


# ── detect ──────────────────────────────────────────────────────────

@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def detect(as_json: bool) -> None:
    """Show the detected platform profile."""
    from dotstrap.core.use_cases.inspection import run_detect

    result = run_detect()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    profile = result.profile
    assert profile is not None
    click.secho(f"\n🖥  {profile.distro_name}", fg="cyan", bold=True)
    click.echo(f"   OS:              {profile.os.value}")
    click.echo(f"   Distro:          {profile.distro.value}")
    click.echo(f"   Package manager: {profile.package_manager.value}")
    click.echo(f"   Prefix:          {profile.arch_prefix}")
    click.echo(f"   Architecture:    {profile.machine}")
    click.echo()


# ── manifest ────────────────────────────────────────────────────────

@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def manifest(ctx: click.Context, as_json: bool) -> None:
    """Show the runtime versions and packages the manifests declare."""
    from dotstrap.core.use_cases.inspection import run_manifest

    result = run_manifest(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n📄 {result.tool_versions_path}", fg="cyan", bold=True)
    if result.tool_versions is None:
        click.secho("   (not found)", fg="yellow")
    elif not result.tool_versions:
        click.echo("   (no versions declared)")
    for spec in result.tool_versions or []:
        click.echo(f"   • {spec.tool_name:<12} {spec.requested_version}")

    for name, entries in result.line_manifests.items():
        click.echo()
        click.secho(f"   {name}:", fg="white", bold=True)
        if entries is None:
            click.secho("     (not found)", fg="yellow")
            continue
        for entry in entries:
            click.echo(f"     • {entry}")
    click.echo()


# ── phases ──────────────────────────────────────────────────────────

@cli.command()
def phases() -> None:
    """List the bootstrap phases in execution order."""
    from dotstrap.core.phases import build_phases

    click.echo()
    for phase in build_phases():
        flags = []
        if phase.fatal:
            flags.append("fatal")
        if not phase.mutating:
            flags.append("runs in dry-run")
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        click.echo(f"   {phase.ordinal:>2}  {phase.name:<20} {phase.title}{suffix}")
    click.echo()


if __name__ == "__main__":
    cli()
