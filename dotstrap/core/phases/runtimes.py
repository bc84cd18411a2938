"""
Runtimes phase — asdf, its plugins, and the versions in ~/.tool-versions.

Order matters:
    1. asdf itself (Homebrew formula on macOS, pinned git checkout on Linux)
    2. build dependencies for compiling runtimes (apt only)
    3. ASDF_DIR / PATH exported to every later command
    4. plugins: add if missing, update if present
    5. one ``asdf install <tool> <version>`` per manifest pair not yet installed,
       in manifest order
    6. bundler parallelism
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from dotstrap.core.config.manifests import read_tool_versions
from dotstrap.core.config.settings import AsdfPlugin
from dotstrap.core.engine.context import PhaseContext
from dotstrap.core.models.manifest import ToolVersionSpec
from dotstrap.core.models.run import PhaseResult
from dotstrap.core.phases.packaging import ensure_packages

logger = logging.getLogger(__name__)


def runtimes(ctx: PhaseContext) -> PhaseResult:
    asdf_dir = ctx.path(ctx.settings.asdf.dir)

    _install_asdf(ctx, asdf_dir)
    _install_build_deps(ctx)
    _export_asdf_env(ctx, asdf_dir)

    manifest = ctx.path(ctx.settings.tool_versions)
    specs = read_tool_versions(manifest)
    if specs is None:
        ctx.warn(f"{manifest} not found — no runtime versions to install")
        specs = []

    broken_plugins = _ensure_plugins(ctx, specs)
    installed, planned, failed = _install_versions(ctx, specs, broken_plugins)
    _configure_bundler(ctx)

    details = {
        "manifest": str(manifest),
        "versions": [str(s) for s in specs],
        "installed": installed,
        "planned": planned,
        "failed": failed,
    }

    if failed and not installed and not planned:
        return ctx.fail(
            f"All {len(failed)} runtime installs failed: {' '.join(failed)}",
            command=ctx.last_command,
            **details,
        )
    if planned:
        return ctx.done(f"Would install {len(planned)} runtime versions: {', '.join(planned)}", **details)
    if installed:
        message = f"Installed {len(installed)} runtime versions: {', '.join(installed)}"
        if failed:
            message += f" ({len(failed)} failed)"
        return ctx.done(message, **details)
    return ctx.done(f"asdf and {len(specs)} runtime versions already installed", **details)


# ── asdf itself ─────────────────────────────────────────────────────

def _install_asdf(ctx: PhaseContext, asdf_dir: Path) -> None:
    asdf = ctx.settings.asdf

    if ctx.profile.is_macos:
        listing = ctx.probe(["brew", "list", "--versions", "asdf"])
        if listing.ok and listing.output.strip():
            ctx.info("asdf already installed via Homebrew")
            return
        ctx.require(ctx.run(["brew", "install", "asdf"]), "Could not install asdf")
        return

    if asdf_dir.is_dir():
        ctx.info("asdf already installed at %s", asdf_dir)
        return
    ctx.require(
        ctx.git_clone(asdf.git_url, asdf_dir, branch=asdf.version),
        "Could not clone asdf",
    )


def _install_build_deps(ctx: PhaseContext) -> None:
    deps = ctx.settings.asdf.build_deps.get(ctx.profile.package_manager.value, [])
    if deps:
        ensure_packages(ctx, deps)


def _export_asdf_env(ctx: PhaseContext, asdf_dir: Path) -> None:
    run = ctx.run_ctx
    if ctx.profile.is_linux:
        run.env_overrides["ASDF_DIR"] = str(asdf_dir)
        run.add_path(asdf_dir / "bin")
    run.add_path(asdf_dir / "shims")


# ── Plugins ─────────────────────────────────────────────────────────

def _wanted_plugins(ctx: PhaseContext, specs: list[ToolVersionSpec]) -> list[AsdfPlugin]:
    """Declared plugins first, then any manifest tool without one."""
    plugins = list(ctx.settings.asdf.plugins)
    names = {p.name for p in plugins}
    for spec in specs:
        if spec.tool_name not in names:
            names.add(spec.tool_name)
            plugins.append(AsdfPlugin(name=spec.tool_name))
    return plugins


def _ensure_plugins(ctx: PhaseContext, specs: list[ToolVersionSpec]) -> set[str]:
    """Add missing plugins, update present ones.

    Returns:
        Names of plugins that could not be added.
    """
    listing = ctx.probe(["asdf", "plugin", "list"])
    present = set(listing.output.split()) if listing.ok else set()

    broken: set[str] = set()
    for plugin in _wanted_plugins(ctx, specs):
        if plugin.name in present:
            receipt = ctx.run(["asdf", "plugin", "update", plugin.name], kind="refresh")
            if receipt.failed:
                ctx.warn(f"Could not update asdf plugin {plugin.name}: {receipt.error}")
            continue

        command = ["asdf", "plugin", "add", plugin.name]
        if plugin.url:
            command.append(plugin.url)
        receipt = ctx.run(command)
        if receipt.failed:
            broken.add(plugin.name)
            ctx.warn(f"Could not add asdf plugin {plugin.name}: {receipt.error}")
    return broken


# ── Versions ────────────────────────────────────────────────────────

def installed_versions(ctx: PhaseContext, tool: str) -> set[str]:
    """Versions ``asdf list <tool>`` reports (current marker stripped)."""
    receipt = ctx.probe(["asdf", "list", tool])
    if not receipt.ok:
        return set()
    versions = set()
    for line in receipt.output.splitlines():
        version = line.strip().lstrip("*").strip()
        if version:
            versions.add(version)
    return versions


def _install_versions(
    ctx: PhaseContext,
    specs: list[ToolVersionSpec],
    broken_plugins: set[str],
) -> tuple[list[str], list[str], list[str]]:
    tool_env = ctx.settings.asdf.tool_env
    installed: list[str] = []
    planned: list[str] = []
    failed: list[str] = []
    known: dict[str, set[str]] = {}

    for spec in specs:
        label = str(spec)
        if spec.tool_name in broken_plugins:
            failed.append(label)
            ctx.warn(f"Skipping {label}: plugin {spec.tool_name} is not installed")
            continue

        if spec.tool_name not in known:
            known[spec.tool_name] = installed_versions(ctx, spec.tool_name)
        if spec.requested_version in known[spec.tool_name]:
            ctx.info("%s already installed", label)
            continue

        receipt = ctx.run(
            ["asdf", "install", spec.tool_name, spec.requested_version],
            env=tool_env.get(spec.tool_name),
        )
        if receipt.skipped:
            planned.append(label)
        elif receipt.ok:
            installed.append(label)
            known[spec.tool_name].add(spec.requested_version)
        else:
            failed.append(label)
            ctx.warn(f"Could not install {label}: {receipt.error}")

    return installed, planned, failed


# ── Bundler ─────────────────────────────────────────────────────────

def _bundle_jobs(ctx: PhaseContext) -> int:
    cpus = ctx.run_ctx.cpu_count() or 2
    return max(1, cpus - 1)


def _configured_bundle_jobs(path: Path) -> str | None:
    if not path.is_file():
        return None
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.debug("Cannot read %s: %s", path, e)
        return None
    if not isinstance(data, dict) or data.get("BUNDLE_JOBS") is None:
        return None
    return str(data["BUNDLE_JOBS"])


def _configure_bundler(ctx: PhaseContext) -> None:
    jobs = str(_bundle_jobs(ctx))
    if _configured_bundle_jobs(ctx.path(ctx.settings.bundle_config)) == jobs:
        ctx.info("Bundler already configured with %s jobs", jobs)
        return
    if not ctx.command_exists("bundle"):
        ctx.info("bundle not on PATH — skipping bundler configuration")
        return
    receipt = ctx.run(["bundle", "config", "--global", "jobs", jobs])
    if receipt.failed:
        ctx.warn(f"Could not configure bundler jobs: {receipt.error}")
