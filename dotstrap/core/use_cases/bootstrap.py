"""
Bootstrap use case — detect, configure, run every phase.

The full vertical slice from the ``bootstrap`` command to a RunReport:
resolve settings, detect the platform, build the adapter registry, run
the phase list. Configuration and platform errors are reported before
any phase runs, so nothing on the host is touched.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from dotstrap.adapters.registry import AdapterRegistry
from dotstrap.core.config.loader import find_settings_file, load_settings
from dotstrap.core.config.settings import BootstrapSettings
from dotstrap.core.detection.platform import detect
from dotstrap.core.engine.context import RunContext
from dotstrap.core.engine.runner import Listener, Phase, run_all
from dotstrap.core.errors import ConfigError, UnsupportedPlatformError
from dotstrap.core.models.platform import PlatformProfile
from dotstrap.core.models.run import RunConfig, RunReport
from dotstrap.core.phases import build_phases

logger = logging.getLogger(__name__)


@dataclass
class BootstrapResult:
    """Result of a bootstrap run."""

    report: RunReport | None = None
    profile: PlatformProfile | None = None
    settings: BootstrapSettings | None = None
    settings_path: Path | None = None
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error:
            return 1
        return self.report.exit_code if self.report else 0

    def to_dict(self) -> dict:
        result: dict = {"exit_code": self.exit_code}
        if self.error:
            result["error"] = self.error
            return result

        result["settings_path"] = str(self.settings_path) if self.settings_path else None
        if self.profile:
            result["platform"] = self.profile.to_dict()
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def build_registry(mock_mode: bool = False) -> AdapterRegistry:
    """Registry with the adapters the phases use."""
    from dotstrap.adapters.shell.command import ShellCommandAdapter
    from dotstrap.adapters.shell.filesystem import FilesystemAdapter
    from dotstrap.adapters.vcs.git import GitAdapter

    registry = AdapterRegistry(mock_mode=mock_mode)
    registry.register(ShellCommandAdapter())
    registry.register(FilesystemAdapter())
    registry.register(GitAdapter())
    return registry


def run_bootstrap(
    config: RunConfig,
    config_path: Path | None = None,
    home: Path | None = None,
    environ: Mapping[str, str] | None = None,
    registry: AdapterRegistry | None = None,
    profile: PlatformProfile | None = None,
    phases: list[Phase] | None = None,
    listener: Listener | None = None,
    sleep: Callable[[float], None] = time.sleep,
    cpu_count: Callable[[], int | None] = os.cpu_count,
    mock_mode: bool = False,
) -> BootstrapResult:
    """Run the whole bootstrap.

    Args:
        config: Invocation options (dry-run, skip flags).
        config_path: Explicit settings file (``--config``).
        home: Home directory to bootstrap. Defaults to the real one.
        environ: Process environment. Defaults to ``os.environ``.
        registry: Pre-configured adapter registry (tests inject one).
        profile: Pre-detected platform (tests inject one).
        phases: Phase list override. Defaults to the full catalogue.
        listener: Progress callback, see ``engine.runner.run_all``.
        sleep: Used while polling for the Xcode CLI tools installer.
        cpu_count: Used for bundler parallelism.
        mock_mode: Every adapter call succeeds without touching the host.

    Returns:
        BootstrapResult; ``error`` is set when the run could not start.
    """
    result = BootstrapResult()
    home = home or Path.home()
    env = dict(environ if environ is not None else os.environ)

    # ── Settings ─────────────────────────────────────────────────
    try:
        result.settings_path = find_settings_file(config_path, environ=env, home=home)
        result.settings = load_settings(result.settings_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    # ── Platform ─────────────────────────────────────────────────
    try:
        result.profile = profile or detect()
    except UnsupportedPlatformError as e:
        result.error = str(e)
        return result

    # ── Run ──────────────────────────────────────────────────────
    if registry is None:
        registry = build_registry(mock_mode=mock_mode)

    run_ctx = RunContext(
        profile=result.profile,
        config=config,
        settings=result.settings,
        registry=registry,
        home=home,
        environ=env,
        sleep=sleep,
        cpu_count=cpu_count,
    )

    logger.info(
        "Bootstrapping %s (dry_run=%s, skip_full_install=%s)",
        result.profile.distro.value,
        config.dry_run,
        config.skip_full_install,
    )
    result.report = run_all(phases or build_phases(), run_ctx, listener=listener)
    return result
