"""
Test fixtures — a simulated workstation for end-to-end phase tests.

``SimulatedHost`` stands in for the shell and git adapters. It keeps an
in-memory model of the machine (installed packages, binaries on PATH,
asdf plugins and versions, login shell, Xcode/Rosetta state) and
answers the same probes the phases send to a real host. Files the
phases read (the dotfiles checkout, ~/.bundle/config, /etc/shells) are
written for real under a temporary home directory.

Every call is recorded, so tests can assert exactly which commands a
run issued:

    host = SimulatedHost.ubuntu(home)
    result = run_on(host, settings_file)
    assert host.ran(["asdf", "install", "lua", "5.1.5"])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from dotstrap.adapters.base import Adapter, ExecutionContext
from dotstrap.adapters.registry import AdapterRegistry
from dotstrap.adapters.shell.filesystem import FilesystemAdapter
from dotstrap.core.models.action import Receipt
from dotstrap.core.models.platform import Distro, OSName, PackageManager, PlatformProfile
from dotstrap.core.models.run import RunConfig
from dotstrap.core.use_cases.bootstrap import BootstrapResult, run_bootstrap

DEFAULT_REPO_FILES = {
    "setup.sh": "#!/usr/bin/env bash\necho 'linking dotfiles'\n",
    "packages/apt.txt": "ripgrep fd-find\n# terminal tools\ntmux  # multiplexer\n",
    "packages/pacman.txt": "ripgrep fd\ntmux\n",
}

TEST_USER = "tester"


@dataclass
class Call:
    """One adapter call the simulated host received."""

    adapter: str
    kind: str
    argv: list[str]
    sudo: bool = False
    env: dict[str, str] = field(default_factory=dict)
    input: str | None = None

    @property
    def line(self) -> str:
        return " ".join(self.argv)


class SimulatedHost:
    """In-memory model of a machine being bootstrapped."""

    def __init__(
        self,
        home: Path,
        os_name: OSName = OSName.LINUX,
        distro: Distro = Distro.UBUNTU,
        manager: PackageManager = PackageManager.APT,
        prefix: str = "/usr",
        machine: str = "x86_64",
    ):
        self.home = home
        self.os_name = os_name
        self.distro = distro
        self.manager = manager
        self.prefix = prefix
        self.machine = machine

        self.binaries: set[str] = {"/bin/sh", "/bin/bash"}
        if manager is PackageManager.APT:
            self.binaries.add("/usr/bin/apt-get")
        elif manager is PackageManager.PACMAN:
            self.binaries.add("/usr/bin/pacman")

        self.packages: set[str] = set()
        self.unavailable: set[str] = set()
        self.fail_on: list[list[str]] = []

        self.xcode_installed = False
        self.xcode_polls = 2
        self._xcode_pending: int | None = None
        self.rosetta = False
        self.brew_bundle_satisfied = False

        self.asdf_plugins: set[str] = set()
        self.asdf_versions: dict[str, list[str]] = {}
        self.gems: set[str] = set()
        self.npm_packages: set[str] = set()
        self.login_shell = "/bin/bash"

        self.repo_files = dict(DEFAULT_REPO_FILES)
        self.scripts_run: list[list[str]] = []
        self.calls: list[Call] = []

    # ── Factories ───────────────────────────────────────────────

    @classmethod
    def ubuntu(cls, home: Path) -> SimulatedHost:
        return cls(home)

    @classmethod
    def arch(cls, home: Path, distro: Distro = Distro.ARCH) -> SimulatedHost:
        return cls(home, distro=distro, manager=PackageManager.PACMAN)

    @classmethod
    def macos(cls, home: Path, machine: str = "arm64") -> SimulatedHost:
        prefix = "/opt/homebrew" if machine == "arm64" else "/usr/local"
        return cls(
            home,
            os_name=OSName.MACOS,
            distro=Distro.MACOS,
            manager=PackageManager.BREW,
            prefix=prefix,
            machine=machine,
        )

    @property
    def profile(self) -> PlatformProfile:
        return PlatformProfile(
            os=self.os_name,
            distro=self.distro,
            package_manager=self.manager,
            arch_prefix=self.prefix,
            machine=self.machine,
            distro_id=self.distro.value,
            distro_name=f"{self.distro.value} (simulated)",
        )

    def registry(self) -> AdapterRegistry:
        registry = AdapterRegistry()
        registry.register(_SimulatedShell(self))
        registry.register(_SimulatedGit(self))
        registry.register(_RecordingFilesystem(self))
        return registry

    # ── Call log queries ────────────────────────────────────────

    def ran(self, prefix: list[str]) -> list[Call]:
        """Calls whose argv starts with ``prefix`` (probes included)."""
        return [c for c in self.calls if c.argv[: len(prefix)] == prefix]

    def installs(self) -> list[Call]:
        return [c for c in self.calls if c.kind == "install"]

    def mutations(self) -> list[Call]:
        return [c for c in self.calls if c.kind in ("install", "refresh")]

    def executables(self) -> list[str]:
        """Every executable name the host was asked to run."""
        return [c.argv[0] for c in self.calls if c.adapter == "shell"]

    def reset_calls(self) -> None:
        self.calls.clear()
        self.scripts_run.clear()

    # ── Helpers ─────────────────────────────────────────────────

    @property
    def bin_dir(self) -> str:
        return f"{self.prefix}/bin"

    def which(self, name: str) -> str | None:
        if name.startswith("/"):
            return name if name in self.binaries else None
        for path in sorted(self.binaries):
            if path.rsplit("/", 1)[-1] == name:
                return path
        return None

    def has_asdf(self) -> bool:
        if self.os_name is OSName.MACOS:
            return "asdf" in self.packages
        return (self.home / ".asdf").is_dir()

    def record(self, adapter: str, ctx: ExecutionContext, argv: list[str]) -> None:
        params = ctx.params
        env = dict(ctx.env)
        env.update(params.get("env") or {})
        self.calls.append(Call(
            adapter=adapter,
            kind=ctx.action.kind,
            argv=list(argv),
            sudo=bool(params.get("sudo")),
            env=env,
            input=params.get("input"),
        ))

    def should_fail(self, argv: list[str]) -> bool:
        return any(argv[: len(prefix)] == prefix for prefix in self.fail_on)

    # ── Shell ───────────────────────────────────────────────────

    def shell(self, argv: list[str], params: dict) -> tuple[bool, str]:
        head, args = argv[0], argv[1:]

        if head == "sh" and args[:1] == ["-c"] and args[1].startswith("command -v "):
            found = self.which(args[1].split()[-1])
            return (True, found) if found else (False, "")

        handler = {
            "dpkg-query": self._dpkg_query,
            "pacman": self._pacman,
            "apt-get": self._apt_get,
            "brew": self._brew,
            "xcode-select": self._xcode_select,
            "pkgutil": self._pkgutil,
            "softwareupdate": self._softwareupdate,
            "/bin/bash": self._homebrew_installer,
            "asdf": self._asdf,
            "bundle": self._bundle,
            "gem": self._gem,
            "npm": self._npm,
            "bash": self._bash,
            "tee": self._tee,
            "chsh": self._chsh,
            "getent": self._getent,
            "dscl": self._dscl,
            "zsh": self._zsh,
        }.get(head)
        if handler is None:
            return False, f"simulated host: unknown command {argv}"
        return handler(args, params)

    def _install(self, packages: list[str]) -> tuple[bool, str]:
        bad = [p for p in packages if p in self.unavailable]
        if bad:
            return False, f"E: Unable to locate package {bad[0]}"
        for package in packages:
            self.packages.add(package)
            self.binaries.add(f"{self.bin_dir}/{package}")
        return True, ""

    def _dpkg_query(self, args, params):
        package = args[-1]
        if package in self.packages:
            return True, "install ok installed"
        return False, f"dpkg-query: no packages found matching {package}"

    def _pacman(self, args, params):
        if args[:1] == ["-Qi"]:
            return (True, f"Name : {args[1]}") if args[1] in self.packages else (False, "not found")
        if args[:1] == ["-Syu"]:
            return True, ""
        if args[:1] == ["-S"]:
            return self._install([a for a in args[1:] if not a.startswith("--")])
        return False, f"pacman: unsupported {args}"

    def _apt_get(self, args, params):
        if args == ["update"]:
            return True, ""
        if args[:2] == ["install", "-y"]:
            return self._install(args[2:])
        return False, f"apt-get: unsupported {args}"

    def _brew(self, args, params):
        if self.which(f"{self.bin_dir}/brew") is None:
            return False, "Command not found: brew"
        if args[:2] == ["list", "--versions"]:
            package = args[2]
            return (True, f"{package} 1.0.0") if package in self.packages else (False, "")
        if args[:1] == ["install"]:
            return self._install(args[1:])
        if args[:2] == ["bundle", "check"]:
            return (True, "satisfied") if self.brew_bundle_satisfied else (False, "missing")
        if args[:2] == ["bundle", "install"]:
            self.brew_bundle_satisfied = True
            return True, ""
        return False, f"brew: unsupported {args}"

    def _xcode_select(self, args, params):
        if args == ["-p"]:
            if self._xcode_pending is not None:
                self._xcode_pending -= 1
                if self._xcode_pending <= 0:
                    self.xcode_installed = True
                    self._xcode_pending = None
            if self.xcode_installed:
                return True, "/Library/Developer/CommandLineTools"
            return False, "unable to get active developer directory"
        if args == ["--install"]:
            self._xcode_pending = self.xcode_polls
            return True, ""
        return False, f"xcode-select: unsupported {args}"

    def _pkgutil(self, args, params):
        return (True, "package-id: com.apple.pkg.RosettaUpdateAuto") if self.rosetta else (False, "")

    def _softwareupdate(self, args, params):
        self.rosetta = True
        return True, ""

    def _homebrew_installer(self, args, params):
        if "install.sh" not in " ".join(args):
            return False, f"/bin/bash: unsupported {args}"
        self.binaries.add(f"{self.bin_dir}/brew")
        return True, ""

    def _asdf(self, args, params):
        if not self.has_asdf():
            return False, "Command not found: asdf"
        if args == ["plugin", "list"]:
            return True, "\n".join(sorted(self.asdf_plugins))
        if args[:2] == ["plugin", "add"]:
            self.asdf_plugins.add(args[2])
            return True, ""
        if args[:2] == ["plugin", "update"]:
            return True, ""
        if args[:1] == ["list"]:
            tool = args[1]
            if tool not in self.asdf_plugins:
                return False, f"No such plugin: {tool}"
            versions = self.asdf_versions.get(tool, [])
            if not versions:
                return False, "No versions installed"
            lines = [f" *{versions[0]}"] + [f"  {v}" for v in versions[1:]]
            return True, "\n".join(lines)
        if args[:1] == ["install"]:
            tool, version = args[1], args[2]
            if tool not in self.asdf_plugins:
                return False, f"No such plugin: {tool}"
            self.asdf_versions.setdefault(tool, []).append(version)
            if tool == "ruby":
                self.binaries.add(str(self.home / ".asdf" / "shims" / "bundle"))
            return True, ""
        return False, f"asdf: unsupported {args}"

    def _bundle(self, args, params):
        if args[:3] == ["config", "--global", "jobs"]:
            path = self.home / ".bundle" / "config"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(yaml.safe_dump({"BUNDLE_JOBS": args[3]}), encoding="utf-8")
            return True, ""
        return False, f"bundle: unsupported {args}"

    def _gem(self, args, params):
        if args[:1] == ["list"]:
            name = args[1].strip("^$")
            return (True, f"{name} (1.0.0)") if name in self.gems else (False, "")
        if args[:1] == ["install"]:
            if args[1] in self.unavailable:
                return False, f"Could not find a valid gem '{args[1]}'"
            self.gems.add(args[1])
            return True, ""
        if args[:1] == ["update"]:
            return True, ""
        return False, f"gem: unsupported {args}"

    def _npm(self, args, params):
        if args[:2] == ["ls", "-g"]:
            return (True, args[2]) if args[2] in self.npm_packages else (False, "(empty)")
        if args[:2] == ["install", "-g"]:
            if args[2] in self.unavailable:
                return False, f"404 Not Found - {args[2]}"
            self.npm_packages.add(args[2])
            return True, ""
        return False, f"npm: unsupported {args}"

    def _bash(self, args, params):
        if not Path(args[0]).is_file():
            return False, f"bash: {args[0]}: No such file or directory"
        self.scripts_run.append(list(args))
        return True, ""

    def _tee(self, args, params):
        path = Path(args[-1])
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(params.get("input") or "")
        return True, params.get("input") or ""

    def _chsh(self, args, params):
        self.login_shell = args[-1]
        return True, ""

    def _getent(self, args, params):
        return True, f"{args[-1]}:x:1000:1000::{self.home}:{self.login_shell}"

    def _dscl(self, args, params):
        return True, f"UserShell: {self.login_shell}"

    def _zsh(self, args, params):
        if "zap" not in " ".join(args):
            return False, f"zsh: unsupported {args}"
        (self.home / ".local" / "share" / "zap").mkdir(parents=True, exist_ok=True)
        return True, ""

    # ── Git ─────────────────────────────────────────────────────

    def git(self, params: dict) -> tuple[list[str], bool, str]:
        dest = Path(params["dest"])
        if params["operation"] == "pull":
            argv = ["git", "-C", str(dest), "pull", "--ff-only"]
            if self.should_fail(argv):
                return argv, False, "fatal: Not possible to fast-forward, aborting."
            return argv, (dest / ".git").is_dir(), ""

        argv = ["git", "clone"]
        if params.get("branch"):
            argv += ["--branch", params["branch"]]
        argv += [params["url"], str(dest)]
        if self.should_fail(argv):
            return argv, False, "fatal: repository not found"

        (dest / ".git").mkdir(parents=True)
        if "asdf" not in params["url"]:
            for relative, content in self.repo_files.items():
                target = dest / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content, encoding="utf-8")
        return argv, True, ""


# ── Adapters backed by the simulated host ───────────────────────────


class _SimulatedShell(Adapter):
    def __init__(self, host: SimulatedHost):
        self._host = host

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.params.get("command"):
            return False, "Missing required param: 'command'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv = list(context.params["command"])
        self._host.record("shell", context, argv)
        if self._host.should_fail(argv):
            ok, output = False, f"simulated failure: {' '.join(argv)}"
        else:
            ok, output = self._host.shell(argv, context.params)
        if ok:
            return Receipt.success(adapter="shell", action_id=context.action.id, output=output)
        return Receipt.failure(
            adapter="shell",
            action_id=context.action.id,
            error=output or f"Command exited with code 1: {' '.join(argv)}",
        )


class _SimulatedGit(Adapter):
    def __init__(self, host: SimulatedHost):
        self._host = host

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv, ok, error = self._host.git(context.params)
        self._host.record("git", context, argv)
        if ok:
            return Receipt.success(adapter="git", action_id=context.action.id)
        return Receipt.failure(adapter="git", action_id=context.action.id, error=error or "git failed")


class _RecordingFilesystem(FilesystemAdapter):
    """The real filesystem adapter, with calls logged on the host."""

    def __init__(self, host: SimulatedHost):
        self._host = host

    def execute(self, context: ExecutionContext) -> Receipt:
        self._host.record(
            "filesystem", context, [context.params["operation"], context.params["path"]]
        )
        return super().execute(context)


# ── Running a bootstrap against the host ────────────────────────────


def host_environ(host: SimulatedHost) -> dict[str, str]:
    return {"USER": TEST_USER, "SHELL": "/bin/bash", "HOME": str(host.home)}


def run_on(
    host: SimulatedHost,
    settings_file: Path | None,
    dry_run: bool = False,
    skip_full_install: bool = False,
    phases=None,
) -> BootstrapResult:
    """Run the whole bootstrap against ``host``."""
    return run_bootstrap(
        RunConfig(dry_run=dry_run, skip_full_install=skip_full_install),
        config_path=settings_file,
        home=host.home,
        environ=host_environ(host),
        registry=host.registry(),
        profile=host.profile,
        phases=phases,
        sleep=lambda seconds: None,
        cpu_count=lambda: 4,
    )


def snapshot(root: Path) -> dict[str, str]:
    """Relative path → content for every file under ``root``."""
    files = {}
    for path in sorted(root.rglob("*")):
        key = str(path.relative_to(root))
        files[key] = path.read_text(encoding="utf-8") if path.is_file() else "<dir>"
    return files
