"""
Bootstrap settings — everything the phases need that is not detected.

Defaults reproduce a stock dotfiles layout; any key can be overridden in
``bootstrap.yml``. Paths may start with ``~`` and are expanded against the
run's home directory (see ``expand``), so tests can point the whole run
at a temporary home.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class AsdfPlugin(BaseModel):
    """A declared asdf plugin. ``url`` may be empty for short-name plugins."""

    name: str
    url: str = ""


class AsdfSettings(BaseModel):
    git_url: str = "https://github.com/asdf-vm/asdf.git"
    version: str = "v0.15.0"
    dir: str = "~/.asdf"
    plugins: list[AsdfPlugin] = Field(default_factory=lambda: [
        AsdfPlugin(name="ruby", url="https://github.com/asdf-vm/asdf-ruby.git"),
        AsdfPlugin(name="nodejs", url="https://github.com/asdf-vm/asdf-nodejs.git"),
        AsdfPlugin(name="python", url="https://github.com/asdf-community/asdf-python.git"),
        AsdfPlugin(name="lua", url="https://github.com/Stratus3D/asdf-lua.git"),
    ])
    # luarocks 3.13+ has rockspec syntax incompatible with Lua 5.1's parser
    tool_env: dict[str, dict[str, str]] = Field(default_factory=lambda: {
        "lua": {"ASDF_LUA_LUAROCKS_VERSION": "3.11.1"},
    })
    build_deps: dict[str, list[str]] = Field(default_factory=lambda: {
        "apt": [
            "autoconf", "bison", "libssl-dev", "libreadline-dev", "zlib1g-dev",
            "libncurses-dev", "libffi-dev", "libgdbm-dev", "libyaml-dev",
        ],
    })


class ZapSettings(BaseModel):
    dir: str = "~/.local/share/zap"
    installer_url: str = "https://raw.githubusercontent.com/zap-zsh/zap/master/install.zsh"
    branch: str = "release-v1"


class BootstrapSettings(BaseModel):
    """Validated contents of ``bootstrap.yml``."""

    # ── Dotfiles repository ─────────────────────────────────────
    repo_url: str = "https://github.com/pyeh/dotfiles.git"
    repo_branch: str = "master"
    dotfiles_dir: str = "~/dotfiles"
    setup_script: str = "setup.sh"

    # ── Package manager ─────────────────────────────────────────
    homebrew_install_url: str = (
        "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
    )
    build_packages: dict[str, list[str]] = Field(default_factory=lambda: {
        "apt": ["build-essential", "curl", "git"],
        "pacman": ["base-devel", "curl", "git"],
    })
    minimal_packages: dict[str, list[str]] = Field(default_factory=lambda: {
        "brew": ["git", "stow", "coreutils", "openssl@3", "libyaml", "readline", "zsh"],
        "apt": ["git", "stow", "zsh", "curl", "build-essential"],
        "pacman": ["git", "stow", "zsh", "curl", "base-devel"],
    })
    xcode_poll_seconds: float = 5.0

    # ── Runtimes ────────────────────────────────────────────────
    asdf: AsdfSettings = Field(default_factory=AsdfSettings)
    tool_versions: str = "~/.tool-versions"
    default_gems: str = "~/.default-gems"
    default_npm_packages: str = "~/.default-npm-packages"
    bundle_config: str = "~/.bundle/config"

    # ── Full package set (list paths are relative to dotfiles_dir) ──
    brewfile: str = "~/Brewfile"
    package_lists: dict[str, str] = Field(default_factory=lambda: {
        "apt": "packages/apt.txt",
        "pacman": "packages/pacman.txt",
    })
    extra_scripts: dict[str, str] = Field(default_factory=lambda: {
        "apt": "packages/ubuntu-extra.sh",
        "pacman": "packages/cachyos-extra.sh",
    })

    # ── Extension point ─────────────────────────────────────────
    local_script: str = "~/.bootstrap.local"

    # ── Shell ───────────────────────────────────────────────────
    shells_file: str = "/etc/shells"
    profile_file: str = "~/.profile"
    profile_path_line: str = 'export PATH="$HOME/.local/bin:$PATH"'
    zap: ZapSettings = Field(default_factory=ZapSettings)

    # ── Summary ─────────────────────────────────────────────────
    manual_steps: list[str] = Field(default_factory=lambda: [
        "Launch nvim and run :checkhealth",
        "Create ~/.gitconfig.local with your name and email",
        "Install Tmux plugins: start tmux, then press <prefix> + I",
        "Restart your terminal to pick up all changes",
    ])


def expand(value: str, home: Path) -> Path:
    """Expand a leading ``~`` against ``home`` (not the process HOME)."""
    if value == "~":
        return home
    if value.startswith("~/"):
        return home / value[2:]
    return Path(value)


def dotfiles_path(settings: BootstrapSettings, home: Path, relative: str) -> Path:
    """Resolve a path that lives inside the dotfiles checkout."""
    candidate = expand(relative, home)
    if candidate.is_absolute():
        return candidate
    return expand(settings.dotfiles_dir, home) / relative
