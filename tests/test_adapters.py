"""
Tests for adapter protocol, registry, mock, shell, filesystem, and git adapters.
"""

import shutil
import sys
from pathlib import Path

import pytest

from dotstrap.adapters.base import ExecutionContext
from dotstrap.adapters.mock import MockAdapter
from dotstrap.adapters.registry import AdapterRegistry
from dotstrap.adapters.shell.command import ShellCommandAdapter, format_command
from dotstrap.adapters.shell.filesystem import FilesystemAdapter
from dotstrap.adapters.vcs.git import GitAdapter
from dotstrap.core.models.action import Action


def _ctx(adapter: str, kind: str = "install", **params) -> ExecutionContext:
    return ExecutionContext(action=Action(id="op-1", adapter=adapter, kind=kind, params=params))


# ── Mock Adapter Tests ───────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success(self):
        mock = MockAdapter(adapter_name="test-mock")
        receipt = mock.execute(_ctx("test-mock"))
        assert receipt.ok
        assert receipt.metadata["mock"] is True
        assert mock.call_count == 1

    def test_prefix_response(self):
        mock = MockAdapter()
        mock.respond(["command", "-v"], output="/usr/bin/zsh")
        assert mock.execute(_ctx("shell", command=["command", "-v", "zsh"])).output == "/usr/bin/zsh"
        assert mock.execute(_ctx("shell", command=["true"])).output == ""

    def test_longest_prefix_wins(self):
        mock = MockAdapter()
        mock.respond(["apt-get"], output="any")
        mock.fail_on(["apt-get", "install", "-y", "nope"], error="Unable to locate package nope")
        receipt = mock.execute(_ctx("shell", command=["apt-get", "install", "-y", "nope"]))
        assert receipt.failed
        assert receipt.error == "Unable to locate package nope"
        assert mock.execute(_ctx("shell", command=["apt-get", "update"])).output == "any"

    def test_set_failure_by_id(self):
        mock = MockAdapter()
        mock.set_failure("op-1", error="Intentional failure")
        receipt = mock.execute(_ctx("mock"))
        assert receipt.failed
        assert "Intentional failure" in receipt.error

    def test_commands_recorded(self):
        mock = MockAdapter()
        mock.execute(_ctx("shell", command=["brew", "install", "git"]))
        mock.execute(_ctx("shell", command=["brew", "install", "stow"]))
        assert mock.commands == [["brew", "install", "git"], ["brew", "install", "stow"]]

    def test_reset(self):
        mock = MockAdapter()
        mock.set_failure("op-1")
        mock.execute(_ctx("mock"))
        mock.reset()
        assert mock.call_count == 0
        assert mock.execute(_ctx("mock")).ok


# ── Registry Tests ───────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_register_and_get(self):
        registry = AdapterRegistry()
        mock = MockAdapter(adapter_name="shell")
        registry.register(mock)
        assert registry.get("shell") is mock
        assert registry.get("git") is None

    def test_register_replaces(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter(adapter_name="shell"))
        replacement = MockAdapter(adapter_name="shell")
        registry.register(replacement)
        assert registry.get("shell") is replacement
        assert registry.names() == ["shell"]

    def test_names_sorted(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter(adapter_name="shell"))
        registry.register(MockAdapter(adapter_name="git"))
        assert registry.names() == ["git", "shell"]

    def test_missing_adapter_fails(self):
        receipt = AdapterRegistry().execute_action(Action(id="x", adapter="nope"))
        assert receipt.failed
        assert "No adapter registered" in receipt.error

    def test_mock_mode_never_reaches_adapter(self):
        registry = AdapterRegistry(mock_mode=True)
        mock = MockAdapter(adapter_name="shell")
        registry.register(mock)
        receipt = registry.execute_action(Action(id="x", adapter="shell"))
        assert receipt.ok
        assert receipt.metadata["mock"] is True
        assert mock.call_count == 0

    def test_dry_run_skips_install(self):
        registry = AdapterRegistry()
        mock = MockAdapter(adapter_name="shell")
        registry.register(mock)
        receipt = registry.execute_action(
            Action(id="x", adapter="shell", name="apt-get install -y zsh", kind="install"),
            dry_run=True,
        )
        assert receipt.skipped
        assert "apt-get install -y zsh" in receipt.output
        assert mock.call_count == 0

    def test_dry_run_skips_refresh(self):
        registry = AdapterRegistry()
        mock = MockAdapter(adapter_name="git")
        registry.register(mock)
        assert registry.execute_action(Action(id="x", adapter="git", kind="refresh"), dry_run=True).skipped
        assert mock.call_count == 0

    @pytest.mark.parametrize("kind", ["probe", "invoke"])
    def test_dry_run_executes_non_mutating(self, kind):
        registry = AdapterRegistry()
        mock = MockAdapter(adapter_name="shell")
        registry.register(mock)
        assert registry.execute_action(Action(id="x", adapter="shell", kind=kind), dry_run=True).ok
        assert mock.call_count == 1

    def test_validation_failure_not_executed(self):
        registry = AdapterRegistry()
        registry.register(ShellCommandAdapter())
        receipt = registry.execute_action(Action(id="x", adapter="shell", params={}))
        assert receipt.failed
        assert "Validation failed" in receipt.error

    def test_env_and_path_passed_through(self):
        registry = AdapterRegistry()
        mock = MockAdapter(adapter_name="shell")
        registry.register(mock)
        registry.execute_action(
            Action(id="x", adapter="shell"),
            env={"ASDF_DIR": "/a"},
            path_prepend=["/a/shims"],
        )
        assert mock.call_log[0].env == {"ASDF_DIR": "/a"}
        assert mock.call_log[0].path_prepend == ["/a/shims"]

    def test_raising_adapter_becomes_failure(self):
        class Exploding(MockAdapter):
            def execute(self, context):
                raise RuntimeError("kaboom")

        registry = AdapterRegistry()
        registry.register(Exploding(adapter_name="shell"))
        receipt = registry.execute_action(Action(id="x", adapter="shell"))
        assert receipt.failed
        assert "kaboom" in receipt.error


# ── Shell Command Adapter Tests ──────────────────────────────────────


class TestFormatCommand:
    def test_plain(self):
        assert format_command(["brew", "install", "git"]) == "brew install git"

    def test_sudo_and_quoting(self):
        assert format_command(["bash", "-c", "echo hi"], sudo=True) == "sudo bash -c 'echo hi'"


class TestShellCommandAdapter:
    def test_validate_missing_command(self):
        ok, error = ShellCommandAdapter().validate(_ctx("shell"))
        assert not ok
        assert "command" in error

    def test_validate_rejects_string_command(self):
        ok, _ = ShellCommandAdapter().validate(_ctx("shell", command="echo hi"))
        assert not ok

    def test_validate_missing_cwd(self, tmp_path: Path):
        missing = tmp_path / "dotfiles"
        ok, error = ShellCommandAdapter().validate(_ctx("shell", command=["bash", "setup.sh"], cwd=str(missing)))
        assert not ok
        assert error == f"Working directory does not exist: {missing}"

    def test_missing_cwd_not_reported_as_missing_command(self, tmp_path: Path):
        registry = AdapterRegistry()
        registry.register(ShellCommandAdapter())
        receipt = registry.execute_action(
            Action(id="x", adapter="shell", params={"command": ["sh", "-c", "true"], "cwd": str(tmp_path / "gone")})
        )
        assert receipt.failed
        assert "Working directory does not exist" in receipt.error
        assert "Command not found" not in receipt.error

    def test_execute_captures_output(self):
        receipt = ShellCommandAdapter().execute(_ctx("shell", command=["echo", "hello"], capture=True))
        assert receipt.ok
        assert receipt.output == "hello"

    def test_execute_failure(self):
        receipt = ShellCommandAdapter().execute(
            _ctx("shell", command=["sh", "-c", "echo broken >&2; exit 3"], capture=True)
        )
        assert receipt.failed
        assert receipt.error == "broken"
        assert receipt.metadata["return_code"] == 3

    def test_command_not_found(self):
        receipt = ShellCommandAdapter().execute(_ctx("shell", command=["definitely-not-a-command-xyz"]))
        assert receipt.failed
        assert "Command not found" in receipt.error

    def test_env_and_input(self):
        receipt = ShellCommandAdapter().execute(
            _ctx("shell", command=["sh", "-c", 'printf "%s-" "$GREETING"; cat'],
                 env={"GREETING": "hi"}, input="there", capture=True)
        )
        assert receipt.output == "hi-there"

    def test_path_prepend(self, tmp_path: Path):
        tool = tmp_path / "mytool"
        tool.write_text("#!/bin/sh\necho from-prepended-path\n", encoding="utf-8")
        tool.chmod(0o755)
        ctx = ExecutionContext(
            action=Action(id="x", adapter="shell", params={"command": ["sh", "-c", "mytool"], "capture": True}),
            path_prepend=[str(tmp_path)],
        )
        assert ShellCommandAdapter().execute(ctx).output == "from-prepended-path"

    def test_cwd(self, tmp_path: Path):
        receipt = ShellCommandAdapter().execute(_ctx("shell", command=["pwd"], cwd=str(tmp_path), capture=True))
        assert Path(receipt.output).resolve() == tmp_path.resolve()


# ── Filesystem Adapter Tests ─────────────────────────────────────────


class TestFilesystemAdapter:
    def test_validate_unknown_operation(self):
        ok, error = FilesystemAdapter().validate(_ctx("filesystem", operation="delete", path="/tmp/x"))
        assert not ok
        assert "Unknown operation" in error

    def test_validate_relative_path(self):
        ok, error = FilesystemAdapter().validate(_ctx("filesystem", operation="mkdir", path="rel/dir"))
        assert not ok
        assert "absolute" in error

    def test_validate_append_needs_line(self, tmp_path: Path):
        ok, _ = FilesystemAdapter().validate(
            _ctx("filesystem", operation="append_line", path=str(tmp_path / "f"))
        )
        assert not ok

    def test_append_line_is_idempotent(self, tmp_path: Path):
        target = tmp_path / ".profile"
        target.write_text("# existing", encoding="utf-8")
        adapter = FilesystemAdapter()
        ctx = _ctx("filesystem", operation="append_line", path=str(target), line="export A=1")

        first = adapter.execute(ctx)
        second = adapter.execute(ctx)

        assert first.metadata["added"] is True
        assert second.metadata["added"] is False
        assert target.read_text(encoding="utf-8") == "# existing\nexport A=1\n"

    def test_append_creates_file(self, tmp_path: Path):
        target = tmp_path / "nested" / ".profile"
        FilesystemAdapter().execute(_ctx("filesystem", operation="append_line", path=str(target), line="x"))
        assert target.read_text(encoding="utf-8") == "x\n"

    def test_mkdir(self, tmp_path: Path):
        target = tmp_path / ".local" / "bin"
        assert FilesystemAdapter().execute(_ctx("filesystem", operation="mkdir", path=str(target))).ok
        assert target.is_dir()


# ── Git Adapter Tests ────────────────────────────────────────────────


class TestGitAdapter:
    def test_validate_unknown_operation(self):
        ok, error = GitAdapter().validate(_ctx("git", operation="push", dest="/tmp/x"))
        assert not ok
        assert "Unknown operation" in error

    def test_validate_clone_needs_url(self):
        ok, error = GitAdapter().validate(_ctx("git", operation="clone", dest="/tmp/x"))
        assert not ok
        assert "url" in error

    def test_validate_needs_dest(self):
        ok, error = GitAdapter().validate(_ctx("git", operation="pull"))
        assert not ok
        assert "dest" in error

    def test_pull_requires_checkout(self, tmp_path: Path):
        receipt = GitAdapter().execute(_ctx("git", kind="refresh", operation="pull", dest=str(tmp_path)))
        assert receipt.failed
        assert "Not a git checkout" in receipt.error

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    def test_clone_local_repository(self, tmp_path: Path):
        import subprocess

        origin = tmp_path / "origin"
        origin.mkdir()
        subprocess.run(["git", "init", "-q", str(origin)], check=True)
        (origin / "setup.sh").write_text("echo hi\n", encoding="utf-8")
        subprocess.run(["git", "-C", str(origin), "add", "."], check=True)
        subprocess.run(
            ["git", "-C", str(origin), "-c", "user.name=t", "-c", "user.email=t@t", "commit", "-qm", "init"],
            check=True,
        )

        dest = tmp_path / "dotfiles"
        adapter = GitAdapter()
        clone = adapter.execute(_ctx("git", operation="clone", url=str(origin), dest=str(dest)))
        assert clone.ok, clone.error
        assert (dest / "setup.sh").is_file()

        pull = adapter.execute(_ctx("git", kind="refresh", operation="pull", dest=str(dest)))
        assert pull.ok, pull.error


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell required")
def test_shell_adapter_is_available():
    assert ShellCommandAdapter().is_available()
