"""Tests for download hooks."""

import stat
from pathlib import Path

import pytest

from podsync.sync.hooks import run_hook, start_hook


def _script(tmp_path: Path, body: str) -> Path:
    hook = tmp_path / "hook.sh"
    hook.write_text(f"#!/bin/sh\n{body}\n")
    hook.chmod(hook.stat().st_mode | stat.S_IEXEC)
    return hook


class TestHooks:
    """Tests for hook execution."""

    @pytest.mark.asyncio
    async def test_hook_receives_path(self, tmp_path: Path) -> None:
        """Test the final path is the only argument."""
        output = tmp_path / "out"
        hook = _script(tmp_path, f'echo "$#:$1" > "{output}"')

        await run_hook(hook, tmp_path / "episode one.mp3")

        assert output.read_text().strip() == f"1:{tmp_path / 'episode one.mp3'}"

    @pytest.mark.asyncio
    async def test_exit_code_ignored(self, tmp_path: Path) -> None:
        """Test failing hooks do not raise."""
        hook = _script(tmp_path, "exit 3")
        await run_hook(hook, tmp_path / "a.mp3")

    @pytest.mark.asyncio
    async def test_missing_hook_logs_warning(self, tmp_path: Path, caplog) -> None:
        """Test hooks that cannot start are logged."""
        await run_hook(tmp_path / "missing", tmp_path / "a.mp3")
        assert "could not be started" in caplog.text

    @pytest.mark.asyncio
    async def test_start_hook_returns_task(self, tmp_path: Path) -> None:
        """Test start_hook runs in the background until awaited."""
        output = tmp_path / "out"
        hook = _script(tmp_path, f'echo done > "{output}"')

        task = start_hook(hook, tmp_path / "a.mp3")
        await task

        assert output.read_text().strip() == "done"
