"""Post-download hook execution."""

import asyncio
import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def _run_hook_sync(hook: Path, file_path: Path) -> None:
    try:
        completed = subprocess.run(
            [str(hook), str(file_path)],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as e:
        logger.warning(f"Download hook {hook} could not be started: {e}")
        return
    logger.debug(f"Download hook {hook} exited with {completed.returncode} for {file_path.name}")


async def run_hook(hook: Path, file_path: Path) -> None:
    """Run a download hook in a worker thread.

    The hook receives the episode's final path as its only argument. Its exit
    code and output are not inspected.
    """
    await asyncio.to_thread(_run_hook_sync, hook, file_path)


def start_hook(hook: Path, file_path: Path) -> asyncio.Task[None]:
    """Launch a hook without waiting for it; the caller joins the task later."""
    return asyncio.create_task(run_hook(hook, file_path), name=f"hook:{file_path.name}")
