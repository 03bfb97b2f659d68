"""Ask the system to pick up a changed favorites file.

Killing sharedfilelistd makes launchd restart it, and it rereads the archive.
Finder can take up to a minute to notice; killing Finder as well makes the
change visible immediately. If sharedfilelistd cannot be killed at all we
fall back to restarting Finder.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from sbedit.config import ReloadConfig

logger = logging.getLogger("sbedit.reload")


@dataclass
class ReloadResult:
    daemon_restarted: bool
    finder_restarted: bool


def _killall(
    runner: Callable[..., subprocess.CompletedProcess[Any]], killall: str, name: str
) -> bool:
    """Run `killall name`. Returns False if the command could not be executed."""
    try:
        result = runner([killall, name], capture_output=True, check=False)
    except OSError as exc:
        logger.warning("cannot run %s %s: %s", killall, name, exc)
        return False
    if result.returncode != 0:
        # killall exits 1 when no process matched; the daemon restarts on demand anyway
        logger.debug("%s %s exited with %d", killall, name, result.returncode)
    return True


def reload_services(
    cfg: ReloadConfig,
    *,
    force: bool = False,
    runner: Callable[..., subprocess.CompletedProcess[Any]] = subprocess.run,
) -> ReloadResult:
    """Restart the shared file list daemon, and Finder when forced or as fallback."""
    daemon_restarted = _killall(runner, cfg.killall, cfg.daemon)
    finder_restarted = False
    if force or not daemon_restarted:
        finder_restarted = _killall(runner, cfg.killall, cfg.finder)
    return ReloadResult(daemon_restarted=daemon_restarted, finder_restarted=finder_restarted)
