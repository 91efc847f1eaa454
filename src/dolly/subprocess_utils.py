"""Subprocess helpers for running the Bluespec toolchain.

Every external process dolly starts goes through run_with_timeout(), which:
- redirects stdin to DEVNULL (no console input inheritance)
- hides the console window on Windows
- merges stderr into stdout so the whole stream is captured as text
- kills the whole process tree when the wall-clock timeout expires
"""

import logging
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)

KILL_DRAIN_TIMEOUT = 5.0


@dataclass(frozen=True)
class ProcessOutput:
    """Captured result of one external process.

    Attributes:
        exit_code: Process exit code (-1 if killed on timeout)
        output: Combined stdout/stderr text
        timed_out: True if the process was killed on timeout
        duration: Wall-clock time in seconds
    """

    exit_code: int
    output: str
    timed_out: bool = False
    duration: float = 0.0


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def _apply_platform_defaults(kwargs: dict[str, Any]) -> dict[str, Any]:
    default_flags = get_subprocess_creation_flags()
    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL
    return kwargs


def safe_run(cmd: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """subprocess.run with CREATE_NO_WINDOW on Windows and stdin=DEVNULL.

    Custom creationflags are OR'd with the platform defaults; an explicit
    stdin is used as-is.
    """
    return subprocess.run(list(cmd), **_apply_platform_defaults(kwargs))


def safe_popen(cmd: Sequence[str], **kwargs: Any) -> subprocess.Popen:
    """subprocess.Popen counterpart of safe_run()."""
    return subprocess.Popen(list(cmd), **_apply_platform_defaults(kwargs))


def kill_process_tree(pid: int, timeout: float = 3.0) -> None:
    """Terminate a process and all of its descendants.

    Children are terminated before the parent; anything still alive after
    `timeout` seconds is killed.

    Args:
        pid: Root process id
        timeout: Grace period before force-killing
    """
    try:
        root = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return

    try:
        processes = root.children(recursive=True) + [root]
    except psutil.NoSuchProcess:
        processes = [root]

    for proc in processes:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            pass

    _gone, alive = psutil.wait_procs(processes, timeout=timeout)
    for proc in alive:
        logger.debug(f"Force killing process {proc.pid}")
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass


def run_with_timeout(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    timeout: Optional[float] = None,
) -> ProcessOutput:
    """Run a command, capturing its combined output, with a wall-clock limit.

    Args:
        cmd: Command and arguments
        cwd: Working directory
        timeout: Seconds before the process tree is killed (None = no limit)

    Returns:
        ProcessOutput; on timeout, exit_code is -1 and output holds whatever
        was captured before the kill

    Raises:
        OSError: If the process cannot be started (e.g. executable not found)
    """
    cmd_str = " ".join(str(c) for c in cmd)
    logger.debug(f"Running: {cmd_str} (cwd={cwd}, timeout={timeout}s)")

    start = time.monotonic()
    proc = safe_popen(
        [str(c) for c in cmd],
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    try:
        stdout, _ = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(f"Process timed out after {timeout}s: {cmd_str}")
        kill_process_tree(proc.pid)
        try:
            stdout, _ = proc.communicate(timeout=KILL_DRAIN_TIMEOUT)
        except subprocess.TimeoutExpired:
            # a surviving grandchild can hold the pipe open
            logger.debug(f"Output pipe still open after kill: {cmd_str}")
            proc.kill()
            stdout = ""
        return ProcessOutput(exit_code=-1, output=stdout or "", timed_out=True, duration=time.monotonic() - start)
    except KeyboardInterrupt:
        kill_process_tree(proc.pid)
        raise

    duration = time.monotonic() - start
    if proc.returncode != 0:
        logger.debug(f"Process exited with code {proc.returncode} in {duration:.2f}s: {cmd_str}")
    return ProcessOutput(exit_code=proc.returncode, output=stdout or "", duration=duration)
