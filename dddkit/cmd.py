"""Run a command line through the platform shell."""

from __future__ import annotations

import os
import subprocess
from typing import Sequence


def exec_command(args: Sequence[str], timeout: float | None = None) -> bytes:
    """Run ``args`` through the shell and return stdout and stderr combined.

    Raises :class:`subprocess.CalledProcessError` on a non-zero exit (on
    Windows only when the command printed nothing) and
    :class:`subprocess.TimeoutExpired` when ``timeout`` seconds pass.
    """
    env = dict(os.environ)
    windows = os.name == "nt"
    if windows:
        cmd = [os.environ.get("ComSpec", "cmd.exe"), "/c", *args]
        timeout = None
    else:
        cmd = ["sh", "-c", " ".join(args)]
    proc = subprocess.run(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        env=env,
        timeout=timeout,
        check=False,
    )
    if proc.returncode != 0 and not (windows and proc.stdout):
        raise subprocess.CalledProcessError(proc.returncode, cmd, output=proc.stdout)
    return proc.stdout