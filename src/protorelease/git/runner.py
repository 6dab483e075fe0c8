"""Thin ``subprocess`` wrapper around the ``git`` binary.

All git access in protorelease goes through :func:`run_git`, which pins a
stable locale, applies a timeout, and turns every kind of failure (missing
binary, timeout, non-zero exit) into :class:`GitCommandError` so callers can
map it onto a domain error.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Mapping

from protorelease.core.errors import GitCommandError
from protorelease.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 120.0


def run_git(
    args: list[str],
    *,
    git_dir: Path | None = None,
    cwd: Path | None = None,
    input: bytes | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> subprocess.CompletedProcess[bytes]:
    """Run ``git <args>`` and return the completed process.

    Args:
        args: Arguments after ``git``.
        git_dir: Repository to operate on (passed as ``--git-dir``).
        cwd: Working directory for the process.
        input: Bytes fed to standard input.
        env: Extra environment variables layered over ``os.environ``.
        timeout: Seconds before the process is killed.

    Raises:
        GitCommandError: If git is missing, times out, or exits non-zero.
    """
    argv = ["git"]
    if git_dir is not None:
        argv.append(f"--git-dir={git_dir}")
    argv.extend(args)

    full_env = os.environ.copy()
    full_env.setdefault("LC_ALL", "C")
    # Never prompt for credentials or an editor; a prompt would block forever.
    full_env["GIT_TERMINAL_PROMPT"] = "0"
    if env:
        full_env.update(env)

    logger.debug("git_command", argv=argv)
    try:
        completed = subprocess.run(
            argv,
            cwd=str(cwd) if cwd is not None else None,
            input=input,
            capture_output=True,
            check=False,
            timeout=timeout,
            env=full_env,
        )
    except FileNotFoundError as exc:
        raise GitCommandError(argv, returncode=127, stderr=str(exc), cause=exc) from exc
    except subprocess.TimeoutExpired as exc:
        raise GitCommandError(
            argv, returncode=None, stderr=f"timed out after {timeout}s", cause=exc,
        ) from exc

    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        raise GitCommandError(argv, completed.returncode, stderr)
    return completed


def git_output(args: list[str], **kwargs) -> str:
    """Run git and return its standard output decoded and stripped."""
    completed = run_git(args, **kwargs)
    return completed.stdout.decode("utf-8", errors="replace").strip()
