"""Environment checks offered alongside questions.

A question may declare a ``helper`` (``url_check``, ``path_check``,
``port_check`` or ``git_check``) that verifies an answer against the real
world before generation proceeds.  Each helper raises ``ValueError`` with a
human-readable message when the check fails.
"""

from __future__ import annotations

import os
import socket
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import httpx

from ritual_grove.manifest import QuestionHelper


class PathCheck(str, Enum):
    ANY = "any"
    FILE = "file"
    DIRECTORY = "directory"
    WRITABLE = "writable"


@dataclass
class PathCheckResult:
    abs_path: Path
    exists: bool = False
    is_file: bool = False
    is_directory: bool = False
    is_writable: bool = False


def check_url(url: str, timeout: float = 5.0) -> None:
    """Issue a HEAD request and fail on transport errors or a 4xx/5xx status."""
    if not url:
        raise ValueError("URL cannot be empty")
    if not url.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")

    try:
        with httpx.Client(timeout=httpx.Timeout(timeout), follow_redirects=False) as client:
            response = client.head(url)
    except httpx.HTTPError as exc:
        raise ValueError(f"failed to reach URL: {exc}") from exc

    if response.status_code >= 400:
        raise ValueError(f"URL returned status code {response.status_code}")


def check_path(path: str, check: PathCheck = PathCheck.ANY) -> PathCheckResult:
    """Inspect *path* and enforce *check*.

    A missing path passes ``ANY``; for ``WRITABLE`` its parent directory
    must exist and be writable.
    """
    if not path:
        raise ValueError("path cannot be empty")

    target = Path(path).absolute()
    result = PathCheckResult(abs_path=target)

    if not target.exists():
        if check is PathCheck.WRITABLE:
            parent = target.parent
            if not parent.is_dir():
                raise ValueError(f"parent directory does not exist: {parent}")
            if not os.access(parent, os.W_OK):
                raise ValueError("parent directory is not writable")
            result.is_writable = True
            return result
        if check in (PathCheck.FILE, PathCheck.DIRECTORY):
            raise ValueError(f"path does not exist: {target}")
        return result

    result.exists = True
    result.is_file = target.is_file()
    result.is_directory = target.is_dir()
    result.is_writable = os.access(target, os.W_OK)

    if check is PathCheck.FILE and not result.is_file:
        raise ValueError("path exists but is not a file")
    if check is PathCheck.DIRECTORY and not result.is_directory:
        raise ValueError("path exists but is not a directory")
    if check is PathCheck.WRITABLE and not result.is_writable:
        raise ValueError("path is not writable")
    return result


def check_port_available(port: int, host: str = "127.0.0.1") -> bool:
    """Return ``True`` if nothing is listening on *port*."""
    if port <= 0 or port > 65535:
        raise ValueError(f"invalid port number: {port} (must be between 1 and 65535)")

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.settimeout(1)
    try:
        # connect_ex returns 0 when something accepted the connection
        return sock.connect_ex((host, port)) != 0
    finally:
        sock.close()


def check_git_repository(path: str) -> None:
    """Ensure *path* is a directory containing a working git repository."""
    if not path:
        raise ValueError("path cannot be empty")
    repo = Path(path)
    if not repo.exists():
        raise ValueError("path does not exist")
    if not repo.is_dir():
        raise ValueError("path is not a directory")
    git_dir = repo / ".git"
    if not git_dir.exists():
        raise ValueError("not a git repository (no .git directory found)")
    if not git_dir.is_dir():
        raise ValueError(".git exists but is not a directory")

    proc = subprocess.run(
        ["git", "-C", str(repo), "status"],
        capture_output=True,
        check=False,
    )
    if proc.returncode != 0:
        raise ValueError("directory contains .git but is not a valid git repository")


def run_helper(helper: QuestionHelper, value: Any) -> None:
    """Dispatch a question's helper against its answer.

    Raises:
        ValueError: When the check fails or the helper type is unknown.
    """
    if helper.type == "url_check":
        check_url(str(value), timeout=float(helper.config.get("timeout", 5.0)))
    elif helper.type == "path_check":
        check_path(str(value), PathCheck(helper.config.get("check", "any")))
    elif helper.type == "port_check":
        if not check_port_available(int(value)):
            raise ValueError(f"port {value} is already in use")
    elif helper.type == "git_check":
        check_git_repository(str(value))
    else:
        raise ValueError(f"unknown helper type: {helper.type}")
