"""Small helpers for locating manifests inside a git worktree."""

from __future__ import annotations

import subprocess
from pathlib import Path


def _run_git(args: list[str], cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    """Execute a git command."""
    return subprocess.run(
        ["git", *args],
        check=True,
        capture_output=True,
        text=True,
        cwd=str(cwd) if cwd else None,
    )


def repo_root(cwd: Path | None = None) -> Path | None:
    """Return the top-level directory of the current git worktree, if any."""
    try:
        result = _run_git(["rev-parse", "--show-toplevel"], cwd=cwd)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None
    top = result.stdout.strip()
    return Path(top) if top else None


def resolve_manifest_dir(directory: str, root: Path) -> Path:
    """Resolve a manifest directory against the repository root."""
    path = Path(directory)
    return path if path.is_absolute() else root / path


def relative_to_root(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` when possible."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
