#!/usr/bin/env python3
"""
Sync the gallery indexes, then git commit & push.

If the site root is not a git repository (or has no remote) the push is
skipped with a note; any other git failure aborts with exit code 1.

Usage:
  python3 -m gallery_tools.publish --repo-root .
  python3 -m gallery_tools.publish --repo-root . --message "Add spring photos"
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import List

from .sync import run_sync


DEFAULT_MESSAGE = "chore: sync WALL/collections"


class GitUnavailable(Exception):
    """No repository, or no remote to push to."""


def _is_unavailable(e: subprocess.CalledProcessError) -> bool:
    err = e.stderr or ""
    return e.returncode == 128 or "not a git repository" in err


def git(repo_root: Path, args: List[str], capture: bool = False) -> str:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=repo_root,
            check=True,
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE,
        )
    except subprocess.CalledProcessError as e:
        if e.stderr:
            sys.stderr.write(e.stderr)
        if _is_unavailable(e):
            raise GitUnavailable(" ".join(["git", *args])) from e
        raise
    if proc.stderr:
        sys.stderr.write(proc.stderr)
    return proc.stdout or ""


def publish(repo_root: Path, message: str = DEFAULT_MESSAGE) -> bool:
    """Returns True if a commit was pushed."""
    run_sync(repo_root)

    try:
        status = git(repo_root, ["status", "--porcelain"], capture=True).strip()
        if not status:
            print("\n[git] Nothing to commit. Skipping push.")
            return False
        print("\n[git] Committing and pushing...")
        git(repo_root, ["add", "-A"])
        git(repo_root, ["commit", "-m", message])
        git(repo_root, ["push"])
    except GitUnavailable:
        print("\n[git] Not a git repository or no remote configured. Skipping push.")
        return False

    print("\n[git] Sync and push complete.")
    return True


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--repo-root", default=".", help="Site root (default: .)")
    ap.add_argument("--message", "-m", default=DEFAULT_MESSAGE, help="Commit message")
    args = ap.parse_args()

    repo_root = Path(args.repo_root).expanduser().resolve()
    try:
        publish(repo_root, args.message)
    except Exception as e:
        print(f"[error] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
