"""Workspace file collection with include/exclude globs.

Uses ``rg --files`` when ripgrep is installed and an ``os.walk`` fallback
otherwise. Hidden files and directories are always skipped. Globs follow
gitignore conventions: ``**`` crosses directories, ``{a,b}`` alternates, and
a pattern without ``/`` matches the file name at any depth.
"""

from __future__ import annotations

import os
import re
import shutil
import subprocess
from functools import lru_cache
from pathlib import Path


def _split_braces(body: str) -> list[str]:
    """Split ``a,b{c,d}`` on top-level commas."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in body:
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current.append(ch)
    parts.append("".join(current))
    return parts


def _translate(pattern: str) -> str:
    out: list[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        ch = pattern[index]
        if pattern.startswith("**/", index):
            out.append(r"(?:.*/)?")
            index += 3
        elif pattern.startswith("**", index):
            out.append(r".*")
            index += 2
        elif ch == "*":
            out.append(r"[^/]*")
            index += 1
        elif ch == "?":
            out.append(r"[^/]")
            index += 1
        elif ch == "[":
            end = pattern.find("]", index + 1)
            if end < 0:
                out.append(re.escape(ch))
                index += 1
                continue
            body = pattern[index + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append(f"[{body}]")
            index = end + 1
        elif ch == "{":
            depth = 0
            end = -1
            for cursor in range(index, length):
                if pattern[cursor] == "{":
                    depth += 1
                elif pattern[cursor] == "}":
                    depth -= 1
                    if depth == 0:
                        end = cursor
                        break
            if end < 0:
                out.append(re.escape(ch))
                index += 1
                continue
            alternatives = _split_braces(pattern[index + 1 : end])
            out.append("(?:" + "|".join(_translate(alt) for alt in alternatives) + ")")
            index = end + 1
        else:
            out.append(re.escape(ch))
            index += 1
    return "".join(out)


@lru_cache(maxsize=64)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a workspace glob into a regex over ``/``-separated relative paths."""
    pattern = pattern.strip().lstrip("/")
    if "/" not in pattern:
        pattern = "**/" + pattern
    return re.compile(_translate(pattern) + r"\Z")


def glob_matches(pattern: str, relative_path: str) -> bool:
    if not pattern.strip():
        return False
    return glob_to_regex(pattern).match(relative_path) is not None


def to_project_relative(path: Path, root: Path) -> str:
    try:
        relative = path.resolve().relative_to(root.resolve())
        return relative.as_posix()
    except Exception:
        return path.as_posix()


def _gitignored_paths(root: Path) -> frozenset[Path] | None:
    """Ask git for ignored files and directories under ``root``.

    Returns ``None`` when git is unavailable or ``root`` is not inside a
    repository.
    """
    if shutil.which("git") is None:
        return None
    try:
        proc = subprocess.run(
            ["git", "-C", str(root), "ls-files", "-z", "--others", "-i", "--exclude-standard", "--directory"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            check=True,
        )
    except Exception:
        return None

    ignored: set[Path] = set()
    for raw in proc.stdout.split(b"\x00"):
        rel = raw.decode("utf-8", errors="replace").rstrip("/")
        if rel:
            ignored.add((root / rel).resolve())
    return frozenset(ignored)


def _is_ignored(path: Path, root: Path, ignored: frozenset[Path]) -> bool:
    current = path
    while current != root and current != current.parent:
        if current in ignored:
            return True
        current = current.parent
    return False


def _collect_files_walk(root: Path, include: str, exclude: str, skip_gitignored: bool) -> list[Path]:
    ignored = _gitignored_paths(root) if skip_gitignored else None
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath).resolve()
        dirnames[:] = [name for name in dirnames if not name.startswith(".")]
        if ignored:
            dirnames[:] = [name for name in dirnames if (base / name) not in ignored]
        for filename in filenames:
            if filename.startswith("."):
                continue
            path = base / filename
            relative = to_project_relative(path, root)
            if not glob_matches(include, relative) or glob_matches(exclude, relative):
                continue
            if ignored and _is_ignored(path, root, ignored):
                continue
            if path.is_file():
                files.append(path)
    return files


def _collect_files_rg(root: Path, include: str, exclude: str, skip_gitignored: bool) -> list[Path] | None:
    if shutil.which("rg") is None:
        return None

    cmd = ["rg", "--files", "--glob", include]
    if exclude.strip():
        cmd.extend(["--glob", f"!{exclude}"])
    if not skip_gitignored:
        cmd.append("--no-ignore")

    try:
        proc = subprocess.run(
            cmd,
            cwd=root,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
        )
    except Exception:
        return None
    # Exit status 1 means no file matched.
    if proc.returncode not in (0, 1):
        return None

    files: list[Path] = []
    for raw in proc.stdout.splitlines():
        if not raw:
            continue
        path = (root / raw).resolve()
        try:
            relative_parts = path.relative_to(root).parts
        except ValueError:
            continue
        if any(part.startswith(".") for part in relative_parts):
            continue
        if path.is_file():
            files.append(path)
    return files


def collect_files(root: Path, include: str, exclude: str = "", skip_gitignored: bool = False) -> list[Path]:
    """Return files under ``root`` matching ``include`` and not ``exclude``.

    The list is sorted by project-relative path so results built from it have
    a stable order.
    """
    root = root.resolve()
    if not include.strip() or not root.is_dir():
        return []

    files = _collect_files_rg(root, include, exclude, skip_gitignored)
    if files is None:
        files = _collect_files_walk(root, include, exclude, skip_gitignored)
    return sorted(set(files), key=lambda p: to_project_relative(p, root).casefold())
