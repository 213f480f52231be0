"""Ignore rules deciding which project files are packaged."""

import logging
from pathlib import Path
from typing import Optional

import pathspec

from ..config import ALWAYS_IGNORE, IGNORE_FILE

log = logging.getLogger(__name__)


def read_patterns(file_path: Path) -> list[str]:
    """Non-empty, non-comment lines of an ignore file (empty if unreadable)."""
    if not file_path.is_file():
        return []

    try:
        lines = file_path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed to read {file_path.name}: {e}")
        return []

    return [
        line.strip()
        for line in lines
        if line.strip() and not line.strip().startswith("#")
    ]


def load_ignore_spec(project_dir: Path) -> pathspec.PathSpec:
    """
    Build the matcher from .fnpublishignore, .gitignore and the fixed patterns.

    Args:
        project_dir: Project source directory

    Returns:
        PathSpec using gitignore-style matching
    """
    patterns: list[str] = []
    for name in (IGNORE_FILE, ".gitignore"):
        found = read_patterns(project_dir / name)
        if found:
            log.debug(f"Loaded {len(found)} patterns from {name}")
        patterns.extend(found)

    patterns.extend(ALWAYS_IGNORE)
    return pathspec.GitIgnoreSpec.from_lines(patterns)


def is_ignored(path: Path, spec: pathspec.PathSpec, base_dir: Path) -> bool:
    try:
        rel_path = path.relative_to(base_dir).as_posix()
    except ValueError:
        return False

    if path.is_dir():
        rel_path += "/"
    return spec.match_file(rel_path)


def collect_files(
    directory: Path, spec: pathspec.PathSpec, base_dir: Optional[Path] = None
) -> list[Path]:
    """
    Recursively list files under directory that are not ignored.

    Ignored directories are pruned without being descended into. Results are
    sorted so the packaged copy is reproducible.

    Args:
        directory: Directory to scan
        spec: Ignore matcher
        base_dir: Root for relative matching (defaults to directory)

    Returns:
        Paths of the files to package
    """
    base_dir = base_dir or directory
    files: list[Path] = []

    try:
        entries = sorted(directory.iterdir())
    except PermissionError as e:
        log.warning(f"Permission denied: {directory} - {e}")
        return files

    for item in entries:
        if is_ignored(item, spec, base_dir):
            log.debug(f"Ignoring: {item.relative_to(base_dir)}")
            continue
        if item.is_dir():
            files.extend(collect_files(item, spec, base_dir))
        elif item.is_file():
            files.append(item)

    return files
