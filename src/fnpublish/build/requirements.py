"""Reading requirements files and rewiring local path references.

The project is copied into a working directory before installation, so any
requirement that points at a relative filesystem location would resolve
against the copy instead of the original project. Such references are
rewritten to absolute paths under the original source directory.
"""

import logging
import re
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^\s*([A-Za-z0-9](?:[A-Za-z0-9._-]*[A-Za-z0-9])?)")
_FILE_OPTIONS = ("-r", "--requirement", "-c", "--constraint")
_EDITABLE_OPTIONS = ("-e", "--editable")


def read_requirement_lines(path: Path) -> list[str]:
    """Requirement lines without blanks, comments or trailing comments."""
    if not path.is_file():
        return []

    lines = []
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.split(" #", 1)[0].strip()
        if line and not line.startswith("#"):
            lines.append(line)
    return lines


def is_local_reference(target: str) -> bool:
    """True for bare filesystem paths (``./pkg``, ``../lib``, ``libs/x``)."""
    if "://" in target:
        return False
    return target.startswith((".", "/", "~")) or "/" in target or "\\" in target


def _absolute(target: str, base_dir: Path) -> Path:
    path = Path(target).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def rewire_line(line: str, base_dir: Path) -> str:
    """
    Rewrite one requirement line so local paths no longer depend on the cwd.

    Args:
        line: Requirement line as written by the user
        base_dir: Directory the relative references were written against

    Returns:
        The line with relative references made absolute. Editable installs
        become plain path installs, since ``pip --target`` cannot install
        in editable mode.
    """
    parts = line.split(None, 1)
    option = parts[0]

    if option in _FILE_OPTIONS and len(parts) == 2:
        return f"{option} {_absolute(parts[1].strip(), base_dir)}"

    for prefix in ("-r", "-c"):
        if option.startswith(prefix) and len(option) > 2 and not option.startswith("--"):
            return f"{prefix} {_absolute(line[2:].strip(), base_dir)}"

    if option in _EDITABLE_OPTIONS and len(parts) == 2:
        return rewire_line(parts[1].strip(), base_dir)

    if line.startswith("-"):
        return line

    if " @ " in line:
        name, url = line.split(" @ ", 1)
        url, marker = _split_marker(url)
        if url.startswith("file:") and not url.startswith("file://"):
            url = _absolute(url[len("file:"):], base_dir).as_uri()
        return f"{name.strip()} @ {url}{marker}"

    target, marker = _split_marker(line)
    if target.startswith("file:") and not target.startswith("file://"):
        return f"{_absolute(target[len('file:'):], base_dir)}{marker}"
    if is_local_reference(target):
        return f"{_absolute(target, base_dir)}{marker}"
    return line


def _split_marker(text: str) -> tuple[str, str]:
    if ";" in text:
        target, marker = text.split(";", 1)
        return target.strip(), f"; {marker.strip()}"
    return text.strip(), ""


def rewire_requirements(source: Path, destination: Path, base_dir: Path) -> list[str]:
    """
    Write a copy of a requirements file with local references made absolute.

    Args:
        source: Requirements file in the original project
        destination: Where to write the rewired copy
        base_dir: Original project directory

    Returns:
        The rewired lines
    """
    lines = [rewire_line(line, base_dir) for line in read_requirement_lines(source)]
    destination.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
    log.debug(f"Rewired {len(lines)} requirement lines from {source.name}")
    return lines


def extract_package_name(line: str) -> Optional[str]:
    """Distribution name of a requirement line, or None for options and paths."""
    if line.startswith("-") or is_local_reference(line.split(";", 1)[0].strip()):
        return None
    match = _NAME_RE.match(line)
    return match.group(1) if match else None
