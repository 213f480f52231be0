"""Package builder: isolated copy, dependency resolution and the ZIP archive."""

import logging
import os
import shutil
import subprocess
import sys
import tempfile
import zipfile
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import Optional

from ..config import (
    LOCAL_DEPENDENCIES_DIR,
    OPTIONAL_REQUIREMENTS_FILE,
    PIP_INSTALL_TIMEOUT_SECONDS,
    REQUIREMENTS_FILE,
)
from ..core.exceptions import ConfigurationError, PackagingError
from .ignore import collect_files, load_ignore_spec
from .requirements import extract_package_name, read_requirement_lines, rewire_requirements

log = logging.getLogger(__name__)


@dataclass
class PackageArchive:
    """The compressed deployment artifact of one run."""

    path: Path
    size: int
    s3_key: Optional[str] = None


def check_source_dir(source_dir: Path) -> None:
    """
    Refuse to package the system temp directory itself.

    Raises:
        ConfigurationError: If source_dir is the shared temp root
    """
    temp_root = Path(tempfile.gettempdir()).resolve()
    if source_dir.resolve() == temp_root:
        raise ConfigurationError(
            "Source directory is the Python temp directory. "
            "Cowardly refusing to fill up disk with recursive copy."
        )


def copy_project_files(source_dir: Path, package_dir: Path) -> list[Path]:
    """
    Copy every non-ignored project file into package_dir.

    Args:
        source_dir: Original project directory
        package_dir: Destination inside the working directory

    Returns:
        Destination paths of the copied files
    """
    spec = load_ignore_spec(source_dir)
    files = collect_files(source_dir, spec)
    package_dir.mkdir(parents=True, exist_ok=True)

    copied = []
    for file_path in files:
        dest = package_dir / file_path.relative_to(source_dir)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(file_path, dest)
        copied.append(dest)

    log.debug(f"Copied {len(copied)} files from {source_dir} to {package_dir}")
    return copied


def install_dependencies(package_dir: Path, source_dir: Path) -> None:
    """
    Clean-install the project's requirements into the package directory.

    Both requirements.txt and requirements-optional.txt are installed; the
    optional ones can be stripped after validation. The copied files are
    rewired first so relative references still point at the original project.

    Args:
        package_dir: Package directory (pip --target)
        source_dir: Original project directory

    Raises:
        PackagingError: If pip is unavailable, fails or times out
    """
    requirement_files = []
    for name in (REQUIREMENTS_FILE, OPTIONAL_REQUIREMENTS_FILE):
        original = source_dir / name
        if original.is_file():
            rewired = package_dir / name
            if rewire_requirements(original, rewired, source_dir):
                requirement_files.append(rewired)

    if not requirement_files:
        log.debug("No requirements to install")
        return

    cmd = [
        sys.executable,
        "-m",
        "pip",
        "install",
        "--target",
        str(package_dir),
        "--upgrade",
        "--no-input",
        "--disable-pip-version-check",
    ]
    for requirements in requirement_files:
        cmd.extend(["-r", str(requirements)])

    log.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=package_dir,
            capture_output=True,
            text=True,
            timeout=PIP_INSTALL_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired as e:
        raise PackagingError(
            f"pip install timed out ({PIP_INSTALL_TIMEOUT_SECONDS} seconds)"
        ) from e
    except OSError as e:
        raise PackagingError(f"pip install error: {e}") from e

    if result.returncode != 0:
        raise PackagingError(
            "pip install failed. Check that your dependencies can be installed:\n"
            f"{result.stderr.strip()}"
        )


def copy_local_dependencies(source_dir: Path, package_dir: Path) -> None:
    """Copy the project's vendor/ tree verbatim into the package root."""
    vendor_dir = source_dir / LOCAL_DEPENDENCIES_DIR
    if not vendor_dir.is_dir():
        log.warning(
            f"--use-local-dependencies set but {LOCAL_DEPENDENCIES_DIR}/ does not exist"
        )
        return

    shutil.copytree(vendor_dir, package_dir, symlinks=True, dirs_exist_ok=True)
    log.debug(f"Copied local dependencies from {vendor_dir}")


def _normalize(name: str) -> str:
    return name.replace("_", "-").replace(".", "-").lower()


def strip_optional_dependencies(package_dir: Path, source_dir: Path) -> list[str]:
    """
    Remove distributions listed in requirements-optional.txt from the package.

    Every file recorded in a distribution's RECORD is deleted, along with its
    .dist-info directory. Files outside package_dir are never touched.

    Returns:
        Names of the removed distributions
    """
    wanted = {
        _normalize(name)
        for name in map(
            extract_package_name,
            read_requirement_lines(source_dir / OPTIONAL_REQUIREMENTS_FILE),
        )
        if name
    }
    if not wanted:
        return []

    root = package_dir.resolve()
    removed = []
    for dist in list(metadata.distributions(path=[str(package_dir)])):
        name = dist.metadata["Name"]
        if not name or _normalize(name) not in wanted:
            continue

        info_dirs = set()
        for record in dist.files or []:
            target = Path(dist.locate_file(record)).resolve()
            if not target.is_relative_to(root):
                continue
            if record.parts[0].endswith(".dist-info"):
                info_dirs.add(target.parent)
            if target.is_file():
                target.unlink()

        for info_dir in info_dirs:
            shutil.rmtree(info_dir, ignore_errors=True)
        removed.append(name)

    _prune_empty_dirs(package_dir)
    log.debug(f"Removed optional dependencies: {removed}")
    return removed


def _prune_empty_dirs(directory: Path) -> None:
    for dirpath, dirnames, filenames in os.walk(directory, topdown=False):
        path = Path(dirpath)
        if path != directory and not any(path.iterdir()):
            path.rmdir()


def create_archive(package_dir: Path, archive_path: Path) -> PackageArchive:
    """
    Zip the package directory with deterministic entry order.

    Args:
        package_dir: Directory whose contents become the archive root
        archive_path: Output path (outside package_dir)

    Returns:
        PackageArchive describing the written file
    """
    archive_path.unlink(missing_ok=True)

    with zipfile.ZipFile(
        archive_path, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
    ) as zf:
        for dirpath, dirnames, filenames in os.walk(package_dir):
            dirnames.sort()
            for filename in sorted(filenames):
                file_path = Path(dirpath) / filename
                arcname = file_path.relative_to(package_dir).as_posix()
                zf.write(file_path, arcname)

    size = archive_path.stat().st_size
    log.info(f"Created {archive_path.name} ({size / 1024:.1f} KB)")
    return PackageArchive(path=archive_path, size=size)


class PackageBuilder:
    """Builds the deployable package of one project inside a working directory.

    The original source directory is only ever read.
    """

    def __init__(
        self,
        source_dir: Path,
        package_dir: Path,
        use_local_dependencies: bool = False,
        optional_dependencies: bool = True,
    ):
        self.source_dir = source_dir
        self.package_dir = package_dir
        self.use_local_dependencies = use_local_dependencies
        self.optional_dependencies = optional_dependencies

    def prepare(self) -> Path:
        """Copy the project and resolve its dependencies into package_dir."""
        check_source_dir(self.source_dir)
        copy_project_files(self.source_dir, self.package_dir)

        if self.use_local_dependencies:
            copy_local_dependencies(self.source_dir, self.package_dir)
        else:
            install_dependencies(self.package_dir, self.source_dir)
        return self.package_dir

    def finalize(self) -> list[str]:
        """Post-validation trimming; strips optional dependencies when disabled."""
        if self.optional_dependencies:
            return []
        return strip_optional_dependencies(self.package_dir, self.source_dir)

    def archive(self, archive_path: Path) -> PackageArchive:
        return create_archive(self.package_dir, archive_path)
