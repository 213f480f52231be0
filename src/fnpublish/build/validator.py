"""Clean-room validation of the packaged entry module.

The entry module is imported by a separate interpreter started with ``-S``
(no site-packages), with the package directory as its only extra import
path, so anything that was not installed into the package fails to import.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Dict, Mapping, Optional

from ..config import VALIDATION_TIMEOUT_SECONDS
from ..core.exceptions import ValidationError

log = logging.getLogger(__name__)

# Variables needed for the interpreter itself to start
_PASSTHROUGH_ENV = ("PATH", "SYSTEMROOT", "LANG", "LC_ALL", "TMPDIR", "TEMP", "TMP")


def entry_module(handler: Optional[str], api_module: Optional[str] = None) -> str:
    """
    Module imported when the function starts.

    Args:
        handler: Lambda handler (``main.handler`` or ``pkg.main.handler``)
        api_module: Declared API module, which takes precedence

    Returns:
        Dotted module name
    """
    if api_module:
        return api_module
    if not handler:
        return "main"
    module, _, _ = handler.rpartition(".")
    return module or handler


def build_validation_env(
    package_dir: Path, variables: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Explicit environment for the validation process only."""
    env = {key: os.environ[key] for key in _PASSTHROUGH_ENV if key in os.environ}
    env.update(
        {
            "PYTHONPATH": str(package_dir),
            "PYTHONNOUSERSITE": "1",
            "PYTHONDONTWRITEBYTECODE": "1",
        }
    )
    if variables:
        env.update({str(k): str(v) for k, v in variables.items()})
    return env


def validate_package(
    package_dir: Path,
    entry: str,
    variables: Optional[Mapping[str, str]] = None,
    timeout: int = VALIDATION_TIMEOUT_SECONDS,
) -> None:
    """
    Import the entry module in an isolated interpreter.

    Args:
        package_dir: Directory containing the packaged code and dependencies
        entry: Dotted module name to import
        variables: Environment variables the module expects at import time
        timeout: Seconds before the attempt counts as a failure

    Raises:
        ValidationError: If the import fails or does not finish in time
    """
    cmd = [
        sys.executable,
        "-S",
        "-c",
        f"import importlib; importlib.import_module({entry!r})",
    ]
    log.debug(f"Validating {entry} in {package_dir}")

    try:
        result = subprocess.run(
            cmd,
            cwd=package_dir,
            env=build_validation_env(package_dir, variables),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ValidationError(entry, output=f"timed out after {timeout} seconds") from e

    if result.returncode != 0:
        output = (result.stderr or result.stdout).strip()
        log.debug(f"Validation of {entry} failed:\n{output}")
        raise ValidationError(entry, output=output)
