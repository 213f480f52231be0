"""Options accepted by an update run and the per-run deployment context."""

import shutil
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_ALIAS, WORKDIR_PREFIX
from .exceptions import ConfigurationError


class UpdateOptions(BaseModel):
    """Resolved options for one ``update()`` call."""

    model_config = ConfigDict(populate_by_name=True)

    source: Optional[Path] = None
    version: Optional[str] = None
    keep: bool = False
    use_local_dependencies: bool = Field(default=False, alias="use-local-dependencies")
    optional_dependencies: bool = Field(default=True, alias="optional-dependencies")
    use_s3_bucket: Optional[str] = Field(default=None, alias="use-s3-bucket")
    set_env: Optional[str] = Field(default=None, alias="set-env")
    set_env_from_json: Optional[Path] = Field(default=None, alias="set-env-from-json")
    cache_api_config: Optional[str] = Field(default=None, alias="cache-api-config")
    stage_variables: Dict[str, str] = Field(default_factory=dict)
    post_deploy_options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def alias(self) -> str:
        return self.version or DEFAULT_ALIAS

    def source_dir(self) -> Path:
        """Absolute project directory, defaulting to the current directory."""
        return (self.source or Path.cwd()).expanduser().resolve()

    def check_compatible(self) -> None:
        """Raises ConfigurationError for mutually exclusive combinations."""
        if self.use_local_dependencies and not self.optional_dependencies:
            raise ConfigurationError(
                "incompatible arguments --use-local-dependencies and --no-optional-dependencies"
            )


@dataclass
class DeploymentContext:
    """Per-run scratch state; owns a unique working directory.

    Use as a context manager so the working directory (and the archive,
    unless it is kept) is removed on success and on failure.
    """

    options: UpdateOptions
    function_name: str
    workdir: Path = field(init=False)
    archive_path: Optional[Path] = None
    keep_archive: bool = False

    def __post_init__(self) -> None:
        self.workdir = Path(tempfile.mkdtemp(prefix=WORKDIR_PREFIX))

    @property
    def package_dir(self) -> Path:
        return self.workdir / "package"

    def new_archive_path(self) -> Path:
        """Unique archive location outside the working directory."""
        name = f"{self.function_name}-{uuid.uuid4().hex}.zip"
        return Path(tempfile.gettempdir()) / name

    def cleanup(self) -> None:
        shutil.rmtree(self.workdir, ignore_errors=True)
        if self.archive_path is not None and not self.keep_archive:
            self.archive_path.unlink(missing_ok=True)

    def __enter__(self) -> "DeploymentContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
