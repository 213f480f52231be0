"""Persisted project configuration (``fnpublish.json``)."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from ..config import PROJECT_CONFIG_FILE
from .exceptions import ConfigurationError

log = logging.getLogger(__name__)


class FunctionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    region: Optional[str] = None
    role: Optional[str] = None


class ApiConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    module: str
    is_proxy: bool = Field(default=False, alias="isProxy")


class ProjectConfig(BaseModel):
    """Function and optional gateway settings of a project.

    Read once per run and never written by the deployment pipeline.
    """

    model_config = ConfigDict(extra="allow")

    function: FunctionConfig = Field(default_factory=FunctionConfig)
    api: Optional[ApiConfig] = None

    @property
    def has_api(self) -> bool:
        return self.api is not None

    def require_complete(self) -> "ProjectConfig":
        """Check the fields every run needs.

        Raises:
            ConfigurationError: If function.name or function.region is missing.
        """
        if not self.function.name:
            raise ConfigurationError(
                f"invalid configuration -- function.name missing from {PROJECT_CONFIG_FILE}"
            )
        if not self.function.region:
            raise ConfigurationError(
                f"invalid configuration -- function.region missing from {PROJECT_CONFIG_FILE}"
            )
        return self


def load_project_config(source_dir: Path) -> ProjectConfig:
    """Read and check ``fnpublish.json`` from the project directory.

    Args:
        source_dir: Project source directory

    Returns:
        ProjectConfig with function name and region present

    Raises:
        ConfigurationError: If the file is missing, unreadable or incomplete
    """
    config_path = source_dir / PROJECT_CONFIG_FILE
    if not config_path.is_file():
        raise ConfigurationError(
            f"{PROJECT_CONFIG_FILE} does not exist in the source folder"
        )

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read {PROJECT_CONFIG_FILE}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"invalid configuration -- {PROJECT_CONFIG_FILE} must contain an object")

    try:
        project = ProjectConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"invalid configuration -- {e}") from e

    log.debug(f"Loaded project config from {config_path}")
    return project.require_complete()
