"""
Test configuration and fixtures for fnpublish tests.

Provides shared fixtures for:
- In-memory AWS collaborators
- Project directories written into tmp_path
- Fast retry settings
- Environment variable management
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest

from fakes import API_MAIN, FUNCTION_NAME, HELLO_MAIN, FakeAws
from fnpublish.config import RetryConfig
from fnpublish.core.stage_logger import StageLogger


@pytest.fixture
def fake_aws() -> FakeAws:
    """Provide in-memory AWS with one existing function.

    Returns:
        FakeAws where ``hello`` exists with $LATEST and version 1.
    """
    aws = FakeAws()
    aws.lambda_.create_function(FUNCTION_NAME)
    return aws


@pytest.fixture
def stage_logger() -> StageLogger:
    return StageLogger()


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Retry settings without sleeping."""
    return RetryConfig(max_attempts=3, base_delay=0.0, max_delay=0.0, jitter=0.0)


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Provide a factory writing a project directory.

    Returns:
        Callable(files, config, name) returning the project path. ``config``
        is written as fnpublish.json unless it is None.
    """

    def factory(
        files: Dict[str, str],
        config: Optional[Dict[str, Any]] = None,
        name: str = "project",
    ) -> Path:
        project_dir = tmp_path / name
        project_dir.mkdir()
        for relative, content in files.items():
            path = project_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        if config is not None:
            (project_dir / "fnpublish.json").write_text(json.dumps(config))
        return project_dir

    return factory


@pytest.fixture
def hello_project(make_project, fake_aws) -> Path:
    """Project deploying the ``hello`` function without an API."""
    return make_project(
        {"main.py": HELLO_MAIN},
        {"function": {"name": FUNCTION_NAME, "region": fake_aws.region}},
    )


@pytest.fixture
def api_project(make_project, fake_aws) -> Path:
    """Project with a route-based API module bound to an existing REST API."""
    api_id = fake_aws.apigateway.create_api("api123")
    return make_project(
        {"main.py": API_MAIN},
        {
            "function": {"name": FUNCTION_NAME, "region": fake_aws.region},
            "api": {"id": api_id, "module": "main"},
        },
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Keep host settings from leaking into tests."""
    for key in (
        "FNPUBLISH_RETRY_MAX_ATTEMPTS",
        "FNPUBLISH_RETRY_BASE_DELAY",
        "FNPUBLISH_RETRY_MAX_DELAY",
        "FNPUBLISH_RICH_UI",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
