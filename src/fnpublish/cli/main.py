"""Main CLI entry point for fnpublish."""

from importlib import metadata
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

from ..logger import setup_logging


def get_version() -> str:
    """Get the package version from metadata."""
    try:
        return metadata.version("fnpublish")
    except metadata.PackageNotFoundError:
        return "unknown"


console = Console()

# command: fnpublish
app = typer.Typer(
    name="fnpublish",
    help="Publish Python functions to AWS Lambda and API Gateway",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.command(
    "update",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def update_cmd(
    ctx: typer.Context,
    source: Optional[Path] = typer.Option(None, help="Project directory (defaults to current directory)"),
    version: Optional[str] = typer.Option(None, help="Alias and stage name (defaults to latest)"),
    keep: bool = typer.Option(False, "--keep", help="Keep the ZIP archive on disk"),
    use_local_dependencies: bool = typer.Option(
        False, "--use-local-dependencies", help="Copy vendor/ instead of installing requirements"
    ),
    optional_dependencies: bool = typer.Option(
        True,
        "--optional-dependencies/--no-optional-dependencies",
        help="Keep requirements-optional.txt packages in the archive",
    ),
    use_s3_bucket: Optional[str] = typer.Option(None, help="Upload the archive to this S3 bucket"),
    set_env: Optional[str] = typer.Option(None, help="Environment variables as K=V,K2=V2"),
    set_env_from_json: Optional[Path] = typer.Option(None, help="JSON file with environment variables"),
    cache_api_config: Optional[str] = typer.Option(
        None, help="Stage variable storing the API configuration digest"
    ),
):
    """Package, validate and publish a new function version.

    Unrecognised --key value pairs are passed to the API module's post_deploy hook.
    """
    from .commands.update import update_command

    return update_command(
        ctx,
        source=source,
        version=version,
        keep=keep,
        use_local_dependencies=use_local_dependencies,
        optional_dependencies=optional_dependencies,
        use_s3_bucket=use_s3_bucket,
        set_env=set_env,
        set_env_from_json=set_env_from_json,
        cache_api_config=cache_api_config,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    show_version: bool = typer.Option(False, "--about", help="Show version"),
):
    """fnpublish - publish Python functions to AWS Lambda."""
    load_dotenv()
    setup_logging()

    if show_version:
        console.print(f"fnpublish v{get_version()}")
        raise typer.Exit()


if __name__ == "__main__":
    app()
