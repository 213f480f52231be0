"""fnpublish update command."""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from ...core.exceptions import FnPublishError
from ...core.options import UpdateOptions
from ...update import update

console = Console()


def parse_passthrough(args: List[str]) -> Dict[str, Any]:
    """Turn leftover ``--key value`` / ``--flag`` arguments into a dict."""
    options: Dict[str, Any] = {}
    i = 0
    while i < len(args):
        arg = args[i]
        if not arg.startswith("--"):
            i += 1
            continue
        key = arg[2:]
        if "=" in key:
            key, value = key.split("=", 1)
            options[key] = value
        elif i + 1 < len(args) and not args[i + 1].startswith("--"):
            options[key] = args[i + 1]
            i += 1
        else:
            options[key] = True
        i += 1
    return options


def update_command(
    ctx: typer.Context,
    source: Optional[Path] = None,
    version: Optional[str] = None,
    keep: bool = False,
    use_local_dependencies: bool = False,
    optional_dependencies: bool = True,
    use_s3_bucket: Optional[str] = None,
    set_env: Optional[str] = None,
    set_env_from_json: Optional[Path] = None,
    cache_api_config: Optional[str] = None,
):
    """Deploy a new version of the function described by fnpublish.json."""
    options = UpdateOptions(
        source=source,
        version=version,
        keep=keep,
        use_local_dependencies=use_local_dependencies,
        optional_dependencies=optional_dependencies,
        use_s3_bucket=use_s3_bucket,
        set_env=set_env,
        set_env_from_json=set_env_from_json,
        cache_api_config=cache_api_config,
        post_deploy_options=parse_passthrough(list(ctx.args)),
    )

    try:
        result = asyncio.run(update(options))
    except FnPublishError as e:
        console.print(f"[red]Update failed:[/red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(code=1)

    console.print_json(data=result.to_dict(), default=str)
