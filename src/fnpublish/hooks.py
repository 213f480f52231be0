"""Post-deploy hook support."""

import logging
from typing import Any, Dict

from .gateway.api_module import ApiModule

log = logging.getLogger(__name__)


def post_deploy_event(
    function_name: str, alias: str, api_id: str, region: str, url: str
) -> Dict[str, Any]:
    return {
        "name": function_name,
        "alias": alias,
        "api_id": api_id,
        "region": region,
        "api_url": url,
    }


async def run_post_deploy(
    api_module: ApiModule,
    options: Dict[str, Any],
    event: Dict[str, Any],
    was_api_cache_used: bool,
) -> Dict[str, Any]:
    """
    Invoke the module's post_deploy hook.

    Exceptions raised by the hook propagate, failing the update.

    Returns:
        ``{"result": <hook return value>, "was_api_cache_used": <bool>}``
    """
    log.info(f"Running post-deploy hook of {api_module.name}")
    result = await api_module.post_deploy(dict(options), event)
    return {"result": result, "was_api_cache_used": was_api_cache_used}
