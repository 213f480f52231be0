"""Digest of the logical gateway configuration, stored as a stage variable."""

from typing import Any, Dict, Mapping, Optional

from ..core.utils.json import content_digest
from .routes import RouteSet


def config_digest(
    route_set: RouteSet, alias: str, stage_variables: Optional[Mapping[str, str]] = None
) -> str:
    """Identical logical inputs give identical digests, whatever their key order."""
    return content_digest(
        {
            "routes": route_set.to_canonical(),
            "alias": alias,
            "stageVariables": dict(stage_variables or {}),
        }
    )


def stage_has_digest(
    stage: Optional[Dict[str, Any]], cache_key: str, digest: str
) -> bool:
    if not stage:
        return False
    return (stage.get("variables") or {}).get(cache_key) == digest
