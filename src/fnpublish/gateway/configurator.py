"""Synchronizes the REST API resource tree and stage with a route set."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from ..config import ALIAS_STAGE_VARIABLE
from ..core.exceptions import RemoteNotFound
from .cache import config_digest, stage_has_digest
from .routes import ANY_METHOD, PROXY_PATH, RouteSet

log = logging.getLogger(__name__)

CORS_HEADERS = "Content-Type,X-Amz-Date,Authorization,X-Api-Key,X-Amz-Security-Token"


def api_url(api_id: str, region: str, stage: str) -> str:
    return f"https://{api_id}.execute-api.{region}.amazonaws.com/{stage}"


def execute_api_arn(region: str, account_id: str, api_id: str) -> str:
    """Source ARN covering every stage, method and path of the API."""
    return f"arn:aws:execute-api:{region}:{account_id}:{api_id}/*/*/*"


def integration_uri(region: str, account_id: str, function_name: str) -> str:
    """Lambda integration target resolving the alias through a stage variable."""
    function_arn = (
        f"arn:aws:lambda:{region}:{account_id}:function:{function_name}"
        f":${{stageVariables.{ALIAS_STAGE_VARIABLE}}}"
    )
    return (
        f"arn:aws:apigateway:{region}:lambda:path/2015-03-31/functions/"
        f"{function_arn}/invocations"
    )


@dataclass
class GatewayUpdate:
    url: str
    was_api_cache_used: bool
    digest: Optional[str] = None


class GatewayConfigurator:
    """Applies a RouteSet to one REST API and deploys it as a stage.

    Args:
        gateway: GatewayStore (normally wrapped by RetryingClient)
        function_name: Lambda function the routes integrate with
        region: AWS region of the function and the API
        account_id: AWS account owning the function
    """

    def __init__(self, gateway: Any, function_name: str, region: str, account_id: str):
        self.gateway = gateway
        self.function_name = function_name
        self.region = region
        self.account_id = account_id

    @property
    def uri(self) -> str:
        return integration_uri(self.region, self.account_id, self.function_name)

    async def configure(
        self,
        api_id: str,
        alias: str,
        route_set: RouteSet,
        stage_variables: Optional[Mapping[str, str]] = None,
        cache_key: Optional[str] = None,
    ) -> GatewayUpdate:
        """
        Resync the API with route_set and deploy it to the stage named alias.

        When cache_key is given and the stage already carries the digest of
        the same configuration under that variable, nothing is changed.

        Returns:
            GatewayUpdate with the stage URL and whether the cache was used
        """
        url = api_url(api_id, self.region, alias)
        extra = dict(stage_variables or {})
        variables = {**extra, ALIAS_STAGE_VARIABLE: alias}

        digest = None
        if cache_key:
            digest = config_digest(route_set, alias, extra)
            if stage_has_digest(await self._get_stage(api_id, alias), cache_key, digest):
                log.info(f"API configuration unchanged for stage {alias}, skipping resync")
                return GatewayUpdate(url=url, was_api_cache_used=True, digest=digest)
            variables[cache_key] = digest

        if route_set.proxy:
            await self._sync_proxy(api_id)
        else:
            await self._sync_routes(api_id, route_set)

        await self.gateway.create_deployment(api_id, alias, variables)
        log.info(f"Deployed API {api_id} to stage {alias}")
        return GatewayUpdate(url=url, was_api_cache_used=False, digest=digest)

    async def _get_stage(self, api_id: str, stage_name: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.gateway.get_stage(api_id, stage_name)
        except RemoteNotFound:
            return None

    async def _sync_routes(self, api_id: str, route_set: RouteSet) -> None:
        resources = await self.gateway.get_resources(api_id)
        root = _find(resources, "/")
        root_id = root["id"]

        # children go with their parents
        for resource in resources:
            if resource.get("parentId") == root_id:
                await self.gateway.delete_resource(api_id, resource["id"])
        for method in (root.get("resourceMethods") or {}):
            await self.gateway.delete_method(api_id, root_id, method)

        ids = {"/": root_id}
        for path in route_set.resource_paths():
            parent, _, part = path.rpartition("/")
            created = await self.gateway.create_resource(api_id, ids[parent or "/"], part)
            ids[path] = created["id"]

        for path in route_set.paths_with_methods():
            methods = route_set.methods_for(path)
            for method in methods:
                await self._put_lambda_method(api_id, ids[path], method)
            if route_set.cors and "OPTIONS" not in methods:
                await self._put_cors_method(api_id, ids[path], methods)

    async def _sync_proxy(self, api_id: str) -> None:
        resources = await self.gateway.get_resources(api_id)
        root = _find(resources, "/")
        proxy = _find(resources, PROXY_PATH, required=False)
        if proxy is None:
            proxy = await self.gateway.create_resource(api_id, root["id"], "{proxy+}")

        for resource in (root, proxy):
            if ANY_METHOD not in (resource.get("resourceMethods") or {}):
                await self.gateway.put_method(api_id, resource["id"], ANY_METHOD)
            await self.gateway.put_integration(
                api_id,
                resource["id"],
                ANY_METHOD,
                "AWS_PROXY",
                uri=self.uri,
                integration_http_method="POST",
            )

    async def _put_lambda_method(self, api_id: str, resource_id: str, method: str) -> None:
        await self.gateway.put_method(api_id, resource_id, method)
        await self.gateway.put_integration(
            api_id,
            resource_id,
            method,
            "AWS_PROXY",
            uri=self.uri,
            integration_http_method="POST",
        )
        await self.gateway.put_method_response(api_id, resource_id, method, "200")
        await self.gateway.put_integration_response(api_id, resource_id, method, "200")

    async def _put_cors_method(
        self, api_id: str, resource_id: str, methods: List[str]
    ) -> None:
        allowed = ",".join(sorted(set(methods) | {"OPTIONS"}))
        headers = {
            "method.response.header.Access-Control-Allow-Headers": f"'{CORS_HEADERS}'",
            "method.response.header.Access-Control-Allow-Methods": f"'{allowed}'",
            "method.response.header.Access-Control-Allow-Origin": "'*'",
        }
        await self.gateway.put_method(api_id, resource_id, "OPTIONS")
        await self.gateway.put_integration(
            api_id,
            resource_id,
            "OPTIONS",
            "MOCK",
            request_templates={"application/json": '{"statusCode": 200}'},
        )
        await self.gateway.put_method_response(
            api_id,
            resource_id,
            "OPTIONS",
            "200",
            response_parameters={name: False for name in headers},
        )
        await self.gateway.put_integration_response(
            api_id, resource_id, "OPTIONS", "200", response_parameters=headers
        )


def _find(
    resources: List[Dict[str, Any]], path: str, required: bool = True
) -> Optional[Dict[str, Any]]:
    for resource in resources:
        if resource.get("path") == path:
            return resource
    if required:
        raise RemoteNotFound(
            f"Resource {path} not found", code="NotFoundException", service="apigateway"
        )
    return None
