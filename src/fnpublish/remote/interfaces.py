"""Remote collaborator protocols consumed by the deployment pipeline.

Every method is a coroutine and raises exceptions from
``fnpublish.core.exceptions`` (never SDK-specific errors). Responses use the
AWS API field names (``FunctionName``, ``Version``, ``id``, ``path``...).
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class FunctionStore(Protocol):
    async def get_configuration(self, name: str) -> Dict[str, Any]: ...

    async def update_configuration(
        self,
        name: str,
        handler: Optional[str] = None,
        environment: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]: ...

    async def update_code(
        self,
        name: str,
        zip_file: Optional[bytes] = None,
        s3_bucket: Optional[str] = None,
        s3_key: Optional[str] = None,
    ) -> Dict[str, Any]: ...

    async def publish_version(self, name: str) -> Dict[str, Any]: ...

    async def get_alias(self, name: str, alias: str) -> Dict[str, Any]: ...

    async def create_alias(self, name: str, alias: str, version: str) -> Dict[str, Any]: ...

    async def update_alias(self, name: str, alias: str, version: str) -> Dict[str, Any]: ...

    async def get_policy(self, name: str, qualifier: str) -> Dict[str, Any]: ...

    async def add_permission(
        self,
        name: str,
        qualifier: str,
        statement_id: str,
        action: str,
        principal: str,
        source_arn: str,
    ) -> Dict[str, Any]: ...


@runtime_checkable
class ObjectStore(Protocol):
    async def put_object(self, bucket: str, key: str, path: Path) -> Dict[str, Any]: ...


@runtime_checkable
class GatewayStore(Protocol):
    async def get_api(self, api_id: str) -> Dict[str, Any]: ...

    async def get_resources(self, api_id: str) -> List[Dict[str, Any]]: ...

    async def delete_resource(self, api_id: str, resource_id: str) -> None: ...

    async def delete_method(
        self, api_id: str, resource_id: str, http_method: str
    ) -> None: ...

    async def create_resource(
        self, api_id: str, parent_id: str, path_part: str
    ) -> Dict[str, Any]: ...

    async def put_method(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        authorization_type: str = "NONE",
    ) -> Dict[str, Any]: ...

    async def put_integration(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        integration_type: str,
        uri: Optional[str] = None,
        integration_http_method: Optional[str] = None,
        request_templates: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]: ...

    async def put_method_response(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        status_code: str = "200",
        response_parameters: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]: ...

    async def put_integration_response(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        status_code: str = "200",
        response_parameters: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]: ...

    async def create_deployment(
        self, api_id: str, stage_name: str, variables: Dict[str, str]
    ) -> Dict[str, Any]: ...

    async def get_stage(self, api_id: str, stage_name: str) -> Dict[str, Any]: ...


@runtime_checkable
class IdentityProvider(Protocol):
    async def get_caller_identity(self) -> Dict[str, Any]: ...


class RemoteClients:
    """The four collaborators one update run talks to."""

    def __init__(
        self,
        functions: FunctionStore,
        objects: ObjectStore,
        gateway: GatewayStore,
        identity: IdentityProvider,
    ):
        self.functions = functions
        self.objects = objects
        self.gateway = gateway
        self.identity = identity
