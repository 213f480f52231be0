"""boto3-backed implementations of the remote collaborator protocols.

boto3 is synchronous, so every call runs in a worker thread via
``asyncio.to_thread``. ``ClientError`` and connection failures are converted
into the fnpublish exception taxonomy here, so nothing above this module sees
botocore types.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    EndpointConnectionError,
    WaiterError,
)

from ..core.exceptions import (
    RemoteError,
    RemoteNotFound,
    RemoteThrottling,
    UnknownRemoteError,
)
from .interfaces import RemoteClients

log = logging.getLogger(__name__)

THROTTLING_CODES = {
    "TooManyRequestsException",
    "ThrottlingException",
    "Throttling",
    "RequestLimitExceeded",
}
GATEWAY_THROTTLING_CODES = THROTTLING_CODES | {"LimitExceededException"}
NOT_FOUND_CODES = {
    "ResourceNotFoundException",
    "NotFoundException",
    "NoSuchBucket",
    "NoSuchKey",
}


def normalize_client_error(
    error: ClientError, service: str, operation: str
) -> RemoteError:
    """Map a botocore ``ClientError`` onto the remote error taxonomy.

    Args:
        error: Error raised by a boto3 client
        service: fnpublish service name (``lambda``, ``s3``, ``apigateway``, ``sts``)
        operation: Operation being called

    Returns:
        RemoteNotFound, RemoteThrottling or UnknownRemoteError carrying the AWS code
    """
    details = error.response.get("Error", {})
    code = details.get("Code") or "Unknown"
    message = details.get("Message") or str(error)

    throttling = GATEWAY_THROTTLING_CODES if service == "apigateway" else THROTTLING_CODES
    if code in throttling:
        cls = RemoteThrottling
    elif code in NOT_FOUND_CODES:
        cls = RemoteNotFound
    else:
        cls = UnknownRemoteError
    return cls(message, code=code, service=service, operation=operation)


class _AwsAdapter:
    """Shared client creation and error normalization for the adapters."""

    service: str = ""
    client_name: str = ""

    def __init__(self, region: str, session: Optional[boto3.session.Session] = None):
        self.region = region
        self._session = session
        self._client = None

    def _get_client(self):
        if self._client is None:
            session = self._session or boto3.session.Session()
            self._client = session.client(self.client_name, region_name=self.region)
            log.debug(f"{self.client_name} client initialized for {self.region}")
        return self._client

    async def _call(self, operation: str, func: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, **kwargs)
        except ClientError as e:
            raise normalize_client_error(e, self.service, operation) from e
        except (EndpointConnectionError, BotoConnectionError) as e:
            raise UnknownRemoteError(
                str(e), code="ConnectionError", service=self.service, operation=operation
            ) from e
        except WaiterError as e:
            raise UnknownRemoteError(
                str(e), code="WaiterError", service=self.service, operation=operation
            ) from e
        except BotoCoreError as e:
            raise UnknownRemoteError(
                str(e), code=type(e).__name__, service=self.service, operation=operation
            ) from e

    async def _invoke(self, operation: str, method: str, **kwargs: Any) -> Any:
        client = self._get_client()
        return await self._call(operation, getattr(client, method), **kwargs)


class LambdaFunctionStore(_AwsAdapter):
    service = "lambda"
    client_name = "lambda"

    async def get_configuration(self, name: str) -> Dict[str, Any]:
        return await self._invoke(
            "get_configuration", "get_function_configuration", FunctionName=name
        )

    async def update_configuration(
        self,
        name: str,
        handler: Optional[str] = None,
        environment: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"FunctionName": name}
        if handler is not None:
            params["Handler"] = handler
        if environment is not None:
            params["Environment"] = {"Variables": dict(environment)}
        result = await self._invoke(
            "update_configuration", "update_function_configuration", **params
        )
        await self._wait_until_updated("update_configuration", name)
        return result

    async def update_code(
        self,
        name: str,
        zip_file: Optional[bytes] = None,
        s3_bucket: Optional[str] = None,
        s3_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"FunctionName": name}
        if s3_bucket:
            params.update(S3Bucket=s3_bucket, S3Key=s3_key)
        else:
            params["ZipFile"] = zip_file
        result = await self._invoke("update_code", "update_function_code", **params)
        await self._wait_until_updated("update_code", name)
        return result

    async def publish_version(self, name: str) -> Dict[str, Any]:
        return await self._invoke("publish_version", "publish_version", FunctionName=name)

    async def get_alias(self, name: str, alias: str) -> Dict[str, Any]:
        return await self._invoke("get_alias", "get_alias", FunctionName=name, Name=alias)

    async def create_alias(self, name: str, alias: str, version: str) -> Dict[str, Any]:
        return await self._invoke(
            "create_alias",
            "create_alias",
            FunctionName=name,
            Name=alias,
            FunctionVersion=version,
        )

    async def update_alias(self, name: str, alias: str, version: str) -> Dict[str, Any]:
        return await self._invoke(
            "update_alias",
            "update_alias",
            FunctionName=name,
            Name=alias,
            FunctionVersion=version,
        )

    async def get_policy(self, name: str, qualifier: str) -> Dict[str, Any]:
        return await self._invoke(
            "get_policy", "get_policy", FunctionName=name, Qualifier=qualifier
        )

    async def add_permission(
        self,
        name: str,
        qualifier: str,
        statement_id: str,
        action: str,
        principal: str,
        source_arn: str,
    ) -> Dict[str, Any]:
        return await self._invoke(
            "add_permission",
            "add_permission",
            FunctionName=name,
            Qualifier=qualifier,
            StatementId=statement_id,
            Action=action,
            Principal=principal,
            SourceArn=source_arn,
        )

    async def _wait_until_updated(self, operation: str, name: str) -> None:
        # Lambda rejects the next mutation while LastUpdateStatus is InProgress
        waiter = self._get_client().get_waiter("function_updated")
        await self._call(operation, waiter.wait, FunctionName=name)


class S3ObjectStore(_AwsAdapter):
    service = "s3"
    client_name = "s3"

    async def put_object(self, bucket: str, key: str, path: Path) -> Dict[str, Any]:
        body = Path(path).read_bytes()
        return await self._invoke(
            "put_object", "put_object", Bucket=bucket, Key=key, Body=body
        )


class ApiGatewayStore(_AwsAdapter):
    service = "apigateway"
    client_name = "apigateway"

    async def get_api(self, api_id: str) -> Dict[str, Any]:
        return await self._invoke("get_api", "get_rest_api", restApiId=api_id)

    async def get_resources(self, api_id: str) -> List[Dict[str, Any]]:
        client = self._get_client()
        paginator = client.get_paginator("get_resources")

        def collect() -> List[Dict[str, Any]]:
            items: List[Dict[str, Any]] = []
            for page in paginator.paginate(restApiId=api_id, embed=["methods"]):
                items.extend(page.get("items", []))
            return items

        return await self._call("get_resources", collect)

    async def delete_resource(self, api_id: str, resource_id: str) -> None:
        await self._invoke(
            "delete_resource",
            "delete_resource",
            restApiId=api_id,
            resourceId=resource_id,
        )

    async def delete_method(
        self, api_id: str, resource_id: str, http_method: str
    ) -> None:
        await self._invoke(
            "delete_method",
            "delete_method",
            restApiId=api_id,
            resourceId=resource_id,
            httpMethod=http_method,
        )

    async def create_resource(
        self, api_id: str, parent_id: str, path_part: str
    ) -> Dict[str, Any]:
        return await self._invoke(
            "create_resource",
            "create_resource",
            restApiId=api_id,
            parentId=parent_id,
            pathPart=path_part,
        )

    async def put_method(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        authorization_type: str = "NONE",
    ) -> Dict[str, Any]:
        return await self._invoke(
            "put_method",
            "put_method",
            restApiId=api_id,
            resourceId=resource_id,
            httpMethod=http_method,
            authorizationType=authorization_type,
        )

    async def put_integration(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        integration_type: str,
        uri: Optional[str] = None,
        integration_http_method: Optional[str] = None,
        request_templates: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "restApiId": api_id,
            "resourceId": resource_id,
            "httpMethod": http_method,
            "type": integration_type,
        }
        if uri is not None:
            params["uri"] = uri
        if integration_http_method is not None:
            params["integrationHttpMethod"] = integration_http_method
        if request_templates is not None:
            params["requestTemplates"] = request_templates
        return await self._invoke("put_integration", "put_integration", **params)

    async def put_method_response(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        status_code: str = "200",
        response_parameters: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]:
        return await self._invoke(
            "put_method_response",
            "put_method_response",
            restApiId=api_id,
            resourceId=resource_id,
            httpMethod=http_method,
            statusCode=status_code,
            responseParameters=response_parameters or {},
        )

    async def put_integration_response(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        status_code: str = "200",
        response_parameters: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        return await self._invoke(
            "put_integration_response",
            "put_integration_response",
            restApiId=api_id,
            resourceId=resource_id,
            httpMethod=http_method,
            statusCode=status_code,
            responseParameters=response_parameters or {},
        )

    async def create_deployment(
        self, api_id: str, stage_name: str, variables: Dict[str, str]
    ) -> Dict[str, Any]:
        return await self._invoke(
            "create_deployment",
            "create_deployment",
            restApiId=api_id,
            stageName=stage_name,
            variables=dict(variables),
        )

    async def get_stage(self, api_id: str, stage_name: str) -> Dict[str, Any]:
        return await self._invoke(
            "get_stage", "get_stage", restApiId=api_id, stageName=stage_name
        )


class StsIdentityProvider(_AwsAdapter):
    service = "sts"
    client_name = "sts"

    async def get_caller_identity(self) -> Dict[str, Any]:
        return await self._invoke("get_caller_identity", "get_caller_identity")


def create_aws_clients(
    region: str, session: Optional[boto3.session.Session] = None
) -> RemoteClients:
    """Build boto3-backed collaborators for one region."""
    session = session or boto3.session.Session()
    return RemoteClients(
        functions=LambdaFunctionStore(region, session),
        objects=S3ObjectStore(region, session),
        gateway=ApiGatewayStore(region, session),
        identity=StsIdentityProvider(region, session),
    )
