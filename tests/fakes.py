"""In-memory stand-ins for Lambda, S3, API Gateway and STS.

They follow the platform semantics the pipeline depends on: numbered versions
are assigned monotonically and never reused, ``$LATEST`` is separate from
numbered versions, aliases point at exactly one version, deleting a resource
deletes its children, stages keep their own variables and API Gateway can
only invoke an alias its resource policy names.
"""

import fnmatch
import itertools
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from fnpublish.core.exceptions import (
    RemoteNotFound,
    RemoteThrottling,
    UnknownRemoteError,
)
from fnpublish.remote.interfaces import RemoteClients

ACCOUNT_ID = "123456789012"
REGION = "us-east-1"
FUNCTION_NAME = "hello"

HELLO_MAIN = """\
def handler(event, context):
    return {"message": "aloha"}
"""

API_MAIN = """\
import json


def api_config():
    return {"version": 3, "routes": {"echo": {"GET": {}}}}


def router(event, context):
    return {"statusCode": 200, "body": json.dumps(event)}
"""


class _Throttles:
    """Makes the next N calls of an operation fail with a throttling error."""

    service = ""

    def __init__(self):
        self._throttles: Dict[str, int] = {}
        self.calls: List[str] = []

    def throttle(self, operation: str, times: int = 1) -> None:
        self._throttles[operation] = times

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        remaining = self._throttles.get(operation, 0)
        if remaining:
            self._throttles[operation] = remaining - 1
            raise RemoteThrottling(
                "Rate exceeded",
                code="TooManyRequestsException",
                service=self.service,
                operation=operation,
            )


class FakeLambda(_Throttles):
    service = "lambda"

    def __init__(self, region: str = REGION, objects: Optional["FakeS3"] = None):
        super().__init__()
        self.region = region
        self.objects = objects
        self.functions: Dict[str, Dict[str, Any]] = {}
        self.policies: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}

    def create_function(
        self,
        name: str,
        handler: str = "main.handler",
        variables: Optional[Dict[str, str]] = None,
        code: bytes = b"",
    ) -> None:
        """Create a function with $LATEST and version 1, like a first deployment."""
        latest = {"Handler": handler, "Variables": dict(variables or {}), "Code": code}
        self.functions[name] = {
            "latest": latest,
            "versions": {"1": dict(latest)},
            "aliases": {},
        }

    def _function(self, name: str, operation: str) -> Dict[str, Any]:
        if name not in self.functions:
            raise RemoteNotFound(
                f"Function not found: {name}",
                code="ResourceNotFoundException",
                service="lambda",
                operation=operation,
            )
        return self.functions[name]

    def _arn(self, name: str) -> str:
        return f"arn:aws:lambda:{self.region}:{ACCOUNT_ID}:function:{name}"

    async def get_configuration(self, name: str) -> Dict[str, Any]:
        self._enter("get_configuration")
        latest = self._function(name, "get_configuration")["latest"]
        return self._configuration(name, "$LATEST", latest)

    def _configuration(self, name: str, version: str, state: Dict[str, Any]) -> Dict[str, Any]:
        config = {
            "FunctionName": name,
            "FunctionArn": self._arn(name),
            "Handler": state["Handler"],
            "Version": version,
        }
        if state["Variables"]:
            config["Environment"] = {"Variables": dict(state["Variables"])}
        return config

    async def update_configuration(
        self,
        name: str,
        handler: Optional[str] = None,
        environment: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        self._enter("update_configuration")
        latest = self._function(name, "update_configuration")["latest"]
        if handler is not None:
            latest["Handler"] = handler
        if environment is not None:
            latest["Variables"] = dict(environment)
        return self._configuration(name, "$LATEST", latest)

    async def update_code(
        self,
        name: str,
        zip_file: Optional[bytes] = None,
        s3_bucket: Optional[str] = None,
        s3_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._enter("update_code")
        function = self._function(name, "update_code")
        if s3_bucket:
            zip_file = self.objects.buckets[s3_bucket][s3_key]
        function["latest"]["Code"] = zip_file
        return self._configuration(name, "$LATEST", function["latest"])

    async def publish_version(self, name: str) -> Dict[str, Any]:
        self._enter("publish_version")
        function = self._function(name, "publish_version")
        version = str(max(int(v) for v in function["versions"]) + 1)
        function["versions"][version] = dict(function["latest"])
        return {
            "FunctionName": name,
            "FunctionArn": f"{self._arn(name)}:{version}",
            "Version": version,
        }

    async def get_alias(self, name: str, alias: str) -> Dict[str, Any]:
        self._enter("get_alias")
        aliases = self._function(name, "get_alias")["aliases"]
        if alias not in aliases:
            raise RemoteNotFound(
                f"Alias not found: {alias}",
                code="ResourceNotFoundException",
                service="lambda",
                operation="get_alias",
            )
        return {"Name": alias, "FunctionVersion": aliases[alias]}

    async def create_alias(self, name: str, alias: str, version: str) -> Dict[str, Any]:
        self._enter("create_alias")
        aliases = self._function(name, "create_alias")["aliases"]
        if alias in aliases:
            raise UnknownRemoteError(
                f"Alias already exists: {alias}",
                code="ResourceConflictException",
                service="lambda",
                operation="create_alias",
            )
        aliases[alias] = version
        return {"Name": alias, "FunctionVersion": version}

    async def update_alias(self, name: str, alias: str, version: str) -> Dict[str, Any]:
        self._enter("update_alias")
        aliases = self._function(name, "update_alias")["aliases"]
        aliases[alias] = version
        return {"Name": alias, "FunctionVersion": version}

    async def get_policy(self, name: str, qualifier: str) -> Dict[str, Any]:
        self._enter("get_policy")
        self._function(name, "get_policy")
        statements = self.policies.get((name, qualifier))
        if not statements:
            raise RemoteNotFound(
                "The resource you requested does not exist.",
                code="ResourceNotFoundException",
                service="lambda",
                operation="get_policy",
            )
        return {"Policy": json.dumps({"Version": "2012-10-17", "Statement": statements})}

    async def add_permission(
        self,
        name: str,
        qualifier: str,
        statement_id: str,
        action: str,
        principal: str,
        source_arn: str,
    ) -> Dict[str, Any]:
        self._enter("add_permission")
        self._function(name, "add_permission")
        statements = self.policies.setdefault((name, qualifier), [])
        if any(s["Sid"] == statement_id for s in statements):
            raise UnknownRemoteError(
                f"The statement id ({statement_id}) provided already exists.",
                code="ResourceConflictException",
                service="lambda",
                operation="add_permission",
            )
        statement = {
            "Sid": statement_id,
            "Effect": "Allow",
            "Principal": {"Service": principal},
            "Action": action,
            "Resource": f"{self._arn(name)}:{qualifier}",
            "Condition": {"ArnLike": {"AWS:SourceArn": source_arn}},
        }
        statements.append(statement)
        return {"Statement": json.dumps(statement)}

    # inspection helpers

    def list_versions(self, name: str) -> List[str]:
        versions = sorted(self.functions[name]["versions"], key=int)
        return ["$LATEST"] + versions

    def alias_version(self, name: str, alias: str) -> Optional[str]:
        return self.functions[name]["aliases"].get(alias)

    def configuration_for(self, name: str, qualifier: str) -> Dict[str, Any]:
        function = self.functions[name]
        version = function["aliases"].get(qualifier, qualifier)
        return self._configuration(name, version, function["versions"][version])

    def can_invoke(self, name: str, qualifier: str, principal: str, source_arn: str) -> bool:
        """Whether a resource policy statement allows principal to invoke the qualifier."""
        return any(
            statement["Principal"] == {"Service": principal}
            and fnmatch.fnmatchcase(
                source_arn, statement["Condition"]["ArnLike"]["AWS:SourceArn"]
            )
            for statement in self.policies.get((name, qualifier), [])
        )


class FakeS3(_Throttles):
    service = "s3"

    def __init__(self):
        super().__init__()
        self.buckets: Dict[str, Dict[str, bytes]] = {}

    def create_bucket(self, bucket: str) -> None:
        self.buckets[bucket] = {}

    async def put_object(self, bucket: str, key: str, path: Path) -> Dict[str, Any]:
        self._enter("put_object")
        if bucket not in self.buckets:
            raise RemoteNotFound(
                f"Bucket not found: {bucket}",
                code="NoSuchBucket",
                service="s3",
                operation="put_object",
            )
        self.buckets[bucket][key] = Path(path).read_bytes()
        return {"ETag": f'"{key}"'}


class FakeApiGateway(_Throttles):
    service = "apigateway"

    def __init__(self):
        super().__init__()
        self.apis: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def create_api(self, api_id: str = "api123") -> str:
        root_id = f"r{next(self._ids)}"
        self.apis[api_id] = {
            "resources": {
                root_id: {"id": root_id, "path": "/", "resourceMethods": {}},
            },
            "stages": {},
        }
        return api_id

    def _api(self, api_id: str, operation: str) -> Dict[str, Any]:
        if api_id not in self.apis:
            raise RemoteNotFound(
                f"Invalid API identifier specified {ACCOUNT_ID}:{api_id}",
                code="NotFoundException",
                service="apigateway",
                operation=operation,
            )
        return self.apis[api_id]

    def _resource(self, api_id: str, resource_id: str, operation: str) -> Dict[str, Any]:
        resources = self._api(api_id, operation)["resources"]
        if resource_id not in resources:
            raise RemoteNotFound(
                "Invalid Resource identifier specified",
                code="NotFoundException",
                service="apigateway",
                operation=operation,
            )
        return resources[resource_id]

    async def get_api(self, api_id: str) -> Dict[str, Any]:
        self._enter("get_api")
        self._api(api_id, "get_api")
        return {"id": api_id, "name": api_id}

    async def get_resources(self, api_id: str) -> List[Dict[str, Any]]:
        self._enter("get_resources")
        resources = self._api(api_id, "get_resources")["resources"].values()
        return [
            {
                key: dict(value) if isinstance(value, dict) else value
                for key, value in resource.items()
            }
            for resource in resources
        ]

    async def delete_resource(self, api_id: str, resource_id: str) -> None:
        self._enter("delete_resource")
        self._resource(api_id, resource_id, "delete_resource")
        resources = self.apis[api_id]["resources"]
        doomed = [resource_id]
        while doomed:
            current = doomed.pop()
            resources.pop(current, None)
            doomed.extend(
                rid for rid, r in resources.items() if r.get("parentId") == current
            )

    async def delete_method(self, api_id: str, resource_id: str, http_method: str) -> None:
        self._enter("delete_method")
        resource = self._resource(api_id, resource_id, "delete_method")
        resource["resourceMethods"].pop(http_method, None)

    async def create_resource(
        self, api_id: str, parent_id: str, path_part: str
    ) -> Dict[str, Any]:
        self._enter("create_resource")
        parent = self._resource(api_id, parent_id, "create_resource")
        resource_id = f"r{next(self._ids)}"
        path = f"{parent['path'].rstrip('/')}/{path_part}"
        resource = {
            "id": resource_id,
            "parentId": parent_id,
            "pathPart": path_part,
            "path": path,
            "resourceMethods": {},
        }
        self.apis[api_id]["resources"][resource_id] = resource
        return dict(resource)

    async def put_method(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        authorization_type: str = "NONE",
    ) -> Dict[str, Any]:
        self._enter("put_method")
        resource = self._resource(api_id, resource_id, "put_method")
        if http_method in resource["resourceMethods"]:
            raise UnknownRemoteError(
                "Method already exists for this resource",
                code="ConflictException",
                service="apigateway",
                operation="put_method",
            )
        resource["resourceMethods"][http_method] = {
            "authorizationType": authorization_type
        }
        return {"httpMethod": http_method}

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
        self._enter("put_integration")
        method = self._method(api_id, resource_id, http_method, "put_integration")
        method["integration"] = {"type": integration_type, "uri": uri}
        return dict(method["integration"])

    async def put_method_response(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        status_code: str = "200",
        response_parameters: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]:
        self._enter("put_method_response")
        method = self._method(api_id, resource_id, http_method, "put_method_response")
        method.setdefault("methodResponses", {})[status_code] = response_parameters or {}
        return {"statusCode": status_code}

    async def put_integration_response(
        self,
        api_id: str,
        resource_id: str,
        http_method: str,
        status_code: str = "200",
        response_parameters: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        self._enter("put_integration_response")
        method = self._method(
            api_id, resource_id, http_method, "put_integration_response"
        )
        method.setdefault("integrationResponses", {})[status_code] = (
            response_parameters or {}
        )
        return {"statusCode": status_code}

    def _method(
        self, api_id: str, resource_id: str, http_method: str, operation: str
    ) -> Dict[str, Any]:
        resource = self._resource(api_id, resource_id, operation)
        if http_method not in resource["resourceMethods"]:
            raise RemoteNotFound(
                "Invalid Method identifier specified",
                code="NotFoundException",
                service="apigateway",
                operation=operation,
            )
        return resource["resourceMethods"][http_method]

    async def create_deployment(
        self, api_id: str, stage_name: str, variables: Dict[str, str]
    ) -> Dict[str, Any]:
        self._enter("create_deployment")
        api = self._api(api_id, "create_deployment")
        snapshot = {
            (resource["path"], method): dict(details.get("integration") or {})
            for resource in api["resources"].values()
            for method, details in resource["resourceMethods"].items()
        }
        stage = api["stages"].setdefault(stage_name, {"variables": {}})
        stage["variables"].update(variables)
        stage["routes"] = snapshot
        return {"id": f"d{next(self._ids)}"}

    async def get_stage(self, api_id: str, stage_name: str) -> Dict[str, Any]:
        self._enter("get_stage")
        stages = self._api(api_id, "get_stage")["stages"]
        if stage_name not in stages:
            raise RemoteNotFound(
                "Invalid Stage identifier specified",
                code="NotFoundException",
                service="apigateway",
                operation="get_stage",
            )
        return {"stageName": stage_name, "variables": dict(stages[stage_name]["variables"])}

    # inspection helpers

    def stage_routes(self, api_id: str, stage_name: str) -> Dict[Any, Any]:
        return self.apis[api_id]["stages"][stage_name]["routes"]

    def stage_variables(self, api_id: str, stage_name: str) -> Dict[str, str]:
        return self.apis[api_id]["stages"][stage_name]["variables"]

    def resource_paths(self, api_id: str) -> List[str]:
        return sorted(r["path"] for r in self.apis[api_id]["resources"].values())


class FakeSts(_Throttles):
    service = "sts"

    async def get_caller_identity(self) -> Dict[str, Any]:
        self._enter("get_caller_identity")
        return {"Account": ACCOUNT_ID, "Arn": f"arn:aws:iam::{ACCOUNT_ID}:user/test"}


class FakeAws:
    """All four collaborators sharing one account."""

    def __init__(self, region: str = REGION):
        self.region = region
        self.s3 = FakeS3()
        self.lambda_ = FakeLambda(region, self.s3)
        self.apigateway = FakeApiGateway()
        self.sts = FakeSts()

    def clients(self) -> RemoteClients:
        return RemoteClients(
            functions=self.lambda_,
            objects=self.s3,
            gateway=self.apigateway,
            identity=self.sts,
        )

    def invoke_stage(self, api_id: str, stage_name: str, path: str, method: str) -> str:
        """Function version serving a request to a deployed stage."""
        variables = self.apigateway.stage_variables(api_id, stage_name)
        routes = self.apigateway.stage_routes(api_id, stage_name)
        integration = routes.get((path, method)) or routes.get((path, "ANY"))
        if integration is None:
            raise KeyError(f"{method} {path} is not routed on {stage_name}")

        uri = integration["uri"]
        qualifier = uri.split(":function:", 1)[1].split("/", 1)[0].split(":", 1)[1]
        if qualifier.startswith("${stageVariables."):
            qualifier = variables[qualifier[len("${stageVariables."):-1]]
        name = uri.split(":function:", 1)[1].split(":", 1)[0]
        source_arn = (
            f"arn:aws:execute-api:{self.region}:{ACCOUNT_ID}:{api_id}"
            f"/{stage_name}/{method}{path}"
        )
        if not self.lambda_.can_invoke(name, qualifier, "apigateway.amazonaws.com", source_arn):
            raise PermissionError(f"Invalid permissions on Lambda function {name}:{qualifier}")
        return self.lambda_.functions[name]["aliases"][qualifier]
