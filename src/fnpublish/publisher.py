"""Function configuration, code upload, version publication and aliases."""

import json
import logging
from typing import Any, Dict, Optional, Set

from .build.packager import PackageArchive
from .core.exceptions import RemoteNotFound

log = logging.getLogger(__name__)

INVOKE_ACTION = "lambda:InvokeFunction"
API_GATEWAY_PRINCIPAL = "apigateway.amazonaws.com"


def current_variables(configuration: Dict[str, Any]) -> Dict[str, str]:
    """Environment variables of a get_configuration response."""
    return dict((configuration.get("Environment") or {}).get("Variables") or {})


def policy_statement_ids(response: Dict[str, Any]) -> Set[str]:
    """Sids of a get_policy response (the policy document arrives as a JSON string)."""
    policy = json.loads(response.get("Policy") or "{}")
    return {statement.get("Sid") for statement in policy.get("Statement", [])}


class VersionPublisher:
    """Publishes new immutable versions of one function and moves aliases.

    Args:
        functions: FunctionStore (normally wrapped by RetryingClient)
        function_name: Name of the deployed function
    """

    def __init__(self, functions: Any, function_name: str):
        self.functions = functions
        self.function_name = function_name

    async def update_configuration(
        self,
        configuration: Dict[str, Any],
        environment: Optional[Dict[str, str]] = None,
        handler: Optional[str] = None,
    ) -> bool:
        """
        Apply environment and handler changes, if any.

        Args:
            configuration: Current remote configuration
            environment: Replacement variables, or None to leave them as they are
            handler: Required handler, or None to keep the current one

        Returns:
            True if the remote configuration was changed
        """
        changes: Dict[str, Any] = {}
        if environment is not None:
            changes["environment"] = environment
        if handler and configuration.get("Handler") != handler:
            log.info(f"Upgrading handler {configuration.get('Handler')} -> {handler}")
            changes["handler"] = handler

        if not changes:
            log.debug("Function configuration unchanged")
            return False

        await self.functions.update_configuration(self.function_name, **changes)
        return True

    async def upload_code(
        self, archive: PackageArchive, s3_bucket: Optional[str] = None
    ) -> Dict[str, Any]:
        """Replace $LATEST with the archive (from S3 when it was uploaded there)."""
        if s3_bucket and archive.s3_key:
            return await self.functions.update_code(
                self.function_name, s3_bucket=s3_bucket, s3_key=archive.s3_key
            )
        return await self.functions.update_code(
            self.function_name, zip_file=archive.path.read_bytes()
        )

    async def publish_version(self) -> Dict[str, Any]:
        result = await self.functions.publish_version(self.function_name)
        log.info(f"Published {self.function_name} version {result['Version']}")
        return result

    async def set_alias(self, alias: str, version: str) -> Dict[str, Any]:
        """Point alias at version, creating the alias when it does not exist.

        Other aliases of the function are never touched.
        """
        try:
            await self.functions.get_alias(self.function_name, alias)
        except RemoteNotFound:
            log.debug(f"Creating alias {alias} -> {version}")
            return await self.functions.create_alias(self.function_name, alias, version)

        log.debug(f"Moving alias {alias} -> {version}")
        return await self.functions.update_alias(self.function_name, alias, version)

    async def allow_invoke(
        self,
        alias: str,
        statement_id: str,
        source_arn: str,
        principal: str = API_GATEWAY_PRINCIPAL,
    ) -> bool:
        """
        Grant principal permission to invoke the alias.

        Resource policies are kept per qualifier, so every alias needs its own
        statement. Nothing is sent when the statement already exists.

        Returns:
            True if a permission was added
        """
        try:
            response = await self.functions.get_policy(self.function_name, alias)
        except RemoteNotFound:
            response = {}

        if statement_id in policy_statement_ids(response):
            log.debug(f"Invoke permission {statement_id} already granted on {alias}")
            return False

        await self.functions.add_permission(
            self.function_name,
            qualifier=alias,
            statement_id=statement_id,
            action=INVOKE_ACTION,
            principal=principal,
            source_arn=source_arn,
        )
        log.info(f"Granted {principal} permission to invoke {self.function_name}:{alias}")
        return True
