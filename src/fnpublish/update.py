"""The update pipeline: package, validate, publish, alias and gateway."""

import asyncio
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel

from .build.packager import PackageBuilder, check_source_dir
from .build.validator import entry_module, validate_package
from .config import API_ROUTER_NAME, RetryConfig
from .core.env_vars import resolve_env_vars
from .core.options import DeploymentContext, UpdateOptions
from .core.project import load_project_config
from .core.stage_logger import StageLogger
from .gateway.api_module import ApiModule
from .gateway.configurator import GatewayConfigurator, execute_api_arn
from .gateway.routes import RouteSet
from .hooks import post_deploy_event, run_post_deploy
from .publisher import VersionPublisher, current_variables
from .remote.interfaces import RemoteClients
from .remote.retry import RetryingClient

log = logging.getLogger(__name__)


class DeploymentResult(BaseModel):
    """Outcome of a successful update."""

    function_name: str
    function_arn: str
    version: str
    alias: str
    archive_path: Optional[str] = None
    s3_key: Optional[str] = None
    url: Optional[str] = None
    was_api_cache_used: Optional[bool] = None
    deploy: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def _default_clients(region: str) -> RemoteClients:
    from .remote.aws import create_aws_clients

    return create_aws_clients(region)


async def update(
    options: UpdateOptions,
    logger: Optional[StageLogger] = None,
    clients: Optional[RemoteClients] = None,
    retry_config: Optional[RetryConfig] = None,
) -> DeploymentResult:
    """
    Deploy a new version of an existing function (and its REST API).

    Configuration, option and environment-variable problems are raised before
    any remote call. A package that fails clean-room validation never reaches
    publication. Failures after the first mutation are not rolled back.

    Args:
        options: Resolved update options
        logger: Records stages and remote calls (a fresh one if omitted)
        clients: Remote collaborators (boto3-backed for the project region if omitted)
        retry_config: Throttling retry settings (RetryConfig.from_env() if omitted)

    Returns:
        DeploymentResult describing the published version

    Raises:
        ConfigurationError: Missing/invalid fnpublish.json or conflicting options
        EnvParsingError: Unreadable environment variable sources
        PackagingError: Copy or dependency installation failed
        ValidationError: The packaged entry module cannot be imported
        RemoteError: Any failure reported by AWS
    """
    logger = logger or StageLogger()
    retry_config = retry_config or RetryConfig.from_env()

    options.check_compatible()
    source_dir = options.source_dir()
    check_source_dir(source_dir)
    project = load_project_config(source_dir)
    env_vars = resolve_env_vars(options.set_env, options.set_env_from_json)

    name = project.function.name
    region = project.function.region
    alias = options.alias
    clients = clients or _default_clients(region)

    functions = RetryingClient(clients.functions, "lambda", logger, retry_config)
    objects = RetryingClient(clients.objects, "s3", logger, retry_config)
    gateway = RetryingClient(clients.gateway, "apigateway", logger, retry_config)
    identity = RetryingClient(clients.identity, "sts", logger, retry_config)
    publisher = VersionPublisher(functions, name)

    logger.log_stage("loading function config")
    configuration = await functions.get_configuration(name)
    if project.api:
        await gateway.get_api(project.api.id)

    with DeploymentContext(options=options, function_name=name) as ctx:
        ctx.keep_archive = options.keep
        builder = PackageBuilder(
            source_dir,
            ctx.package_dir,
            use_local_dependencies=options.use_local_dependencies,
            optional_dependencies=options.optional_dependencies,
        )

        logger.log_stage("packaging files")
        await asyncio.to_thread(builder.prepare)

        logger.log_stage("validating package")
        entry = entry_module(
            configuration.get("Handler"), project.api.module if project.api else None
        )
        load_env = env_vars if env_vars is not None else current_variables(configuration)
        await asyncio.to_thread(validate_package, ctx.package_dir, entry, load_env)

        api_module = None
        route_set = None
        if project.api:
            api_module = ApiModule.load(
                ctx.package_dir, project.api.module, environment=load_env
            )
            if project.api.is_proxy:
                route_set = RouteSet.catch_all()
            else:
                route_set = RouteSet.from_api_config(api_module.api_config())
        await asyncio.to_thread(builder.finalize)

        logger.log_stage("updating configuration")
        handler = None
        # proxy functions keep serving through their own handler
        if project.api and not project.api.is_proxy and api_module.has_router:
            handler = f"{project.api.module}.{API_ROUTER_NAME}"
        await publisher.update_configuration(configuration, env_vars, handler)

        logger.log_stage("zipping package")
        archive = await asyncio.to_thread(builder.archive, ctx.new_archive_path())
        ctx.archive_path = archive.path
        if options.use_s3_bucket:
            archive.s3_key = archive.path.name
            await objects.put_object(options.use_s3_bucket, archive.s3_key, archive.path)

        logger.log_stage("updating function")
        await publisher.upload_code(archive, options.use_s3_bucket)
        published = await publisher.publish_version()
        version = str(published["Version"])

        logger.log_stage("setting version alias")
        await publisher.set_alias(alias, version)

        result = DeploymentResult(
            function_name=name,
            function_arn=published["FunctionArn"],
            version=version,
            alias=alias,
            archive_path=str(archive.path) if options.keep else None,
            s3_key=archive.s3_key,
        )

        if project.api:
            logger.log_stage("updating REST API")
            caller = await identity.get_caller_identity()
            account_id = caller["Account"]
            await publisher.allow_invoke(
                alias,
                statement_id=f"fnpublish-apigateway-{project.api.id}",
                source_arn=execute_api_arn(region, account_id, project.api.id),
            )
            configurator = GatewayConfigurator(gateway, name, region, account_id)
            gateway_update = await configurator.configure(
                project.api.id,
                alias,
                route_set,
                stage_variables=options.stage_variables,
                cache_key=options.cache_api_config,
            )
            result.url = gateway_update.url
            result.was_api_cache_used = gateway_update.was_api_cache_used

            if api_module.has_post_deploy:
                event = post_deploy_event(
                    name, alias, project.api.id, region, gateway_update.url
                )
                result.deploy = await run_post_deploy(
                    api_module,
                    options.post_deploy_options,
                    event,
                    gateway_update.was_api_cache_used,
                )

    log.info(f"Updated {name} to version {version} ({alias})")
    return result
