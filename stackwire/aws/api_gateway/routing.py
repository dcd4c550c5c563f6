import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from stackwire.expressions import Attr, Format
from stackwire.naming import path_to_resource_name, safe_name

from .api import stage_resource_name
from .config import ApiGatewayConfig
from .constants import (
    API_KEY,
    AUTHORIZER,
    INTEGRATION,
    LAMBDA_PERMISSION,
    METHOD,
    METHOD_SETTINGS,
    STAGE,
    USAGE_PLAN,
    USAGE_PLAN_KEY,
)
from .cors import create_cors_gateway_responses, create_cors_options_method
from .deployment import calculate_deployment_hash, create_deployment
from .iam import create_api_gateway_account_and_role

if TYPE_CHECKING:
    from stackwire.plan import PlanContext
    from stackwire.routes import RouteBinding

logger = logging.getLogger(__name__)

AUTHORIZATION_TYPES = {"none": "NONE", "api_key": "NONE", "iam": "AWS_IAM", "custom": "CUSTOM"}


def resource_path_id(api: str, path: Sequence[str]) -> str:
    """Declaration id of the ResourcePath for a path on a gateway."""
    return f"{api}:/{'/'.join(path)}"


def _resource_id(ctx: "PlanContext", api: str, path: Sequence[str]) -> Any:  # noqa: ANN401
    if not path:
        return ctx.attribute(api, "root_resource_id")
    return ctx.attribute(resource_path_id(api, path), "id")


def _create_authorizers(
    ctx: "PlanContext", api: str, bindings: Sequence["RouteBinding"]
) -> dict[str, str]:
    """Plan one TOKEN authorizer per authorizer function, with its invoke permission."""
    rest_api = ctx.attribute(api, "id")
    execution_arn = ctx.attribute(api, "execution_arn")
    authorizers = {}
    for binding in bindings:
        function = binding.authorization.authorizer
        if function is None or function in authorizers:
            continue
        authorizer = ctx.plan.add(
            api,
            AUTHORIZER,
            safe_name(ctx.context.prefix(), f"{api}-authorizer-{function}", 128),
            rest_api=rest_api,
            name=function,
            type="TOKEN",
            authorizer_uri=ctx.attribute(function, "invoke_arn"),
            identity_source="method.request.header.Authorization",
            authorizer_result_ttl_in_seconds=300,
        )
        ctx.plan.add(
            api,
            LAMBDA_PERMISSION,
            safe_name(ctx.context.prefix(), f"{api}-authorizer-{function}-permission", 128),
            action="lambda:InvokeFunction",
            function=ctx.attribute(function, "name"),
            principal="apigateway.amazonaws.com",
            source_arn=Format("{}/authorizers/{}", execution_arn, Attr(authorizer, "id")),
        )
        authorizers[function] = authorizer
    return authorizers


def _create_method_and_integration(
    ctx: "PlanContext", binding: "RouteBinding", authorizers: dict[str, str]
) -> tuple[str, str]:
    api = binding.api
    auth = binding.authorization
    name_part = f"{binding.method}-{path_to_resource_name(binding.path)}"
    resource_id = _resource_id(ctx, api, binding.path)
    rest_api = ctx.attribute(api, "id")

    method = ctx.plan.add(
        api,
        METHOD,
        ctx.context.prefix(f"{api}-method-{name_part}"),
        rest_api=rest_api,
        resource_id=resource_id,
        http_method=binding.method,
        authorization=AUTHORIZATION_TYPES[auth.type.value],
        authorizer_id=Attr(authorizers[auth.authorizer], "id") if auth.authorizer else None,
        api_key_required=True if auth.type.value == "api_key" else None,
    )

    # Integration must wait for Method to be created in AWS; referencing the method's
    # http_method makes that dependency explicit.
    integration = ctx.plan.add(
        api,
        INTEGRATION,
        ctx.context.prefix(f"{api}-integration-{name_part}"),
        rest_api=rest_api,
        resource_id=resource_id,
        http_method=Attr(method, "http_method"),
        integration_http_method="POST",
        type="AWS_PROXY",
        uri=ctx.attribute(binding.handler, "invoke_arn"),
    )
    return method, integration


def _create_function_permissions(
    ctx: "PlanContext", api: str, bindings: Sequence["RouteBinding"]
) -> None:
    """One invoke permission per function, shared by all of its routes on this gateway."""
    execution_arn = ctx.attribute(api, "execution_arn")
    for handler in dict.fromkeys(binding.handler for binding in bindings):
        ctx.plan.add(
            api,
            LAMBDA_PERMISSION,
            safe_name(ctx.context.prefix(), f"{api}-{handler}-permission", 128),
            action="lambda:InvokeFunction",
            function=ctx.attribute(handler, "name"),
            principal="apigateway.amazonaws.com",
            source_arn=Format("{}/*/*", execution_arn),
        )


def _create_api_key(ctx: "PlanContext", api: str, config: ApiGatewayConfig, stage: str) -> None:
    prefix = ctx.context.prefix
    api_key = ctx.plan.add(api, API_KEY, prefix(f"{api}-api-key"), name=prefix(f"{api}-key"))
    usage_plan = ctx.plan.add(
        api,
        USAGE_PLAN,
        prefix(f"{api}-usage-plan"),
        name=prefix(f"{api}-usage-plan"),
        api_stages=[{"api_id": ctx.attribute(api, "id"), "stage": Attr(stage, "stage_name")}],
        throttle_settings={
            "rate_limit": float(config.throttling_rate_limit),
            "burst_limit": config.throttling_burst_limit,
        },
    )
    ctx.plan.add(
        api,
        USAGE_PLAN_KEY,
        prefix(f"{api}-usage-plan-key"),
        key_id=Attr(api_key, "id"),
        key_type="API_KEY",
        usage_plan_id=Attr(usage_plan, "id"),
    )


def emit_api_routes(
    ctx: "PlanContext", api: str, config: ApiGatewayConfig, bindings: Sequence["RouteBinding"]
) -> None:
    """Plan methods, integrations, permissions, deployment and stage for one gateway."""
    rest_api = ctx.attribute(api, "id")
    authorizers = _create_authorizers(ctx, api, bindings)

    deployment_dependencies = []
    for binding in bindings:
        deployment_dependencies.extend(_create_method_and_integration(ctx, binding, authorizers))
    _create_function_permissions(ctx, api, bindings)

    cors_config = config.normalized_cors
    if cors_config:
        deployment_dependencies.extend(
            create_cors_gateway_responses(ctx, rest_api, cors_config, api)
        )
        methods_by_path: dict[tuple[str, ...], set[str]] = {}
        for binding in bindings:
            methods_by_path.setdefault(binding.path, set()).add(binding.method)
        for path, methods in methods_by_path.items():
            if "OPTIONS" in methods:
                continue
            deployment_dependencies.extend(
                create_cors_options_method(
                    ctx, rest_api, _resource_id(ctx, api, path), path, methods, cors_config, api
                )
            )

    deployment = create_deployment(
        ctx,
        rest_api,
        api,
        calculate_deployment_hash(bindings, cors_config),
        depends_on=deployment_dependencies,
    )

    stage_depends_on = []
    if config.logging_level != "OFF":
        stage_depends_on.append(create_api_gateway_account_and_role(ctx, api))

    stage = ctx.plan.add(
        api,
        STAGE,
        stage_resource_name(ctx, api, config.stage_name),
        rest_api=rest_api,
        deployment=Attr(deployment, "id"),
        stage_name=config.stage_name,
        xray_tracing_enabled=config.tracing_enabled,
        depends_on=stage_depends_on,
    )

    ctx.plan.add(
        api,
        METHOD_SETTINGS,
        safe_name(ctx.context.prefix(), f"{api}-method-settings-{config.stage_name}", 128),
        rest_api=rest_api,
        stage_name=Attr(stage, "stage_name"),
        method_path="*/*",
        settings={
            "throttling_rate_limit": float(config.throttling_rate_limit),
            "throttling_burst_limit": config.throttling_burst_limit,
            "logging_level": config.logging_level,
            "data_trace_enabled": config.data_trace_enabled,
            "metrics_enabled": False,
        },
    )

    if any(binding.authorization.type.value == "api_key" for binding in bindings):
        _create_api_key(ctx, api, config, stage)

    logger.info(
        "Gateway '%s': %d route(s), %d function(s), stage '%s'",
        api,
        len(bindings),
        len({binding.handler for binding in bindings}),
        config.stage_name,
    )
