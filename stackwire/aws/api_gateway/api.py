from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from stackwire.aws.permission import AwsPermission
from stackwire.expressions import Attr, Format
from stackwire.kinds import ResourceKind, resource_kind
from stackwire.naming import path_to_resource_name, safe_name

from .config import ApiGatewayConfig, ResourcePathConfig
from .constants import RESOURCE, REST_API

if TYPE_CHECKING:
    from stackwire.descriptor import ResourceDeclaration
    from stackwire.plan import PlanContext


def rest_api_resource_name(ctx: "PlanContext", api_id: str) -> str:
    return ctx.context.prefix(api_id)


def stage_resource_name(ctx: "PlanContext", api_id: str, stage_name: str) -> str:
    return safe_name(ctx.context.prefix(), f"{api_id}-stage-{stage_name}", 128)


def _invoke(attrs: Mapping[str, Any]) -> list[AwsPermission]:
    return [
        AwsPermission(
            actions=["execute-api:Invoke"], resources=[Format("{}/*", attrs["execution_arn"])]
        )
    ]


@resource_kind(
    ResourceKind.API_GATEWAY,
    ApiGatewayConfig,
    attributes=("id", "execution_arn", "root_resource_id", "url", "stage_name"),
    actions={"invoke": _invoke},
)
def materialize_api_gateway(
    ctx: "PlanContext", declaration: "ResourceDeclaration", config: ApiGatewayConfig
) -> dict[str, Any]:
    rest_api = ctx.plan.add(
        declaration.id,
        REST_API,
        rest_api_resource_name(ctx, declaration.id),
        description=config.description,
        endpoint_configuration={"types": config.endpoint_type.upper()},
    )
    # Stage is planned later with the routes, under this name
    stage = stage_resource_name(ctx, declaration.id, config.stage_name)
    return {
        "id": Attr(rest_api, "id"),
        "execution_arn": Attr(rest_api, "execution_arn"),
        "root_resource_id": Attr(rest_api, "root_resource_id"),
        "url": Format("{}/", Attr(stage, "invoke_url")),
        "stage_name": config.stage_name,
    }


@resource_kind(ResourceKind.RESOURCE_PATH, ResourcePathConfig, attributes=("id",))
def materialize_resource_path(
    ctx: "PlanContext", declaration: "ResourceDeclaration", config: ResourcePathConfig
) -> dict[str, Any]:
    if config.parent is None:
        parent_id = ctx.attribute(config.api, "root_resource_id")
    else:
        parent_id = ctx.attribute(config.parent, "id")
    resource = ctx.plan.add(
        declaration.id,
        RESOURCE,
        ctx.context.prefix(f"{config.api}-resource-{path_to_resource_name(config.path)}"),
        rest_api=ctx.attribute(config.api, "id"),
        parent_id=parent_id,
        path_part=config.path_part,
    )
    return {"id": Attr(resource, "id")}
