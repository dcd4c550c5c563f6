import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from stackwire.aws.permission import AwsPermission
from stackwire.expressions import Archive, Attr
from stackwire.kinds import ResourceKind, resource_kind
from stackwire.naming import safe_name

from .config import FunctionConfig
from .iam import attach_tracing_policy, create_lambda_role

if TYPE_CHECKING:
    from stackwire.descriptor import ResourceDeclaration
    from stackwire.plan import PlanContext

logger = logging.getLogger(__name__)

LAMBDA_FUNCTION = "aws:lambda/function:Function"


def _invoke(attrs: Mapping[str, Any]) -> list[AwsPermission]:
    return [AwsPermission(actions=["lambda:InvokeFunction"], resources=[attrs["arn"]])]


@resource_kind(
    ResourceKind.FUNCTION,
    FunctionConfig,
    attributes=("name", "arn", "invoke_arn", "role_arn", "role_name"),
    actions={"invoke": _invoke},
)
def materialize_function(
    ctx: "PlanContext", declaration: "ResourceDeclaration", config: FunctionConfig
) -> dict[str, Any]:
    name = declaration.id
    logger.debug("Planning function '%s' (%s, %s)", name, config.runtime, config.handler)

    role = create_lambda_role(ctx, name)
    depends_on = []
    if config.tracing_enabled:
        depends_on.append(attach_tracing_policy(ctx, name, role))

    log_group = None
    if config.log_group is not None:
        ctx.expect_kind(config.log_group, ResourceKind.LOG_GROUP, "log_group")
        log_group = ctx.attribute(config.log_group, "name")

    function = ctx.plan.add(
        name,
        LAMBDA_FUNCTION,
        safe_name(ctx.context.prefix(), name, 64),
        role=Attr(role, "arn"),
        runtime=config.runtime,
        handler=config.handler,
        code=Archive(config.code_location),
        description=config.description,
        memory_size=config.memory_mb,
        timeout=config.timeout_seconds,
        environment={"variables": dict(config.env_vars)} if config.env_vars else None,
        tracing_config={"mode": "Active" if config.tracing_enabled else "PassThrough"},
        logging_config={"log_format": "Text", "log_group": log_group} if log_group else None,
        depends_on=depends_on,
    )

    return {
        "name": Attr(function, "name"),
        "arn": Attr(function, "arn"),
        "invoke_arn": Attr(function, "invoke_arn"),
        "role_arn": Attr(role, "arn"),
        "role_name": Attr(role, "name"),
    }
