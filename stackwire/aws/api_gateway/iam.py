import logging

from stackwire.aws.iam import ROLE_POLICY_ATTACHMENT, create_service_role
from stackwire.expressions import Attr
from stackwire.plan import PlanContext

from .constants import ACCOUNT, API_GATEWAY_LOGS_POLICY, API_GATEWAY_ROLE_NAME

logger = logging.getLogger("stackwire.aws.api_gateway")

ACCOUNT_RESOURCE_NAME = "api-gateway-account"


def create_api_gateway_account_and_role(ctx: PlanContext, owner: str) -> str:
    """Plan the region-wide API Gateway account settings with a CloudWatch push role.

    Planned once per artifact, shared by all gateways that log.
    """
    if ACCOUNT_RESOURCE_NAME in ctx.plan:
        return ACCOUNT_RESOURCE_NAME

    logger.info("Gateway '%s' logs to CloudWatch, planning API Gateway account role", owner)
    role = create_service_role(ctx, owner, API_GATEWAY_ROLE_NAME, "apigateway.amazonaws.com")
    attachment = ctx.plan.add(
        owner,
        ROLE_POLICY_ATTACHMENT,
        f"{API_GATEWAY_ROLE_NAME}-logs-attachment",
        role=Attr(role, "name"),
        policy_arn=API_GATEWAY_LOGS_POLICY,
    )
    return ctx.plan.add(
        owner,
        ACCOUNT,
        ACCOUNT_RESOURCE_NAME,
        cloudwatch_role_arn=Attr(role, "arn"),
        depends_on=[attachment],
        retain_on_delete=True,
    )
