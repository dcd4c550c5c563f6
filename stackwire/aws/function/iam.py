from stackwire.aws.iam import ROLE_POLICY_ATTACHMENT, create_service_role
from stackwire.expressions import Attr
from stackwire.naming import safe_name
from stackwire.plan import PlanContext

from .constants import XRAY_WRITE_ACCESS


def create_lambda_role(ctx: PlanContext, name: str) -> str:
    """Execution role for a function. It starts without any permissions."""
    return create_service_role(
        ctx, name, safe_name(ctx.context.prefix(), name, 64, "-r"), "lambda.amazonaws.com"
    )


def attach_tracing_policy(ctx: PlanContext, name: str, role: str) -> str:
    return ctx.plan.add(
        name,
        ROLE_POLICY_ATTACHMENT,
        ctx.context.prefix(f"{name}-xray-r-p-attachment"),
        role=Attr(role, "name"),
        policy_arn=XRAY_WRITE_ACCESS,
    )
