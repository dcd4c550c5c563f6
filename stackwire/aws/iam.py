import json
from typing import Any

from stackwire.expressions import Json
from stackwire.plan import PlanContext

POLICY_VERSION = "2012-10-17"

ROLE = "aws:iam/role:Role"
ROLE_POLICY = "aws:iam/rolePolicy:RolePolicy"
ROLE_POLICY_ATTACHMENT = "aws:iam/rolePolicyAttachment:RolePolicyAttachment"


def assume_role_policy(service: str) -> str:
    """Trust policy letting an AWS service principal assume a role."""
    return json.dumps(
        {
            "Version": POLICY_VERSION,
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"Service": service},
                    "Action": "sts:AssumeRole",
                }
            ],
        },
        sort_keys=True,
    )


def policy_document(statements: list[dict[str, Any]]) -> Json:
    return Json({"Version": POLICY_VERSION, "Statement": statements})


def create_service_role(ctx: PlanContext, owner: str, name: str, service: str) -> str:
    return ctx.plan.add(owner, ROLE, name, assume_role_policy=assume_role_policy(service))
