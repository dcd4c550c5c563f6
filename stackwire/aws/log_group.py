from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypedDict, final

from stackwire.aws.permission import AwsPermission
from stackwire.expressions import Attr, Format
from stackwire.kinds import KindConfig, ResourceKind, check_choice, resource_kind

if TYPE_CHECKING:
    from stackwire.descriptor import ResourceDeclaration
    from stackwire.plan import PlanContext

LOG_GROUP = "aws:cloudwatch/logGroup:LogGroup"

# Values accepted by CloudWatch Logs for retentionInDays
RETENTION_DAYS = (
    1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545,
    731, 1096, 1827, 2192, 2557, 2922, 3288, 3653,
)  # fmt: skip


class LogGroupConfigDict(TypedDict, total=False):
    retention_days: int | None
    retention: Literal["destroy", "retain"]


@final
@dataclass(frozen=True, kw_only=True)
class LogGroupConfig(KindConfig):
    retention_days: int | None = 7
    retention: Literal["destroy", "retain"] = "retain"

    def __post_init__(self) -> None:
        if self.retention_days is not None:
            check_choice(self.retention_days, RETENTION_DAYS, "retention_days")
        check_choice(self.retention, ("destroy", "retain"), "retention")


def _write(attrs: Mapping[str, Any]) -> list[AwsPermission]:
    return [
        AwsPermission(
            actions=["logs:CreateLogStream", "logs:PutLogEvents"],
            resources=[Format("{}:*", attrs["arn"])],
        )
    ]


@resource_kind(
    ResourceKind.LOG_GROUP,
    LogGroupConfig,
    attributes=("name", "arn"),
    actions={"write": _write},
)
def materialize_log_group(
    ctx: "PlanContext", declaration: "ResourceDeclaration", config: LogGroupConfig
) -> dict[str, Any]:
    log_group = ctx.plan.add(
        declaration.id,
        LOG_GROUP,
        ctx.context.prefix(declaration.id),
        retention_in_days=config.retention_days,
        retain_on_delete=config.retention == "retain",
    )
    return {"name": Attr(log_group, "name"), "arn": Attr(log_group, "arn")}
