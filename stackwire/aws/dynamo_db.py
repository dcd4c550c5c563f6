from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, TypedDict, final

from stackwire.aws.permission import AwsPermission
from stackwire.exceptions import ValidationError
from stackwire.expressions import Attr, Format
from stackwire.kinds import (
    KindConfig,
    ResourceKind,
    check_bool,
    check_choice,
    check_int,
    resource_kind,
)

if TYPE_CHECKING:
    from stackwire.descriptor import ResourceDeclaration
    from stackwire.plan import PlanContext

TABLE = "aws:dynamodb/table:Table"

FieldTypeLiteral = Literal["STRING", "NUMBER", "BINARY"]
BillingModeLiteral = Literal["PAY_PER_REQUEST", "PROVISIONED"]


class FieldType(Enum):
    STRING = "S"
    NUMBER = "N"
    BINARY = "B"


class TableConfigDict(TypedDict, total=False):
    partition_key_name: str
    partition_key_type: FieldTypeLiteral
    sort_key_name: str
    sort_key_type: FieldTypeLiteral
    billing_mode: BillingModeLiteral
    read_capacity: int
    write_capacity: int
    ttl_attribute: str
    point_in_time_recovery: bool
    retention: Literal["destroy", "retain"]


def _field_type(value: "FieldType | str", option: str) -> FieldType:
    if isinstance(value, FieldType):
        return value
    check_choice(value, FieldType.__members__, option)
    return FieldType[value]


@final
@dataclass(frozen=True, kw_only=True)
class TableConfig(KindConfig):
    partition_key_name: str
    partition_key_type: FieldType | FieldTypeLiteral
    sort_key_name: str | None = None
    sort_key_type: FieldType | FieldTypeLiteral | None = None
    billing_mode: BillingModeLiteral = "PAY_PER_REQUEST"
    read_capacity: int | None = None
    write_capacity: int | None = None
    ttl_attribute: str | None = None
    point_in_time_recovery: bool = False
    retention: Literal["destroy", "retain"] = "retain"

    def __post_init__(self) -> None:
        if not isinstance(self.partition_key_name, str) or not self.partition_key_name:
            raise ValidationError("option 'partition_key_name' cannot be empty")
        _field_type(self.partition_key_type, "partition_key_type")
        if (self.sort_key_name is None) != (self.sort_key_type is None):
            raise ValidationError(
                "options 'sort_key_name' and 'sort_key_type' must be given together"
            )
        if self.sort_key_type is not None:
            _field_type(self.sort_key_type, "sort_key_type")
            if self.sort_key_name == self.partition_key_name:
                raise ValidationError("sort key must differ from the partition key")
        check_choice(self.billing_mode, ("PAY_PER_REQUEST", "PROVISIONED"), "billing_mode")
        self._validate_capacity()
        if self.ttl_attribute is not None and (
            not isinstance(self.ttl_attribute, str) or not self.ttl_attribute
        ):
            raise ValidationError("option 'ttl_attribute' cannot be empty")
        check_bool(self.point_in_time_recovery, "point_in_time_recovery")
        check_choice(self.retention, ("destroy", "retain"), "retention")

    def _validate_capacity(self) -> None:
        capacities = {"read_capacity": self.read_capacity, "write_capacity": self.write_capacity}
        if self.billing_mode == "PROVISIONED":
            for option, value in capacities.items():
                if value is None:
                    raise ValidationError(
                        f"option '{option}' is required when billing_mode is PROVISIONED"
                    )
                check_int(value, option, 1)
        elif any(value is not None for value in capacities.values()):
            raise ValidationError(
                "read_capacity and write_capacity are only allowed with PROVISIONED billing"
            )

    @property
    def attributes(self) -> list[dict[str, str]]:
        """Key attribute definitions; non-key attributes are schemaless."""
        attributes = [
            {
                "name": self.partition_key_name,
                "type": _field_type(self.partition_key_type, "partition_key_type").value,
            }
        ]
        if self.sort_key_name is not None:
            attributes.append(
                {
                    "name": self.sort_key_name,
                    "type": _field_type(self.sort_key_type, "sort_key_type").value,
                }
            )
        return attributes


def _read(attrs: Mapping[str, Any]) -> list[AwsPermission]:
    return [
        AwsPermission(
            actions=[
                "dynamodb:GetItem",
                "dynamodb:BatchGetItem",
                "dynamodb:Query",
                "dynamodb:Scan",
                "dynamodb:ConditionCheckItem",
                "dynamodb:DescribeTable",
            ],
            resources=[attrs["arn"], Format("{}/index/*", attrs["arn"])],
        )
    ]


def _write(attrs: Mapping[str, Any]) -> list[AwsPermission]:
    return [
        AwsPermission(
            actions=[
                "dynamodb:PutItem",
                "dynamodb:UpdateItem",
                "dynamodb:DeleteItem",
                "dynamodb:BatchWriteItem",
            ],
            resources=[attrs["arn"]],
        )
    ]


@resource_kind(
    ResourceKind.TABLE,
    TableConfig,
    attributes=("name", "arn"),
    actions={"read": _read, "write": _write},
)
def materialize_table(
    ctx: "PlanContext", declaration: "ResourceDeclaration", config: TableConfig
) -> dict[str, Any]:
    table = ctx.plan.add(
        declaration.id,
        TABLE,
        ctx.context.prefix(declaration.id),
        billing_mode=config.billing_mode,
        hash_key=config.partition_key_name,
        range_key=config.sort_key_name,
        attributes=config.attributes,
        read_capacity=config.read_capacity,
        write_capacity=config.write_capacity,
        ttl={"attribute_name": config.ttl_attribute, "enabled": True}
        if config.ttl_attribute
        else None,
        point_in_time_recovery={"enabled": config.point_in_time_recovery},
        retain_on_delete=config.retention == "retain",
    )
    return {"name": Attr(table, "name"), "arn": Attr(table, "arn")}
