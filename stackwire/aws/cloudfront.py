from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypedDict, final

from stackwire.aws.permission import AwsPermission
from stackwire.exceptions import ValidationError
from stackwire.expressions import Attr, Format, Ref
from stackwire.kinds import KindConfig, ResourceKind, check_bool, check_choice, resource_kind
from stackwire.naming import pascal_case

if TYPE_CHECKING:
    from stackwire.aws.s3 import StorageConfig
    from stackwire.descriptor import ResourceDeclaration
    from stackwire.plan import PlanContext

ORIGIN_ACCESS_CONTROL = "aws:cloudfront/originAccessControl:OriginAccessControl"
DISTRIBUTION = "aws:cloudfront/distribution:Distribution"

# AWS managed policies
# https://docs.aws.amazon.com/AmazonCloudFront/latest/DeveloperGuide/using-managed-cache-policies.html
CACHING_OPTIMIZED_POLICY_ID = "658327ea-f89d-4fab-a63d-7e88639e58f6"
SECURITY_HEADERS_POLICY_ID = "67f7725c-6f97-4210-82d7-5512b31e9d03"

CloudfrontPriceClass = Literal["PriceClass_100", "PriceClass_200", "PriceClass_All"]
ViewerProtocolPolicy = Literal["redirect-to-https", "https-only", "allow-all"]


class CdnConfigDict(TypedDict, total=False):
    origin: str
    default_root_object: str
    price_class: CloudfrontPriceClass
    viewer_protocol_policy: ViewerProtocolPolicy
    security_headers: bool
    spa_fallback: bool


@final
@dataclass(frozen=True, kw_only=True)
class CdnConfig(KindConfig):
    origin: str
    default_root_object: str | None = None
    price_class: CloudfrontPriceClass = "PriceClass_100"
    viewer_protocol_policy: ViewerProtocolPolicy = "redirect-to-https"
    security_headers: bool = True
    spa_fallback: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.origin, str) or not self.origin:
            raise ValidationError("option 'origin' must be the id of a Storage declaration")
        if self.default_root_object is not None and (
            not self.default_root_object or self.default_root_object.startswith("/")
        ):
            raise ValidationError("option 'default_root_object' must be an object key")
        check_choice(
            self.price_class, ("PriceClass_100", "PriceClass_200", "PriceClass_All"), "price_class"
        )
        check_choice(
            self.viewer_protocol_policy,
            ("redirect-to-https", "https-only", "allow-all"),
            "viewer_protocol_policy",
        )
        check_bool(self.security_headers, "security_headers")
        check_bool(self.spa_fallback, "spa_fallback")

    def references(self) -> tuple[Ref, ...]:
        return (
            Ref(self.origin, "regional_domain_name"),
            Ref(self.origin, "arn"),
        )


def _invalidate(attrs: Mapping[str, Any]) -> list[AwsPermission]:
    return [AwsPermission(actions=["cloudfront:CreateInvalidation"], resources=[attrs["arn"]])]


@resource_kind(
    ResourceKind.CDN,
    CdnConfig,
    attributes=("id", "arn", "domain_name"),
    actions={"invalidate": _invalidate},
)
def materialize_cdn(
    ctx: "PlanContext", declaration: "ResourceDeclaration", config: CdnConfig
) -> dict[str, Any]:
    prefix = ctx.context.prefix
    owner = declaration.id
    storage = ctx.expect_kind(config.origin, ResourceKind.STORAGE, "origin")
    storage_config: StorageConfig = storage.config
    root_object = config.default_root_object or storage_config.index_document
    origin_id = f"{owner}-S3-Origin"

    origin_access_control = ctx.plan.add(
        owner,
        ORIGIN_ACCESS_CONTROL,
        prefix(f"{owner}-oac"),
        name=prefix(f"{owner}-oac")[:64],
        description=f"Origin Access Control for {owner}",
        origin_access_control_origin_type="s3",
        signing_behavior="always",
        signing_protocol="sigv4",
    )

    # The origin is the bucket's REST endpoint signed through OAC, never its website endpoint.
    distribution = ctx.plan.add(
        owner,
        DISTRIBUTION,
        prefix(owner),
        origins=[
            {
                "domain_name": ctx.attribute(config.origin, "regional_domain_name"),
                "origin_id": origin_id,
                "origin_access_control_id": Attr(origin_access_control, "id"),
            }
        ],
        enabled=True,
        is_ipv6_enabled=True,
        default_root_object=root_object,
        default_cache_behavior={
            "allowed_methods": ["GET", "HEAD", "OPTIONS"],
            "cached_methods": ["GET", "HEAD"],
            "target_origin_id": origin_id,
            "compress": True,
            "viewer_protocol_policy": config.viewer_protocol_policy,
            "cache_policy_id": CACHING_OPTIMIZED_POLICY_ID,
            "response_headers_policy_id": SECURITY_HEADERS_POLICY_ID
            if config.security_headers
            else None,
        },
        price_class=config.price_class,
        restrictions={"geo_restriction": {"restriction_type": "none"}},
        viewer_certificate={"cloudfront_default_certificate": True},
        custom_error_responses=[
            {
                "error_code": error_code,
                "response_code": 200,
                "response_page_path": f"/{root_object}",
                "error_caching_min_ttl": 0,
            }
            for error_code in (403, 404)
        ]
        if config.spa_fallback
        else None,
    )

    distribution_arn = Attr(distribution, "arn")
    ctx.add_bucket_statement(
        config.origin,
        {
            "Sid": f"AllowCloudFront{pascal_case(owner)}",
            "Effect": "Allow",
            "Principal": {"Service": "cloudfront.amazonaws.com"},
            "Action": "s3:GetObject",
            "Resource": Format("{}/*", ctx.attribute(config.origin, "arn")),
            "Condition": {"StringEquals": {"AWS:SourceArn": distribution_arn}},
        },
    )

    return {
        "id": Attr(distribution, "id"),
        "arn": distribution_arn,
        "domain_name": Attr(distribution, "domain_name"),
    }
