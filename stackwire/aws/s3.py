import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypedDict, final

from stackwire.aws.iam import policy_document
from stackwire.aws.permission import AwsPermission
from stackwire.exceptions import ValidationError
from stackwire.expressions import Attr, Format
from stackwire.kinds import KindConfig, ResourceKind, check_bool, check_choice, resource_kind

if TYPE_CHECKING:
    from stackwire.descriptor import ResourceDeclaration
    from stackwire.plan import PlanContext

logger = logging.getLogger(__name__)

BUCKET = "aws:s3/bucket:Bucket"
BUCKET_PUBLIC_ACCESS_BLOCK = "aws:s3/bucketPublicAccessBlock:BucketPublicAccessBlock"
BUCKET_POLICY = "aws:s3/bucketPolicy:BucketPolicy"

EncryptionLiteral = Literal["s3_managed", "kms_managed", "unencrypted"]
RetentionLiteral = Literal["destroy", "retain"]

SSE_ALGORITHMS = {"s3_managed": "AES256", "kms_managed": "aws:kms"}


class StorageConfigDict(TypedDict, total=False):
    index_document: str
    public_access: bool
    encryption: EncryptionLiteral
    enforce_tls: bool
    retention: RetentionLiteral
    auto_delete_objects: bool
    versioned: bool


@final
@dataclass(frozen=True, kw_only=True)
class StorageConfig(KindConfig):
    index_document: str = "index.html"
    public_access: bool = False
    encryption: EncryptionLiteral = "s3_managed"
    enforce_tls: bool = True
    retention: RetentionLiteral = "retain"
    auto_delete_objects: bool = False
    versioned: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.index_document, str) or not self.index_document.strip():
            raise ValidationError("option 'index_document' cannot be empty")
        if self.index_document.startswith("/"):
            raise ValidationError("option 'index_document' must be an object key, not a path")
        check_bool(self.public_access, "public_access")
        check_choice(self.encryption, ("s3_managed", "kms_managed", "unencrypted"), "encryption")
        check_bool(self.enforce_tls, "enforce_tls")
        check_choice(self.retention, ("destroy", "retain"), "retention")
        check_bool(self.auto_delete_objects, "auto_delete_objects")
        check_bool(self.versioned, "versioned")
        if self.auto_delete_objects and self.retention != "destroy":
            raise ValidationError(
                "option 'auto_delete_objects' requires retention='destroy'; "
                "retained buckets keep their objects"
            )


def _read(attrs: Mapping[str, Any]) -> list[AwsPermission]:
    return [
        AwsPermission(actions=["s3:GetObject"], resources=[Format("{}/*", attrs["arn"])])
    ]


def _write(attrs: Mapping[str, Any]) -> list[AwsPermission]:
    return [
        AwsPermission(
            actions=["s3:PutObject", "s3:DeleteObject"],
            resources=[Format("{}/*", attrs["arn"])],
        )
    ]


def _list(attrs: Mapping[str, Any]) -> list[AwsPermission]:
    return [AwsPermission(actions=["s3:ListBucket"], resources=[attrs["arn"]])]


@resource_kind(
    ResourceKind.STORAGE,
    StorageConfig,
    attributes=("name", "arn", "regional_domain_name"),
    actions={"read": _read, "write": _write, "list": _list},
)
def materialize_storage(
    ctx: "PlanContext", declaration: "ResourceDeclaration", config: StorageConfig
) -> dict[str, Any]:
    prefix = ctx.context.prefix
    owner = declaration.id

    sse_algorithm = SSE_ALGORITHMS.get(config.encryption)
    bucket = ctx.plan.add(
        owner,
        BUCKET,
        prefix(owner),
        force_destroy=config.auto_delete_objects,
        versioning={"enabled": config.versioned},
        server_side_encryption_configuration={
            "rule": {"apply_server_side_encryption_by_default": {"sse_algorithm": sse_algorithm}}
        }
        if sse_algorithm
        else None,
        retain_on_delete=config.retention == "retain",
    )

    # Blocking is all-or-nothing: a private bucket is only reachable through signed
    # requests (CDN origin access control or granted principals).
    blocked = not config.public_access
    public_access_block = ctx.plan.add(
        owner,
        BUCKET_PUBLIC_ACCESS_BLOCK,
        prefix(f"{owner}-pab"),
        bucket=Attr(bucket, "id"),
        block_public_acls=blocked,
        block_public_policy=blocked,
        ignore_public_acls=blocked,
        restrict_public_buckets=blocked,
    )

    arn = Attr(bucket, "arn")
    ctx.register_bucket(owner, Attr(bucket, "id"), depends_on=[public_access_block])
    if config.enforce_tls:
        ctx.add_bucket_statement(
            owner,
            {
                "Sid": "DenyInsecureTransport",
                "Effect": "Deny",
                "Principal": "*",
                "Action": "s3:*",
                "Resource": [arn, Format("{}/*", arn)],
                "Condition": {"Bool": {"aws:SecureTransport": "false"}},
            },
        )
    if config.public_access:
        logger.warning("Storage '%s' allows public reads", owner)
        ctx.add_bucket_statement(
            owner,
            {
                "Sid": "AllowPublicRead",
                "Effect": "Allow",
                "Principal": "*",
                "Action": "s3:GetObject",
                "Resource": Format("{}/*", arn),
            },
        )

    return {
        "name": Attr(bucket, "bucket"),
        "arn": arn,
        "regional_domain_name": Attr(bucket, "bucket_regional_domain_name"),
    }


def emit_bucket_policies(ctx: "PlanContext") -> None:
    """Plan one bucket policy per bucket holding every statement contributed to it."""
    for storage_id, bucket, depends_on, statements in ctx.bucket_policies():
        if not statements:
            continue
        ctx.plan.add(
            storage_id,
            BUCKET_POLICY,
            ctx.context.prefix(f"{storage_id}-policy"),
            bucket=bucket,
            policy=policy_document(statements),
            depends_on=list(depends_on),
        )
