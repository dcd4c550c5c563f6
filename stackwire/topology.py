"""Reference serverless web topology.

A private static site bucket served through a CDN, one request-handling function backed by a
table, a log group for the function and a REST gateway routing ``/items`` to the function.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from stackwire.aws.cors import CorsConfig
from stackwire.expressions import Ref
from stackwire.routes import AuthorizationInput

if TYPE_CHECKING:
    from stackwire.descriptor import Descriptor

ITEM_METHODS = ("GET", "POST", "PUT", "DELETE")
CORS_HEADERS = ["Content-Type", "X-Amz-Date", "Authorization", "X-Api-Key"]


@dataclass(frozen=True, kw_only=True)
class ServerlessWebSettings:
    """Knobs of the reference topology.

    ``route_authorization`` applies to every ``/items`` route and has no default.
    """

    route_authorization: AuthorizationInput
    code_location: str = "lambda"
    runtime: str = "nodejs18.x"
    handler: str = "index.handler"
    env_vars: Mapping[str, str] = field(default_factory=dict)
    allow_origins: str | list[str] = "*"
    retention: Literal["destroy", "retain"] = "destroy"


@dataclass(frozen=True)
class ServerlessWebIds:
    bucket: str = "website-bucket"
    distribution: str = "website-distribution"
    table: str = "main-table"
    log_group: str = "lambda-log-group"
    function: str = "main-lambda"
    api: str = "serverless-api"


def serverless_web(
    descriptor: "Descriptor",
    settings: ServerlessWebSettings,
    ids: ServerlessWebIds | None = None,
) -> ServerlessWebIds:
    """Declare the reference topology on a descriptor and return the ids it used."""
    ids = ids or ServerlessWebIds()
    destroy = settings.retention == "destroy"

    descriptor.storage(
        ids.bucket,
        index_document="index.html",
        public_access=False,
        encryption="s3_managed",
        enforce_tls=True,
        retention=settings.retention,
        auto_delete_objects=destroy,
    )
    descriptor.cdn(
        ids.distribution,
        origin=ids.bucket,
        default_root_object="index.html",
        viewer_protocol_policy="redirect-to-https",
        security_headers=True,
        spa_fallback=True,
    )
    descriptor.table(
        ids.table,
        partition_key_name="id",
        partition_key_type="STRING",
        billing_mode="PAY_PER_REQUEST",
        ttl_attribute="ttl",
        point_in_time_recovery=True,
        retention=settings.retention,
    )
    descriptor.log_group(ids.log_group, retention_days=7, retention=settings.retention)

    env_vars: dict[str, Any] = {
        "TABLE_NAME": Ref(ids.table, "name"),
        "NODE_OPTIONS": "--enable-source-maps",
        **settings.env_vars,
    }
    descriptor.function(
        ids.function,
        runtime=settings.runtime,
        handler=settings.handler,
        code_location=settings.code_location,
        env_vars=env_vars,
        timeout_seconds=30,
        memory_mb=256,
        log_group=ids.log_group,
        tracing_enabled=True,
    )
    descriptor.grant(ids.function, ids.table, {"read", "write"})
    descriptor.grant(ids.function, ids.log_group, {"write"})

    descriptor.api(
        ids.api,
        description="Serverless API",
        stage_name="prod",
        throttling_rate_limit=100,
        throttling_burst_limit=50,
        logging_level="INFO",
        data_trace_enabled=True,
        cors=CorsConfig(
            allow_origins=settings.allow_origins,
            allow_methods="*",
            allow_headers=list(CORS_HEADERS),
        ),
    )
    for method in ITEM_METHODS:
        descriptor.bind(
            ids.api,
            "/items",
            method,
            ids.function,
            authorization=settings.route_authorization,
        )

    descriptor.output(
        "distributionDomainName",
        Ref(ids.distribution, "domain_name"),
        "CloudFront Distribution Domain Name",
    )
    descriptor.output("apiEndpointUrl", Ref(ids.api, "url"), "API Gateway Endpoint")
    descriptor.output("logGroupName", Ref(ids.log_group, "name"), "Lambda Log Group Name")
    return ids
