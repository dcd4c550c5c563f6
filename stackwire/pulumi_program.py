"""Instantiate an artifact's plan as Pulumi resources.

Used as the inline program for previews and deployments, so the resources Pulumi manages are
exactly the ones the synthesized template describes.
"""

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pulumi
import pulumi_aws as aws
from pulumi import Output, ResourceOptions

from stackwire.exceptions import SynthesisError
from stackwire.expressions import Archive, Attr, Format, Json, transform

if TYPE_CHECKING:
    from stackwire.plan import PlannedResource
    from stackwire.synth import Artifact

logger = logging.getLogger(__name__)

RESOURCE_CLASSES: Mapping[str, type[pulumi.CustomResource]] = {
    "aws:s3/bucket:Bucket": aws.s3.Bucket,
    "aws:s3/bucketPublicAccessBlock:BucketPublicAccessBlock": aws.s3.BucketPublicAccessBlock,
    "aws:s3/bucketPolicy:BucketPolicy": aws.s3.BucketPolicy,
    "aws:cloudfront/originAccessControl:OriginAccessControl": aws.cloudfront.OriginAccessControl,
    "aws:cloudfront/distribution:Distribution": aws.cloudfront.Distribution,
    "aws:dynamodb/table:Table": aws.dynamodb.Table,
    "aws:cloudwatch/logGroup:LogGroup": aws.cloudwatch.LogGroup,
    "aws:iam/role:Role": aws.iam.Role,
    "aws:iam/rolePolicy:RolePolicy": aws.iam.RolePolicy,
    "aws:iam/rolePolicyAttachment:RolePolicyAttachment": aws.iam.RolePolicyAttachment,
    "aws:lambda/function:Function": aws.lambda_.Function,
    "aws:lambda/permission:Permission": aws.lambda_.Permission,
    "aws:apigateway/restApi:RestApi": aws.apigateway.RestApi,
    "aws:apigateway/resource:Resource": aws.apigateway.Resource,
    "aws:apigateway/method:Method": aws.apigateway.Method,
    "aws:apigateway/methodResponse:MethodResponse": aws.apigateway.MethodResponse,
    "aws:apigateway/integration:Integration": aws.apigateway.Integration,
    "aws:apigateway/integrationResponse:IntegrationResponse": aws.apigateway.IntegrationResponse,
    "aws:apigateway/response:Response": aws.apigateway.Response,
    "aws:apigateway/authorizer:Authorizer": aws.apigateway.Authorizer,
    "aws:apigateway/deployment:Deployment": aws.apigateway.Deployment,
    "aws:apigateway/stage:Stage": aws.apigateway.Stage,
    "aws:apigateway/methodSettings:MethodSettings": aws.apigateway.MethodSettings,
    "aws:apigateway/account:Account": aws.apigateway.Account,
    "aws:apigateway/apiKey:ApiKey": aws.apigateway.ApiKey,
    "aws:apigateway/usagePlan:UsagePlan": aws.apigateway.UsagePlan,
    "aws:apigateway/usagePlanKey:UsagePlanKey": aws.apigateway.UsagePlanKey,
}


def create_resources(artifact: "Artifact") -> dict[str, pulumi.CustomResource]:
    """Create Pulumi resources for every planned resource and export the outputs.

    Must run inside a Pulumi program (inline deployment or ``pulumi.runtime.test``).
    """
    resources: dict[str, pulumi.CustomResource] = {}
    resolve = _resolver(resources, artifact.root)

    for planned in artifact.resources:
        resources[planned.name] = _create_resource(planned, resources, resolve)

    for name, value in artifact.outputs.items():
        pulumi.export(name, transform(value, resolve))
    return resources


def program(artifact: "Artifact") -> Callable[[], None]:
    """Pulumi inline program for the artifact."""

    def run() -> None:
        create_resources(artifact)

    return run


def _create_resource(
    planned: "PlannedResource",
    resources: Mapping[str, pulumi.CustomResource],
    resolve: Callable[[Any], Any],
) -> pulumi.CustomResource:
    resource_class = RESOURCE_CLASSES.get(planned.type)
    if resource_class is None:
        raise SynthesisError(
            f"no Pulumi resource class for type '{planned.type}'", declaration_id=planned.owner
        )
    properties = transform(dict(planned.properties), resolve)
    logger.debug("Creating %s '%s'", planned.type, planned.name)
    return resource_class(
        planned.name,
        **properties,
        opts=ResourceOptions(
            depends_on=[resources[name] for name in planned.depends_on] or None,
            retain_on_delete=planned.retain_on_delete or None,
        ),
    )


def _resolver(
    resources: Mapping[str, pulumi.CustomResource], root: Path | None
) -> Callable[[Any], Any]:
    def resolve(token: Any) -> Any:  # noqa: ANN401
        if isinstance(token, Attr):
            return getattr(resources[token.resource], token.attribute)
        if isinstance(token, Format):
            return Output.format(token.template, *token.args)
        if isinstance(token, Json):
            return Output.json_dumps(token.document)
        if isinstance(token, Archive):
            path = Path(token.path)
            if root is not None and not path.is_absolute():
                path = root / path
            return pulumi.FileArchive(str(path))
        return token

    return resolve
