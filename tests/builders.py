"""Small descriptor builders shared by the test modules."""

from stackwire.descriptor import Descriptor
from stackwire.routes import Authorization
from stackwire.topology import ServerlessWebSettings, serverless_web

# Plan names of the reference topology for app "test", env "test"
BUCKET = "test-test-website-bucket"
BUCKET_POLICY = "test-test-website-bucket-policy"
PUBLIC_ACCESS_BLOCK = "test-test-website-bucket-pab"
DISTRIBUTION = "test-test-website-distribution"
OAC = "test-test-website-distribution-oac"
TABLE = "test-test-main-table"
LOG_GROUP = "test-test-lambda-log-group"
FUNCTION = "test-test-main-lambda"
ROLE = "test-test-main-lambda-r"
GRANT_POLICY = "test-test-main-lambda-p"
REST_API = "test-test-serverless-api"
ITEMS_RESOURCE = "test-test-serverless-api-resource-items"
STAGE = "test-test-serverless-api-stage-prod"
DEPLOYMENT = "test-test-serverless-api-deployment"
PERMISSION = "test-test-serverless-api-main-lambda-permission"


def function(descriptor: Descriptor, function_id: str = "handler", **opts):
    return descriptor.function(
        function_id,
        runtime=opts.pop("runtime", "nodejs18.x"),
        handler=opts.pop("handler", "index.handler"),
        code_location=opts.pop("code_location", "lambda"),
        **opts,
    )


def api_with_route(
    descriptor: Descriptor,
    api_id: str = "api",
    handler: str = "handler",
    path: str = "/items",
    method: str = "GET",
    authorization="iam",
    **api_opts,
):
    """Gateway with one route on an already declared handler."""
    descriptor.api(api_id, **api_opts)
    descriptor.bind(api_id, path, method, handler, authorization=authorization)


def serverless(descriptor: Descriptor, authorization=None, **settings) -> Descriptor:
    serverless_web(
        descriptor,
        ServerlessWebSettings(
            route_authorization=authorization or Authorization.iam(), **settings
        ),
    )
    return descriptor
