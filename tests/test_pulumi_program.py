import json

import pulumi
import pytest
from pulumi import Output

from stackwire.exceptions import SynthesisError
from stackwire.expressions import Archive, Attr
from stackwire.plan import PlannedResource
from stackwire.pulumi_program import RESOURCE_CLASSES, _resolver, create_resources
from stackwire.synth import Artifact, synthesize

from .aws.pulumi_mocks import ACCOUNT_ID, DEFAULT_REGION, SAMPLE_API_ID, tid, tn
from .builders import (
    BUCKET,
    BUCKET_POLICY,
    DISTRIBUTION,
    FUNCTION,
    GRANT_POLICY,
    OAC,
    PERMISSION,
    ROLE,
    TABLE,
    serverless,
)


@pytest.fixture
def reference_artifact(descriptor, tmp_path):
    (tmp_path / "lambda").mkdir()
    (tmp_path / "lambda" / "index.js").write_text("exports.handler = async () => ({});\n")
    return synthesize(serverless(descriptor))


def _when_created(resources, check):
    return Output.all(*[r.urn for r in resources.values()]).apply(check)


@pulumi.runtime.test
def test_every_planned_resource_is_created(pulumi_mocks, reference_artifact):
    resources = create_resources(reference_artifact)

    def check(_):
        assert list(resources) == [r.name for r in reference_artifact.resources]
        created = {(r.typ, r.name) for r in pulumi_mocks.created_resources}
        assert {(r.type, r.name) for r in reference_artifact.resources} <= created

    return _when_created(resources, check)


@pulumi.runtime.test
def test_function_receives_resolved_configuration(pulumi_mocks, reference_artifact):
    resources = create_resources(reference_artifact)

    def check(_):
        (function,) = pulumi_mocks.created_functions()
        assert function.name == FUNCTION
        assert function.inputs["runtime"] == "nodejs18.x"
        assert function.inputs["handler"] == "index.handler"
        assert function.inputs["memorySize"] == 256
        assert function.inputs["timeout"] == 30
        assert function.inputs["role"] == f"arn:aws:iam::{ACCOUNT_ID}:role/{tn(ROLE)}"
        assert function.inputs["tracingConfig"] == {"mode": "Active"}
        assert function.inputs["environment"]["variables"]["TABLE_NAME"] == tn(TABLE)

    return _when_created(resources, check)


@pulumi.runtime.test
def test_one_permission_serves_all_routes(pulumi_mocks, reference_artifact):
    resources = create_resources(reference_artifact)

    def check(_):
        methods = sorted(m.inputs["httpMethod"] for m in pulumi_mocks.created_methods())
        assert methods == ["DELETE", "GET", "OPTIONS", "POST", "PUT"]
        (permission,) = pulumi_mocks.created_permissions()
        assert permission.name == PERMISSION
        assert permission.inputs["action"] == "lambda:InvokeFunction"
        assert permission.inputs["principal"] == "apigateway.amazonaws.com"
        assert permission.inputs["function"] == tn(FUNCTION)
        assert permission.inputs["sourceArn"] == (
            f"arn:aws:execute-api:{DEFAULT_REGION}:{ACCOUNT_ID}:{SAMPLE_API_ID}/*/*"
        )

    return _when_created(resources, check)


@pulumi.runtime.test
def test_bucket_is_only_readable_through_the_distribution(pulumi_mocks, reference_artifact):
    resources = create_resources(reference_artifact)

    def check(_):
        (policy,) = pulumi_mocks.created_bucket_policies()
        assert policy.name == BUCKET_POLICY
        assert policy.inputs["bucket"] == tid(BUCKET)
        statements = json.loads(policy.inputs["policy"])["Statement"]
        assert [s["Sid"] for s in statements] == [
            "DenyInsecureTransport",
            "AllowCloudFrontWebsiteDistribution",
        ]
        allow = statements[1]
        assert allow["Principal"] == {"Service": "cloudfront.amazonaws.com"}
        assert allow["Resource"] == f"arn:aws:s3:::{tn(BUCKET)}/*"
        assert allow["Condition"] == {
            "StringEquals": {
                "AWS:SourceArn": f"arn:aws:cloudfront::{ACCOUNT_ID}:distribution/"
                f"{tid(DISTRIBUTION)}"
            }
        }
        assert not any(s.get("Principal") == "*" and s["Effect"] == "Allow" for s in statements)
        (distribution,) = pulumi_mocks.created_distributions()
        origin = distribution.inputs["origins"][0]
        assert origin["domainName"] == f"{tn(BUCKET)}.s3.{DEFAULT_REGION}.amazonaws.com"
        assert origin["originAccessControlId"] == tid(OAC)
        behavior = distribution.inputs["defaultCacheBehavior"]
        assert behavior["viewerProtocolPolicy"] == "redirect-to-https"

    return _when_created(resources, check)


@pulumi.runtime.test
def test_grant_policy_targets_the_table(pulumi_mocks, reference_artifact):
    resources = create_resources(reference_artifact)

    def check(_):
        (policy,) = pulumi_mocks.created_role_policies()
        assert policy.name == GRANT_POLICY
        assert policy.inputs["role"] == tn(ROLE)
        statements = json.loads(policy.inputs["policy"])["Statement"]
        table_arn = f"arn:aws:dynamodb:{DEFAULT_REGION}:{ACCOUNT_ID}:table/{tn(TABLE)}"
        assert statements[1]["Resource"] == [table_arn, f"{table_arn}/index/*"]
        assert statements[2]["Resource"] == [table_arn]

    return _when_created(resources, check)


def test_unknown_resource_type_is_rejected():
    artifact = Artifact(
        app="demo",
        env="dev",
        resources=(
            PlannedResource(name="queue", type="aws:sqs/queue:Queue", properties={}, owner="jobs"),
        ),
        outputs={},
    )

    with pytest.raises(SynthesisError, match="no Pulumi resource class") as exc_info:
        create_resources(artifact)

    assert exc_info.value.declaration_id == "jobs"


def test_archives_resolve_against_the_app_root(tmp_path):
    resolve = _resolver({}, tmp_path)

    archive = resolve(Archive("lambda"))

    assert isinstance(archive, pulumi.FileArchive)
    assert archive.path == str(tmp_path / "lambda")
    assert resolve("plain") == "plain"


def test_attributes_resolve_to_resource_outputs():
    class FakeResource:
        arn = "arn:aws:s3:::bucket"

    resolve = _resolver({"bucket": FakeResource()}, None)

    assert resolve(Attr("bucket", "arn")) == "arn:aws:s3:::bucket"


def test_every_planned_type_has_a_resource_class(reference_artifact):
    assert {r.type for r in reference_artifact.resources} <= set(RESOURCE_CLASSES)
