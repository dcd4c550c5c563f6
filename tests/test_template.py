import pytest

from stackwire.expressions import Archive, Attr, Format, Json
from stackwire.plan import PlannedResource
from stackwire.synth import Artifact, synthesize

from .builders import FUNCTION, GRANT_POLICY, STAGE, serverless


def _artifact(*resources, outputs=None, region=None, root=None):
    return Artifact(
        app="demo",
        env="dev",
        resources=tuple(resources),
        outputs=outputs or {},
        region=region,
        root=root,
    )


def _resource(name="thing", type_="aws:s3/bucket:Bucket", **properties):
    return PlannedResource(name=name, type=type_, properties=properties, owner="owner")


def test_document_header():
    document = _artifact(region="eu-west-1").to_template()

    assert document == {
        "name": "demo",
        "runtime": "yaml",
        "description": "demo (dev)",
        "config": {"aws:region": {"value": "eu-west-1"}},
        "resources": {},
    }


def test_property_names_are_camel_cased_recursively():
    resource = _resource(
        force_destroy=True,
        server_side_encryption_configuration={
            "rule": {"apply_server_side_encryption_by_default": {"sse_algorithm": "AES256"}}
        },
    )

    rendered = _artifact(resource).to_template()["resources"]["thing"]

    assert rendered == {
        "type": "aws:s3/bucket:Bucket",
        "properties": {
            "forceDestroy": True,
            "serverSideEncryptionConfiguration": {
                "rule": {"applyServerSideEncryptionByDefault": {"sseAlgorithm": "AES256"}}
            },
        },
    }


def test_user_data_keys_are_kept_as_written():
    resource = _resource(
        environment={"variables": {"TABLE_NAME": "orders", "log_level": "debug"}},
        triggers={"configuration_hash": "abc"},
        tags={"cost_center": "web"},
    )

    properties = _artifact(resource).to_template()["resources"]["thing"]["properties"]

    assert properties["environment"] == {
        "variables": {"TABLE_NAME": "orders", "log_level": "debug"}
    }
    assert properties["triggers"] == {"configuration_hash": "abc"}
    assert properties["tags"] == {"cost_center": "web"}


def test_attributes_render_as_interpolations():
    resource = _resource(
        bucket=Attr("site", "id"),
        domain=Attr("site", "bucket_regional_domain_name"),
        resources=[Format("{}/*", Attr("site", "arn"))],
    )

    properties = _artifact(resource).to_template()["resources"]["thing"]["properties"]

    assert properties == {
        "bucket": "${site.id}",
        "domain": "${site.bucketRegionalDomainName}",
        "resources": ["${site.arn}/*"],
    }


def test_literal_interpolation_syntax_is_escaped():
    resource = _resource(value=Format("${literal}:{}:{}", Attr("site", "arn"), 7))

    properties = _artifact(resource).to_template()["resources"]["thing"]["properties"]

    assert properties["value"] == "$${literal}:${site.arn}:7"


def test_json_documents_keep_their_keys():
    policy = Json({"Statement": [{"Sid": "Read", "Resource": Attr("table", "arn")}]})

    properties = _artifact(_resource(policy=policy)).to_template()["resources"]["thing"][
        "properties"
    ]

    assert properties["policy"] == {
        "fn::toJSON": {"Statement": [{"Sid": "Read", "Resource": "${table.arn}"}]}
    }


def test_json_cannot_be_interpolated():
    resource = _resource(value=Format("x{}", Json({"a": 1})))

    with pytest.raises(TypeError, match="Json cannot be interpolated"):
        _artifact(resource).to_template()


def test_archive_paths_follow_the_output_directory(tmp_path):
    artifact = _artifact(_resource(code=Archive("lambda")), root=tmp_path)

    def code(output_dir=None):
        return artifact.to_template(output_dir)["resources"]["thing"]["properties"]["code"]

    assert code() == {"fn::fileArchive": "lambda"}
    assert code(tmp_path / ".stackwire" / "out") == {"fn::fileArchive": "../../lambda"}


def test_resource_options():
    resource = PlannedResource(
        name="table",
        type="aws:dynamodb/table:Table",
        properties={},
        owner="orders",
        depends_on=("role", "policy"),
        retain_on_delete=True,
    )

    rendered = _artifact(resource).to_template()["resources"]["table"]

    assert rendered["options"] == {"dependsOn": ["${role}", "${policy}"], "retainOnDelete": True}


def test_reference_topology_template(descriptor):
    artifact = synthesize(serverless(descriptor))

    document = artifact.to_template()

    function = document["resources"][FUNCTION]
    assert function["properties"]["environment"] == {
        "variables": {
            "TABLE_NAME": "${test-test-main-table.name}",
            "NODE_OPTIONS": "--enable-source-maps",
        }
    }
    assert function["properties"]["memorySize"] == 256
    assert function["properties"]["tracingConfig"] == {"mode": "Active"}
    assert function["options"]["dependsOn"][-1] == f"${{{GRANT_POLICY}}}"
    statements = document["resources"][GRANT_POLICY]["properties"]["policy"]["fn::toJSON"][
        "Statement"
    ]
    assert statements[0]["Resource"] == ["${test-test-lambda-log-group.arn}:*"]
    assert document["outputs"]["apiEndpointUrl"] == f"${{{STAGE}.invokeUrl}}/"
    assert list(document["resources"]) == [r.name for r in artifact.resources]
