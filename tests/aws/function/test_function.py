import json

import pytest

from stackwire.aws.function import LAMBDA_FUNCTION, FunctionConfig, FunctionConfigDict
from stackwire.aws.function.constants import XRAY_WRITE_ACCESS
from stackwire.aws.iam import ROLE, ROLE_POLICY_ATTACHMENT
from stackwire.exceptions import UnresolvedReferenceError, ValidationError
from stackwire.expressions import Archive, Attr, Ref
from stackwire.synth import synthesize

from ...builders import function
from ...test_utils import assert_config_dict_matches_dataclass

TP = "test-test-"


def test_function_config_dict_has_same_fields_as_function_config():
    assert_config_dict_matches_dataclass(FunctionConfig, FunctionConfigDict)


def valid_options(**overrides):
    return {
        "runtime": "python3.12",
        "handler": "functions/orders.handler",
        "code_location": "src",
        **overrides,
    }


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"runtime": "python2.7"}, "invalid value 'python2.7' for option 'runtime'"),
        ({"handler": "handler"}, "must contain a dot separator"),
        ({"handler": ".handler"}, "both file path and function name must be non-empty"),
        ({"handler": "index."}, "both file path and function name must be non-empty"),
        ({"code_location": "  "}, "'code_location' cannot be empty"),
        ({"env_vars": ["A"]}, "must be a mapping"),
        ({"env_vars": {"1ABC": "x"}}, "invalid environment variable name '1ABC'"),
        ({"env_vars": {"AWS_REGION": "x"}}, "'AWS_REGION' is reserved"),
        ({"env_vars": {"PORT": 8080}}, "'PORT' must be a string, got int"),
        ({"timeout_seconds": 0}, "'timeout_seconds' must be 1..900"),
        ({"timeout_seconds": 901}, "'timeout_seconds' must be 1..900"),
        ({"timeout_seconds": 1.5}, "'timeout_seconds' must be an integer"),
        ({"memory_mb": 64}, "'memory_mb' must be 128..10240"),
        ({"tracing_enabled": "true"}, "must be a boolean"),
        ({"log_group": ""}, "must be the id of a LogGroup declaration"),
    ],
)
def test_invalid_function_options(overrides, message):
    with pytest.raises(ValidationError, match=message):
        FunctionConfig(**valid_options(**overrides))


def test_env_vars_accept_references():
    config = FunctionConfig(**valid_options(env_vars={"TABLE": Ref("orders", "name")}))

    assert config.env_vars == {"TABLE": Ref("orders", "name")}


def test_log_group_is_a_structural_reference():
    config = FunctionConfig(**valid_options(log_group="logs"))

    assert config.references() == (Ref("logs", "name"),)
    assert FunctionConfig(**valid_options()).references() == ()


def test_function_is_planned_with_role_and_defaults(descriptor):
    handler = function(descriptor)

    artifact = synthesize(descriptor)

    role = artifact.resource(f"{TP}handler-r")
    assert role.type == ROLE
    trust = json.loads(role.properties["assume_role_policy"])
    assert trust["Statement"][0]["Principal"] == {"Service": "lambda.amazonaws.com"}

    lambda_function = artifact.resource(f"{TP}handler")
    assert lambda_function.type == LAMBDA_FUNCTION
    assert dict(lambda_function.properties) == {
        "role": Attr(f"{TP}handler-r", "arn"),
        "runtime": "nodejs18.x",
        "handler": "index.handler",
        "code": Archive("lambda"),
        "memory_size": 128,
        "timeout": 3,
        "tracing_config": {"mode": "PassThrough"},
    }
    assert lambda_function.depends_on == ()
    assert dict(handler.generated_attributes) == {
        "name": Attr(f"{TP}handler", "name"),
        "arn": Attr(f"{TP}handler", "arn"),
        "invoke_arn": Attr(f"{TP}handler", "invoke_arn"),
        "role_arn": Attr(f"{TP}handler-r", "arn"),
        "role_name": Attr(f"{TP}handler-r", "name"),
    }


def test_function_starts_without_permissions(descriptor):
    function(descriptor)

    artifact = synthesize(descriptor)

    assert [r.type for r in artifact.resources_of("handler")] == [ROLE, LAMBDA_FUNCTION]


def test_tracing_attaches_xray_policy(descriptor):
    function(descriptor, tracing_enabled=True)

    artifact = synthesize(descriptor)

    attachment = artifact.resource(f"{TP}handler-xray-r-p-attachment")
    assert attachment.type == ROLE_POLICY_ATTACHMENT
    assert attachment.properties["policy_arn"] == XRAY_WRITE_ACCESS
    lambda_function = artifact.resource(f"{TP}handler")
    assert lambda_function.properties["tracing_config"] == {"mode": "Active"}
    assert lambda_function.depends_on == (f"{TP}handler-xray-r-p-attachment",)


def test_function_logs_to_declared_log_group(descriptor):
    descriptor.log_group("logs")
    function(descriptor, log_group="logs", description="Orders API")

    lambda_function = synthesize(descriptor).resource(f"{TP}handler")

    assert lambda_function.properties["logging_config"] == {
        "log_format": "Text",
        "log_group": Attr(f"{TP}logs", "name"),
    }
    assert lambda_function.properties["description"] == "Orders API"


def test_log_group_must_be_declared(descriptor):
    function(descriptor, log_group="logs")

    with pytest.raises(UnresolvedReferenceError, match="undeclared id"):
        synthesize(descriptor)


def test_env_var_references_become_provider_attributes(descriptor):
    descriptor.table("orders", partition_key_name="id", partition_key_type="STRING")
    function(descriptor, env_vars={"TABLE_NAME": Ref("orders", "name"), "STAGE": "test"})

    lambda_function = synthesize(descriptor).resource(f"{TP}handler")

    assert lambda_function.properties["environment"] == {
        "variables": {"TABLE_NAME": Attr(f"{TP}orders", "name"), "STAGE": "test"}
    }
