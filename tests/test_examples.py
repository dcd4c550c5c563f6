from pathlib import Path

import pytest

from stackwire.audit import Severity, audit
from stackwire.aws.api_gateway.constants import AUTHORIZER, USAGE_PLAN
from stackwire.aws.function import LAMBDA_FUNCTION
from stackwire.exceptions import ValidationError
from stackwire.project import load_app

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"


@pytest.fixture
def orders_app():
    return load_app(EXAMPLES_DIR / "orders-api")


@pytest.mark.parametrize("env", ["staging", "prod"])
def test_orders_example_synthesizes(orders_app, env):
    artifact = orders_app.synth(env, EXAMPLES_DIR / "orders-api")

    functions = {r.name for r in artifact.resources_of_type(LAMBDA_FUNCTION)}
    assert functions == {
        f"orders-api-{env}-authorizer",
        f"orders-api-{env}-orders-fn",
        f"orders-api-{env}-reports-fn",
    }
    assert len(artifact.resources_of_type(AUTHORIZER)) == 1
    assert len(artifact.resources_of_type(USAGE_PLAN)) == 1
    assert set(artifact.outputs) == {"apiUrl", "ordersTable"}


def test_orders_example_only_deploys_to_known_environments(orders_app):
    with pytest.raises(ValidationError, match="Use one of: staging, prod"):
        orders_app.build("dev")


def test_orders_example_has_no_high_findings(orders_app):
    findings = audit(orders_app.build("prod"))

    assert all(finding.severity < Severity.HIGH for finding in findings)
