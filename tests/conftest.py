import pytest
from pulumi.runtime import set_mocks

from stackwire.config import AwsConfig
from stackwire.context import AppContext
from stackwire.descriptor import Descriptor

from .aws.pulumi_mocks import PulumiTestMocks

# Test prefix
TP = "test-test-"


@pytest.fixture
def app_context(tmp_path):
    return AppContext(
        name="test",
        env="test",
        aws=AwsConfig(profile="default", region="us-east-1"),
        root=tmp_path,
    )


@pytest.fixture
def descriptor(app_context):
    return Descriptor(app_context)


@pytest.fixture
def pulumi_mocks():
    """Provide shared Pulumi mocks for AWS resource testing."""
    mocks = PulumiTestMocks()
    set_mocks(mocks)
    return mocks
