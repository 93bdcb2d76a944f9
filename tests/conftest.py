import pytest

from habitat_operator.config import Settings

from fakes import FakeGateway


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def settings():
    return Settings(
        namespace="",
        workload_namespace="default",
        resync_period=60.0,
        log_level="DEBUG",
        kubeconfig=None,
    )
