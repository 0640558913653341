import pytest

from gateway_operator.config import OperatorConfig
from gateway_operator.crd.registry import build_scheme
from gateway_operator.services.ca_manager import ensure_cluster_ca

from fakes import FakeClusterClient, FakeEventRecorder

OPERATOR_NAMESPACE = "gateway-operator-system"
CONTROLLER_NAME = "example/operator"


@pytest.fixture
def scheme():
    return build_scheme()


@pytest.fixture
def config():
    return OperatorConfig(
        controller_name=CONTROLLER_NAME,
        cluster_ca_secret_namespace=OPERATOR_NAMESPACE,
        peering_priority=0,
    )


@pytest.fixture
def client(scheme):
    return FakeClusterClient(scheme)


@pytest.fixture
def recorder():
    return FakeEventRecorder()


@pytest.fixture
def cluster_ca(client, config):
    ensure_cluster_ca(
        client, config.cluster_ca_secret_name, config.cluster_ca_secret_namespace
    )
    client.writes = 0
    return client.get(
        "Secret", config.cluster_ca_secret_name, config.cluster_ca_secret_namespace
    )

