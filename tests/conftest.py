import pytest
from starlette.testclient import TestClient

from ln_middleware.lightning.router import get_lightning_service
from ln_middleware.lightning.service import LightningService
from ln_middleware.main import app
from tests.lightning.fakes import FakeFeeOracle, FakeNode


@pytest.fixture()
def fake_node():
    return FakeNode()


@pytest.fixture()
def test_client(fake_node):
    service = LightningService(fake_node, FakeFeeOracle(), required_confirmations=3)
    app.dependency_overrides[get_lightning_service] = lambda: service

    # not used as a context manager, the lifespan would connect to a real node
    client = TestClient(app, raise_server_exceptions=False)
    yield client

    app.dependency_overrides.clear()
