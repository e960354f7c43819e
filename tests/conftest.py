import json

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from dmoney.config import Settings
from dmoney.main import create_app

API_BASE = "https://gateway.test"


def _pem_pair(key_size: int = 2048):
    key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture(scope="session")
def key_pair():
    return _pem_pair()


@pytest.fixture(scope="session")
def private_pem(key_pair):
    return key_pair[0]


@pytest.fixture(scope="session")
def public_pem(key_pair):
    return key_pair[1]


@pytest.fixture(scope="session")
def other_public_pem():
    return _pem_pair()[1]


@pytest.fixture
def settings(private_pem, tmp_path):
    return Settings(
        _env_file=None,
        app_key="test_app_key",
        app_secret="test_app_secret",
        merch_code="M001",
        appid="APP001",
        notify_url="https://merchant.test/webhooks/payment",
        api_base=API_BASE,
        checkout_base_url="https://paygate.test/payment/web/paygate",
        private_key=private_pem,
        private_key_path=str(tmp_path / "missing.pem"),
        log_file=None,
    )


class FakeGateway:
    """Records requests and answers them from a path -> (status, body) table."""

    def __init__(self):
        self.requests = []
        self.routes = {
            "/apiaccess/payment/gateway/payment/v1/token": (200, {"token": "Bearer tok_123"}),
            "/payment/v1/merchant/preOrder": (200, {"result": "SUCCESS", "prepay_id": "PP_42"}),
            "/apiaccess/payment/gateway/payment/v1/merchant/queryOrder": (
                200, {"result": "SUCCESS", "order_status": "PAY_SUCCESS"}
            ),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes[request.url.path]
        if isinstance(body, Exception):
            raise body
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def bodies(self, path: str):
        return [json.loads(r.content) for r in self.requests if r.url.path == path]

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(settings, gateway):
    app = create_app(settings, transport=gateway.transport)
    with TestClient(app) as c:
        yield c
