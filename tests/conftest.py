import os

# Pas de Redis en tests: le rate limit n'est initialisé que si un test le demande
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import json
from dataclasses import replace
from typing import Any, Dict, Generator, List

import httpx
import pytest
from fastapi.testclient import TestClient

from storefront.app_setup.factory import create_app
from storefront.config import ProviderSettings
from storefront.financing.views import get_provider_http_client, get_provider_settings

TEST_SETTINGS = ProviderSettings(
    env="sandbox",
    base_url="https://sandbox.affirm.com",
    country_code="USA",
    public_key="pub_test",
    private_key="priv_test",
    timeout_seconds=5.0,
    sdk_url="https://cdn1-sandbox.affirm.com/js/v2/affirm.js",
)


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeProvider:
    """
    Faux fournisseur Charges v2 branché via httpx.MockTransport.
    - *_response: (status, body) renvoyé par étape; body str -> texte brut
    - raise_on: {step: classe d'exception httpx} pour simuler timeouts/erreurs réseau
    - calls: requêtes reçues, dans l'ordre
    """

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.authorize_response = (200, {"id": "CHG-1", "status": "authorized", "amount": 150000})
        self.capture_response = (200, {"id": "CAP-1", "type": "capture", "amount": 150000})
        self.ping_response = (200, {"data": []})
        self.raise_on: Dict[str, type] = {}

    def _step(self, request: httpx.Request) -> str:
        if request.url.path.endswith("/capture"):
            return "capture"
        if request.method == "GET":
            return "ping"
        return "authorize"

    def handler(self, request: httpx.Request) -> httpx.Response:
        step = self._step(request)
        self.calls.append({
            "step": step,
            "method": request.method,
            "url": str(request.url),
            "json": json.loads(request.content) if request.content else None,
            "headers": dict(request.headers),
        })
        if step in self.raise_on:
            raise self.raise_on[step]("simulated failure", request=request)
        status, body = getattr(self, f"{step}_response")
        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def steps(self) -> List[str]:
        return [c["step"] for c in self.calls]


@pytest.fixture()
def provider_settings() -> ProviderSettings:
    return TEST_SETTINGS


@pytest.fixture()
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture(scope="session")
def app():
    return create_app(TEST_SETTINGS)


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


# Remplace le client HTTP fournisseur par le faux fournisseur pour chaque test
@pytest.fixture(autouse=True)
def _override_provider_http(app, fake_provider):
    async def _fake_http_client():
        async with fake_provider.client() as http:
            yield http

    app.dependency_overrides[get_provider_http_client] = _fake_http_client
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_provider_http_client, None)


@pytest.fixture()
def missing_credentials(app):
    """Configuration sans clé privée (clé publique seule)."""
    app.dependency_overrides[get_provider_settings] = lambda: replace(TEST_SETTINGS, private_key="")
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_provider_settings, None)


@pytest.fixture()
def merchant_origin(monkeypatch):
    from storefront import config

    monkeypatch.setattr(config, "MERCHANT_ORIGIN", "https://shop.example.com", raising=True)
    return "https://shop.example.com"
