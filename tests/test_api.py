import pytest
from fastapi.testclient import TestClient

from aggregator.integrations.errors import ProviderFetchError
from aggregator.integrations.token_store import TokenStore
from aggregator.main import app
from aggregator.models.catalog import Provider
from aggregator.services.aggregation_service import AggregationService, get_aggregation_service

from payloads import a_autocomplete, a_location, a_store, b_item, b_store, c_item


class ExplodingService:
    async def detail_store(self, requests, retail=False):
        raise RuntimeError("boom")


@pytest.fixture
def service(registry, normalizer, merger):
    return AggregationService(
        registry=registry,
        token_store=TokenStore(registry),
        normalizer=normalizer,
        merger=merger,
    )


@pytest.fixture
def client(service):
    app.dependency_overrides[get_aggregation_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_endpoints(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_detail_store_returns_merged_store(client, fake_clients):
    fake_clients[Provider.A].stores = {"a-store": a_store(categories={"Drinks": [("Cola", 150)]})}
    fake_clients[Provider.B].stores = {"b-store": b_store(categories={"Drinks": [("Cola", 140)]})}

    response = client.post(
        "/api/detail/store",
        json={"provider_a": "a-store", "provider_b": "b-store", "provider_c": None},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "a-store"
    cola = body["menu"][0]["items"][0]
    assert cola["prices"] == {"provider_a": 150, "provider_b": 140}
    assert fake_clients[Provider.C].calls == []


def test_detail_store_body_order_picks_default(client, fake_clients):
    fake_clients[Provider.A].stores = {"a-store": a_store()}
    fake_clients[Provider.B].stores = {"b-store": b_store()}

    response = client.post(
        "/api/detail/store",
        json={"provider_b": "b-store", "provider_a": "a-store"},
    )

    assert response.json()["id"] == "b-store"


def test_detail_store_without_data_is_404(client):
    response = client.post("/api/detail/store", json={"provider_a": "missing"})

    assert response.status_code == 404
    assert "error" in response.json()


def test_detail_store_rejects_unknown_provider(client):
    response = client.post("/api/detail/store", json={"provider_x": "1"})

    assert response.status_code == 422
    assert set(response.json()) == {"error"}


def test_detail_item_returns_merged_and_originals(client, fake_clients):
    fake_clients[Provider.B].items = {"4242": b_item()}
    fake_clients[Provider.C].items = {"c-burrito": c_item()}

    response = client.post(
        "/api/detail/item",
        json=[
            {"provider": "provider_c", "native_id": "c-burrito", "native_keys": {"store_id": "c-store"}},
            {"provider": "provider_b", "native_id": "4242", "native_keys": {"store_id": "b-store"}},
            {"provider": "provider_a", "native_id": "null"},
        ],
    )

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"merged", "provider_b", "provider_c"}
    assert body["merged"]["description"] == "Burrito from C"
    assert body["merged"]["prices"] == {"provider_a": 0, "provider_b": 850, "provider_c": 925}
    assert body["provider_b"]["id"] == 4242


def test_autocomplete_location(client, fake_clients):
    fake_clients[Provider.A].autocomplete_response = a_autocomplete("1 Main St")

    response = client.get("/api/autocomplete/location", params={"query": "1 Main"})

    assert response.status_code == 200
    assert response.json()[0]["id"] == "place-0"


def test_autocomplete_location_requires_query(client):
    response = client.get("/api/autocomplete/location")

    assert response.status_code == 422
    assert set(response.json()) == {"error"}


def test_detail_location_returns_location_data(client, fake_clients):
    fake_clients[Provider.A].location_response = a_location(address="1 Main St")

    response = client.post(
        "/api/detail/location", json={"id": "place-0", "provider": "google_places"}
    )

    assert response.status_code == 200
    assert response.json()["address"]["address1"] == "1 Main St"


def test_detail_location_provider_failure_is_bad_gateway(client, fake_clients):
    fake_clients[Provider.A].error = ProviderFetchError(Provider.A, "bad request", status_code=400)

    response = client.post("/api/detail/location", json={"id": "place-0"})

    assert response.status_code == 502
    assert "error" in response.json()


def test_unhandled_error_is_reported_generically():
    app.dependency_overrides[get_aggregation_service] = lambda: ExplodingService()
    try:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.post("/api/detail/store", json={"provider_a": "a-store"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "Something went wrong."}
