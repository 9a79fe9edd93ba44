import json

import httpx
import pytest

from aggregator.integrations.errors import ProviderAuthError, ProviderFetchError
from aggregator.integrations.provider_a.api_client import ProviderAAPIClient
from aggregator.integrations.provider_b.api_client import ProviderBAPIClient
from aggregator.integrations.provider_c.api_client import ProviderCAPIClient
from aggregator.models.catalog import Provider

from payloads import a_autocomplete, a_location, a_store, b_session, b_store, c_token


def recording_transport(handler):
    requests = []

    def _handle(request):
        requests.append(request)
        return handler(request)

    return httpx.MockTransport(_handle), requests


@pytest.mark.asyncio
async def test_provider_a_fetch_store_posts_store_uuid():
    transport, requests = recording_transport(lambda request: httpx.Response(200, json=a_store()))
    client = ProviderAAPIClient(base_url="https://a.test/api", transport=transport)

    data = await client.fetch_store("a-store")
    await client.aclose()

    assert data["data"]["uuid"] == "a-store"
    assert requests[0].method == "POST"
    assert str(requests[0].url) == "https://a.test/api/getStoreV1"
    assert json.loads(requests[0].content) == {"storeUuid": "a-store"}


@pytest.mark.asyncio
async def test_provider_a_item_lookup_requires_native_keys():
    transport, requests = recording_transport(lambda request: httpx.Response(200, json={}))
    client = ProviderAAPIClient(base_url="https://a.test/api", transport=transport)

    with pytest.raises(ProviderFetchError):
        await client.fetch_item_detail("a-burrito", {"store_id": "a-store"})

    assert requests == []


@pytest.mark.asyncio
async def test_provider_b_sends_bearer_token():
    transport, requests = recording_transport(lambda request: httpx.Response(200, json=b_store()))
    client = ProviderBAPIClient(base_url="https://b.test", client_id="cid", transport=transport)

    await client.fetch_store("b-store", access_token="b-access")
    await client.aclose()

    request = requests[0]
    assert request.url.path == "/restaurants/b-store"
    assert request.headers["authorization"] == "Bearer b-access"


@pytest.mark.asyncio
async def test_provider_b_not_found_maps_to_fetch_error():
    transport, _ = recording_transport(lambda request: httpx.Response(404, json={"error": "nope"}))
    client = ProviderBAPIClient(base_url="https://b.test", client_id="cid", transport=transport)

    with pytest.raises(ProviderFetchError) as exc_info:
        await client.fetch_store("missing", access_token="b-access")

    assert exc_info.value.status_code == 404
    assert exc_info.value.provider == Provider.B


@pytest.mark.asyncio
async def test_provider_b_fetch_without_token_fails_before_sending():
    transport, requests = recording_transport(lambda request: httpx.Response(200, json={}))
    client = ProviderBAPIClient(base_url="https://b.test", client_id="cid", transport=transport)

    with pytest.raises(ProviderFetchError):
        await client.fetch_store("b-store")

    assert requests == []


@pytest.mark.asyncio
async def test_provider_b_authenticate_posts_client_id():
    transport, requests = recording_transport(lambda request: httpx.Response(200, json=b_session()))
    client = ProviderBAPIClient(base_url="https://b.test", client_id="cid", transport=transport)

    data = await client.authenticate()

    assert "session_handle" in data
    assert requests[0].url.path == "/auth"
    assert json.loads(requests[0].content)["client_id"] == "cid"


@pytest.mark.asyncio
async def test_provider_b_rejected_auth_maps_to_auth_error():
    transport, _ = recording_transport(lambda request: httpx.Response(401, json={"error": "denied"}))
    client = ProviderBAPIClient(base_url="https://b.test", client_id="cid", transport=transport)

    with pytest.raises(ProviderAuthError):
        await client.refresh("stale-refresh")


@pytest.mark.asyncio
async def test_non_json_body_is_a_fetch_error():
    transport, _ = recording_transport(lambda request: httpx.Response(200, text="<html>"))
    client = ProviderCAPIClient(
        base_url="https://c.test", identity_url="https://id.c.test", transport=transport
    )

    with pytest.raises(ProviderFetchError):
        await client.fetch_store("c-store", access_token="c-access")


@pytest.mark.asyncio
async def test_provider_c_retail_store_uses_convenience_path():
    transport, requests = recording_transport(lambda request: httpx.Response(200, json={"store": {}}))
    client = ProviderCAPIClient(
        base_url="https://c.test", identity_url="https://id.c.test", transport=transport
    )

    await client.fetch_store("99", access_token="c-access", retail=True)

    assert requests[0].url.path == "/v1/convenience/stores/99"
    assert requests[0].headers["authorization"] == "JWT c-access"


@pytest.mark.asyncio
async def test_provider_c_authenticate_creates_guest_then_logs_in():
    def handler(request):
        if request.url.path == "/v1/consumer_profile/create_full_guest":
            return httpx.Response(200, json={"email": "guest@example.com"})
        return httpx.Response(200, json=c_token())

    transport, requests = recording_transport(handler)
    client = ProviderCAPIClient(
        base_url="https://c.test", identity_url="https://id.c.test", transport=transport
    )

    data = await client.authenticate({"password": "secret"})

    assert data["token"]["token"] == "c-access"
    assert [request.url.host for request in requests] == ["c.test", "id.c.test"]
    login = json.loads(requests[1].content)
    assert login["credentials"] == {"email": "guest@example.com", "password": "secret"}


@pytest.mark.asyncio
async def test_guest_profile_creation_is_not_retried():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    transport, requests = recording_transport(handler)
    client = ProviderCAPIClient(
        base_url="https://c.test", identity_url="https://id.c.test", transport=transport
    )

    with pytest.raises(ProviderAuthError):
        await client.authenticate({"password": "secret"})

    assert len(requests) == 1
    assert requests[0].url.path == "/v1/consumer_profile/create_full_guest"


@pytest.mark.asyncio
async def test_token_endpoint_server_error_is_not_retried():
    transport, requests = recording_transport(lambda request: httpx.Response(503, json={}))
    client = ProviderBAPIClient(base_url="https://b.test", client_id="cid", transport=transport)

    with pytest.raises(ProviderAuthError):
        await client.authenticate()

    assert len(requests) == 1


@pytest.mark.asyncio
async def test_provider_a_location_lookups():
    def handler(request):
        if request.url.path.endswith("/getLocationAutocompleteV1"):
            return httpx.Response(200, json=a_autocomplete("1 Main St"))
        return httpx.Response(200, json=a_location())

    transport, requests = recording_transport(handler)
    client = ProviderAAPIClient(base_url="https://a.test/api", transport=transport)

    suggestions = await client.autocomplete_location("1 Main")
    details = await client.fetch_location_details(suggestions["data"][0])

    assert details["data"]["id"] == "place-0"
    assert json.loads(requests[0].content) == {"query": "1 Main"}
    assert requests[1].url.path == "/api/getLocationDetailsV1"
    assert json.loads(requests[1].content)["id"] == "place-0"
