import asyncio

import pytest

from aggregator.integrations.errors import ProviderFetchError
from aggregator.integrations.provider_a.adapter import ProviderAAdapter
from aggregator.integrations.provider_b.adapter import ProviderBAdapter
from aggregator.integrations.provider_c.adapter import ProviderCAdapter
from aggregator.integrations.registry import ProviderRegistry
from aggregator.models.catalog import Provider
from aggregator.services.merger import CatalogMerger
from aggregator.services.normalizer import CatalogNormalizer

from payloads import b_session, c_token


class FakeProviderClient:
    """In-memory ProviderClient; records every call it receives."""

    def __init__(
        self,
        provider,
        stores=None,
        items=None,
        auth_response=None,
        refresh_response=None,
        error=None,
        delay=0.0,
        autocomplete_response=None,
        location_response=None,
    ):
        self.provider = provider
        self.stores = stores or {}
        self.items = items or {}
        self.auth_response = auth_response
        self.refresh_response = refresh_response
        self.error = error
        self.delay = delay
        self.autocomplete_response = autocomplete_response
        self.location_response = location_response
        self.calls = []

    async def _respond(self, payloads, native_id):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if native_id not in payloads:
            raise ProviderFetchError(self.provider, f"{native_id} not found", status_code=404)
        return payloads[native_id]

    async def fetch_store(self, native_id, access_token=None, retail=False):
        self.calls.append(("fetch_store", native_id, access_token, retail))
        return await self._respond(self.stores, native_id)

    async def fetch_item_detail(self, native_id, native_keys, access_token=None):
        self.calls.append(("fetch_item_detail", native_id, dict(native_keys), access_token))
        return await self._respond(self.items, native_id)

    async def authenticate(self, credentials=None):
        self.calls.append(("authenticate", credentials))
        await asyncio.sleep(0)
        if isinstance(self.auth_response, Exception):
            raise self.auth_response
        return self.auth_response

    async def refresh(self, refresh_token):
        self.calls.append(("refresh", refresh_token))
        await asyncio.sleep(0)
        if isinstance(self.refresh_response, Exception):
            raise self.refresh_response
        return self.refresh_response

    async def autocomplete_location(self, query):
        self.calls.append(("autocomplete_location", query))
        if self.error is not None:
            raise self.error
        return self.autocomplete_response

    async def fetch_location_details(self, location_data):
        self.calls.append(("fetch_location_details", location_data))
        if self.error is not None:
            raise self.error
        return self.location_response

    async def aclose(self):
        pass

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture
def fake_clients():
    return {
        Provider.A: FakeProviderClient(Provider.A),
        Provider.B: FakeProviderClient(Provider.B, auth_response=b_session()),
        Provider.C: FakeProviderClient(Provider.C, auth_response=c_token()),
    }


@pytest.fixture
def registry(fake_clients):
    registry = ProviderRegistry(load_defaults=False)
    registry.register(ProviderAAdapter(), fake_clients[Provider.A])
    registry.register(ProviderBAdapter(), fake_clients[Provider.B])
    registry.register(ProviderCAdapter(), fake_clients[Provider.C])
    return registry


@pytest.fixture
def normalizer(registry):
    return CatalogNormalizer(registry)


@pytest.fixture
def merger(normalizer):
    return CatalogMerger(normalizer, category_denylist=["Picked for you"])
