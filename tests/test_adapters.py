import pytest

from aggregator.integrations.base import to_minor_units
from aggregator.integrations.errors import MalformedPayloadError
from aggregator.integrations.provider_a.adapter import ProviderAAdapter
from aggregator.integrations.provider_b.adapter import ProviderBAdapter
from aggregator.integrations.provider_c.adapter import ProviderCAdapter
from aggregator.models.catalog import Provider

from payloads import a_item, a_store, b_item, b_session, b_store, c_item, c_store, c_token


def test_provider_a_store_uses_last_hero_image_and_standard_sections():
    raw = a_store(
        categories={"Drinks": [("Cola", 150), ("Water", 100)]},
        extra_sections=[{"type": "horizontalCarousel", "payload": {}}],
    )
    store = ProviderAAdapter().parse_store(raw)

    assert store.id == "a-store"
    assert store.name == "Corner Cafe"
    assert store.image_url == "https://a.example/large.jpg"
    assert store.location.zip_code == "12345"
    assert [category.name for category in store.menu] == ["Drinks"]

    cola = store.menu[0].items[0]
    assert cola.name == "Cola"
    assert cola.prices == {Provider.A: 150}
    assert cola.ids == {Provider.A: "a-cola"}
    assert cola.subsection_id == "a-sub-1"
    assert store.menu[0].category_ids == {Provider.A: "a-cat-0"}


def test_provider_a_store_without_hero_image_is_not_an_error():
    store = ProviderAAdapter().parse_store(a_store(hero_images=[]))
    assert store.image_url is None
    assert store.menu[0].name == "Drinks"


def test_provider_a_store_without_uuid_is_malformed():
    with pytest.raises(MalformedPayloadError) as exc_info:
        ProviderAAdapter().parse_store({"data": {"title": "No id"}})
    assert exc_info.value.provider == Provider.A


def test_provider_b_store_maps_restaurant_fields():
    store = ProviderBAdapter().parse_store(b_store(categories={"Mains": [("Burrito", 899)]}))

    assert store.id == "b-store"
    assert store.image_url == "https://b.example/logo.png"
    assert store.location.city == "Springfield"
    assert store.delivery_fee == 299
    item = store.menu[0].items[0]
    assert item.prices == {Provider.B: 899}
    assert item.image_url == "https://b.example/Burrito"


def test_provider_c_store_reads_modules_and_skips_unknown_types():
    store = ProviderCAdapter().parse_store(c_store(categories={"Drinks": [("Cola", 160)]}))

    assert store.id == "c-store"
    assert store.image_url == "https://c.example/header.jpg"
    assert store.hours == "8am - 10pm"
    assert store.location.zip_code == "12345"
    assert store.location.country == "US"
    assert [category.name for category in store.menu] == ["Drinks"]
    assert store.menu[0].items[0].prices == {Provider.C: 160}


def test_provider_c_retail_store():
    raw = {
        "store": {
            "id": 99,
            "name": "Quick Mart",
            "cover_img_url": "https://c.example/cover.jpg",
            "address": {
                "street": "5 Elm St",
                "city": "Springfield",
                "display_address": "5 Elm St, Springfield, IL 12345, USA",
            },
        },
        "lego_section_body": [
            {
                "logging": {"id": "snacks"},
                "text": {"title": "Snacks"},
                "children": [
                    {
                        "custom": {"item_id": "chips-1"},
                        "text": {"title": "Chips", "description": "Salted"},
                        "images": {"main": {"uri": "https://c.example/chips.png"}},
                        "logging": {"item_price": 299},
                    }
                ],
            },
            {"text": {"title": "Broken section"}},
        ],
    }
    store = ProviderCAdapter().parse_store(raw, retail=True)

    assert store.id == "99"
    assert store.location.country == "USA"
    assert [category.name for category in store.menu] == ["Snacks"]
    chips = store.menu[0].items[0]
    assert chips.ids == {Provider.C: "chips-1"}
    assert chips.prices == {Provider.C: 299}


def test_item_details_project_to_common_shape():
    a_detail = ProviderAAdapter().parse_item_detail(a_item())
    b_detail = ProviderBAdapter().parse_item_detail(b_item())
    c_detail = ProviderCAdapter().parse_item_detail(c_item())

    assert (a_detail.id, a_detail.price, a_detail.title) == ("a-burrito", 899, "Burrito")
    assert (b_detail.id, b_detail.price) == ("4242", 850)
    assert (c_detail.id, c_detail.price) == ("c-burrito", 925)

    group = b_detail.customizations[0]
    assert group.title == "Choose Protein"
    assert (group.min_permitted, group.max_permitted) == (1, 2)
    assert [option.title for option in group.options] == ["Chicken", "Tofu"]
    assert group.options[0].price == 50
    assert group.options[0].ids == {Provider.A: None, Provider.B: "b-opt-chicken", Provider.C: None}


def test_customization_options_recurse_on_provider_child_field():
    raw_options = [
        {
            "id": "size",
            "name": "Size",
            "unitAmount": 0,
            "optionLists": [
                {
                    "id": "large",
                    "name": "Large",
                    "unitAmount": 200,
                    "optionLists": [{"id": "extra", "name": "Extra Ice", "unitAmount": 0}],
                }
            ],
        }
    ]
    options = ProviderCAdapter().parse_customization_options(raw_options)

    assert options[0].title == "Size"
    large = options[0].options[0]
    assert (large.title, large.price) == ("Large", 200)
    assert large.options[0].title == "Extra Ice"
    assert large.options[0].ids[Provider.C] == "extra"
    assert large.options[0].options == []


def test_customization_options_with_same_title_keep_first_position():
    raw_options = [
        {"uuid": "1", "title": "Cheese", "price": 50},
        {"uuid": "2", "title": "Onion", "price": 0},
        {"uuid": "3", "title": "Cheese", "price": 75},
    ]
    options = ProviderAAdapter().parse_customization_options(raw_options)

    assert [option.title for option in options] == ["Cheese", "Onion"]
    assert options[0].price == 75
    assert options[0].ids[Provider.A] == "3"


@pytest.mark.parametrize(
    "raw, cents",
    [
        (1099, 1099),
        ("1099", 1099),
        ("$10.99", 1099),
        ("10.99", 1099),
        ("$15", 1500),
        ("$1,200.00", 120000),
        ("free", None),
        (None, None),
    ],
)
def test_to_minor_units(raw, cents):
    assert to_minor_units(raw) == cents


def test_provider_c_retail_price_string_is_cents():
    raw = {
        "store": {"id": 7, "name": "Quick Mart"},
        "lego_section_body": [
            {
                "logging": {"id": "drinks"},
                "text": {"title": "Drinks"},
                "children": [
                    {
                        "custom": {"item_id": "water-1"},
                        "text": {"title": "Water"},
                        "logging": {"item_price": "199"},
                    }
                ],
            }
        ],
    }
    store = ProviderCAdapter().parse_store(raw, retail=True)

    assert store.menu[0].items[0].prices == {Provider.C: 199}


def test_provider_b_token_parses_epoch_milliseconds():
    token = ProviderBAdapter().parse_token(b_session(access_ttl=60, refresh_ttl=120))
    assert token.access_token == "b-access"
    assert token.refresh_token == "b-refresh"
    assert token.access_token_expiry < token.refresh_token_expiry


def test_provider_c_token_uses_configured_lifetimes():
    token = ProviderCAdapter(
        access_token_ttl_seconds=60, refresh_token_ttl_seconds=600
    ).parse_token(c_token())
    lifetime = token.refresh_token_expiry - token.access_token_expiry
    assert lifetime.total_seconds() == pytest.approx(540)


def test_token_payload_without_token_is_malformed():
    with pytest.raises(MalformedPayloadError):
        ProviderBAdapter().parse_token({"error": "nope"})
