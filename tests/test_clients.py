import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from segment_discounts.clients.admin_client import AdminGraphQLClient
from segment_discounts.clients.catalog_service import CatalogService
from segment_discounts.clients.factory import ShopClients
from segment_discounts.clients.order_sink import ORDER_TAGS, OrderSink
from segment_discounts.config.settings import Settings
from segment_discounts.engine.errors import MissingCredentialsError, OrderValidationError, UpstreamError
from segment_discounts.engine.models import AppliedDiscount, DraftOrderLine

SHOP = "test-shop.myshopify.com"


def gql_response(data=None, errors=None, status=200):
    body = {}
    if data is not None:
        body["data"] = data
    if errors is not None:
        body["errors"] = errors
    response = MagicMock()
    response.status_code = status
    response.json.return_value = body
    response.text = json.dumps(body)
    return response


def make_client(*responses):
    session = MagicMock()
    session.headers = {}
    session.post.side_effect = list(responses)
    return AdminGraphQLClient(SHOP, "shpat_test", session=session), session


# Transport

def test_missing_token_raises():
    with pytest.raises(MissingCredentialsError):
        AdminGraphQLClient(SHOP, None)


def test_request_shape():
    client, session = make_client(gql_response({"ok": True}))

    assert client.execute("query { ok }", {"a": 1}) == {"ok": True}

    args, kwargs = session.post.call_args
    assert args[0] == f"https://{SHOP}/admin/api/2024-04/graphql.json"
    assert kwargs["json"] == {"query": "query { ok }", "variables": {"a": 1}}
    assert kwargs["timeout"] == 10.0
    assert session.headers["X-Shopify-Access-Token"] == "shpat_test"


def test_non_200_raises():
    client, _ = make_client(gql_response({}, status=502))
    with pytest.raises(UpstreamError, match="status 502"):
        client.execute("query { ok }")


def test_graphql_errors_raise_with_details():
    errors = [{"message": "Throttled"}]
    client, _ = make_client(gql_response(errors=errors))
    with pytest.raises(UpstreamError) as exc_info:
        client.execute("query { ok }")
    assert exc_info.value.details == errors


def test_transport_failure_raises():
    client, session = make_client()
    session.post.side_effect = requests.ConnectionError("connection refused")
    with pytest.raises(UpstreamError, match="failed"):
        client.execute("query { ok }")


def test_invalid_json_raises():
    response = gql_response({})
    response.json.side_effect = ValueError("not json")
    client, _ = make_client(response)
    with pytest.raises(UpstreamError, match="Invalid JSON"):
        client.execute("query { ok }")


# Catalog service

def test_fetch_segments_follows_pages():
    page1 = {"segments": {
        "edges": [{"node": {"id": "gid://shopify/Segment/1", "name": "VIP", "query": "a"}}],
        "pageInfo": {"hasNextPage": True, "endCursor": "c1"},
    }}
    page2 = {"segments": {
        "edges": [{"node": {"id": "gid://shopify/Segment/2", "name": "Wholesale"}}],
        "pageInfo": {"hasNextPage": False, "endCursor": None},
    }}
    client, session = make_client(gql_response(page1), gql_response(page2))

    segments = CatalogService(client, page_size=1).fetch_segments()

    assert [s.name for s in segments] == ["VIP", "Wholesale"]
    variables = [call.kwargs["json"]["variables"] for call in session.post.call_args_list]
    assert variables == [{"first": 1, "after": None}, {"first": 1, "after": "c1"}]


def test_fetch_segments_stops_without_new_cursor():
    stuck = {"segments": {
        "edges": [{"node": {"id": "gid://shopify/Segment/1", "name": "VIP"}}],
        "pageInfo": {"hasNextPage": True, "endCursor": None},
    }}
    client, session = make_client(gql_response(stuck), gql_response(stuck))

    segments = CatalogService(client).fetch_segments()

    assert [s.name for s in segments] == ["VIP"]
    assert session.post.call_count == 1


def test_fetch_segments_stops_on_repeated_cursor():
    page = {"segments": {
        "edges": [{"node": {"id": "gid://shopify/Segment/1", "name": "VIP"}}],
        "pageInfo": {"hasNextPage": True, "endCursor": "c1"},
    }}
    client, session = make_client(gql_response(page), gql_response(page), gql_response(page))

    segments = CatalogService(client).fetch_segments()

    assert len(segments) == 2
    assert session.post.call_count == 2


def test_fetch_customer():
    node = {"id": "gid://shopify/Customer/42", "email": "a@example.com", "tags": ["VIP"]}
    client, session = make_client(gql_response({"customer": node}))

    customer = CatalogService(client).fetch_customer("42")

    assert customer.tags == ["VIP"]
    variables = session.post.call_args.kwargs["json"]["variables"]
    assert variables == {"customerId": "gid://shopify/Customer/42"}


def test_unknown_customer_is_none():
    client, _ = make_client(gql_response({"customer": None}))
    assert CatalogService(client).fetch_customer("42") is None


def test_belongs_to_collection_compares_any_encoding():
    data = {"product": {"collections": {"edges": [
        {"node": {"id": "gid://shopify/Collection/100"}},
        {"node": {"id": "gid://shopify/Collection/200"}},
    ]}}}
    client, _ = make_client(gql_response(data), gql_response(data))
    catalog = CatalogService(client)

    assert catalog.belongs_to_collection("1", "200")
    assert not catalog.belongs_to_collection("1", "gid://shopify/Collection/300")


def test_membership_failure_is_non_member():
    client, _ = make_client(gql_response(errors=[{"message": "boom"}]), gql_response({"product": None}))
    catalog = CatalogService(client)

    assert catalog.belongs_to_collection("1", "100") is False
    assert catalog.belongs_to_collection("1", "100") is False


def test_collection_metadata_is_batched():
    data = {"nodes": [
        {"id": "gid://shopify/Collection/100", "title": "Shoes", "handle": "shoes"},
        None,
    ]}
    client, session = make_client(gql_response(data))

    infos = CatalogService(client).fetch_collection_metadata(["100", "404"])

    assert session.post.call_count == 1
    assert session.post.call_args.kwargs["json"]["variables"] == {
        "ids": ["gid://shopify/Collection/100", "gid://shopify/Collection/404"]
    }
    assert [(i.id, i.title, i.handle) for i in infos] == [("100", "Shoes", "shoes")]


def test_collection_metadata_failure_propagates():
    client, _ = make_client(gql_response({}, status=500))
    with pytest.raises(UpstreamError):
        CatalogService(client).fetch_collection_metadata(["100"])


# Order sink

DRAFT_ORDER_NODE = {
    "id": "gid://shopify/DraftOrder/1",
    "name": "#D1",
    "invoiceUrl": "https://test-shop.myshopify.com/invoices/1",
    "status": "OPEN",
    "totalPriceSet": {"shopMoney": {"amount": "170.00", "currencyCode": "USD"}},
    "subtotalPriceSet": {"shopMoney": {"amount": "170.00", "currencyCode": "USD"}},
    "totalTaxSet": {"shopMoney": {"amount": "0.00", "currencyCode": "USD"}},
    "totalDiscountsSet": {"shopMoney": {"amount": "30.00", "currencyCode": "USD"}},
}


def order_lines():
    return [
        DraftOrderLine("gid://shopify/ProductVariant/11", 2, AppliedDiscount(15)),
        DraftOrderLine("gid://shopify/ProductVariant/12", 1),
    ]


def test_create_draft_order():
    data = {"draftOrderCreate": {"draftOrder": DRAFT_ORDER_NODE, "userErrors": []}}
    client, session = make_client(gql_response(data))

    order = OrderSink(client).create_draft_order("42", order_lines(), "key-1", note="hello")

    assert order.reference == "https://test-shop.myshopify.com/invoices/1"
    assert order.total_discounts == "30.00"
    assert order.currency == "USD"

    kwargs = session.post.call_args.kwargs
    assert kwargs["headers"] == {"Idempotency-Key": "key-1"}
    order_input = kwargs["json"]["variables"]["input"]
    assert order_input["customerId"] == "gid://shopify/Customer/42"
    assert order_input["tags"] == ORDER_TAGS
    assert order_input["note"] == "hello"
    assert order_input["customAttributes"] == [{"key": "idempotency_key", "value": "key-1"}]
    assert order_input["lineItems"] == [
        {
            "variantId": "gid://shopify/ProductVariant/11",
            "quantity": 2,
            "appliedDiscount": {
                "value": 15,
                "valueType": "PERCENTAGE",
                "title": "Segment Discount",
                "description": "15% off for segment members",
            },
        },
        {"variantId": "gid://shopify/ProductVariant/12", "quantity": 1},
    ]


def test_user_errors_are_surfaced_verbatim():
    user_errors = [{"field": ["lineItems", "0", "variantId"], "message": "Variant does not exist"}]
    data = {"draftOrderCreate": {"draftOrder": None, "userErrors": user_errors}}
    client, _ = make_client(gql_response(data))

    with pytest.raises(OrderValidationError) as exc_info:
        OrderSink(client).create_draft_order("42", order_lines(), "key-1")

    assert exc_info.value.status_code == 400
    assert exc_info.value.details == user_errors


def test_missing_draft_order_raises():
    client, _ = make_client(gql_response({"draftOrderCreate": {"draftOrder": None, "userErrors": []}}))
    with pytest.raises(UpstreamError):
        OrderSink(client).create_draft_order("42", order_lines(), "key-1")


# Client factory

def test_factory_uses_configured_token():
    settings = Settings(project_root=Path("."), default_shop=SHOP, access_tokens={SHOP: "tok"})
    catalog = ShopClients(settings).catalog_for()
    assert catalog.client.shop == SHOP
    assert catalog.client.session.headers["X-Shopify-Access-Token"] == "tok"


def test_factory_without_token_or_shop():
    clients = ShopClients(Settings(project_root=Path("."), access_tokens={SHOP: "tok"}))
    with pytest.raises(MissingCredentialsError, match="No shop"):
        clients.catalog_for()
    with pytest.raises(MissingCredentialsError):
        clients.order_sink_for("other-shop.myshopify.com")


def test_factory_reuses_client_per_shop():
    settings = Settings(project_root=Path("."), default_shop=SHOP, access_tokens={SHOP: "tok"})
    clients = ShopClients(settings)

    catalog = clients.catalog_for()
    assert clients.order_sink_for(SHOP).client is catalog.client
    assert clients.catalog_for().client.session is catalog.client.session


def test_factory_close_releases_sessions():
    settings = Settings(project_root=Path("."), default_shop=SHOP, access_tokens={SHOP: "tok"})
    clients = ShopClients(settings)
    first = clients.catalog_for().client
    first.session = MagicMock()

    clients.close()

    first.session.close.assert_called_once()
    assert clients.catalog_for().client is not first
