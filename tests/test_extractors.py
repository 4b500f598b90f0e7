"""Tests for the Shopify GraphQL and Etsy REST source clients."""

from unittest.mock import MagicMock

import pytest

from store_migration.extractors import (
    EtsyExtractor,
    RateLimitError,
    ShopifyExtractor,
    SourceAPIError,
)
from store_migration.extractors.base import parse_retry_after


def _mock_response(status_code=200, json_data=None, headers=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = json_data if json_data is not None else {}
    response.headers = headers or {}
    response.text = text
    return response


def _connection(nodes, has_next=False, end_cursor=None):
    return {
        "edges": [{"cursor": f"c{i}", "node": node} for i, node in enumerate(nodes)],
        "pageInfo": {"hasNextPage": has_next, "endCursor": end_cursor},
    }


# ---------------------------------------------------------------------------
# Shopify
# ---------------------------------------------------------------------------

def test_shopify_fetch_products_posts_graphql():
    session = MagicMock()
    session.post.return_value = _mock_response(json_data={
        "data": {"products": _connection([{"id": "gid://shopify/Product/1"}], True, "abc")}
    })
    client = ShopifyExtractor("demo.myshopify.com", "tok", session=session)

    page = client.fetch_products("prev")

    assert page.items == [{"id": "gid://shopify/Product/1"}]
    assert page.has_next_page is True
    assert page.end_cursor == "abc"

    args, kwargs = session.post.call_args
    assert args[0] == "https://demo.myshopify.com/admin/api/2024-10/graphql.json"
    assert kwargs["headers"]["X-Shopify-Access-Token"] == "tok"
    assert kwargs["json"]["variables"] == {"first": 50, "after": "prev"}


def test_shopify_count_products():
    session = MagicMock()
    session.post.return_value = _mock_response(json_data={"data": {"productsCount": {"count": 42}}})
    assert ShopifyExtractor("demo.myshopify.com", "tok", session=session).count_products() == 42


def test_shopify_rate_limit():
    session = MagicMock()
    session.post.return_value = _mock_response(status_code=429, headers={"Retry-After": "4"})
    client = ShopifyExtractor("demo.myshopify.com", "tok", session=session)

    with pytest.raises(RateLimitError) as exc_info:
        client.fetch_orders()
    assert exc_info.value.retry_after == 4.0
    assert exc_info.value.status_code == 429


def test_shopify_http_error():
    session = MagicMock()
    session.post.return_value = _mock_response(status_code=500, text="boom")
    client = ShopifyExtractor("demo.myshopify.com", "tok", session=session)

    with pytest.raises(SourceAPIError) as exc_info:
        client.fetch_collections()
    assert not isinstance(exc_info.value, RateLimitError)
    assert exc_info.value.status_code == 500


def test_shopify_graphql_errors_payload():
    session = MagicMock()
    session.post.return_value = _mock_response(json_data={"errors": [{"message": "Field 'x' doesn't exist"}]})
    client = ShopifyExtractor("demo.myshopify.com", "tok", session=session)

    with pytest.raises(SourceAPIError, match="Field 'x' doesn't exist"):
        client.fetch_customers()


def test_shopify_fetch_discounts_drops_empty_nodes():
    session = MagicMock()
    session.post.return_value = _mock_response(json_data={"data": {"discountNodes": _connection([
        {"id": "gid://shopify/DiscountCodeNode/1", "discount": {"__typename": "DiscountCodeFreeShipping"}},
        {"id": "gid://shopify/DiscountAutomaticNode/2", "discount": {}},
        {"id": "gid://shopify/DiscountAutomaticNode/3", "discount": None},
    ])}})
    client = ShopifyExtractor("demo.myshopify.com", "tok", session=session)

    page = client.fetch_discounts()

    assert page.items == [{"__typename": "DiscountCodeFreeShipping", "id": "gid://shopify/DiscountCodeNode/1"}]


def test_shopify_count_discounts_walks_all_pages():
    session = MagicMock()
    session.post.side_effect = [
        _mock_response(json_data={"data": {"discountNodes": _connection([{"id": str(i)} for i in range(250)], True, "p2")}}),
        _mock_response(json_data={"data": {"discountNodes": _connection([{"id": "x"}] * 3)}}),
    ]
    client = ShopifyExtractor("demo.myshopify.com", "tok", session=session)

    assert client.count_discounts() == 253
    second_variables = session.post.call_args_list[1][1]["json"]["variables"]
    assert second_variables == {"first": 250, "after": "p2"}


# ---------------------------------------------------------------------------
# Etsy
# ---------------------------------------------------------------------------

def test_etsy_fetch_products_offset_paging():
    session = MagicMock()
    session.get.return_value = _mock_response(json_data={
        "count": 5,
        "results": [{"listing_id": 1}, {"listing_id": 2}],
    })
    client = EtsyExtractor("4242", "tok", session=session, page_size=2)

    page = client.fetch_products("2")

    assert page.has_next_page is True
    assert page.end_cursor == "4"
    assert page.total_count == 5

    args, kwargs = session.get.call_args
    assert args[0] == "https://openapi.etsy.com/v3/application/shops/4242/listings/active"
    assert kwargs["params"] == {"limit": 2, "offset": 2, "includes": "images"}
    assert kwargs["headers"]["x-api-key"] == "etsy-client"
    assert kwargs["headers"]["Authorization"] == "Bearer tok"


def test_etsy_last_page():
    session = MagicMock()
    session.get.return_value = _mock_response(json_data={"count": 3, "results": [{"listing_id": 3}]})
    client = EtsyExtractor("4242", "tok", session=session, page_size=2)

    page = client.fetch_products("2")

    assert page.has_next_page is False


def test_etsy_count_products():
    session = MagicMock()
    session.get.return_value = _mock_response(json_data={"count": 17, "results": [{}]})
    client = EtsyExtractor("4242", "tok", session=session)

    assert client.count_products() == 17
    assert session.get.call_args[1]["params"] == {"limit": 1}


def test_etsy_sections_and_section_listings():
    session = MagicMock()
    session.get.side_effect = [
        _mock_response(json_data={"count": 1, "results": [{"shop_section_id": 9, "title": "Mugs"}]}),
        _mock_response(json_data={"count": 2, "results": [{"listing_id": 1}, {"listing_id": 2}]}),
    ]
    client = EtsyExtractor("4242", "tok", session=session)

    assert client.fetch_sections() == [{"shop_section_id": 9, "title": "Mugs"}]
    assert client.fetch_section_listing_ids(9) == ["1", "2"]
    assert session.get.call_args[1]["params"] == {"limit": 100}


def test_etsy_listing_images():
    session = MagicMock()
    session.get.return_value = _mock_response(json_data={"results": [{"url_fullxfull": "https://etsy/1.jpg"}]})
    client = EtsyExtractor("4242", "tok", session=session)

    assert client.fetch_listing_images(5) == [{"url_fullxfull": "https://etsy/1.jpg"}]
    assert session.get.call_args[0][0].endswith("/application/listings/5/images")


def test_etsy_rate_limit_default_retry_after():
    session = MagicMock()
    session.get.return_value = _mock_response(status_code=429)
    client = EtsyExtractor("4242", "tok", session=session)

    with pytest.raises(RateLimitError) as exc_info:
        client.fetch_products()
    assert exc_info.value.retry_after == 2.0


def test_parse_retry_after():
    assert parse_retry_after("7") == 7.0
    assert parse_retry_after(None) == 2.0
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 2.0
