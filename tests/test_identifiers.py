from segment_discounts.engine import identifiers
from segment_discounts.engine.identifiers import (
    COLLECTION,
    PRODUCT,
    customer_gid,
    parse_gid,
    product_gid,
    same_id,
    to_gid,
    to_numeric,
    variant_gid,
)


def test_numeric_string_becomes_canonical():
    assert product_gid("123") == "gid://shopify/Product/123"


def test_int_becomes_canonical():
    assert customer_gid(42) == "gid://shopify/Customer/42"


def test_to_gid_is_idempotent():
    once = to_gid(COLLECTION, "9")
    assert to_gid(COLLECTION, once) == once


def test_variant_uses_product_variant_kind():
    assert variant_gid(7) == "gid://shopify/ProductVariant/7"


def test_trailing_query_is_dropped():
    assert product_gid("gid://shopify/Product/1?variant=2") == "gid://shopify/Product/1"


def test_numeric_suffix_is_extracted():
    assert variant_gid("variant-77") == "gid://shopify/ProductVariant/77"


def test_malformed_input_is_returned_unchanged():
    assert product_gid("not-an-id") == "not-an-id"
    assert to_numeric("not-an-id") == "not-an-id"


def test_canonical_id_of_other_kind_is_not_rewritten():
    value = "gid://shopify/Collection/5"
    assert to_gid(PRODUCT, value) == value


def test_none_passes_through():
    assert product_gid(None) is None
    assert to_numeric(None) is None


def test_to_numeric():
    assert to_numeric("gid://shopify/Collection/9") == "9"
    assert to_numeric(9) == "9"
    assert to_numeric(" 15 ") == "15"


def test_parse_gid():
    assert parse_gid("gid://shopify/Segment/3") == ("Segment", "3")
    assert parse_gid("3") is None


def test_same_id_ignores_encoding():
    assert same_id("gid://shopify/Collection/9", 9)
    assert same_id("9", "gid://shopify/Collection/9")
    assert not same_id("9", "10")
    assert not same_id(None, "9")


def test_build_gid_does_not_validate():
    assert identifiers.build_gid("Segment", "vip") == "gid://shopify/Segment/vip"
