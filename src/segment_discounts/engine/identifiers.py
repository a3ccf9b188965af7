"""
Identifier normalization for customers, products, variants, collections and segments.

Identifiers arrive either in the canonical global form
(``gid://shopify/Product/123``) or as bare numeric ids (``123`` / ``"123"``).
Outbound calls use the canonical form; storage and comparison use the bare form.
Malformed input is returned unchanged and logged, so callers degrade to "no match".
"""
import logging
import re
from typing import Union

logger = logging.getLogger(__name__)

GID_PREFIX = "gid://shopify/"

CUSTOMER = "Customer"
PRODUCT = "Product"
VARIANT = "ProductVariant"
COLLECTION = "Collection"
SEGMENT = "Segment"

_GID_RE = re.compile(r"^gid://shopify/(?P<kind>[A-Za-z]+)/(?P<id>[^/?]+)")
_NUMERIC_SUFFIX_RE = re.compile(r"(\d+)$")

IdLike = Union[str, int, None]


def build_gid(kind: str, value: IdLike) -> str:
    """Prefix a raw value with the global-id namespace, without validation."""
    return f"{GID_PREFIX}{kind}/{value}"


def parse_gid(value: str) -> tuple[str, str] | None:
    """Split a canonical id into (kind, id), or None if not canonical."""
    match = _GID_RE.match(value)
    if not match:
        return None
    return match.group('kind'), match.group('id')


def to_gid(kind: str, value: IdLike) -> IdLike:
    """
    Return the canonical form of an identifier of the given kind.

    Idempotent on canonical input. Input without a recognizable numeric
    suffix (or a canonical id of another kind) is returned unchanged.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return build_gid(kind, value)

    text = str(value).strip()
    parsed = parse_gid(text)
    if parsed:
        parsed_kind, parsed_id = parsed
        if parsed_kind != kind:
            logger.warning("Identifier %s is a %s id, expected %s", text, parsed_kind, kind)
            return value
        # Strip query suffixes and other trailing noise
        return build_gid(kind, parsed_id)

    match = _NUMERIC_SUFFIX_RE.search(text)
    if not match:
        logger.warning("Identifier %r has no numeric suffix; leaving unchanged", value)
        return value
    return build_gid(kind, match.group(1))


def to_numeric(value: IdLike) -> IdLike:
    """
    Return the bare form of an identifier (``gid://shopify/Collection/9`` -> ``"9"``).

    Bare input is returned as a string; unrecognizable input is returned unchanged.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return str(value)

    text = str(value).strip()
    parsed = parse_gid(text)
    if parsed:
        return parsed[1]
    if text.isdigit():
        return text

    match = _NUMERIC_SUFFIX_RE.search(text)
    if not match:
        logger.warning("Identifier %r has no numeric suffix; leaving unchanged", value)
        return value
    return match.group(1)


def same_id(left: IdLike, right: IdLike) -> bool:
    """Compare two identifiers regardless of their encoding."""
    if left is None or right is None:
        return False
    return str(to_numeric(left)) == str(to_numeric(right))


def customer_gid(value: IdLike) -> IdLike:
    return to_gid(CUSTOMER, value)


def product_gid(value: IdLike) -> IdLike:
    return to_gid(PRODUCT, value)


def variant_gid(value: IdLike) -> IdLike:
    return to_gid(VARIANT, value)


def collection_gid(value: IdLike) -> IdLike:
    return to_gid(COLLECTION, value)
