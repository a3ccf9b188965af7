"""
Catalog/Customer Service client.

Reads customer tags, the segment catalog, product collection membership and
collection metadata. Membership failures are answered conservatively with
"not a member"; metadata failures propagate so the caller can degrade.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..engine import identifiers
from ..engine.errors import UpstreamError
from ..engine.models import CollectionInfo, Segment
from .admin_client import AdminGraphQLClient

logger = logging.getLogger(__name__)


CUSTOMER_QUERY = """#graphql
query getCustomer($customerId: ID!) {
  customer(id: $customerId) {
    id
    email
    tags
  }
}
"""

SEGMENTS_QUERY = """#graphql
query getSegments($first: Int!, $after: String) {
  segments(first: $first, after: $after) {
    edges {
      node {
        id
        name
        query
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

PRODUCT_COLLECTIONS_QUERY = """#graphql
query checkProductInCollection($productId: ID!) {
  product(id: $productId) {
    collections(first: 250) {
      edges {
        node {
          id
        }
      }
    }
  }
}
"""

COLLECTIONS_QUERY = """#graphql
query getCollections($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on Collection {
      id
      title
      handle
    }
  }
}
"""

CUSTOMERS_QUERY = """#graphql
query listCustomers($first: Int!, $after: String) {
  customers(first: $first, after: $after) {
    edges {
      node {
        id
        email
        tags
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""


@dataclass
class ShopCustomer:
    """A customer as returned by the service."""
    id: str
    email: Optional[str] = None
    tags: list[str] = field(default_factory=list)


def _customer_from_node(node: dict) -> ShopCustomer:
    return ShopCustomer(id=node["id"], email=node.get("email"), tags=list(node.get("tags") or []))


class CatalogService:
    """Read API over customers, segments and collections."""

    def __init__(self, client: AdminGraphQLClient, page_size: int = 50):
        self.client = client
        self.page_size = page_size

    def fetch_customer(self, customer_id: str) -> Optional[ShopCustomer]:
        """Return the customer with tags, or None if the service does not know it."""
        data = self.client.execute(
            CUSTOMER_QUERY, {"customerId": identifiers.customer_gid(customer_id)}
        )
        node = data.get("customer")
        if not node:
            return None
        return _customer_from_node(node)

    def _paginate(self, query: str, root: str) -> list[dict]:
        nodes = []
        after = None
        while True:
            data = self.client.execute(query, {"first": self.page_size, "after": after})
            connection = data.get(root) or {}
            nodes.extend(edge["node"] for edge in connection.get("edges", []))
            page_info = connection.get("pageInfo") or {}
            cursor = page_info.get("endCursor")
            if not page_info.get("hasNextPage"):
                return nodes
            if not cursor or cursor == after:
                logger.warning("%s pagination stopped: next page without a new cursor", root)
                return nodes
            after = cursor

    def fetch_segments(self) -> list[Segment]:
        """The full segment catalog."""
        nodes = self._paginate(SEGMENTS_QUERY, "segments")
        return [Segment(id=n["id"], name=n["name"], query=n.get("query")) for n in nodes]

    def list_customers(self) -> list[ShopCustomer]:
        """All customers with their tags, for offline seeding."""
        return [_customer_from_node(n) for n in self._paginate(CUSTOMERS_QUERY, "customers")]

    def belongs_to_collection(self, product_id: str, collection_id: str) -> bool:
        """
        Whether the product is in the collection.

        Any failure is logged and answered with False; no retry.
        """
        try:
            data = self.client.execute(
                PRODUCT_COLLECTIONS_QUERY, {"productId": identifiers.product_gid(product_id)}
            )
        except UpstreamError as e:
            logger.warning(
                "Membership check failed for product %s / collection %s: %s",
                product_id, collection_id, e.message,
            )
            return False

        product = data.get("product")
        if not product:
            logger.warning("Product %s not found during membership check", product_id)
            return False

        edges = (product.get("collections") or {}).get("edges", [])
        return any(identifiers.same_id(edge["node"]["id"], collection_id) for edge in edges)

    def fetch_collection_metadata(self, collection_ids: list[str]) -> list[CollectionInfo]:
        """
        Batched metadata lookup in a single round trip.

        Unknown collections are omitted from the result. Raises UpstreamError.
        """
        if not collection_ids:
            return []
        gids = [identifiers.collection_gid(cid) for cid in collection_ids]
        data = self.client.execute(COLLECTIONS_QUERY, {"ids": gids})
        collections = []
        for node in data.get("nodes") or []:
            if not node or not node.get("id"):
                continue
            collections.append(CollectionInfo(
                id=str(identifiers.to_numeric(node["id"])),
                title=node.get("title") or "",
                handle=node.get("handle") or "",
            ))
        return collections
