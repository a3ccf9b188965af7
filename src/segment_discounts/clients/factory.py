"""
Builds per-shop clients with explicitly injected credentials.

One GraphQL client (and its pooled HTTP session) is kept per shop and reused
across requests until close() is called.
"""
import threading
from typing import Optional

from ..config.settings import Settings
from ..engine.errors import MissingCredentialsError
from .admin_client import AdminGraphQLClient
from .catalog_service import CatalogService
from .order_sink import OrderSink


class ShopClients:
    """Creates catalog and order clients for a shop from configured tokens."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._clients: dict[str, AdminGraphQLClient] = {}
        self._lock = threading.Lock()

    def _client(self, shop: Optional[str]) -> AdminGraphQLClient:
        shop = shop or self.settings.default_shop
        if not shop:
            raise MissingCredentialsError("No shop configured")
        with self._lock:
            client = self._clients.get(shop)
            if client is None:
                client = AdminGraphQLClient(
                    shop=shop,
                    access_token=self.settings.access_token_for(shop),
                    api_version=self.settings.api_version,
                    timeout=self.settings.upstream_timeout,
                )
                self._clients[shop] = client
            return client

    def catalog_for(self, shop: Optional[str] = None) -> CatalogService:
        return CatalogService(self._client(shop), page_size=self.settings.segment_page_size)

    def order_sink_for(self, shop: Optional[str] = None) -> OrderSink:
        return OrderSink(self._client(shop))

    def close(self):
        """Close every pooled session."""
        with self._lock:
            for client in self._clients.values():
                client.close()
            self._clients.clear()
