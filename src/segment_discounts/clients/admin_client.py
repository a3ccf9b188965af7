"""
Admin GraphQL transport shared by the catalog and order clients.
"""
import logging
from typing import Any, Optional

import requests

from ..engine.errors import MissingCredentialsError, UpstreamError

logger = logging.getLogger(__name__)


class AdminGraphQLClient:
    """
    Thin wrapper around a shop's Admin GraphQL endpoint.

    Credentials are passed in explicitly; every call is bounded by ``timeout``
    and nothing is retried.
    """

    def __init__(
        self,
        shop: str,
        access_token: Optional[str],
        api_version: str = "2024-04",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        if not access_token:
            raise MissingCredentialsError(f"No access token configured for shop '{shop}'")
        self.shop = shop
        self.api_version = api_version
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": access_token,
        })

    def close(self):
        self.session.close()

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    def execute(
        self,
        query: str,
        variables: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict[str, Any]:
        """
        Run a GraphQL operation and return its ``data`` object.

        Transport failures, non-200 responses, unparseable bodies and
        top-level GraphQL errors raise UpstreamError.
        """
        payload = {"query": query, "variables": variables or {}}
        try:
            response = self.session.post(
                self.endpoint, json=payload, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Request to {self.shop} failed: {e}")

        if response.status_code != 200:
            raise UpstreamError(
                f"Admin API returned status {response.status_code}",
                details=response.text[:500],
            )

        try:
            body = response.json()
        except ValueError:
            raise UpstreamError("Invalid JSON response from Admin API", details=response.text[:500])

        if body.get("errors"):
            logger.error("GraphQL errors from %s: %s", self.shop, body["errors"])
            raise UpstreamError("GraphQL errors occurred", details=body["errors"])

        return body.get("data") or {}
