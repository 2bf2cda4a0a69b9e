"""
Dodo Payments REST API client for plan changes and customer wallets.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..core.config import settings
from ..schemas.billing import ChangePlanResponse, CustomerWallet

logger = logging.getLogger(__name__)


class DodoPaymentsError(Exception):
    """Dodo Payments returned an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DodoPaymentsNotConfigured(DodoPaymentsError):
    """No API key is configured."""


class DodoPaymentsClient:
    """Thin async client over the Dodo Payments REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._transport = transport
        self._timeout = timeout

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key or settings.dodo_payments_api_key

    @property
    def base_url(self) -> str:
        return (self._base_url or settings.dodo_base_url).rstrip("/")

    def _client(self) -> httpx.AsyncClient:
        if not self.api_key:
            raise DodoPaymentsNotConfigured("DODO_PAYMENTS_API_KEY is not configured")

        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def change_plan(self, subscription_id: str, product_id: str, prorate: str) -> ChangePlanResponse:
        """Move a subscription to another product."""
        path = f"/v1/subscriptions/{subscription_id}/change-plan"
        logger.info(f"Changing plan for subscription {subscription_id} → {product_id} ({prorate})")

        async with self._client() as client:
            try:
                response = await client.post(path, json={"product_id": product_id, "prorate": prorate})
            except httpx.HTTPError as e:
                raise DodoPaymentsError(f"Dodo Payments unreachable: {e}") from e

        if not response.is_success:
            logger.error(f"Dodo Payments change-plan failed: {response.status_code} {response.text[:500]}")
            raise DodoPaymentsError(
                f"Dodo Payments API error: {response.status_code} {response.text[:500]}",
                status_code=response.status_code,
            )

        # The endpoint may answer with an empty body on success
        try:
            data: Dict[str, Any] = response.json() if response.content else {}
            return ChangePlanResponse(
                subscription_id=data.get("subscription_id", subscription_id),
                status=data.get("status", "ok"),
                message=data.get("message"),
            )
        except (ValueError, AttributeError, TypeError, ValidationError) as e:
            raise DodoPaymentsError(
                f"Unexpected change-plan response: {response.text[:200]}",
                status_code=response.status_code,
            ) from e

    async def list_customer_wallets(self, customer_id: str) -> List[CustomerWallet]:
        """Customer wallets; a missing wallets endpoint reads as no wallets."""
        async with self._client() as client:
            try:
                response = await client.get(f"/v1/customers/{customer_id}/wallets")
            except httpx.HTTPError as e:
                raise DodoPaymentsError(f"Dodo Payments unreachable: {e}") from e

        if response.status_code == 404:
            return []
        if not response.is_success:
            raise DodoPaymentsError(
                f"Dodo Payments API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            items = data.get("items") or data.get("wallets") or []
            return [CustomerWallet(**item) for item in items]
        except (ValueError, AttributeError, TypeError, ValidationError) as e:
            raise DodoPaymentsError(
                f"Unexpected wallets response: {response.text[:200]}",
                status_code=response.status_code,
            ) from e


# Global client instance
dodo_client = DodoPaymentsClient()
