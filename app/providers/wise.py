"""
Wise transfer provider client.

Endpoints used, all JSON over HTTPS with a bearer token:

  GET  /v1/profiles/{profile_id}/account-details
  GET  /v3/profiles/{profile_id}/quotes/{quote_id}
  POST /v1/transfer-requirements
  POST /v1/transfers

Every call is a single attempt bounded by a timeout. Non-2xx answers,
timeouts and transport failures raise ProviderError; retrying is the job of
the retry sweep, not of this client.
"""

import logging
from typing import Any, Optional

import httpx

from app.engine.errors import ProviderError
from app.providers.base import (
    TransferProvider,
    TransferRequirement,
    TransferResult,
    parse_requirements,
)

logger = logging.getLogger("payout_service.wise")


class WiseTransferClient(TransferProvider):
    def __init__(
        self,
        api_key: str,
        base_url: str,
        profile_id: str,
        timeout_s: float = 20.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._profile_id = profile_id
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    @property
    def name(self) -> str:
        return "wise"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, stage: str, method: str, path: str, json_body: Optional[dict] = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, headers=self._headers(), json=json_body)
        except httpx.TimeoutException as e:
            raise ProviderError(f"Wise API timeout ({stage})") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Wise API unreachable ({stage}): {e}") from e

        if not response.is_success:
            logger.error("Wise %s failed: %d %s", stage, response.status_code, response.text[:300])
            raise ProviderError(
                f"Wise API Error ({stage}): {response.status_code} "
                f"{response.reason_phrase} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"Wise API returned invalid JSON ({stage})",
                status_code=response.status_code,
                body=response.text,
            ) from e

    async def fetch_account_details(self) -> Any:
        data = await self._request(
            "Account Details", "GET", f"/v1/profiles/{self._profile_id}/account-details"
        )
        logger.debug("Fetched account details for profile %s", self._profile_id)
        return data

    async def get_quote(self, quote_id: str) -> dict[str, Any]:
        """Fetch a quote issued for the configured profile."""
        data = await self._request(
            "Quote", "GET", f"/v3/profiles/{self._profile_id}/quotes/{quote_id}"
        )
        if isinstance(data, list):
            if not data:
                raise ProviderError(f"Wise returned no quote for {quote_id}")
            data = data[0]
        return data

    async def get_transfer_requirements(
        self,
        target_account_id: str,
        quote_id: str,
        reference: str,
        transaction_id: str,
        details: Optional[dict[str, str]] = None,
    ) -> list[TransferRequirement]:
        body = {
            "targetAccount": target_account_id,
            "quoteUuid": quote_id,
            "details": {"reference": reference, **(details or {})},
            "customerTransactionId": transaction_id,
        }
        logger.info("Checking transfer requirements for quote %s", quote_id)
        data = await self._request("Transfer Requirements", "POST", "/v1/transfer-requirements", body)
        return parse_requirements(data)

    async def create_transfer(
        self,
        amount: float,
        target_account_id: str,
        quote_id: str,
        transaction_id: Optional[str] = None,
        details: Optional[dict[str, str]] = None,
    ) -> TransferResult:
        body = {
            "targetAccount": target_account_id,
            "quoteUuid": quote_id,
            "customerTransactionId": transaction_id,
            "details": details or {},
        }
        logger.info("Creating transfer of %.2f to account %s (quote %s)", amount, target_account_id, quote_id)
        data = await self._request("Transfer", "POST", "/v1/transfers", body)
        return _transfer_result(data, amount)

    async def aclose(self) -> None:
        await self._client.aclose()


def _transfer_result(data: dict[str, Any], amount: float) -> TransferResult:
    try:
        rate = float(data["rate"])
        transfer_id = str(data["id"])
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderError(f"Wise transfer response missing id/rate: {data}") from e
    if rate <= 0:
        raise ProviderError(f"Wise transfer returned non-positive rate: {rate}")

    return TransferResult(
        transfer_id=transfer_id,
        status=str(data.get("status", "")),
        rate=rate,
        source_currency=data.get("sourceCurrency", ""),
        target_currency=data.get("targetCurrency", ""),
        source_value=data.get("sourceValue", amount),
        target_value=data.get("targetValue"),
        raw=data,
    )
