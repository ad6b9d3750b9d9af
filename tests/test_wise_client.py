"""Tests for the Wise transfer client against a mocked HTTP transport."""

import json

import httpx
import pytest

from app.engine.errors import ProviderError
from app.providers.wise import WiseTransferClient

BASE_URL = "https://wise.test"


def _client(handler) -> WiseTransferClient:
    transport = httpx.MockTransport(handler)
    return WiseTransferClient(
        api_key="secret-key",
        base_url=BASE_URL + "/",
        profile_id="16100001",
        client=httpx.AsyncClient(transport=transport),
    )


@pytest.mark.asyncio
async def test_fetch_account_details():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json=[{"id": 1, "currency": {"code": "USD"}}])

    client = _client(handler)
    data = await client.fetch_account_details()

    assert data == [{"id": 1, "currency": {"code": "USD"}}]
    assert seen["method"] == "GET"
    assert seen["url"] == f"{BASE_URL}/v1/profiles/16100001/account-details"
    assert seen["auth"] == "Bearer secret-key"
    await client.aclose()


@pytest.mark.asyncio
async def test_transfer_requirements_request_and_parsing():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{
            "type": "transfer",
            "fields": [{"name": "Purpose", "group": [{"key": "transferPurpose", "required": True}]}],
        }])

    client = _client(handler)
    reqs = await client.get_transfer_requirements(
        "701000001", "quote-uuid", "Payout", "txn-1", details={"transferPurpose": "PERSONAL_EXPENSES"}
    )

    assert seen["url"] == f"{BASE_URL}/v1/transfer-requirements"
    assert seen["body"] == {
        "targetAccount": "701000001",
        "quoteUuid": "quote-uuid",
        "details": {"reference": "Payout", "transferPurpose": "PERSONAL_EXPENSES"},
        "customerTransactionId": "txn-1",
    }
    assert reqs[0].fields[0].group[0].key == "transferPurpose"
    await client.aclose()


@pytest.mark.asyncio
async def test_create_transfer():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "id": 16521632,
            "status": "incoming_payment_waiting",
            "rate": 85.4613,
            "sourceCurrency": "USD",
            "targetCurrency": "INR",
            "sourceValue": 100,
            "targetValue": 8546.13,
        })

    client = _client(handler)
    result = await client.create_transfer(100, "701000001", "quote-uuid", transaction_id="txn-1",
                                          details={"reference": "Payout"})

    assert seen["url"] == f"{BASE_URL}/v1/transfers"
    assert seen["body"]["customerTransactionId"] == "txn-1"
    assert seen["body"]["targetAccount"] == "701000001"
    assert result.transfer_id == "16521632"
    assert result.rate == 85.4613
    assert result.source_currency == "USD"
    assert result.target_currency == "INR"
    assert result.target_value == 8546.13
    await client.aclose()


@pytest.mark.asyncio
async def test_non_2xx_raises_provider_error_with_status_and_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, text='{"errors": [{"code": "NOT_VALID"}]}')

    client = _client(handler)
    with pytest.raises(ProviderError) as exc_info:
        await client.get_transfer_requirements("1", "q", "Payout", "txn-1")

    assert exc_info.value.status_code == 422
    assert "NOT_VALID" in exc_info.value.body
    assert "Transfer Requirements" in str(exc_info.value)
    await client.aclose()


@pytest.mark.asyncio
async def test_timeout_raises_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler)
    with pytest.raises(ProviderError) as exc_info:
        await client.fetch_account_details()

    assert exc_info.value.status_code is None
    assert "timeout" in str(exc_info.value)
    await client.aclose()


@pytest.mark.asyncio
async def test_connection_error_raises_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(ProviderError):
        await client.create_transfer(100, "1", "q")
    await client.aclose()


@pytest.mark.asyncio
async def test_transfer_without_rate_is_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": 1, "status": "ok"})

    client = _client(handler)
    with pytest.raises(ProviderError):
        await client.create_transfer(100, "1", "q")
    await client.aclose()


@pytest.mark.asyncio
async def test_invalid_json_is_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    client = _client(handler)
    with pytest.raises(ProviderError) as exc_info:
        await client.fetch_account_details()

    assert exc_info.value.status_code == 200
    await client.aclose()


@pytest.mark.asyncio
async def test_get_quote():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"id": "q1", "rate": 85.4613, "sourceCurrency": "USD"})

    quote = await _client(handler).get_quote("q1")

    assert quote["rate"] == 85.4613
    assert seen["method"] == "GET"
    assert seen["url"] == f"{BASE_URL}/v3/profiles/16100001/quotes/q1"


@pytest.mark.asyncio
async def test_get_quote_unwraps_list_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"id": "q1"}, {"id": "q2"}])

    assert await _client(handler).get_quote("q1") == {"id": "q1"}


@pytest.mark.asyncio
async def test_get_quote_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"errors": [{"code": "NOT_FOUND"}]})

    with pytest.raises(ProviderError) as exc_info:
        await _client(handler).get_quote("missing")
    assert exc_info.value.status_code == 404
