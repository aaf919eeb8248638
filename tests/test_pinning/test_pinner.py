"""Tests for the Pinata pinning client."""

import httpx
import pytest
import respx

from pinmint.pinning.pinner import ContentPinner

PIN_URL = "https://api.pinata.cloud/pinning/pinJSONToIPFS"
PIN_RESPONSE = {
    "IpfsHash": "QmPinned456",
    "PinSize": 321,
    "Timestamp": "2024-05-01T10:00:00.000Z",
}


class TestUnconfiguredPinner:
    """Test pinning is skipped without credentials."""

    @pytest.mark.asyncio
    async def test_returns_none_without_http_calls(self, test_settings):
        pinner = ContentPinner(test_settings)
        assert not pinner.is_configured

        with respx.mock(assert_all_called=False) as router:
            route = router.post(PIN_URL)
            assert await pinner.pin({"name": "doc"}, "label") is None
            assert not route.called
            assert not router.calls


class TestConfiguredPinner:
    """Test pinning against a mocked Pinata API."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_pins_document(self, pinning_settings):
        route = respx.post(PIN_URL).mock(
            return_value=httpx.Response(200, json=PIN_RESPONSE)
        )
        pinner = ContentPinner(pinning_settings)

        result = await pinner.pin({"name": "doc"}, "my-label")
        await pinner.close()

        assert result is not None
        assert result.content_id == "QmPinned456"
        assert result.retrieval_url == "https://gateway.pinata.cloud/ipfs/QmPinned456"
        assert result.pin_size == 321
        assert result.timestamp.year == 2024

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer test-jwt"
        assert b'"pinataContent":{"name":"doc"}' in request.content.replace(b" ", b"")
        assert b'"name":"my-label"' in request.content.replace(b" ", b"")

    @pytest.mark.asyncio
    @respx.mock
    async def test_key_pair_authentication(self, test_settings):
        settings = test_settings.model_copy(
            update={"PINATA_API_KEY": "key", "PINATA_SECRET_KEY": "secret"}
        )
        route = respx.post(PIN_URL).mock(
            return_value=httpx.Response(200, json=PIN_RESPONSE)
        )
        await ContentPinner(settings).pin({}, "x")

        headers = route.calls.last.request.headers
        assert headers["pinata_api_key"] == "key"
        assert headers["pinata_secret_api_key"] == "secret"

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_transient_failures(self, pinning_settings):
        route = respx.post(PIN_URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.ConnectError("reset"),
                httpx.Response(200, json=PIN_RESPONSE),
            ]
        )
        result = await ContentPinner(pinning_settings).pin({}, "x")

        assert result is not None
        assert route.call_count == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_gives_up_after_max_retries(self, pinning_settings):
        route = respx.post(PIN_URL).mock(return_value=httpx.Response(500))
        assert await ContentPinner(pinning_settings).pin({}, "x") is None
        assert route.call_count == pinning_settings.PIN_MAX_RETRIES

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_errors_are_not_retried(self, pinning_settings):
        route = respx.post(PIN_URL).mock(
            return_value=httpx.Response(401, json={"error": "bad jwt"})
        )
        assert await ContentPinner(pinning_settings).pin({}, "x") is None
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_response_without_hash_degrades(self, pinning_settings):
        respx.post(PIN_URL).mock(return_value=httpx.Response(200, json={"ok": True}))
        assert await ContentPinner(pinning_settings).pin({}, "x") is None

    def test_gateway_link_strips_scheme(self, test_settings):
        pinner = ContentPinner(test_settings)
        assert pinner.gateway_link("ipfs://QmA") == pinner.gateway_link("QmA")

    def test_gateway_link_strips_repeated_scheme(self, test_settings):
        pinner = ContentPinner(test_settings)
        assert (
            pinner.gateway_link("ipfs://ipfs://QmA")
            == "https://gateway.pinata.cloud/ipfs/QmA"
        )
