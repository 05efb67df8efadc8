"""Tests for CommerceBackendClient request building and error normalization."""

import json

import httpx
import pytest

from cart_mcp.backend_client import CommerceBackendClient
from cart_mcp.config import APIConfig
from cart_mcp.protocol.errors import BackendError, ErrorCode


class TestRequestBuilding:
    """URL, headers, params and bodies sent to the backend."""

    @pytest.mark.asyncio
    async def test_search_sends_params_and_drops_empty_ones(self, make_backend):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = request.url
            return httpx.Response(200, json=[{"id": 1, "name": "Laptop", "price": "999"}])

        client = make_backend(handler)
        result = await client.search_products("laptop", page=2, per_page=5)

        assert result == [{"id": 1, "name": "Laptop", "price": "999"}]
        assert seen["url"].path == "/wp-json/cart/v1/products"
        assert dict(seen["url"].params) == {"search": "laptop", "page": "2", "per_page": "5"}

    @pytest.mark.asyncio
    async def test_json_headers_and_bearer_token(self, make_backend):
        seen = {}

        def handler(request: httpx.Request):
            seen["headers"] = request.headers
            return httpx.Response(200, json={})

        client = make_backend(handler, api_key="secret-key")
        await client.get_cart()

        assert seen["headers"]["content-type"] == "application/json"
        assert seen["headers"]["accept"] == "application/json"
        assert seen["headers"]["authorization"] == "Bearer secret-key"

    @pytest.mark.asyncio
    async def test_no_authorization_header_without_key(self, make_backend):
        seen = {}

        def handler(request: httpx.Request):
            seen["headers"] = request.headers
            return httpx.Response(200, json={})

        await make_backend(handler).get_cart()
        assert "authorization" not in seen["headers"]

    @pytest.mark.asyncio
    async def test_add_cart_item_posts_id_and_quantity(self, make_backend):
        seen = {}

        def handler(request: httpx.Request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        result = await make_backend(handler).add_cart_item(7, 3)

        assert result == {"success": True}
        assert seen == {"method": "POST", "path": "/wp-json/cart/v1/cart/add-item",
                        "body": {"id": 7, "quantity": 3}}

    @pytest.mark.asyncio
    async def test_remove_and_clear_endpoints(self, make_backend):
        calls = []

        def handler(request: httpx.Request):
            calls.append((request.method, request.url.path))
            return httpx.Response(200, json={})

        client = make_backend(handler)
        await client.remove_cart_item("abc123")
        await client.clear_cart()

        assert calls == [
            ("POST", "/wp-json/cart/v1/cart/remove-item/abc123"),
            ("DELETE", "/wp-json/cart/v1/cart/items"),
        ]

    def test_missing_endpoint_is_rejected(self):
        with pytest.raises(ValueError):
            CommerceBackendClient(APIConfig(backend_endpoint=""))


class TestResponseParsing:
    """Success bodies, including ones that are empty or not JSON."""

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_treated_as_absent(self, make_backend):
        client = make_backend(lambda request: httpx.Response(200, text="<html>ok</html>"))
        assert await client.request("/cart") is None

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self, make_backend):
        client = make_backend(lambda request: httpx.Response(204))
        assert await client.request("/cart/items", method="DELETE") is None

    @pytest.mark.asyncio
    async def test_wrapped_product_listing_is_unwrapped(self, make_backend):
        payload = {"products": [{"id": 3, "name": "Mug"}], "total": 1}
        client = make_backend(lambda request: httpx.Response(200, json=payload))
        assert await client.search_products("mug") == [{"id": 3, "name": "Mug"}]

    @pytest.mark.asyncio
    async def test_unexpected_listing_shape_is_empty(self, make_backend):
        client = make_backend(lambda request: httpx.Response(200, json="nothing"))
        assert await client.search_products("mug") == []


class TestErrorNormalization:
    """Every failure becomes a BackendError."""

    @pytest.mark.asyncio
    async def test_error_message_taken_from_body(self, make_backend):
        client = make_backend(
            lambda request: httpx.Response(404, json={"code": "not_found", "message": "No product with id 42"})
        )
        with pytest.raises(BackendError) as exc_info:
            await client.get_product(42)

        assert exc_info.value.status_code == 404
        assert exc_info.value.reason == "No product with id 42"
        assert exc_info.value.code == ErrorCode.BACKEND_ERROR
        assert str(exc_info.value) == "Backend error (404): No product with id 42"

    @pytest.mark.asyncio
    async def test_error_code_used_when_message_missing(self, make_backend):
        client = make_backend(lambda request: httpx.Response(500, json={"code": "cart_failure"}))
        with pytest.raises(BackendError) as exc_info:
            await client.add_cart_item(1, 1)
        assert exc_info.value.reason == "cart_failure"

    @pytest.mark.asyncio
    async def test_status_line_used_for_non_json_errors(self, make_backend):
        client = make_backend(lambda request: httpx.Response(502, text="<html>Bad gateway</html>"))
        with pytest.raises(BackendError) as exc_info:
            await client.get_cart()
        assert exc_info.value.status_code == 502
        assert exc_info.value.reason == "502 Bad Gateway"

    @pytest.mark.asyncio
    async def test_timeout_has_no_status(self, make_backend):
        def handler(request: httpx.Request):
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(BackendError) as exc_info:
            await make_backend(handler, timeout=2.0).get_cart()

        assert exc_info.value.status_code is None
        assert "timed out after 2.0s" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_connection_failure_has_no_status(self, make_backend):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BackendError) as exc_info:
            await make_backend(handler).search_products("x")

        assert exc_info.value.status_code is None
        assert "could not reach backend" in exc_info.value.message


class TestCurlDebugging:
    """curl rendering used when DEBUG_CURL_LOGGING is on."""

    def test_authorization_is_masked(self):
        client = CommerceBackendClient(APIConfig(backend_endpoint="https://shop.test", api_key="secret"))
        curl = client._generate_curl_command(
            "post", "https://shop.test/cart/add-item", client.config.default_headers,
            None, {"id": 1, "quantity": 2}
        )
        assert curl.startswith("curl -X POST")
        assert "secret" not in curl
        assert "Bearer ***" in curl
        assert '{"id":1,"quantity":2}' in curl
