"""
Commerce Backend Client

Thin async client over the commerce service's cart plugin API
(`/products` and `/cart` endpoints). Every non-2xx answer and every transport
failure surfaces as a single BackendError; there are no retries at this layer.
"""

import httpx
import json
import shlex
from typing import Dict, List, Optional, Any
from urllib.parse import urlencode

from .config import APIConfig, config
from .protocol.errors import BackendError
from .utils.logger import get_logger

logger = get_logger(__name__)


class CommerceBackendClient:
    """Client for the commerce backend's product and cart APIs"""

    def __init__(self, api_config: Optional[APIConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the backend client

        Args:
            api_config: Backend settings; defaults to the global configuration
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.config = api_config or config.api
        self.base_url = (self.config.backend_endpoint or "").rstrip("/")

        if not self.base_url:
            raise ValueError("BACKEND_ENDPOINT environment variable or api_config.backend_endpoint is required")

        self.debug_curl = self.config.debug_curl
        self.transport = transport

        # HTTP client configuration
        self.timeout = httpx.Timeout(self.config.timeout)
        self.limits = httpx.Limits(max_keepalive_connections=5, max_connections=10)

        logger.info(f"CommerceBackendClient initialized with base_url: {self.base_url}")
        if self.debug_curl:
            logger.info("CURL logging enabled for API calls")

    def _generate_curl_command(self, method: str, url: str, headers: Dict,
                               params: Optional[Dict], json_data: Optional[Any]) -> str:
        """Generate curl command for debugging"""
        curl_parts = ['curl', '-X', method.upper()]

        for key, value in headers.items():
            if key.lower() == 'authorization':
                value = 'Bearer ***'
            curl_parts.extend(['-H', shlex.quote(f'{key}: {value}')])

        if json_data is not None:
            curl_parts.extend(['-d', shlex.quote(json.dumps(json_data, separators=(',', ':')))])

        if params:
            url = f"{url}?{urlencode(params)}"

        curl_parts.append(shlex.quote(url))
        return ' '.join(curl_parts)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Optional[Any]:
        """Parse JSON body; an empty or non-JSON body counts as absent"""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.debug(f"Response body is not JSON ({len(response.content)} bytes), ignoring")
            return None

    @staticmethod
    def _error_message(response: httpx.Response, payload: Optional[Any]) -> str:
        """Pick the most descriptive message from an error response"""
        if isinstance(payload, dict):
            for field in ("message", "code"):
                value = payload.get(field)
                if value:
                    return str(value)
        return f"{response.status_code} {response.reason_phrase}".strip()

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Optional[Any]:
        """Make HTTP request to the commerce backend

        Returns:
            Parsed JSON body, or None when the body is empty or not JSON

        Raises:
            BackendError: non-2xx status, timeout or connection failure
        """
        url = f"{self.base_url}{path}"
        method = method.upper()
        headers = self.config.default_headers
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        if self.debug_curl:
            logger.info(f"CURL: {self._generate_curl_command(method, url, headers, params, body)}")

        logger.info(f"[REQUEST] {method} {path}")
        if body is not None:
            logger.debug(f"[REQUEST] Body: {json.dumps(body, default=str)}")
        if params:
            logger.debug(f"[REQUEST] Params: {params}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, limits=self.limits,
                                         transport=self.transport) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=body,
                    headers=headers
                )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout after {self.config.timeout}s for {method} {path}")
            raise BackendError(None, f"{method} {path} timed out after {self.config.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"Network/connection error for {path}: {e}. Check backend availability.")
            raise BackendError(None, f"could not reach backend for {method} {path}: {e}") from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        payload = self._parse_body(response)

        if not response.is_success:
            message = self._error_message(response, payload)
            logger.error(f"HTTP {response.status_code} for {method} {path}: {message}")
            raise BackendError(response.status_code, message)

        return payload

    # ================================
    # PRODUCT APIs
    # ================================

    async def search_products(self, search: str = "", page: int = 1, per_page: int = 10,
                              category: Optional[str] = None) -> List[Dict[str, Any]]:
        """Search or page through products"""
        params = {"search": search or None, "page": page, "per_page": per_page, "category": category}
        return self._as_list(await self.request("/products", params=params))

    async def get_product(self, product_id: int) -> Optional[Dict[str, Any]]:
        """Get a single product by id"""
        return await self.request(f"/products/{product_id}")

    # ================================
    # CART APIs
    # ================================

    async def get_cart(self) -> Optional[Any]:
        """Get the backend's cart contents"""
        return await self.request("/cart")

    async def add_cart_item(self, product_id: int, quantity: int = 1) -> Optional[Any]:
        """Add item to backend cart"""
        return await self.request("/cart/add-item", method="POST",
                                  body={"id": product_id, "quantity": quantity})

    async def remove_cart_item(self, item_key: str) -> Optional[Any]:
        """Remove one line from backend cart"""
        return await self.request(f"/cart/remove-item/{item_key}", method="POST")

    async def clear_cart(self) -> Optional[Any]:
        """Clear entire backend cart"""
        return await self.request("/cart/items", method="DELETE")

    @staticmethod
    def _as_list(payload: Optional[Any]) -> List[Dict[str, Any]]:
        """Product listings come back bare or wrapped in {"products": [...]} / {"data": [...]}"""
        if payload is None:
            return []
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in ("products", "data", "items"):
                if isinstance(payload.get(key), list):
                    return payload[key]
        logger.warning(f"Unexpected product listing shape: {type(payload).__name__}")
        return []


_backend_client: Optional[CommerceBackendClient] = None


def get_backend_client() -> CommerceBackendClient:
    """Get singleton CommerceBackendClient instance"""
    global _backend_client
    if _backend_client is None:
        _backend_client = CommerceBackendClient()
    return _backend_client
