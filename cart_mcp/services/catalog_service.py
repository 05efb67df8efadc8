"""Catalog Service for product lookups

Read-only search, filter and detail operations. Products come either from
the commerce backend (remote mode) or from a JSON file preloaded into memory
(local mode); both sources honour the same contract so the tool handlers do
not care which one is active.
"""

from typing import Any, Dict, Iterable, List, Optional, Protocol
import json
from pathlib import Path

from ..backend_client import CommerceBackendClient, get_backend_client
from ..config import CatalogConfig, config
from ..models.product import Product
from ..protocol.errors import BackendError, NotFound, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def parse_products(payloads: Iterable[Dict[str, Any]]) -> List[Product]:
    """Build products from raw payloads, skipping entries that lack an id or name"""
    products = []
    for payload in payloads:
        try:
            products.append(Product.from_backend(payload))
        except ValueError as e:
            logger.warning(f"Skipping malformed product payload: {e}")
    return products


def matches_query(product: Product, query: str) -> bool:
    """Case-insensitive substring match, or every keyword present somewhere in the product text"""
    needle = query.casefold().strip()
    if not needle:
        return True
    haystack = " ".join(
        part for part in (product.name, product.description, product.category) if part
    ).casefold()
    if needle in haystack:
        return True
    return all(keyword in haystack for keyword in needle.split())


class ProductSource(Protocol):
    """Contract shared by the remote and local product sources"""

    async def search(self, query: str, page: int, per_page: int) -> List[Product]: ...

    async def get_by_id(self, product_id: int) -> Product: ...

    async def get_by_exact_name(self, name: str) -> Product: ...

    async def list_by_category(self, category: str) -> List[Product]: ...

    async def list_products(self, page: int, per_page: int) -> List[Product]: ...


class RemoteProductSource:
    """Delegates every lookup to the commerce backend"""

    # Upper bound on pages walked when a lookup has to filter client-side
    MAX_SCAN_PAGES = 10

    def __init__(self, client: CommerceBackendClient, scan_page_size: int = 100):
        self.client = client
        self.scan_page_size = scan_page_size

    async def search(self, query: str, page: int, per_page: int) -> List[Product]:
        return parse_products(await self.client.search_products(query, page, per_page))

    async def get_by_id(self, product_id: int) -> Product:
        try:
            payload = await self.client.get_product(product_id)
        except BackendError as e:
            if e.status_code == 404:
                raise NotFound(f"product with id {product_id}") from e
            raise
        if not payload:
            raise NotFound(f"product with id {product_id}")
        products = parse_products([payload])
        if not products:
            raise NotFound(f"product with id {product_id}")
        return products[0]

    async def _scan(self, search: str = "", category: Optional[str] = None) -> List[Product]:
        """Walk result pages until a short page or the scan limit"""
        collected: List[Product] = []
        for page in range(1, self.MAX_SCAN_PAGES + 1):
            payloads = await self.client.search_products(search, page, self.scan_page_size, category=category)
            collected.extend(parse_products(payloads))
            if len(payloads) < self.scan_page_size:
                break
        return collected

    async def get_by_exact_name(self, name: str) -> Product:
        wanted = name.casefold().strip()
        for product in await self._scan(search=name):
            if product.name.casefold() == wanted:
                return product
        raise NotFound(f"product named '{name}'")

    async def list_by_category(self, category: str) -> List[Product]:
        wanted = category.casefold().strip()
        return [
            product for product in await self._scan(category=category)
            if product.category and product.category.casefold() == wanted
        ]

    async def list_products(self, page: int, per_page: int) -> List[Product]:
        return parse_products(await self.client.search_products("", page, per_page))


class LocalProductSource:
    """Evaluates every lookup in memory against a preloaded product list"""

    def __init__(self, products: List[Product]):
        self.products = list(products)
        self._by_id = {product.id: product for product in self.products}

    @classmethod
    def from_file(cls, path: str) -> 'LocalProductSource':
        """Load a JSON array of products, or an object with a "products" array"""
        with Path(path).open(encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("products", [])
        if not isinstance(data, list):
            raise ValueError(f"{path} must contain a JSON array of products")
        products = parse_products(data)
        logger.info(f"Loaded {len(products)} products from {path}")
        return cls(products)

    @staticmethod
    def _page(items: List[Product], page: int, per_page: int) -> List[Product]:
        start = (page - 1) * per_page
        return items[start:start + per_page]

    async def search(self, query: str, page: int, per_page: int) -> List[Product]:
        return self._page([p for p in self.products if matches_query(p, query)], page, per_page)

    async def get_by_id(self, product_id: int) -> Product:
        product = self._by_id.get(product_id)
        if product is None:
            raise NotFound(f"product with id {product_id}")
        return product

    async def get_by_exact_name(self, name: str) -> Product:
        wanted = name.casefold().strip()
        for product in self.products:
            if product.name.casefold() == wanted:
                return product
        raise NotFound(f"product named '{name}'")

    async def list_by_category(self, category: str) -> List[Product]:
        wanted = category.casefold().strip()
        return [p for p in self.products if p.category and p.category.casefold() == wanted]

    async def list_products(self, page: int, per_page: int) -> List[Product]:
        return self._page(self.products, page, per_page)


class CatalogService:
    """Mode-agnostic product catalog with paging validation"""

    def __init__(self, source: ProductSource, catalog_config: Optional[CatalogConfig] = None):
        self.source = source
        self.config = catalog_config or config.catalog
        logger.info(f"CatalogService initialized with {type(source).__name__}")

    def _check_paging(self, page: int, per_page: int) -> None:
        errors = []
        if page < 1:
            errors.append({"field": "page", "message": "must be >= 1"})
        if per_page < 1 or per_page > self.config.max_per_page:
            errors.append({"field": "per_page", "message": f"must be between 1 and {self.config.max_per_page}"})
        if errors:
            raise ValidationError("; ".join(f"{e['field']} {e['message']}" for e in errors), errors)

    async def search(self, query: str, page: int = 1, per_page: int = 10) -> List[Product]:
        self._check_paging(page, per_page)
        products = await self.source.search(query, page, per_page)
        logger.info(f"[Catalog] search '{query}' page={page} per_page={per_page} -> {len(products)} products")
        return products

    async def get_by_id(self, product_id: int) -> Product:
        return await self.source.get_by_id(product_id)

    async def get_by_exact_name(self, name: str) -> Product:
        if not name or not name.strip():
            raise ValidationError("name must not be empty", [{"field": "name", "message": "must not be empty"}])
        return await self.source.get_by_exact_name(name)

    async def list_by_category(self, category: str) -> List[Product]:
        if not category or not category.strip():
            raise ValidationError("category must not be empty", [{"field": "category", "message": "must not be empty"}])
        return await self.source.list_by_category(category)

    async def list_products(self, page: int = 1, per_page: int = 10) -> List[Product]:
        self._check_paging(page, per_page)
        return await self.source.list_products(page, per_page)


_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get singleton CatalogService instance for the configured mode"""
    global _catalog_service
    if _catalog_service is None:
        if config.catalog.mode == "local":
            source = LocalProductSource.from_file(config.catalog.products_file)
        else:
            source = RemoteProductSource(get_backend_client())
        _catalog_service = CatalogService(source)
    return _catalog_service
