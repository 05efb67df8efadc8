"""Shared utilities for MCP adapters"""

from dataclasses import dataclass
from typing import Optional

from ..backend_client import CommerceBackendClient, get_backend_client
from ..config import config
from ..models.product import Product
from ..protocol.errors import ValidationError
from ..services.cart_service import SessionCartService, get_cart_service
from ..services.catalog_service import CatalogService, get_catalog_service
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ShoppingServices:
    """Service instances handed to every tool handler"""
    catalog: CatalogService
    cart: SessionCartService
    backend: Optional[CommerceBackendClient] = None
    cart_sync: bool = False


def get_services() -> ShoppingServices:
    """Build the service set from the global configuration"""
    backend = get_backend_client() if config.api.backend_endpoint else None
    cart_sync = config.api.cart_sync and backend is not None
    if config.api.cart_sync and backend is None:
        logger.warning("BACKEND_CART_SYNC is enabled but BACKEND_ENDPOINT is not set; cart sync disabled")

    return ShoppingServices(
        catalog=get_catalog_service(),
        cart=get_cart_service(),
        backend=backend,
        cart_sync=cart_sync
    )


async def resolve_product(services: ShoppingServices, product_id: Optional[int] = None,
                          name: Optional[str] = None) -> Product:
    """Look a product up by id when given, otherwise by exact name

    Raises:
        ValidationError: neither product_id nor name was provided
        NotFound: no matching product
    """
    if product_id is not None:
        return await services.catalog.get_by_id(product_id)
    if name and name.strip():
        return await services.catalog.get_by_exact_name(name)
    raise ValidationError(
        "either product_id or name is required",
        [{"field": "product_id", "message": "product_id or name required"}]
    )
