"""Services for business logic with proper separation of concerns"""

from .catalog_service import CatalogService, LocalProductSource, RemoteProductSource
from .cart_service import SessionCartService

__all__ = [
    'CatalogService',
    'LocalProductSource',
    'RemoteProductSource',
    'SessionCartService'
]
