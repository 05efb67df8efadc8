"""Configuration management for the Cart MCP Server"""

import os
from dataclasses import dataclass
from typing import Optional, Dict, Any
from dotenv import load_dotenv
import logging

# Load environment variables
load_dotenv()

# Note: logging is configured by setup_mcp_logging() at server start, not here.
# MCP servers must keep stdout clean for JSON-RPC communication


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class APIConfig:
    """Commerce backend configuration"""
    backend_endpoint: str
    api_key: Optional[str] = None
    timeout: float = 10.0
    cart_sync: bool = False
    debug_curl: bool = False

    @property
    def default_headers(self) -> Dict[str, str]:
        """Default headers for API requests"""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json"
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers


@dataclass
class RedisConfig:
    """Redis connection configuration"""
    url: Optional[str] = None
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    socket_timeout: float = 5.0
    max_retries: int = 5


@dataclass
class SessionConfig:
    """Cart and wishlist lifetime configuration"""
    cart_ttl_seconds: int = 86400          # 24 hours
    wishlist_ttl_seconds: int = 2592000    # 30 days
    default_session_key: str = "default"


@dataclass
class CatalogConfig:
    """Product catalog configuration"""
    mode: str = "remote"  # remote, local
    products_file: Optional[str] = None
    default_per_page: int = 10
    max_per_page: int = 100


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = None


class Config:
    """Main configuration class"""

    def __init__(self):
        # API Configuration
        self.api = APIConfig(
            backend_endpoint=os.getenv("BACKEND_ENDPOINT", ""),
            api_key=os.getenv("BACKEND_API_KEY"),
            timeout=float(os.getenv("BACKEND_TIMEOUT_SECONDS", "10")),
            cart_sync=_env_bool("BACKEND_CART_SYNC"),
            debug_curl=_env_bool("DEBUG_CURL_LOGGING")
        )

        # Redis Configuration
        self.redis = RedisConfig(
            url=os.getenv("REDIS_URL"),
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            db=int(os.getenv("REDIS_DB", "0")),
            password=os.getenv("REDIS_PASSWORD"),
            socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "5")),
            max_retries=int(os.getenv("CACHE_MAX_RETRIES", "5"))
        )

        # Session Configuration
        self.session = SessionConfig(
            cart_ttl_seconds=int(os.getenv("CART_TTL_SECONDS", "86400")),
            wishlist_ttl_seconds=int(os.getenv("WISHLIST_TTL_SECONDS", "2592000")),
            default_session_key=os.getenv("DEFAULT_SESSION_KEY", "default")
        )

        # Catalog Configuration
        self.catalog = CatalogConfig(
            mode=os.getenv("CATALOG_MODE", "remote").lower(),
            products_file=os.getenv("CATALOG_PRODUCTS_FILE")
        )

        # Logging Configuration
        self.logging = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            file=os.getenv("LOG_FILE")
        )

    def validate(self) -> bool:
        """Validate configuration"""
        errors = []

        if self.catalog.mode not in ("remote", "local"):
            errors.append(f"CATALOG_MODE must be 'remote' or 'local', got '{self.catalog.mode}'")

        # The backend is needed for remote lookups and for cart sync
        if (self.catalog.mode == "remote" or self.api.cart_sync) and not self.api.backend_endpoint:
            errors.append("BACKEND_ENDPOINT is required for the remote catalog or cart sync")

        if self.catalog.mode == "local":
            if not self.catalog.products_file:
                errors.append("CATALOG_PRODUCTS_FILE is required when CATALOG_MODE=local")
            elif not os.path.exists(self.catalog.products_file):
                errors.append(f"CATALOG_PRODUCTS_FILE not found: {self.catalog.products_file}")

        if self.api.timeout <= 0:
            errors.append("BACKEND_TIMEOUT_SECONDS must be positive")

        if self.session.cart_ttl_seconds <= 0 or self.session.wishlist_ttl_seconds <= 0:
            errors.append("CART_TTL_SECONDS and WISHLIST_TTL_SECONDS must be positive")

        if errors:
            for error in errors:
                logging.error(f"Configuration error: {error}")
            return False

        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            "api": {
                "backend_endpoint": self.api.backend_endpoint,
                "timeout": self.api.timeout,
                "cart_sync": self.api.cart_sync
            },
            "redis": {
                "url": "***" if self.redis.url else None,
                "host": self.redis.host,
                "port": self.redis.port,
                "db": self.redis.db,
                "max_retries": self.redis.max_retries
            },
            "session": {
                "cart_ttl_seconds": self.session.cart_ttl_seconds,
                "wishlist_ttl_seconds": self.session.wishlist_ttl_seconds,
                "default_session_key": self.session.default_session_key
            },
            "catalog": {
                "mode": self.catalog.mode,
                "products_file": self.catalog.products_file
            },
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file
            }
        }


# Global configuration instance
config = Config()
