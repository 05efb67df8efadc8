"""Data models for cart and wishlist records stored in Redis"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Any

from .product import Product


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return utcnow()


@dataclass
class CartItem:
    """One line of a cart; lines are merged by product id"""
    key: str
    product_id: int
    name: str
    price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        """Calculate subtotal for this item"""
        return self.price * self.quantity

    @staticmethod
    def key_for(product_id: int) -> str:
        """Line key used for removal; one line per product id"""
        return str(product_id)

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> 'CartItem':
        return cls(
            key=cls.key_for(product.id),
            product_id=product.id,
            name=product.name,
            price=product.price,
            quantity=quantity
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'key': self.key,
            'product_id': self.product_id,
            'name': self.name,
            'price': str(self.price),
            'quantity': self.quantity
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartItem':
        """Create CartItem from dictionary"""
        return cls(
            key=str(data['key']),
            product_id=int(data['product_id']),
            name=data['name'],
            price=Decimal(str(data['price'])),
            quantity=int(data['quantity'])
        )


@dataclass
class CartRecord:
    """Per-session shopping cart"""
    session_key: str
    items: List[CartItem] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    expires_at: Optional[datetime] = None

    @property
    def total_items(self) -> int:
        """Total number of units in cart"""
        return sum(item.quantity for item in self.items)

    @property
    def total_value(self) -> Decimal:
        """Total value of cart"""
        return sum((item.subtotal for item in self.items), Decimal("0"))

    def is_empty(self) -> bool:
        return not self.items

    def find_item(self, key: str) -> Optional[CartItem]:
        """Find line by key"""
        for item in self.items:
            if item.key == key:
                return item
        return None

    def add_item(self, item: CartItem) -> CartItem:
        """Add line to cart, summing quantity into an existing line for the same product"""
        existing = self.find_item(item.key)
        if existing:
            existing.quantity += item.quantity
            # Keep the latest name/price the catalog reported
            existing.name = item.name
            existing.price = item.price
            return existing
        self.items.append(item)
        return item

    def remove_item(self, key: str) -> Optional[CartItem]:
        """Remove line from cart, returning it"""
        for i, item in enumerate(self.items):
            if item.key == key:
                return self.items.pop(i)
        return None

    def touch(self, ttl_seconds: int) -> None:
        """Refresh expiry after a write"""
        self.expires_at = utcnow() + timedelta(seconds=ttl_seconds)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'session_key': self.session_key,
            'items': [item.to_dict() for item in self.items],
            'created_at': self.created_at.isoformat(),
            'expires_at': self.expires_at.isoformat() if self.expires_at else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartRecord':
        """Create CartRecord from dictionary"""
        return cls(
            session_key=data['session_key'],
            items=[CartItem.from_dict(item) for item in data.get('items', [])],
            created_at=_parse_datetime(data.get('created_at')),
            expires_at=_parse_datetime(data['expires_at']) if data.get('expires_at') else None
        )


@dataclass
class WishlistRecord:
    """Per-identity wishlist; products are unique by case-insensitive name"""
    identity_key: str
    items: List[Product] = field(default_factory=list)
    expires_at: Optional[datetime] = None

    def contains(self, product: Product) -> bool:
        name = product.name.casefold()
        return any(item.name.casefold() == name for item in self.items)

    def add(self, product: Product) -> bool:
        """Append product unless already present. Returns True when added."""
        if self.contains(product):
            return False
        self.items.append(product)
        return True

    def touch(self, ttl_seconds: int) -> None:
        self.expires_at = utcnow() + timedelta(seconds=ttl_seconds)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'identity_key': self.identity_key,
            'items': [item.to_dict() for item in self.items],
            'expires_at': self.expires_at.isoformat() if self.expires_at else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WishlistRecord':
        """Create WishlistRecord from dictionary"""
        return cls(
            identity_key=data['identity_key'],
            items=[Product.from_dict(item) for item in data.get('items', [])],
            expires_at=_parse_datetime(data['expires_at']) if data.get('expires_at') else None
        )
