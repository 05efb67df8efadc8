"""Product model shared by the catalog lookup and the cart store"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Any
import html
import re


_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def parse_price(value: Any) -> Decimal:
    """Parse a price from the shapes the backend uses: number, numeric string or {"value": ...}"""
    if isinstance(value, dict):
        value = value.get("value", value.get("amount"))
    if value is None or value == "" or isinstance(value, bool):
        return Decimal("0")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal("0")
    # NaN and Infinity cannot be priced or summed
    return price if price.is_finite() else Decimal("0")


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip HTML markup and collapse whitespace in backend descriptions"""
    if not value:
        return None
    text = _SPACE_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", str(value)))).strip()
    return text or None


@dataclass(frozen=True)
class Product:
    """Catalog product. Owned by the backend, read-only here."""
    id: int
    name: str
    price: Decimal
    description: Optional[str] = None
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'id': self.id,
            'name': self.name,
            'price': str(self.price),
            'description': self.description,
            'category': self.category
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Create Product from its own serialized form"""
        return cls(
            id=int(data['id']),
            name=data['name'],
            price=Decimal(str(data['price'])),
            description=data.get('description'),
            category=data.get('category')
        )

    @classmethod
    def from_backend(cls, data: Dict[str, Any]) -> 'Product':
        """Create Product from a backend or catalog-file payload

        Accepts the flat cart-plugin shape as well as WooCommerce-style payloads
        where the category is a list and the description carries HTML.

        Raises:
            ValueError: if the payload has no usable id or name
        """
        if not isinstance(data, dict):
            raise ValueError(f"Product payload must be an object, got {type(data).__name__}")

        raw_id = data.get('id', data.get('product_id'))
        try:
            product_id = int(raw_id)
        except (TypeError, ValueError):
            raise ValueError(f"Product payload has no valid id: {raw_id!r}")

        name = clean_text(data.get('name') or data.get('title'))
        if not name:
            raise ValueError(f"Product {product_id} has no name")

        category = data.get('category')
        if isinstance(category, dict):
            category = category.get('name')
        if not category and isinstance(data.get('categories'), list) and data['categories']:
            first = data['categories'][0]
            category = first.get('name') if isinstance(first, dict) else first

        description = data.get('description') or data.get('short_description')

        return cls(
            id=product_id,
            name=name,
            price=parse_price(data.get('price')),
            description=clean_text(description),
            category=clean_text(category) if category else None
        )
