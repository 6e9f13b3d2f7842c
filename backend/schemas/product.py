# backend/schemas/product.py
from decimal import Decimal
from typing import Optional

from schemas.cart import CamelModel


# Catalog product as returned to the scanner and search UI
class Product(CamelModel):
    id: int
    name: str
    name_hindi: Optional[str] = None
    barcode: Optional[str] = None
    category: str
    subcategory: Optional[str] = None
    price: Decimal
    unit: str
    brand: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    stock_quantity: int = 0
    is_weighable: bool = False
    is_available: bool = True
