# backend/services/catalog.py
import logging
from typing import Dict, List, Optional

import pandas as pd

from schemas.product import Product
from schemas.position import LiFiZoneOut, StoreSectionOut
from services.errors import ValidationError

logger = logging.getLogger(__name__)

# Floor plan of the demo store; section ids are the only valid position sections
STORE_SECTIONS: List[StoreSectionOut] = [
    StoreSectionOut(id="produce", name="Fresh Produce", name_hindi="सब्जी", x=0, y=0, width=1, height=2, color="green"),
    StoreSectionOut(id="dairy", name="Dairy", name_hindi="डेयरी", x=1, y=0, width=1, height=1, color="blue"),
    StoreSectionOut(id="spices", name="Spices", name_hindi="मसाले", x=2, y=0, width=1, height=1, color="yellow"),
    StoreSectionOut(id="snacks", name="Snacks", name_hindi="नाश्ता", x=0, y=2, width=1, height=1, color="purple"),
    StoreSectionOut(id="care", name="Personal Care", name_hindi="व्यक्तिगत देखभाल", x=1, y=1, width=1, height=1, color="pink"),
    StoreSectionOut(id="checkout", name="Checkout", name_hindi="बिलिंग", x=2, y=1, width=1, height=1, color="orange"),
]

# One beacon per section
LIFI_ZONES: List[LiFiZoneOut] = [
    LiFiZoneOut(section="produce", x=0.5, y=1, range=2),
    LiFiZoneOut(section="dairy", x=1.5, y=0.5, range=1.5),
    LiFiZoneOut(section="spices", x=2.5, y=0.5, range=1.5),
    LiFiZoneOut(section="snacks", x=0.5, y=2.5, range=1.5),
    LiFiZoneOut(section="care", x=1.5, y=1.5, range=1.5),
    LiFiZoneOut(section="checkout", x=2.5, y=1.5, range=1.5),
]

SECTION_IDS = frozenset(s.id for s in STORE_SECTIONS)


def load_products(path: str) -> List[Product]:
    """Load the seed catalog; ids are assigned 1..N in file order."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    # Empty cells become None so optional fields stay unset
    df = df.astype(object).where(df != "", None)

    products = [
        Product.model_validate({"id": i, **row})
        for i, row in enumerate(df.to_dict(orient="records"), start=1)
    ]
    logger.info("Loaded %d catalog products from %s", len(products), path)
    return products


class ProductCatalog:
    """Read-only product lookup. Nothing mutates it after construction."""

    def __init__(self, products: List[Product]):
        self._products: Dict[int, Product] = {p.id: p for p in products}

    @classmethod
    def from_csv(cls, path: str) -> "ProductCatalog":
        return cls(load_products(path))

    def all(self) -> List[Product]:
        return list(self._products.values())

    def get(self, product_id: int) -> Optional[Product]:
        return self._products.get(product_id)

    def by_barcode(self, barcode: str) -> Optional[Product]:
        return next((p for p in self._products.values() if p.barcode == barcode), None)

    def by_category(self, category: str) -> List[Product]:
        return [p for p in self._products.values() if p.category == category]

    def search(self, query: str) -> List[Product]:
        term = (query or "").strip().lower()
        if not term:
            raise ValidationError("Search query required", field="q")

        def matches(p: Product) -> bool:
            return (
                term in p.name.lower()
                or (p.name_hindi is not None and term in p.name_hindi)
                or term in p.category.lower()
                or (p.brand is not None and term in p.brand.lower())
            )

        return [p for p in self._products.values() if matches(p)]
