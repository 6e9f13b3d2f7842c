# backend/routes/products.py
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from services.catalog import ProductCatalog
from utils.dependencies import get_catalog
from schemas.product import Product

router = APIRouter(prefix="/api/products", tags=["Products"])


@router.get("", response_model=List[Product])
def list_products(catalog: ProductCatalog = Depends(get_catalog)):
    return catalog.all()


# Declared before /{product_id} so the literal paths win
@router.get("/search", response_model=List[Product])
def search_products(
    q: Optional[str] = Query(None, description="Search by name, Hindi name, category or brand"),
    catalog: ProductCatalog = Depends(get_catalog),
):
    # An empty query raises ValidationError, answered with 400
    return catalog.search(q or "")


@router.get("/category/{category}", response_model=List[Product])
def products_by_category(category: str, catalog: ProductCatalog = Depends(get_catalog)):
    return catalog.by_category(category)


@router.get("/barcode/{barcode}", response_model=Product)
def product_by_barcode(barcode: str, catalog: ProductCatalog = Depends(get_catalog)):
    product = catalog.by_barcode(barcode)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/{product_id}", response_model=Product)
def get_product(product_id: int, catalog: ProductCatalog = Depends(get_catalog)):
    product = catalog.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
