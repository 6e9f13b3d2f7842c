# backend/routes/cart.py
from fastapi import APIRouter, Depends

from services.cart_store import CartStore
from services.catalog import ProductCatalog
from services.errors import ErrorCode, NotFoundError
from utils.dependencies import get_cart_store, get_catalog
from schemas.cart import (
    CartLine,
    CartLineCreate,
    CartLineRemoveResult,
    CartLineUpdate,
    CartLineUpdateResult,
    CartSummary,
    MessageResponse,
)

router = APIRouter(prefix="/api/cart", tags=["Cart"])


@router.get("/{session_id}", response_model=CartSummary)
async def get_cart(session_id: str, carts: CartStore = Depends(get_cart_store)):
    return await carts.get_summary(session_id)


@router.post("", response_model=CartLine)
async def add_to_cart(
    payload: CartLineCreate,
    carts: CartStore = Depends(get_cart_store),
    catalog: ProductCatalog = Depends(get_catalog),
):
    unit_price = payload.unit_price
    if unit_price is None:
        # No price snapshot from the scanner: take the current catalog price
        product = catalog.get(payload.product_id)
        if not product:
            raise NotFoundError(
                "Product not found",
                code=ErrorCode.PRODUCT_NOT_FOUND,
                product_id=payload.product_id,
            )
        unit_price = product.price

    return await carts.add_line(
        session_id=payload.session_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        weight=payload.weight,
        unit_price=unit_price,
    )


# Declared before /{line_id} so "session" is never parsed as a line id
@router.delete("/session/{session_id}", response_model=MessageResponse)
async def clear_cart(session_id: str, carts: CartStore = Depends(get_cart_store)):
    await carts.clear_session(session_id)
    return MessageResponse(message="Cart cleared")


@router.put("/{line_id}", response_model=CartLineUpdateResult)
async def update_cart_line(
    line_id: int,
    payload: CartLineUpdate,
    carts: CartStore = Depends(get_cart_store),
):
    line = await carts.update_quantity(line_id, payload.quantity)
    return CartLineUpdateResult(removed=line is None, line=line)


@router.delete("/{line_id}", response_model=CartLineRemoveResult)
async def remove_cart_line(line_id: int, carts: CartStore = Depends(get_cart_store)):
    return CartLineRemoveResult(removed=await carts.remove_line(line_id))
