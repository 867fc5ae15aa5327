from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.database.database import get_db
from backoffice.common.schemas import MessageOut
from backoffice.modules.auth.dependencies import AuthDependencies
from backoffice.modules.products.schemas import (
    ProductCreate, ProductUpdate, ProductOut, ProductList, StockAdjustment, StockMovementList
)
from backoffice.modules.products.service import ProductService

product_router = APIRouter(prefix="/products", tags=["Products"])


@product_router.get("", response_model=ProductList)
def list_products(
    search: Optional[str] = Query(None, description="Name or barcode"),
    active: Optional[bool] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """List products ordered by code."""
    return ProductService(db).list_products(auth_context, search, active, limit, offset)


@product_router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    product: ProductCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """
    Create a product. Initial quantity is recorded in the stock ledger.
    """
    return ProductService(db).create_product(product, auth_context)


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    return ProductService(db).get_product(auth_context, product_id)


@product_router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: UUID,
    product: ProductUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    return ProductService(db).update_product(product_id, product, auth_context)


@product_router.delete("/{product_id}", response_model=MessageOut)
def delete_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """Deactivate a product."""
    ProductService(db).delete_product(product_id, auth_context)
    return MessageOut(message="Product deactivated")


@product_router.get("/{product_id}/movements", response_model=StockMovementList)
def list_movements(
    product_id: UUID,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """Stock ledger of a product, newest first."""
    return ProductService(db).list_movements(auth_context, product_id, limit, offset)


@product_router.post("/{product_id}/adjust", response_model=ProductOut)
def adjust_stock(
    product_id: UUID,
    adjustment: StockAdjustment,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """
    Manual signed stock adjustment. Stock can never go below zero.
    """
    return ProductService(db).adjust_stock(product_id, adjustment, auth_context)
