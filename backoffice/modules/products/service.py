import logging
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.database.database import get_tenant_query
from backoffice.modules.auth.schemas import AuthContext
from backoffice.modules.products.models import Product, StockMovement, MovementType
from backoffice.modules.products.schemas import (
    ProductCreate, ProductUpdate, ProductList, StockAdjustment, StockMovementList
)

logger = logging.getLogger(__name__)


class InventoryService:
    """
    Stock mutations shared by products, invoices and adjustments.

    Methods never commit: they run inside the caller's unit of work. The
    product row is locked before it is read so concurrent workflows never act
    on a stale quantity.
    """

    def __init__(self, db: Session):
        self.db = db

    def lock_product(self, tenant_id: UUID, product_id: UUID) -> Product:
        product = self.db.query(Product).filter(
            Product.id == product_id,
            Product.company_id == tenant_id
        ).with_for_update().populate_existing().first()

        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Product {product_id} not found"
            )
        return product

    def increase(
        self,
        product: Product,
        quantity: int,
        user_id: Optional[UUID],
        notes: str,
        movement_type: MovementType = MovementType.ENTRY,
        nfe_invoice_id: Optional[UUID] = None,
    ) -> StockMovement:
        if quantity < 0:
            raise ValueError("increase() expects a non-negative quantity")

        product.quantity += quantity
        movement = StockMovement(
            company_id=product.company_id,
            product_id=product.id,
            quantity=quantity,
            type=movement_type,
            notes=notes,
            nfe_invoice_id=nfe_invoice_id,
            created_by=user_id,
        )
        self.db.add(movement)
        return movement

    def decrease(
        self,
        product: Product,
        quantity: int,
        user_id: Optional[UUID],
        notes: str,
        movement_type: MovementType = MovementType.EXIT,
        nfe_invoice_id: Optional[UUID] = None,
    ) -> StockMovement:
        if quantity < 0:
            raise ValueError("decrease() expects a non-negative quantity")

        if product.quantity < quantity:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=insufficient_stock_message(product, quantity)
            )

        product.quantity -= quantity
        movement = StockMovement(
            company_id=product.company_id,
            product_id=product.id,
            quantity=-quantity,
            type=movement_type,
            notes=notes,
            nfe_invoice_id=nfe_invoice_id,
            created_by=user_id,
        )
        self.db.add(movement)
        return movement


def insufficient_stock_message(product: Product, required: int) -> str:
    return (
        f"Insufficient stock for product {product.code} - {product.name}: "
        f"{required} required, {product.quantity} available"
    )


class ProductService:
    def __init__(self, db: Session):
        self.db = db
        self.inventory = InventoryService(db)

    def _get(self, auth: AuthContext, product_id: UUID) -> Product:
        product = get_tenant_query(self.db, Product, auth).filter(Product.id == product_id).first()
        if not product:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        return product

    def _next_code(self, tenant_id: UUID) -> int:
        current = self.db.query(func.max(Product.code)).filter(Product.company_id == tenant_id).scalar()
        return (current or 0) + 1

    def list_products(
        self,
        auth: AuthContext,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ProductList:
        query = get_tenant_query(self.db, Product, auth)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Product.name.ilike(pattern), Product.barcode.ilike(pattern)))
        if active is not None:
            query = query.filter(Product.active == active)

        total = query.count()
        products = query.order_by(Product.code.asc()).offset(offset).limit(limit).all()
        return ProductList(items=products, total=total, limit=limit, offset=offset)

    def get_product(self, auth: AuthContext, product_id: UUID) -> Product:
        return self._get(auth, product_id)

    def create_product(self, data: ProductCreate, auth: AuthContext) -> Product:
        try:
            product = Product(
                company_id=auth.tenant_id,
                code=data.code or self._next_code(auth.tenant_id),
                name=data.name,
                price=data.price,
                quantity=0,
                barcode=data.barcode,
            )
            self.db.add(product)
            self.db.flush()

            if data.quantity > 0:
                self.inventory.increase(
                    product, data.quantity, auth.user_id,
                    notes="Initial stock",
                    movement_type=MovementType.ADJUSTMENT,
                )

            self.db.commit()
            self.db.refresh(product)
            logger.info(f"Product {product.id} created for company {auth.tenant_id}")
            return product

        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Product code {data.code} already exists"
            )
        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"Error creating product for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def update_product(self, product_id: UUID, data: ProductUpdate, auth: AuthContext) -> Product:
        product = self._get(auth, product_id)
        try:
            for field, value in data.model_dump(exclude_unset=True).items():
                # Required columns ignore explicit nulls
                if field in ("name", "price", "active") and value is None:
                    continue
                setattr(product, field, value)

            self.db.commit()
            self.db.refresh(product)
            return product

        except Exception:
            self.db.rollback()
            logger.exception(f"Error updating product {product_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def delete_product(self, product_id: UUID, auth: AuthContext) -> None:
        """Soft delete: movements and invoice items keep referencing the row"""
        product = self._get(auth, product_id)
        product.active = False
        self.db.commit()
        logger.info(f"Product {product_id} deactivated for company {auth.tenant_id}")

    def list_movements(self, auth: AuthContext, product_id: UUID, limit: int = 50, offset: int = 0) -> StockMovementList:
        product = self._get(auth, product_id)
        query = self.db.query(StockMovement).filter(StockMovement.product_id == product.id)
        total = query.count()
        movements = query.order_by(StockMovement.created_at.desc()).offset(offset).limit(limit).all()
        return StockMovementList(items=movements, total=total, limit=limit, offset=offset)

    def adjust_stock(self, product_id: UUID, data: StockAdjustment, auth: AuthContext) -> Product:
        try:
            product = self.inventory.lock_product(auth.tenant_id, product_id)
            if data.quantity > 0:
                self.inventory.increase(
                    product, data.quantity, auth.user_id, data.notes,
                    movement_type=MovementType.ADJUSTMENT,
                )
            else:
                self.inventory.decrease(
                    product, -data.quantity, auth.user_id, data.notes,
                    movement_type=MovementType.ADJUSTMENT,
                )

            self.db.commit()
            self.db.refresh(product)
            logger.info(f"Stock of product {product_id} adjusted by {data.quantity}")
            return product

        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"Error adjusting stock of product {product_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )
