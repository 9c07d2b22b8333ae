"""
消费服务 - 本体操作层
管理房间消费记录（迷你吧等）以及商品、商品分类
消费记录状态流转：pending -> billed -> paid，pending 可取消
"""
from typing import Dict, List, Optional
from datetime import datetime
from decimal import Decimal
import logging
from sqlalchemy.orm import Session
from app.models.ontology import (
    Consumption, ConsumptionStatus, Product, ProductCategory,
    Reservation, PaymentResponsibility
)
from app.models.schemas import ConsumptionCreate, ProductCreate, ProductCategoryCreate
from app.hotel.domain.rules import validate_consumption_registration
from app.hotel.domain.transitions import is_valid_consumption_transition
from app.hotel.domain.validation import EntityNotFoundError, ReservationValidationError
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class ConsumptionService:
    """消费服务"""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    # ============== 商品 ==============

    def get_categories(self, active_only: bool = True) -> List[ProductCategory]:
        query = self.db.query(ProductCategory)
        if active_only:
            query = query.filter(ProductCategory.active.is_(True))
        return query.order_by(ProductCategory.display_order, ProductCategory.name).all()

    def create_category(self, data: ProductCategoryCreate) -> ProductCategory:
        """创建商品分类"""
        if self.db.query(ProductCategory).filter(ProductCategory.name == data.name).first():
            raise ValueError(f"Category '{data.name}' already exists")
        category = ProductCategory(**data.model_dump())
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def get_products(self, category_id: Optional[int] = None,
                     active_only: bool = True) -> List[Product]:
        query = self.db.query(Product)
        if category_id:
            query = query.filter(Product.category_id == category_id)
        if active_only:
            query = query.filter(Product.active.is_(True))
        return query.order_by(Product.name).all()

    def get_product(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def create_product(self, data: ProductCreate) -> Product:
        """创建商品"""
        if data.category_id is not None:
            category = self.db.query(ProductCategory).filter(
                ProductCategory.id == data.category_id
            ).first()
            if not category:
                raise EntityNotFoundError("ProductCategory", data.category_id)
        product = Product(**data.model_dump())
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    # ============== 消费记录 ==============

    def get_consumptions(self, reservation_id: int,
                         status: Optional[ConsumptionStatus] = None) -> List[Consumption]:
        """获取预订的消费记录"""
        query = self.db.query(Consumption).filter(Consumption.reservation_id == reservation_id)
        if status:
            query = query.filter(Consumption.status == status)
        return query.order_by(Consumption.id).all()

    def get_consumption(self, consumption_id: int) -> Optional[Consumption]:
        return self.db.query(Consumption).filter(Consumption.id == consumption_id).first()

    def register_consumption(self, data: ConsumptionCreate) -> Consumption:
        """
        登记消费
        业务规则：
        1. 预订必须已入住
        2. 商品启用且库存充足
        3. 单价取登记时的商品售价，扣减库存
        4. 新消费为 pending
        """
        reservation = self.db.query(Reservation).filter(
            Reservation.id == data.reservation_id
        ).first()
        if not reservation:
            raise EntityNotFoundError("Reservation", data.reservation_id)

        product = self.get_product(data.product_id)
        if not product:
            raise EntityNotFoundError("Product", data.product_id)

        result = validate_consumption_registration(reservation, product, data.quantity)
        if result.is_error:
            raise ReservationValidationError(result)

        unit_price = Decimal(product.price)
        consumption = Consumption(
            reservation_id=reservation.id,
            room_id=reservation.room_id,
            product_id=product.id,
            quantity=data.quantity,
            unit_price=unit_price,
            total_amount=unit_price * data.quantity,
            payment_responsibility=data.payment_responsibility,
            status=ConsumptionStatus.PENDING,
            notes=data.notes,
            registered_by=data.registered_by,
            consumption_date=datetime.utcnow(),
        )
        product.stock_quantity = (product.stock_quantity or 0) - data.quantity
        self.db.add(consumption)
        self.db.flush()

        details = {
            "reservation_id": reservation.id,
            "product_id": product.id,
            "product_name": product.name,
            "quantity": data.quantity,
            "unit_price": unit_price,
            "total_amount": consumption.total_amount,
        }
        self.audit.log_activity("consumption_registered", "consumption", consumption.id, details)
        self.audit.log_consumption_action("consumption_registered", consumption.id, details)

        self.db.commit()
        self.db.refresh(consumption)
        return consumption

    def cancel_consumption(self, consumption_id: int, reason: Optional[str] = None) -> Consumption:
        """
        取消消费
        只有 pending 可以取消，库存回补
        """
        consumption = self.get_consumption(consumption_id)
        if not consumption:
            raise EntityNotFoundError("Consumption", consumption_id)

        if not is_valid_consumption_transition(consumption.status, ConsumptionStatus.CANCELLED):
            raise ValueError(
                f'Cannot cancel a consumption with status "{ConsumptionStatus(consumption.status).value}"'
            )

        consumption.status = ConsumptionStatus.CANCELLED
        if reason:
            consumption.notes = f"{consumption.notes}\n{reason}" if consumption.notes else reason
        product = consumption.product
        if product is not None:
            product.stock_quantity = (product.stock_quantity or 0) + consumption.quantity

        self.audit.log_activity("consumption_cancelled", "consumption", consumption.id, {
            "reservation_id": consumption.reservation_id,
            "reason": reason,
            "total_amount": consumption.total_amount,
        })
        self.db.commit()
        self.db.refresh(consumption)
        return consumption

    def get_totals(self, reservation_id: int) -> Dict[str, Decimal]:
        """
        消费合计（不含已取消）
        按付款责任方拆分
        """
        totals = {
            "total": Decimal("0"),
            PaymentResponsibility.GUEST.value: Decimal("0"),
            PaymentResponsibility.COMPANY.value: Decimal("0"),
        }
        for consumption in self.get_consumptions(reservation_id):
            if consumption.status == ConsumptionStatus.CANCELLED:
                continue
            amount = Decimal(consumption.total_amount)
            totals["total"] += amount
            totals[PaymentResponsibility(consumption.payment_responsibility).value] += amount
        return totals
