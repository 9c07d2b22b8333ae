"""
账单服务 - 本体操作层
查询与登记 Payment 对象；退房结算的支付记录由生命周期服务创建
"""
from typing import List, Optional
from datetime import datetime, date, timedelta
from decimal import Decimal
import logging
from sqlalchemy.orm import Session
from app.models.ontology import Payment, PaymentMethod, PaymentStatus, Reservation
from app.models.schemas import PaymentCreate
from app.hotel.domain.rules import validate_payment
from app.hotel.domain.validation import EntityNotFoundError, ReservationValidationError
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class BillingService:
    """账单服务"""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        """获取支付记录"""
        return self.db.query(Payment).filter(Payment.id == payment_id).first()

    def get_payments(self, reservation_id: Optional[int] = None,
                     guest_id: Optional[int] = None) -> List[Payment]:
        """获取支付记录列表"""
        query = self.db.query(Payment)
        if reservation_id:
            query = query.filter(Payment.reservation_id == reservation_id)
        if guest_id:
            query = query.filter(Payment.guest_id == guest_id)
        return query.order_by(Payment.payment_date.desc()).all()

    def get_payments_by_date(self, start_date, end_date) -> List[Payment]:
        """获取指定日期范围的已完成支付记录"""
        return self.db.query(Payment).filter(
            Payment.payment_date >= start_date,
            Payment.payment_date < end_date,
            Payment.payment_status == PaymentStatus.COMPLETED
        ).all()

    def calculate_daily_revenue(self, target_date: date) -> dict:
        """计算指定日期的营收，按支付方式拆分"""
        start = datetime.combine(target_date, datetime.min.time())
        end = start + timedelta(days=1)

        payments = self.get_payments_by_date(start, end)

        by_method = {method.value: Decimal("0") for method in PaymentMethod}
        for p in payments:
            by_method[PaymentMethod(p.payment_method).value] += Decimal(p.amount)

        return {
            'date': target_date,
            'total': sum(by_method.values(), Decimal("0")),
            'by_method': by_method,
            'count': len(payments)
        }

    def create_payment(self, data: PaymentCreate) -> Payment:
        """
        登记支付（预付、押金等退房结算之外的收款）
        业务规则：
        1. 预订状态必须允许收款（已确认、已入住、已退房）
        2. 金额大于 0
        """
        reservation = self.db.query(Reservation).filter(
            Reservation.id == data.reservation_id
        ).first()
        if not reservation:
            raise EntityNotFoundError("Reservation", data.reservation_id)

        result = validate_payment(reservation, data.amount)
        if result.is_error:
            raise ReservationValidationError(result)

        payment = Payment(
            reservation_id=reservation.id,
            guest_id=reservation.guest_id,
            amount=data.amount,
            payment_method=data.payment_method,
            payment_status=PaymentStatus.COMPLETED,
            payment_date=datetime.utcnow(),
            transaction_id=data.transaction_id,
            description=data.description or f"Payment for reservation {reservation.reservation_code}",
        )
        self.db.add(payment)
        self.db.flush()

        details = {
            "reservation_id": reservation.id,
            "amount": data.amount,
            "payment_method": data.payment_method,
        }
        self.audit.log_activity("payment_registered", "reservation", reservation.id, details)
        self.audit.log_payment_action("payment_registered", payment.id, details)

        self.db.commit()
        self.db.refresh(payment)
        logger.info("预订 %s 登记支付 %s", reservation.reservation_code, payment.id)
        return payment
