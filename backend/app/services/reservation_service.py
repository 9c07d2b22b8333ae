"""
预订服务 - 本体操作层
管理 Reservation 对象的创建、查询与修改
状态流转统一由 ReservationLifecycleService 负责
"""
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import or_
from app.models.ontology import (
    Reservation, Guest, Room, ReservationStatus, ConsumptionStatus
)
from app.models.schemas import ReservationCreate, ReservationUpdate
from app.hotel.domain.rules import validate_reservation_modification
from app.hotel.domain.validation import EntityNotFoundError, ReservationValidationError, Rejected
from app.services.audit_service import AuditService


class ReservationService:
    """预订服务"""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def _generate_reservation_code(self) -> str:
        """生成预订号：RES + 日期 + 4 位序号"""
        prefix = f"RES{datetime.now().strftime('%Y%m%d')}"
        count = self.db.query(Reservation).filter(
            Reservation.reservation_code.like(f'{prefix}%')
        ).count()
        return f'{prefix}{str(count + 1).zfill(4)}'

    def get_reservations(self, status: Optional[ReservationStatus] = None,
                         check_in_date: Optional[date] = None,
                         room_id: Optional[int] = None,
                         guest_id: Optional[int] = None,
                         search: Optional[str] = None) -> List[Reservation]:
        """获取预订列表"""
        query = self.db.query(Reservation)

        if status:
            query = query.filter(Reservation.status == status)
        if check_in_date:
            query = query.filter(Reservation.check_in_date == check_in_date)
        if room_id:
            query = query.filter(Reservation.room_id == room_id)
        if guest_id:
            query = query.filter(Reservation.guest_id == guest_id)
        if search:
            pattern = f"%{search}%"
            query = query.join(Guest).filter(
                or_(
                    Reservation.reservation_code.like(pattern),
                    Guest.first_name.like(pattern),
                    Guest.last_name.like(pattern),
                    Guest.company_name.like(pattern)
                )
            )

        return query.order_by(Reservation.check_in_date.desc()).all()

    def get_reservation(self, reservation_id: int) -> Optional[Reservation]:
        """获取单个预订"""
        return self.db.query(Reservation).filter(Reservation.id == reservation_id).first()

    def get_reservation_by_code(self, reservation_code: str) -> Optional[Reservation]:
        """根据预订号获取预订"""
        return self.db.query(Reservation).filter(
            Reservation.reservation_code == reservation_code
        ).first()

    def get_today_arrivals(self, today: Optional[date] = None) -> List[Reservation]:
        """获取今日预抵"""
        today = today or date.today()
        return self.db.query(Reservation).filter(
            Reservation.check_in_date == today,
            Reservation.status == ReservationStatus.CONFIRMED
        ).all()

    def get_today_departures(self, today: Optional[date] = None) -> List[Reservation]:
        """获取今日预离"""
        today = today or date.today()
        return self.db.query(Reservation).filter(
            Reservation.check_out_date == today,
            Reservation.status == ReservationStatus.CHECKED_IN
        ).all()

    def create_reservation(self, data: ReservationCreate) -> Reservation:
        """
        创建预订
        业务规则：
        1. 客人和房间必须存在
        2. 未指定总价且有离店日期时，按每晚价格 x 晚数计算
        """
        guest = self.db.query(Guest).filter(Guest.id == data.guest_id).first()
        if not guest:
            raise EntityNotFoundError("Guest", data.guest_id)

        room = self.db.query(Room).filter(Room.id == data.room_id).first()
        if not room:
            raise EntityNotFoundError("Room", data.room_id)

        total_amount = data.total_amount
        if total_amount is None:
            if data.check_out_date:
                nights = (data.check_out_date - data.check_in_date).days
                total_amount = Decimal(room.price_per_night) * nights
            else:
                total_amount = Decimal("0")

        reservation = Reservation(
            reservation_code=self._generate_reservation_code(),
            guest_id=data.guest_id,
            room_id=data.room_id,
            check_in_date=data.check_in_date,
            check_out_date=data.check_out_date,
            adults=data.adults,
            children=data.children,
            total_amount=total_amount,
            special_requests=data.special_requests,
            status=ReservationStatus.CONFIRMED,
        )
        self.db.add(reservation)
        self.db.flush()

        self.audit.log_activity("reservation_created", "reservation", reservation.id, {
            "reservation_code": reservation.reservation_code,
            "guest_id": guest.id,
            "room_id": room.id,
            "check_in_date": data.check_in_date,
            "check_out_date": data.check_out_date,
            "total_amount": total_amount,
        })

        self.db.commit()
        self.db.refresh(reservation)
        return reservation

    def update_reservation(self, reservation_id: int, data: ReservationUpdate) -> Reservation:
        """
        修改预订
        终态预订不可修改；已入住的预订只能修改备注和人数
        """
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            raise EntityNotFoundError("Reservation", reservation_id)

        result = validate_reservation_modification(reservation)
        if result.is_error:
            raise ReservationValidationError(result)

        update_data = data.model_dump(exclude_unset=True)
        if reservation.status == ReservationStatus.CHECKED_IN:
            locked = {"check_in_date", "check_out_date", "total_amount"} & set(update_data)
            if locked:
                raise ReservationValidationError(Rejected(
                    f"Cannot change {', '.join(sorted(locked))} after check-in.",
                    result.suggestions,
                ))

        check_in = update_data.get("check_in_date", reservation.check_in_date)
        check_out = update_data.get("check_out_date", reservation.check_out_date)
        if check_out is not None and check_out <= check_in:
            raise ValueError("check_out_date must be after check_in_date")

        for key, value in update_data.items():
            setattr(reservation, key, value)

        self.audit.log_activity("reservation_updated", "reservation", reservation.id, update_data)
        self.db.commit()
        self.db.refresh(reservation)
        return reservation

    def get_reservation_detail(self, reservation_id: int) -> Optional[dict]:
        """获取预订详情（包含关联信息）"""
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            return None

        consumptions = [c for c in reservation.consumptions if c.status != ConsumptionStatus.CANCELLED]
        return {
            'id': reservation.id,
            'reservation_code': reservation.reservation_code,
            'guest_id': reservation.guest_id,
            'guest_name': reservation.guest.display_name,
            'room_id': reservation.room_id,
            'room_number': reservation.room.room_number,
            'check_in_date': reservation.check_in_date,
            'check_out_date': reservation.check_out_date,
            'adults': reservation.adults,
            'children': reservation.children,
            'status': reservation.status,
            'total_amount': reservation.total_amount,
            'special_requests': reservation.special_requests,
            'actual_check_in_date': reservation.actual_check_in_date,
            'actual_check_out_date': reservation.actual_check_out_date,
            'cancellation_reason': reservation.cancellation_reason,
            'cancellation_date': reservation.cancellation_date,
            'no_show_at': reservation.no_show_at,
            'payment_status': reservation.payment_status,
            'payment_id': reservation.payment_id,
            'payment_amount': reservation.payment_amount,
            'stay_duration': reservation.stay_duration,
            'consumption_total': sum((c.total_amount for c in consumptions), Decimal("0")),
            'created_at': reservation.created_at
        }
