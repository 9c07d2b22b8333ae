"""
预订生命周期服务 - 本体操作层
编排入住、退房、取消、未到店和消费确认

每个操作的流程：
1. 读取预订（及房间、消费记录）
2. 调用校验规则；Rejected 时抛出 ReservationValidationError
3. 在同一个数据库事务中完成所有写入（预订、房间、支付、消费、日志）
4. 返回带警告信息的结果对象

任何一步失败都会回滚整个事务，然后尽力记录失败日志，再抛出原始异常。
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.models.ontology import (
    Reservation, ReservationStatus, RoomStatus, Consumption, ConsumptionStatus,
    Payment, PaymentMethod, PaymentStatus
)
from app.hotel.domain.validation import (
    ValidationResult, Rejected, Severity,
    ReservationValidationError, EntityNotFoundError, ConcurrentModificationError
)
from app.hotel.domain.rules import reservation_rules as rules
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


STATUS_MESSAGES = {
    ReservationStatus.CONFIRMED: "Reservation confirmed",
    ReservationStatus.CHECKED_IN: "Check-in completed successfully",
    ReservationStatus.CHECKED_OUT: "Check-out completed successfully",
    ReservationStatus.CANCELLED: "Reservation cancelled",
    ReservationStatus.NO_SHOW: "Reservation marked as no-show",
}

STATUS_DESCRIPTIONS = {
    ReservationStatus.CONFIRMED: "The reservation is confirmed and awaiting check-in",
    ReservationStatus.CHECKED_IN: "The guest has checked in and is staying at the hotel",
    ReservationStatus.CHECKED_OUT: "The guest has checked out and the stay is finished",
    ReservationStatus.CANCELLED: "The reservation was cancelled",
    ReservationStatus.NO_SHOW: "The guest did not arrive on the scheduled date",
}

# 预订状态变化对房间状态的级联
ROOM_STATUS_CASCADE = {
    ReservationStatus.CHECKED_IN: RoomStatus.OCCUPIED,
    ReservationStatus.CHECKED_OUT: RoomStatus.AVAILABLE,
    ReservationStatus.CANCELLED: RoomStatus.AVAILABLE,
    ReservationStatus.NO_SHOW: RoomStatus.AVAILABLE,
}

# 各状态对应的时间戳字段
STATUS_TIMESTAMP_FIELDS = {
    ReservationStatus.CHECKED_IN: "actual_check_in_date",
    ReservationStatus.CHECKED_OUT: "actual_check_out_date",
    ReservationStatus.CANCELLED: "cancellation_date",
    ReservationStatus.NO_SHOW: "no_show_at",
}

CANCELLATION_NOTE_PREFIX = "Motivo do cancelamento: "


# ============== 结果对象 ==============

@dataclass
class StatusUpdateResult:
    """状态变更结果"""
    reservation_id: int
    previous_status: ReservationStatus
    new_status: ReservationStatus
    message: str
    status_description: str
    room_status: Optional[RoomStatus] = None
    room_status_message: str = ""
    warnings: List[str] = field(default_factory=list)
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "reservation_id": self.reservation_id,
            "previous_status": self.previous_status.value,
            "new_status": self.new_status.value,
            "message": self.message,
            "status_description": self.status_description,
            "room_status": self.room_status.value if self.room_status else None,
            "room_status_message": self.room_status_message,
            "warnings": list(self.warnings),
        }


@dataclass
class CheckOutResult(StatusUpdateResult):
    """退房结果：状态变更 + 支付信息"""
    payment_id: Optional[int] = None
    total_amount: Decimal = Decimal("0")
    payment_method: Optional[PaymentMethod] = None
    stay_duration: int = 0
    stay_amount: Decimal = Decimal("0")
    consumption_amount: Decimal = Decimal("0")
    consumptions_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "payment_id": self.payment_id,
            "total_amount": float(self.total_amount),
            "payment_method": self.payment_method.value if self.payment_method else None,
            "stay_duration": self.stay_duration,
            "stay_amount": float(self.stay_amount),
            "consumption_amount": float(self.consumption_amount),
            "consumptions_count": self.consumptions_count,
        })
        return data


@dataclass
class ConsumptionsResult:
    """消费确认结果"""
    success: bool
    message: str
    updated_count: int = 0
    consumption_ids: List[int] = field(default_factory=list)
    total_amount: Decimal = Decimal("0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "updated_count": self.updated_count,
            "consumption_ids": list(self.consumption_ids),
            "total_amount": float(self.total_amount),
        }


# ============== 服务 ==============

class ReservationLifecycleService:
    """预订生命周期服务"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = None,
                 audit: Optional[AuditService] = None):
        self.db = db
        # 支持注入时钟，便于测试日期窗口
        self._now = clock or datetime.now
        self.audit = audit or AuditService(db)

    def _today(self) -> date:
        return self._now().date()

    # ---------- 事务与读取 ----------

    @contextmanager
    def _transaction(self, operation: str, reservation_id: int, context: Optional[Dict[str, Any]] = None):
        """
        单个业务操作的事务边界
        成功时提交一次；失败时回滚全部写入，再记录失败日志
        """
        details = {"reservation_id": reservation_id, "operation": operation}
        details.update(context or {})
        try:
            yield
            self.db.commit()
        except ReservationValidationError as e:
            self.db.rollback()
            details.update({"error": str(e), "suggestions": list(e.suggestions)})
            self.audit.record_failure(
                operation, e, details, "reservation", reservation_id, validation=True
            )
            raise
        except EntityNotFoundError:
            self.db.rollback()
            raise
        except StaleDataError as e:
            self.db.rollback()
            logger.warning("预订 %s 并发修改冲突: %s", reservation_id, operation)
            self.audit.record_failure(operation, e, details, "reservation", reservation_id)
            raise ConcurrentModificationError("Reservation", reservation_id) from e
        except Exception as e:
            self.db.rollback()
            logger.exception("预订 %s 操作失败: %s", reservation_id, operation)
            self.audit.record_failure(operation, e, details, "reservation", reservation_id)
            raise

    def _get_reservation(self, reservation_id: int) -> Reservation:
        reservation = self.db.query(Reservation).filter(
            Reservation.id == reservation_id
        ).first()
        if not reservation:
            raise EntityNotFoundError("Reservation", reservation_id)
        return reservation

    def _load_consumptions(self, reservation_id: int) -> List[Consumption]:
        return self.db.query(Consumption).filter(
            Consumption.reservation_id == reservation_id
        ).order_by(Consumption.id).all()

    def _validate(self, reservation: Reservation, target: ReservationStatus,
                  consumptions: Optional[Sequence] = None) -> ValidationResult:
        result = rules.validate_status_transition(
            reservation.status, target, reservation, consumptions, today=self._today()
        )
        if result.is_error:
            raise ReservationValidationError(result)
        return result

    # ---------- 状态变更 ----------

    def _apply_status_change(self, reservation: Reservation, target: ReservationStatus,
                             validation: ValidationResult,
                             extra_details: Optional[Dict[str, Any]] = None) -> StatusUpdateResult:
        """
        写入状态变更
        业务规则：
        1. 校验的警告信息和建议并入 warnings
        2. 写入状态时间戳
        3. 级联更新房间状态
        4. 写入操作日志
        """
        warnings: List[str] = []
        if validation.message and validation.severity != Severity.ERROR:
            warnings.append(validation.message)
        warnings.extend(validation.suggestions)

        now = self._now()
        previous = ReservationStatus(reservation.status)
        reservation.status = target
        reservation.status_updated_at = now
        timestamp_field = STATUS_TIMESTAMP_FIELDS.get(target)
        if timestamp_field:
            setattr(reservation, timestamp_field, now)

        room = reservation.room
        room_number = room.room_number if room else None
        room_status = ROOM_STATUS_CASCADE.get(target)
        room_status_message = ""
        if room_status == RoomStatus.AVAILABLE and room is not None:
            occupant = self._current_occupant(reservation)
            if occupant is not None:
                # 房间仍被其他在住预订占用，不释放
                room_status = None
                warnings.append(
                    f"Room {room_number} remains occupied by reservation {occupant.reservation_code}"
                )
        if room_status is not None and room is not None:
            room.status = room_status
            if room_status == RoomStatus.OCCUPIED:
                room_status_message = f"Room {room_number} marked as occupied"
            else:
                room_status_message = f"Room {room_number} released for new reservations"
            warnings.append(room_status_message)

        details = {
            "previous_status": previous,
            "new_status": target,
            "warnings": warnings or None,
            "room_id": reservation.room_id,
            "guest_id": reservation.guest_id,
            "check_in_date": reservation.check_in_date,
            "check_out_date": reservation.check_out_date,
            "room_status": room_status,
            "room_number": room_number,
        }
        details.update(extra_details or {})

        action = f"status_change_{target.value}"
        self.audit.log_activity(action, "reservation", reservation.id, details)
        self.audit.log_reservation_action(action, reservation.id, details)

        logger.info("预订 %s 状态变更: %s -> %s", reservation.reservation_code, previous.value, target.value)

        return StatusUpdateResult(
            reservation_id=reservation.id,
            previous_status=previous,
            new_status=target,
            message=STATUS_MESSAGES[target],
            status_description=STATUS_DESCRIPTIONS[target],
            room_status=room_status,
            room_status_message=room_status_message,
            warnings=warnings,
        )

    def _current_occupant(self, reservation: Reservation) -> Optional[Reservation]:
        """同一房间中其他已入住的预订"""
        return self.db.query(Reservation).filter(
            Reservation.room_id == reservation.room_id,
            Reservation.id != reservation.id,
            Reservation.status == ReservationStatus.CHECKED_IN,
        ).first()

    def validate_status_transition(self, current_status: ReservationStatus,
                                   target_status: ReservationStatus,
                                   reservation: Reservation,
                                   consumptions: Optional[Sequence] = None) -> ValidationResult:
        """只做校验，不写入"""
        return rules.validate_status_transition(
            current_status, target_status, reservation, consumptions, today=self._today()
        )

    def update_reservation_status(self, reservation_id: int, new_status: ReservationStatus,
                                  consumptions: Optional[Sequence] = None,
                                  reason: Optional[str] = None,
                                  payment_method: Optional[str] = None) -> StatusUpdateResult:
        """
        通用状态变更入口
        按目标状态分发到对应的操作，保证每种变更的附带写入（支付、取消原因等）不被跳过
        """
        target = ReservationStatus(new_status)
        if target == ReservationStatus.CHECKED_IN:
            return self.perform_check_in(reservation_id)
        if target == ReservationStatus.CHECKED_OUT:
            return self.perform_check_out(reservation_id, consumptions, payment_method)
        if target == ReservationStatus.CANCELLED:
            return self.cancel_reservation(reservation_id, reason)
        if target == ReservationStatus.NO_SHOW:
            return self.mark_no_show(reservation_id)

        # 没有任何状态可以流转回 confirmed，这里只会得到校验错误
        with self._transaction("status-transition", reservation_id, {"target_status": target.value}):
            reservation = self._get_reservation(reservation_id)
            validation = self._validate(reservation, target, consumptions)
            result = self._apply_status_change(reservation, target, validation)
        return result

    # ---------- 具体操作 ----------

    def perform_check_in(self, reservation_id: int) -> StatusUpdateResult:
        """
        入住
        业务联动规则：
        1. 校验预订状态、房间状态和日期窗口
        2. 预订 -> checked_in，记录实际入住时间
        3. 房间 -> occupied
        """
        with self._transaction("check-in", reservation_id, {"target_status": "checked_in"}):
            reservation = self._get_reservation(reservation_id)
            validation = self._validate(reservation, ReservationStatus.CHECKED_IN)
            result = self._apply_status_change(reservation, ReservationStatus.CHECKED_IN, validation)
        return result

    def perform_check_out(self, reservation_id: int, consumptions: Optional[Sequence] = None,
                          payment_method: Optional[str] = None) -> CheckOutResult:
        """
        退房
        业务联动规则：
        1. 校验预订状态，且不存在 pending 消费
        2. 总额 = 住宿费用 + 已入账消费合计
        3. 先创建支付记录，再把消费标记为 paid
        4. 预订 -> checked_out，写入支付信息
        5. 房间 -> available
        consumptions 为调用方持有的消费快照；无论是否传入，都会以数据库中的消费记录为准再次校验
        """
        context = {
            "target_status": "checked_out",
            "payment_method": payment_method,
            "consumptions_count": len(consumptions) if consumptions is not None else None,
        }
        with self._transaction("check-out", reservation_id, context):
            method = self._parse_payment_method(payment_method)
            reservation = self._get_reservation(reservation_id)
            persisted = self._load_consumptions(reservation_id)

            validation = self._validate(
                reservation, ReservationStatus.CHECKED_OUT,
                persisted if consumptions is None else consumptions,
            )
            if consumptions is not None and rules.pending_consumptions(persisted):
                raise ReservationValidationError(
                    rules.validate_check_out(reservation, persisted, today=self._today())
                )

            # 已取消的消费不计费，已支付的不重复计费
            settle = [c for c in persisted if c.status == ConsumptionStatus.BILLED]
            stay_amount = Decimal(reservation.total_amount or 0)
            consumption_amount = sum((Decimal(c.total_amount) for c in settle), Decimal("0"))
            total_amount = stay_amount + consumption_amount
            stay_duration = self._stay_duration(reservation)
            now = self._now()

            payment = Payment(
                reservation_id=reservation.id,
                guest_id=reservation.guest_id,
                amount=total_amount,
                payment_method=method,
                payment_status=PaymentStatus.COMPLETED,
                payment_date=now,
                description=f"Checkout payment - Reservation #{reservation.reservation_code}",
                details={
                    "stay_amount": float(stay_amount),
                    "consumption_amount": float(consumption_amount),
                    "stay_duration": stay_duration,
                    "currency": settings.CURRENCY,
                    "payment_method_details": {
                        "type": method.value,
                        "processed_at": now.isoformat(),
                    },
                    "consumptions_count": len(settle),
                },
            )
            self.db.add(payment)
            self.db.flush()  # 获取 payment.id

            for consumption in settle:
                consumption.status = ConsumptionStatus.PAID
                consumption.payment_id = payment.id

            payment_details = {
                "payment_id": payment.id,
                "payment_method": method,
                "total_amount": total_amount,
                "stay_amount": stay_amount,
                "consumption_amount": consumption_amount,
                "stay_duration": stay_duration,
                "check_in_date": reservation.check_in_date,
                "check_out_date": reservation.check_out_date,
                "actual_check_out_date": now,
            }
            self.audit.log_activity("payment_processed", "reservation", reservation.id, payment_details)
            self.audit.log_payment_action("payment_processed", payment.id, payment_details)

            reservation.payment_status = "paid"
            reservation.payment_id = payment.id
            reservation.payment_method = method.value
            reservation.payment_amount = total_amount
            reservation.stay_duration = stay_duration

            status_result = self._apply_status_change(
                reservation, ReservationStatus.CHECKED_OUT, validation,
                extra_details={
                    "payment_status": "paid",
                    "payment_id": payment.id,
                    "payment_method": method,
                    "payment_amount": total_amount,
                    "stay_duration": stay_duration,
                },
            )
            result = CheckOutResult(
                **vars(status_result),
                payment_id=payment.id,
                total_amount=total_amount,
                payment_method=method,
                stay_duration=stay_duration,
                stay_amount=stay_amount,
                consumption_amount=consumption_amount,
                consumptions_count=len(settle),
            )
        return result

    def cancel_reservation(self, reservation_id: int, reason: Optional[str]) -> StatusUpdateResult:
        """
        取消预订
        业务联动规则：
        1. 必须填写取消原因
        2. 取消原因追加到特殊要求中
        3. 预订 -> cancelled，记录取消时间和原因
        4. 房间 -> available
        """
        with self._transaction("cancellation", reservation_id, {"target_status": "cancelled", "reason": reason}):
            if not reason or not reason.strip():
                raise ReservationValidationError(Rejected(
                    "A cancellation reason is required.",
                    ("Describe why the reservation is being cancelled",),
                ))
            reason = reason.strip()

            reservation = self._get_reservation(reservation_id)
            validation = self._validate(reservation, ReservationStatus.CANCELLED)

            note = f"{CANCELLATION_NOTE_PREFIX}{reason}"
            if reservation.special_requests:
                reservation.special_requests = f"{reservation.special_requests}\n\n{note}"
            else:
                reservation.special_requests = note
            reservation.cancellation_reason = reason

            result = self._apply_status_change(
                reservation, ReservationStatus.CANCELLED, validation,
                extra_details={"cancellation_reason": reason},
            )
            cancel_details = {
                "reason": reason,
                "previous_status": result.previous_status,
                "cancellation_date": reservation.cancellation_date,
            }
            self.audit.log_activity("reservation_cancelled", "reservation", reservation.id, cancel_details)
            self.audit.log_reservation_action("reservation_cancelled", reservation.id, cancel_details)
        return result

    def mark_no_show(self, reservation_id: int) -> StatusUpdateResult:
        """
        标记未到店
        预订 -> no_show，记录标记时间；房间 -> available
        """
        with self._transaction("no-show", reservation_id, {"target_status": "no_show"}):
            reservation = self._get_reservation(reservation_id)
            validation = self._validate(reservation, ReservationStatus.NO_SHOW)
            result = self._apply_status_change(reservation, ReservationStatus.NO_SHOW, validation)
        return result

    def finalize_consumptions(self, reservation_id: int) -> ConsumptionsResult:
        """
        确认消费：pending -> billed
        没有可确认的消费时返回提示信息，不视为错误
        """
        with self._transaction("finalize-consumptions", reservation_id):
            self._get_reservation(reservation_id)
            consumptions = self._load_consumptions(reservation_id)
            validation = rules.validate_finalize_consumptions(consumptions)
            if not validation.valid:
                return ConsumptionsResult(success=True, message=validation.message, updated_count=0)

            pending = rules.pending_consumptions(consumptions)
            for consumption in pending:
                consumption.status = ConsumptionStatus.BILLED

            consumption_ids = [c.id for c in pending]
            total_amount = sum((Decimal(c.total_amount) for c in pending), Decimal("0"))
            details = {
                "updated_count": len(pending),
                "consumption_ids": consumption_ids,
                "total_amount": total_amount,
            }
            self.audit.log_activity("finalize_consumptions", "reservation", reservation_id, details)
            self.audit.log_consumption_action(
                "finalize_consumptions", None, dict(details, reservation_id=reservation_id)
            )
            result = ConsumptionsResult(
                success=True,
                message=f"{len(pending)} consumption(s) finalized successfully",
                updated_count=len(pending),
                consumption_ids=consumption_ids,
                total_amount=total_amount,
            )
        return result

    def has_unpaid_consumptions(self, reservation_id: int) -> bool:
        """是否存在 pending 消费"""
        count = self.db.query(Consumption).filter(
            Consumption.reservation_id == reservation_id,
            Consumption.status == ConsumptionStatus.PENDING,
        ).count()
        return count > 0

    # ---------- 辅助 ----------

    @staticmethod
    def _parse_payment_method(payment_method: Optional[str]) -> PaymentMethod:
        value = payment_method or settings.DEFAULT_PAYMENT_METHOD
        try:
            return PaymentMethod(value)
        except ValueError:
            raise ReservationValidationError(Rejected(
                f"Unsupported payment method: {value}",
                tuple(f"Use {m.value}" for m in PaymentMethod),
            ))

    def _stay_duration(self, reservation: Reservation) -> int:
        """入住天数；开放式离店按今天计算，至少 1 天"""
        if reservation.check_out_date is not None:
            return (reservation.check_out_date - reservation.check_in_date).days
        return max(1, (self._today() - reservation.check_in_date).days)
