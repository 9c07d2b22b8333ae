"""
app/hotel/domain/rules/reservation_rules.py

预订生命周期校验规则

所有函数都是纯函数：
- 不访问数据库，不写日志，不抛异常
- 只读取预订（及其房间）和消费记录的当前快照
- today 可注入，默认取当天日期

日期差 days_diff = today - 计划日期（整天数），负数表示提前。
"""
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, Optional, Sequence

from app.models.ontology import (
    ReservationStatus, RoomStatus, ConsumptionStatus, TERMINAL_RESERVATION_STATUSES
)
from app.hotel.domain.transitions import is_valid_transition, get_transition_error_message
from app.hotel.domain.validation import (
    ValidationResult, Accepted, AcceptedWithWarning, Rejected, Informational
)


# 入住时间窗口（天）
MAX_EARLY_CHECK_IN_DAYS = 7
MAX_LATE_CHECK_IN_DAYS = 3
# 超过该天数仍未到店，建议取消而不是标记未到店
NO_SHOW_STALE_DAYS = 7

PAYABLE_STATUSES = frozenset({
    ReservationStatus.CONFIRMED,
    ReservationStatus.CHECKED_IN,
    ReservationStatus.CHECKED_OUT,
})

TRANSITION_SUGGESTIONS = (
    "Check the current reservation status",
    "Follow the correct status flow",
)

# 阻止入住的房间状态，按检查顺序排列
_BLOCKING_ROOM_STATUSES = (
    (RoomStatus.OCCUPIED, "is occupied", (
        "Check whether another active reservation is using this room",
        "Update the room status manually if necessary",
    )),
    (RoomStatus.OUT_OF_SERVICE, "is out of service", (
        "Check whether the room is available for use",
        "Consider moving the reservation to another room",
    )),
    (RoomStatus.MAINTENANCE, "is under maintenance", (
        "Check whether the maintenance has been completed",
        "Consider moving the reservation to another room",
    )),
)


def _today(today: Optional[date]) -> date:
    return today or date.today()


def _status(value) -> ReservationStatus:
    return ReservationStatus(value)


def _fmt(d: date) -> str:
    return d.isoformat()


def pending_consumptions(consumptions: Optional[Iterable]) -> list:
    """筛选出待确认的消费记录"""
    return [c for c in (consumptions or []) if c.status == ConsumptionStatus.PENDING]


def validate_check_in(reservation, today: Optional[date] = None) -> ValidationResult:
    """
    入住校验
    业务规则：
    1. 预订必须是 confirmed
    2. 房间不能是 occupied / out_of_service / maintenance
    3. 最多提前 7 天，最多延迟 3 天；提前超过 1 天或延迟超过 1 天给出警告
    """
    status = _status(reservation.status)
    if status != ReservationStatus.CONFIRMED:
        return Rejected(
            f'Cannot check in a reservation with status "{status.value}". '
            f"The reservation must be confirmed."
        )

    room = reservation.room
    if room is not None:
        for blocking_status, description, suggestions in _BLOCKING_ROOM_STATUSES:
            if room.status == blocking_status:
                return Rejected(
                    f"Room {room.room_number} {description}. Check-in is not possible.",
                    suggestions,
                )

    today = _today(today)
    days_diff = (today - reservation.check_in_date).days

    if days_diff < -MAX_EARLY_CHECK_IN_DAYS:
        return Rejected(
            f"Check-in is scheduled for {_fmt(reservation.check_in_date)}, more than "
            f"{MAX_EARLY_CHECK_IN_DAYS} days in the future. Check-in that early is not allowed.",
            (
                "Adjust the reservation dates if necessary",
                "Contact the guest to confirm the new date",
            ),
        )

    if days_diff > MAX_LATE_CHECK_IN_DAYS:
        return Rejected(
            f"Check-in was scheduled for {_fmt(reservation.check_in_date)}, more than "
            f"{MAX_LATE_CHECK_IN_DAYS} days ago. Consider marking it as no-show or cancelling it.",
            (
                "Mark the reservation as no-show",
                "Cancel the reservation",
                "Contact the guest to check the situation",
            ),
        )

    if days_diff < -1:
        return AcceptedWithWarning(
            f"Check-in is being performed {abs(days_diff)} days before the scheduled date "
            f"({_fmt(reservation.check_in_date)}).",
            (
                "Check whether an early check-in fee applies",
                "Confirm room availability for the additional period",
            ),
        )

    if days_diff > 1:
        return AcceptedWithWarning(
            f"Check-in is being performed {days_diff} days after the scheduled date "
            f"({_fmt(reservation.check_in_date)}).",
            (
                "Check whether the reservation period needs adjusting",
                "Confirm the check-out date with the guest",
            ),
        )

    return Accepted()


def validate_check_out(reservation, consumptions: Optional[Sequence] = None,
                       today: Optional[date] = None) -> ValidationResult:
    """
    退房校验
    业务规则：
    1. 预订必须是 checked_in
    2. 不能存在 pending 消费
    3. 提前超过 1 天或延迟退房给出警告；开放式离店（无离店日期）不检查日期
    """
    status = _status(reservation.status)
    if status != ReservationStatus.CHECKED_IN:
        return Rejected(
            f'Cannot check out a reservation with status "{status.value}". '
            f"The guest must be checked in."
        )

    pending = pending_consumptions(consumptions)
    if pending:
        return Rejected(
            f"There are {len(pending)} pending consumption(s) that must be finalized before check-out.",
            (
                "Finalize the pending consumptions",
                "Make sure every consumed item has been registered",
            ),
        )

    if reservation.check_out_date is None:
        return Accepted()

    days_diff = (_today(today) - reservation.check_out_date).days

    if days_diff < -1:
        return AcceptedWithWarning(
            f"Check-out is being performed {abs(days_diff)} days before the scheduled date "
            f"({_fmt(reservation.check_out_date)}). Check whether additional charges apply.",
            (
                "Review the early check-out policy",
                "Adjust the reservation amount if necessary",
            ),
        )

    if days_diff > 0:
        return AcceptedWithWarning(
            f"Check-out is being performed {days_diff} day(s) after the scheduled date "
            f"({_fmt(reservation.check_out_date)}). Check whether additional charges apply.",
            (
                "Apply the late check-out fee if applicable",
                "Check whether the room is already booked for another guest",
            ),
        )

    return Accepted()


def validate_cancellation(reservation, today: Optional[date] = None) -> ValidationResult:
    """
    取消校验
    业务规则：
    1. 只有 confirmed / checked_in 可以取消
    2. 已入住后取消给出警告（可能涉及特殊结算）
    3. confirmed 且已过计划入住日期给出迟取消警告
    """
    status = _status(reservation.status)
    if status not in (ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN):
        return Rejected(
            f'Cannot cancel a reservation with status "{status.value}". '
            f"The reservation must be confirmed or checked in."
        )

    if status == ReservationStatus.CHECKED_IN:
        return AcceptedWithWarning(
            "This reservation has already been checked in. Cancelling after check-in "
            "may require special billing procedures.",
            (
                "Review the post check-in cancellation policy",
                "Consider applying cancellation fees",
                "Check for consumptions that still need to be billed",
            ),
        )

    if _today(today) > reservation.check_in_date:
        return AcceptedWithWarning(
            "This reservation is being cancelled after its scheduled check-in date. "
            "Consider applying the late cancellation policy.",
            (
                "Review the late cancellation policy",
                "Consider applying no-show fees",
                "Consider marking it as no-show instead of cancelling",
            ),
        )

    return Accepted()


def validate_no_show(reservation, today: Optional[date] = None) -> ValidationResult:
    """
    未到店校验
    业务规则：
    1. 预订必须是 confirmed
    2. 不能早于计划入住日期
    3. 已过入住日期超过 7 天给出警告
    """
    status = _status(reservation.status)
    if status != ReservationStatus.CONFIRMED:
        return Rejected(
            f'Cannot mark a reservation with status "{status.value}" as no-show. '
            f"The reservation must be confirmed."
        )

    today = _today(today)
    if today < reservation.check_in_date:
        return Rejected(
            f"Cannot mark as no-show before the scheduled check-in date "
            f"({_fmt(reservation.check_in_date)}).",
            (
                "Wait until the check-in date",
                "Cancel the reservation instead if necessary",
            ),
        )

    days_since = (today - reservation.check_in_date).days
    if days_since > NO_SHOW_STALE_DAYS:
        return AcceptedWithWarning(
            f"The check-in date was {days_since} days ago. "
            f"Consider cancelling the reservation instead of marking it as no-show.",
            (
                "Check whether the guest has made contact",
                "Consider applying the no-show policy to release the room",
            ),
        )

    return Accepted()


def validate_finalize_consumptions(consumptions: Optional[Sequence]) -> ValidationResult:
    """
    消费确认校验
    无消费或无 pending 消费时返回提示（不是错误）
    """
    if not consumptions:
        return Informational("There are no consumptions to finalize.")

    pending = pending_consumptions(consumptions)
    if not pending:
        return Informational(
            "There are no pending consumptions to finalize. All consumptions have already been processed."
        )

    return Informational(
        f"{len(pending)} pending consumption(s) will be finalized.", valid=True
    )


def validate_reservation_modification(reservation) -> ValidationResult:
    """
    预订修改校验
    终态不可修改；已入住只允许修改部分信息
    """
    status = _status(reservation.status)
    if status in TERMINAL_RESERVATION_STATUSES:
        labels = {
            ReservationStatus.CHECKED_OUT: "finalized (checked out)",
            ReservationStatus.CANCELLED: "cancelled",
            ReservationStatus.NO_SHOW: "marked as no-show",
        }
        return Rejected(f"This reservation is {labels[status]} and cannot be modified.")

    if status == ReservationStatus.CHECKED_IN:
        return AcceptedWithWarning(
            "This reservation has already been checked in. Some information can no longer be changed.",
            (
                "You can still change consumptions and notes",
                "To change dates or room, cancel and create a new reservation",
            ),
        )

    return Accepted()


def validate_payment(reservation, amount) -> ValidationResult:
    """支付校验：预订状态允许收款且金额大于 0"""
    status = _status(reservation.status)
    if status not in PAYABLE_STATUSES:
        return Rejected(f'Cannot process payments for a reservation with status "{status.value}".')

    if amount is None or Decimal(str(amount)) <= 0:
        return Rejected(
            "The payment amount must be greater than zero.",
            ("Check the payment amount",),
        )

    return Accepted()


def validate_consumption_registration(reservation, product, quantity: int) -> ValidationResult:
    """
    消费登记校验
    业务规则：
    1. 只能为已入住的预订登记
    2. 商品必须启用
    3. 数量大于 0 且不超过库存
    """
    status = _status(reservation.status)
    if status != ReservationStatus.CHECKED_IN:
        return Rejected(
            f'Cannot register consumptions for a reservation with status "{status.value}". '
            f"The guest must be checked in."
        )

    if not product.active:
        return Rejected(f'Product "{product.name}" is not active.')

    if quantity is None or quantity <= 0:
        return Rejected("The quantity must be greater than zero.")

    stock = product.stock_quantity or 0
    if quantity > stock:
        return Rejected(
            f'Insufficient stock for "{product.name}": requested {quantity}, available {stock}.',
            ("Reduce the quantity", "Restock the product"),
        )

    return Accepted()


# 按目标状态分发的校验器；confirmed 不可能是合法目标，直接通过
_TARGET_VALIDATORS: Dict[ReservationStatus, Callable[..., ValidationResult]] = {
    ReservationStatus.CONFIRMED: lambda r, c, t: Accepted(),
    ReservationStatus.CHECKED_IN: lambda r, c, t: validate_check_in(r, today=t),
    ReservationStatus.CHECKED_OUT: lambda r, c, t: validate_check_out(r, c, today=t),
    ReservationStatus.CANCELLED: lambda r, c, t: validate_cancellation(r, today=t),
    ReservationStatus.NO_SHOW: lambda r, c, t: validate_no_show(r, today=t),
}

assert set(_TARGET_VALIDATORS) == set(ReservationStatus), "校验分发表未覆盖全部状态"


def validate_status_transition(current_status, target_status, reservation,
                               consumptions: Optional[Sequence] = None,
                               today: Optional[date] = None) -> ValidationResult:
    """
    状态流转综合校验
    先按流转表做硬性检查，再按目标状态分发到对应的业务校验
    """
    current = _status(current_status)
    target = _status(target_status)

    if not is_valid_transition(current, target):
        return Rejected(get_transition_error_message(current, target), TRANSITION_SUGGESTIONS)

    return _TARGET_VALIDATORS[target](reservation, consumptions, today)
