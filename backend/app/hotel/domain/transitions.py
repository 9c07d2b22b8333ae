"""
app/hotel/domain/transitions.py

状态流转表 - 预订状态机与消费记录状态机的唯一来源

预订：
    confirmed  -> checked_in / cancelled / no_show
    checked_in -> checked_out / cancelled
    checked_out / cancelled / no_show 为终态

消费记录：
    pending -> billed / cancelled
    billed  -> paid
    paid / cancelled 为终态
"""
from typing import Dict, FrozenSet

from app.models.ontology import ReservationStatus, ConsumptionStatus


RESERVATION_TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.CHECKED_IN,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    }),
    ReservationStatus.CHECKED_IN: frozenset({
        ReservationStatus.CHECKED_OUT,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.CHECKED_OUT: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}

CONSUMPTION_TRANSITIONS: Dict[ConsumptionStatus, FrozenSet[ConsumptionStatus]] = {
    ConsumptionStatus.PENDING: frozenset({
        ConsumptionStatus.BILLED,
        ConsumptionStatus.CANCELLED,
    }),
    ConsumptionStatus.BILLED: frozenset({ConsumptionStatus.PAID}),
    ConsumptionStatus.PAID: frozenset(),
    ConsumptionStatus.CANCELLED: frozenset(),
}

# 新增状态时必须同步更新流转表
assert set(RESERVATION_TRANSITIONS) == set(ReservationStatus), "预订流转表未覆盖全部状态"
assert set(CONSUMPTION_TRANSITIONS) == set(ConsumptionStatus), "消费流转表未覆盖全部状态"


# 针对特定起点/目标的错误提示
_SPECIFIC_MESSAGES = {
    (ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_OUT):
        "Cannot check out without checking in first.",
    (ReservationStatus.CHECKED_IN, ReservationStatus.CONFIRMED):
        "Cannot return to confirmed after check-in.",
    (ReservationStatus.CHECKED_IN, ReservationStatus.NO_SHOW):
        "Cannot mark a reservation that has already checked in as a no-show.",
}

# 终态的错误提示（与目标状态无关）
_TERMINAL_MESSAGES = {
    ReservationStatus.CHECKED_OUT:
        "This reservation has already been finalized and cannot be changed.",
    ReservationStatus.CANCELLED:
        "This reservation has been cancelled and cannot be changed.",
    ReservationStatus.NO_SHOW:
        "This reservation was marked as a no-show and cannot be changed.",
}


def is_valid_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    """预订状态流转是否合法"""
    return ReservationStatus(target) in RESERVATION_TRANSITIONS[ReservationStatus(current)]


def allowed_transitions(current: ReservationStatus) -> FrozenSet[ReservationStatus]:
    """当前状态可流转到的目标状态，终态返回空集"""
    return RESERVATION_TRANSITIONS[ReservationStatus(current)]


def get_transition_error_message(current: ReservationStatus, target: ReservationStatus) -> str:
    """
    获取非法流转的错误提示
    优先使用特定组合的提示，其次终态提示，最后通用提示
    """
    current = ReservationStatus(current)
    target = ReservationStatus(target)
    message = _SPECIFIC_MESSAGES.get((current, target))
    if message:
        return message
    message = _TERMINAL_MESSAGES.get(current)
    if message:
        return message
    return f"Invalid status transition: {current.value} -> {target.value}"


def is_valid_consumption_transition(current: ConsumptionStatus, target: ConsumptionStatus) -> bool:
    """消费记录状态流转是否合法"""
    return ConsumptionStatus(target) in CONSUMPTION_TRANSITIONS[ConsumptionStatus(current)]
