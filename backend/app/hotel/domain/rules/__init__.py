"""
app/hotel/domain/rules/ - 酒店业务校验规则

提供预订生命周期的纯函数校验：
- 入住 / 退房 / 取消 / 未到店
- 消费确认、消费登记
- 预订修改、支付
"""
from app.hotel.domain.rules.reservation_rules import (
    validate_check_in,
    validate_check_out,
    validate_cancellation,
    validate_no_show,
    validate_finalize_consumptions,
    validate_status_transition,
    validate_reservation_modification,
    validate_payment,
    validate_consumption_registration,
)

__all__ = [
    "validate_check_in",
    "validate_check_out",
    "validate_cancellation",
    "validate_no_show",
    "validate_finalize_consumptions",
    "validate_status_transition",
    "validate_reservation_modification",
    "validate_payment",
    "validate_consumption_registration",
]
