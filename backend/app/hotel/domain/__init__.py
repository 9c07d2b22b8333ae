"""
app/hotel/domain/__init__.py

酒店领域层 - 状态流转表、校验结果与业务校验规则
"""
from app.hotel.domain.transitions import (
    RESERVATION_TRANSITIONS,
    CONSUMPTION_TRANSITIONS,
    is_valid_transition,
    allowed_transitions,
    is_valid_consumption_transition,
    get_transition_error_message,
)
from app.hotel.domain.validation import (
    Severity,
    ValidationResult,
    Accepted,
    AcceptedWithWarning,
    Rejected,
    Informational,
    ReservationValidationError,
    EntityNotFoundError,
    ConcurrentModificationError,
)

__all__ = [
    "RESERVATION_TRANSITIONS",
    "CONSUMPTION_TRANSITIONS",
    "is_valid_transition",
    "allowed_transitions",
    "is_valid_consumption_transition",
    "get_transition_error_message",
    "Severity",
    "ValidationResult",
    "Accepted",
    "AcceptedWithWarning",
    "Rejected",
    "Informational",
    "ReservationValidationError",
    "EntityNotFoundError",
    "ConcurrentModificationError",
]
