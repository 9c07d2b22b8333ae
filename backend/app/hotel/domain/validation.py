"""
app/hotel/domain/validation.py

校验结果与领域异常

校验结果是一个带标签的联合类型：
- Accepted: 通过，可附带提示信息
- AcceptedWithWarning: 通过但需要提醒操作人
- Rejected: 拒绝，操作不得继续
- Informational: 纯提示，不代表错误（valid 可为 False，例如无可处理数据）

规则函数只返回校验结果，不抛异常；服务层遇到 Rejected 时抛出 ReservationValidationError。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple


class Severity(str, Enum):
    """校验结果严重程度"""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ValidationResult:
    """校验结果基类，子类决定 valid 与 severity"""
    message: Optional[str] = None
    suggestions: Tuple[str, ...] = ()

    valid = True
    severity: ClassVar[Optional[Severity]] = None

    def __post_init__(self):
        object.__setattr__(self, "suggestions", tuple(self.suggestions))

    @property
    def is_error(self) -> bool:
        return not self.valid and self.severity == Severity.ERROR

    @property
    def is_warning(self) -> bool:
        return self.severity == Severity.WARNING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "severity": self.severity.value if self.severity else None,
            "message": self.message,
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class Accepted(ValidationResult):
    """通过，可附带提示信息"""

    @property
    def severity(self) -> Optional[Severity]:
        return Severity.INFO if self.message else None


@dataclass(frozen=True)
class AcceptedWithWarning(ValidationResult):
    """通过，但需要提醒操作人"""
    severity: ClassVar[Optional[Severity]] = Severity.WARNING


@dataclass(frozen=True)
class Rejected(ValidationResult):
    """拒绝，操作不得继续"""
    valid = False
    severity: ClassVar[Optional[Severity]] = Severity.ERROR


@dataclass(frozen=True)
class Informational(ValidationResult):
    """纯提示信息，不是错误；valid=False 表示无事可做"""
    valid: bool = False
    severity: ClassVar[Optional[Severity]] = Severity.INFO


# ============== 领域异常 ==============

class ReservationValidationError(ValueError):
    """业务校验失败，携带完整的校验结果"""

    def __init__(self, result: ValidationResult):
        super().__init__(result.message or "Validation failed")
        self.result = result

    @property
    def suggestions(self) -> Tuple[str, ...]:
        return self.result.suggestions


class EntityNotFoundError(ValueError):
    """实体不存在"""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConcurrentModificationError(ValueError):
    """乐观锁冲突：记录已被其他操作修改"""

    def __init__(self, entity_type: str = "Reservation", entity_id: Any = None):
        super().__init__(
            f"{entity_type} {entity_id} was modified by another operation, please reload and retry"
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
