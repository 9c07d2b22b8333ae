"""
路由层异常转换
服务层抛出 ValueError 及其子类，这里统一转换为 HTTPException
"""
from fastapi import HTTPException, status
from app.hotel.domain.validation import (
    ReservationValidationError, EntityNotFoundError, ConcurrentModificationError
)


def to_http_exception(e: ValueError) -> HTTPException:
    """
    业务异常 -> HTTP 状态码
    - 实体不存在：404
    - 并发修改冲突：409
    - 校验失败：400，detail 带 message 与 suggestions
    - 其他 ValueError：400
    """
    if isinstance(e, EntityNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ConcurrentModificationError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, ReservationValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "suggestions": list(e.suggestions)},
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
