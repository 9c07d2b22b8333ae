"""
审计服务 - 操作日志与系统日志

写入方法只 add 到当前会话，不提交：
日志与业务写入处于同一个事务，业务回滚时日志一并回滚。
失败日志（record_failure）在回滚之后单独提交，且永远不会抛出异常。
"""
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.models.ontology import ActivityLog, SystemLog, LogLevel, LogCategory

logger = logging.getLogger(__name__)

_PY_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


class AuditService:
    """审计服务"""

    def __init__(self, db: Session, source: Optional[str] = None):
        self.db = db
        self.source = source or settings.AUDIT_SOURCE

    # ============== 写入 ==============

    def log_activity(self, action_type: str, entity_type: str,
                     entity_id: Optional[int], details: Optional[Dict[str, Any]] = None) -> ActivityLog:
        """记录业务操作日志"""
        entry = ActivityLog(
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
            details=_jsonable(details or {}),
            created_at=datetime.utcnow(),
        )
        self.db.add(entry)
        return entry

    def log_system(self, level: LogLevel, category: LogCategory, message: str,
                   details: Optional[Dict[str, Any]] = None,
                   entity_type: Optional[str] = None,
                   entity_id: Optional[int] = None) -> SystemLog:
        """记录结构化系统日志，同时输出到应用日志"""
        logger.log(_PY_LEVELS[level], "[%s] %s", category.value, message)
        entry = SystemLog(
            level=level,
            category=category,
            message=message,
            details=_jsonable(details or {}),
            entity_type=entity_type,
            entity_id=entity_id,
            source=self.source,
            created_at=datetime.utcnow(),
        )
        self.db.add(entry)
        return entry

    def log_reservation_action(self, action: str, reservation_id: int,
                               details: Optional[Dict[str, Any]] = None,
                               level: LogLevel = LogLevel.INFO) -> SystemLog:
        return self.log_system(
            level, LogCategory.RESERVATION,
            f"Reservation action: {action}",
            details, "reservation", reservation_id,
        )

    def log_payment_action(self, action: str, payment_id: Optional[int],
                           details: Optional[Dict[str, Any]] = None,
                           level: LogLevel = LogLevel.INFO) -> SystemLog:
        return self.log_system(
            level, LogCategory.PAYMENT,
            f"Payment action: {action}",
            details, "payment", payment_id,
        )

    def log_consumption_action(self, action: str, consumption_id: Optional[int],
                               details: Optional[Dict[str, Any]] = None,
                               level: LogLevel = LogLevel.INFO) -> SystemLog:
        return self.log_system(
            level, LogCategory.CONSUMPTION,
            f"Consumption action: {action}",
            details, "consumption", consumption_id,
        )

    def log_validation_error(self, operation: str, details: Optional[Dict[str, Any]] = None,
                             entity_type: Optional[str] = None,
                             entity_id: Optional[int] = None) -> SystemLog:
        return self.log_system(
            LogLevel.WARNING, LogCategory.SYSTEM,
            f"Validation error in {operation}",
            details, entity_type, entity_id,
        )

    def log_system_error(self, operation: str, error: BaseException,
                         details: Optional[Dict[str, Any]] = None,
                         entity_type: Optional[str] = None,
                         entity_id: Optional[int] = None) -> SystemLog:
        payload = dict(details or {})
        payload["error"] = str(error)
        payload["error_type"] = type(error).__name__
        return self.log_system(
            LogLevel.ERROR, LogCategory.SYSTEM,
            f"System error in {operation}: {error}",
            payload, entity_type, entity_id,
        )

    def record_failure(self, operation: str, error: BaseException,
                       details: Optional[Dict[str, Any]] = None,
                       entity_type: Optional[str] = None,
                       entity_id: Optional[int] = None,
                       validation: bool = False) -> None:
        """
        在业务事务回滚之后记录失败
        尽力而为：记录失败只写应用日志，不覆盖原始异常
        """
        try:
            if validation:
                self.log_validation_error(operation, details, entity_type, entity_id)
            else:
                self.log_system_error(operation, error, details, entity_type, entity_id)
            self.db.commit()
        except Exception:
            logger.exception("无法写入失败日志: %s", operation)
            try:
                self.db.rollback()
            except Exception:
                logger.exception("失败日志回滚异常: %s", operation)

    # ============== 查询 ==============

    def get_activity_logs(self, action_type: Optional[str] = None,
                          entity_type: Optional[str] = None,
                          entity_id: Optional[int] = None,
                          start_date: Optional[datetime] = None,
                          end_date: Optional[datetime] = None,
                          limit: int = 100) -> List[ActivityLog]:
        """查询操作日志，按时间倒序"""
        query = self.db.query(ActivityLog)
        if action_type:
            query = query.filter(ActivityLog.action_type == action_type)
        if entity_type:
            query = query.filter(ActivityLog.entity_type == entity_type)
        if entity_id is not None:
            query = query.filter(ActivityLog.entity_id == entity_id)
        if start_date:
            query = query.filter(ActivityLog.created_at >= start_date)
        if end_date:
            query = query.filter(ActivityLog.created_at <= end_date)
        return query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()

    def get_system_logs(self, level: Optional[LogLevel] = None,
                        category: Optional[LogCategory] = None,
                        entity_type: Optional[str] = None,
                        entity_id: Optional[int] = None,
                        limit: int = 100) -> List[SystemLog]:
        """查询系统日志，按时间倒序"""
        query = self.db.query(SystemLog)
        if level:
            query = query.filter(SystemLog.level == level)
        if category:
            query = query.filter(SystemLog.category == category)
        if entity_type:
            query = query.filter(SystemLog.entity_type == entity_type)
        if entity_id is not None:
            query = query.filter(SystemLog.entity_id == entity_id)
        return query.order_by(SystemLog.created_at.desc(), SystemLog.id.desc()).limit(limit).all()

    def get_entity_history(self, entity_type: str, entity_id: int) -> List[ActivityLog]:
        """获取某个实体的全部操作记录（时间正序）"""
        return self.db.query(ActivityLog).filter(
            ActivityLog.entity_type == entity_type,
            ActivityLog.entity_id == entity_id,
        ).order_by(ActivityLog.created_at, ActivityLog.id).all()

    def get_action_summary(self, days: int = 30) -> List[Dict[str, Any]]:
        """统计最近 N 天各操作类型的次数"""
        since = datetime.utcnow() - timedelta(days=days)
        rows = self.db.query(
            ActivityLog.action_type, func.count(ActivityLog.id)
        ).filter(
            ActivityLog.created_at >= since
        ).group_by(ActivityLog.action_type).all()
        return sorted(
            ({"action_type": action, "count": count} for action, count in rows),
            key=lambda item: item["count"],
            reverse=True,
        )


def _jsonable(value: Any) -> Any:
    """把 Decimal / 日期 / 枚举转换为可写入 JSON 列的值"""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value
