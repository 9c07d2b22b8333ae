"""
审计日志路由
"""
from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import LogLevel, LogCategory
from app.models.schemas import ActivityLogResponse, SystemLogResponse
from app.services.audit_service import AuditService

router = APIRouter(prefix="/audit-logs", tags=["审计日志"])


@router.get("/summary")
def get_action_summary(days: int = Query(default=30, ge=1, le=365), db: Session = Depends(get_db)):
    """获取操作统计摘要"""
    return AuditService(db).get_action_summary(days)


@router.get("/activity", response_model=List[ActivityLogResponse])
def list_activity_logs(
    action_type: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """查询操作日志"""
    return AuditService(db).get_activity_logs(
        action_type, entity_type, entity_id, start_date, end_date, limit
    )


@router.get("/system", response_model=List[SystemLogResponse])
def list_system_logs(
    level: Optional[LogLevel] = None,
    category: Optional[LogCategory] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """查询系统日志"""
    return AuditService(db).get_system_logs(level, category, entity_type, entity_id, limit)


@router.get("/entity/{entity_type}/{entity_id}", response_model=List[ActivityLogResponse])
def get_entity_history(entity_type: str, entity_id: int, db: Session = Depends(get_db)):
    """获取实体操作历史"""
    return AuditService(db).get_entity_history(entity_type, entity_id)
