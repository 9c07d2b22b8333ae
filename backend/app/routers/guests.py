"""
客人管理路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import ClientType
from app.models.schemas import GuestCreate, GuestUpdate, GuestResponse
from app.services.guest_service import GuestService
from app.routers.errors import to_http_exception

router = APIRouter(prefix="/guests", tags=["客人管理"])


@router.get("", response_model=List[GuestResponse])
def list_guests(
    search: Optional[str] = None,
    client_type: Optional[ClientType] = None,
    limit: int = 100,
    db: Session = Depends(get_db)
):
    """获取客人列表"""
    return GuestService(db).get_guests(search, client_type, limit)


@router.get("/{guest_id}", response_model=GuestResponse)
def get_guest(guest_id: int, db: Session = Depends(get_db)):
    """获取客人详情"""
    guest = GuestService(db).get_guest(guest_id)
    if not guest:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Guest not found")
    return guest


@router.post("", response_model=GuestResponse, status_code=status.HTTP_201_CREATED)
def create_guest(data: GuestCreate, db: Session = Depends(get_db)):
    """创建客人"""
    try:
        return GuestService(db).create_guest(data)
    except ValueError as e:
        raise to_http_exception(e)


@router.put("/{guest_id}", response_model=GuestResponse)
def update_guest(guest_id: int, data: GuestUpdate, db: Session = Depends(get_db)):
    """更新客人信息"""
    try:
        return GuestService(db).update_guest(guest_id, data)
    except ValueError as e:
        raise to_http_exception(e)
