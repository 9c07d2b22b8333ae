"""
房间管理路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import RoomStatus
from app.models.schemas import RoomCreate, RoomUpdate, RoomStatusUpdate, RoomResponse
from app.services.room_service import RoomService
from app.routers.errors import to_http_exception

router = APIRouter(prefix="/rooms", tags=["房间管理"])


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    status: Optional[RoomStatus] = None,
    room_type: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """获取房间列表"""
    return RoomService(db).get_rooms(status, room_type)


@router.get("/status-summary")
def get_status_summary(db: Session = Depends(get_db)):
    """房态统计"""
    return RoomService(db).get_room_status_summary()


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db)):
    """获取房间详情"""
    room = RoomService(db).get_room(room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(data: RoomCreate, db: Session = Depends(get_db)):
    """创建房间"""
    try:
        return RoomService(db).create_room(data)
    except ValueError as e:
        raise to_http_exception(e)


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(room_id: int, data: RoomUpdate, db: Session = Depends(get_db)):
    """更新房间"""
    try:
        return RoomService(db).update_room(room_id, data)
    except ValueError as e:
        raise to_http_exception(e)


@router.patch("/{room_id}/status", response_model=RoomResponse)
def update_room_status(room_id: int, data: RoomStatusUpdate, db: Session = Depends(get_db)):
    """手动更新房间状态"""
    try:
        return RoomService(db).update_room_status(room_id, data.status, data.reason)
    except ValueError as e:
        raise to_http_exception(e)
