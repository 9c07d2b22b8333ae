"""
房间服务 - 本体操作层
管理 Room 对象
入住中的房间状态只能由预订生命周期级联修改
"""
from typing import List, Optional
import logging
from sqlalchemy.orm import Session
from app.models.ontology import Room, RoomStatus
from app.models.schemas import RoomCreate, RoomUpdate
from app.hotel.domain.validation import EntityNotFoundError
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class RoomService:
    """房间服务"""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def get_rooms(self, status: Optional[RoomStatus] = None,
                  room_type: Optional[str] = None) -> List[Room]:
        """获取房间列表"""
        query = self.db.query(Room)
        if status:
            query = query.filter(Room.status == status)
        if room_type:
            query = query.filter(Room.room_type == room_type)
        return query.order_by(Room.room_number).all()

    def get_room(self, room_id: int) -> Optional[Room]:
        """获取单个房间"""
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_room_by_number(self, room_number: str) -> Optional[Room]:
        """根据房间号获取房间"""
        return self.db.query(Room).filter(Room.room_number == room_number).first()

    def create_room(self, data: RoomCreate) -> Room:
        """创建房间"""
        if self.get_room_by_number(data.room_number):
            raise ValueError(f"Room number '{data.room_number}' already exists")

        room = Room(**data.model_dump())
        self.db.add(room)
        self.db.commit()
        self.db.refresh(room)
        return room

    def update_room(self, room_id: int, data: RoomUpdate) -> Room:
        """更新房间"""
        room = self.get_room(room_id)
        if not room:
            raise EntityNotFoundError("Room", room_id)

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(room, key, value)

        self.db.commit()
        self.db.refresh(room)
        return room

    def update_room_status(self, room_id: int, status: RoomStatus, reason: str = "") -> Room:
        """
        手动更新房间状态
        业务规则：
        1. 入住中的房间不能手动改状态，须通过退房 / 取消
        2. 不能手动把房间设为入住中，须通过入住
        """
        room = self.get_room(room_id)
        if not room:
            raise EntityNotFoundError("Room", room_id)

        if room.status == RoomStatus.OCCUPIED and status != RoomStatus.OCCUPIED:
            raise ValueError("An occupied room cannot be changed manually, use check-out instead")
        if status == RoomStatus.OCCUPIED and room.status != RoomStatus.OCCUPIED:
            raise ValueError("A room can only become occupied through check-in")

        old_status = room.status
        room.status = status
        if old_status != status:
            details = {
                "room_number": room.room_number,
                "old_status": old_status,
                "new_status": status,
                "reason": reason,
            }
            self.audit.log_activity("room_status_changed", "room", room.id, details)
            logger.info("房间 %s 状态: %s -> %s", room.room_number, old_status.value, status.value)

        self.db.commit()
        self.db.refresh(room)
        return room

    def get_room_status_summary(self) -> dict:
        """获取房态统计"""
        rooms = self.get_rooms()
        summary = {'total': len(rooms)}
        for status in RoomStatus:
            summary[status.value] = 0
        for room in rooms:
            summary[RoomStatus(room.status).value] += 1
        return summary
