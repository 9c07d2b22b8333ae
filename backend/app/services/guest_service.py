"""
客人服务 - 本体操作层
管理 Guest 对象（个人客户与企业客户）
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import or_, desc
from app.models.ontology import Guest, ClientType, Reservation
from app.models.schemas import GuestCreate, GuestUpdate
from app.hotel.domain.validation import EntityNotFoundError


class GuestService:
    """客人服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_guests(self, search: Optional[str] = None,
                   client_type: Optional[ClientType] = None,
                   limit: int = 100) -> List[Guest]:
        """获取客人列表"""
        query = self.db.query(Guest)

        if search:
            search_pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Guest.first_name.like(search_pattern),
                    Guest.last_name.like(search_pattern),
                    Guest.company_name.like(search_pattern),
                    Guest.email.like(search_pattern),
                    Guest.phone.like(search_pattern),
                    Guest.document_number.like(search_pattern)
                )
            )

        if client_type:
            query = query.filter(Guest.client_type == client_type)

        return query.order_by(desc(Guest.created_at)).limit(limit).all()

    def get_guest(self, guest_id: int) -> Optional[Guest]:
        """获取单个客人"""
        return self.db.query(Guest).filter(Guest.id == guest_id).first()

    def _check_unique(self, email: Optional[str], document_number: Optional[str],
                      exclude_id: Optional[int] = None) -> None:
        if email:
            existing = self.db.query(Guest).filter(Guest.email == email).first()
            if existing and existing.id != exclude_id:
                raise ValueError(f"Email '{email}' is already registered")
        if document_number:
            existing = self.db.query(Guest).filter(Guest.document_number == document_number).first()
            if existing and existing.id != exclude_id:
                raise ValueError(f"Document number '{document_number}' is already registered")

    def create_guest(self, data: GuestCreate) -> Guest:
        """
        创建客人
        业务规则：邮箱和证件号码唯一
        """
        self._check_unique(data.email, data.document_number)
        guest = Guest(**data.model_dump())
        self.db.add(guest)
        self.db.commit()
        self.db.refresh(guest)
        return guest

    def update_guest(self, guest_id: int, data: GuestUpdate) -> Guest:
        """更新客人信息"""
        guest = self.get_guest(guest_id)
        if not guest:
            raise EntityNotFoundError("Guest", guest_id)

        update_data = data.model_dump(exclude_unset=True)
        self._check_unique(update_data.get("email"), update_data.get("document_number"), guest_id)

        for key, value in update_data.items():
            setattr(guest, key, value)

        if guest.client_type == ClientType.COMPANY and not guest.company_name:
            raise ValueError("company_name is required for company clients")

        self.db.commit()
        self.db.refresh(guest)
        return guest

    def get_guest_reservations(self, guest_id: int) -> List[Reservation]:
        """客人的预订历史"""
        return self.db.query(Reservation).filter(
            Reservation.guest_id == guest_id
        ).order_by(desc(Reservation.check_in_date)).all()
