"""
预订管理路由
包含预订的增查改和生命周期操作（入住、退房、取消、未到店、消费确认）
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import ReservationStatus
from app.models.schemas import (
    ReservationCreate, ReservationUpdate, ReservationResponse,
    CheckOutRequest, CancelRequest, TransitionCheckRequest, ValidationResultResponse
)
from app.hotel.domain.transitions import allowed_transitions
from app.services.reservation_service import ReservationService
from app.services.reservation_lifecycle_service import ReservationLifecycleService
from app.routers.errors import to_http_exception

router = APIRouter(prefix="/reservations", tags=["预订管理"])


@router.get("", response_model=List[ReservationResponse])
def list_reservations(
    status: Optional[ReservationStatus] = None,
    check_in_date: Optional[date] = None,
    room_id: Optional[int] = None,
    guest_id: Optional[int] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """获取预订列表"""
    service = ReservationService(db)
    reservations = service.get_reservations(status, check_in_date, room_id, guest_id, search)
    return [ReservationResponse(**service.get_reservation_detail(r.id)) for r in reservations]


@router.get("/today-arrivals")
def get_today_arrivals(db: Session = Depends(get_db)):
    """获取今日预抵"""
    service = ReservationService(db)
    return [service.get_reservation_detail(r.id) for r in service.get_today_arrivals()]


@router.get("/today-departures")
def get_today_departures(db: Session = Depends(get_db)):
    """获取今日预离"""
    service = ReservationService(db)
    return [service.get_reservation_detail(r.id) for r in service.get_today_departures()]


@router.get("/code/{reservation_code}", response_model=ReservationResponse)
def get_reservation_by_code(reservation_code: str, db: Session = Depends(get_db)):
    """根据预订号获取预订"""
    service = ReservationService(db)
    reservation = service.get_reservation_by_code(reservation_code)
    if not reservation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")
    return ReservationResponse(**service.get_reservation_detail(reservation.id))


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(reservation_id: int, db: Session = Depends(get_db)):
    """获取预订详情"""
    service = ReservationService(db)
    detail = service.get_reservation_detail(reservation_id)
    if not detail:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")
    return ReservationResponse(**detail)


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(data: ReservationCreate, db: Session = Depends(get_db)):
    """创建预订"""
    service = ReservationService(db)
    try:
        reservation = service.create_reservation(data)
    except ValueError as e:
        raise to_http_exception(e)
    return ReservationResponse(**service.get_reservation_detail(reservation.id))


@router.put("/{reservation_id}", response_model=ReservationResponse)
def update_reservation(reservation_id: int, data: ReservationUpdate, db: Session = Depends(get_db)):
    """修改预订"""
    service = ReservationService(db)
    try:
        service.update_reservation(reservation_id, data)
    except ValueError as e:
        raise to_http_exception(e)
    return ReservationResponse(**service.get_reservation_detail(reservation_id))


# ============== 生命周期操作 ==============

@router.post("/{reservation_id}/check-in")
def check_in(reservation_id: int, db: Session = Depends(get_db)):
    """办理入住"""
    service = ReservationLifecycleService(db)
    try:
        return service.perform_check_in(reservation_id).to_dict()
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/{reservation_id}/check-out")
def check_out(reservation_id: int, data: Optional[CheckOutRequest] = None,
              db: Session = Depends(get_db)):
    """办理退房并生成支付记录"""
    service = ReservationLifecycleService(db)
    method = data.payment_method.value if data and data.payment_method else None
    try:
        return service.perform_check_out(reservation_id, payment_method=method).to_dict()
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/{reservation_id}/cancel")
def cancel(reservation_id: int, data: CancelRequest, db: Session = Depends(get_db)):
    """取消预订"""
    service = ReservationLifecycleService(db)
    try:
        return service.cancel_reservation(reservation_id, data.reason).to_dict()
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/{reservation_id}/no-show")
def no_show(reservation_id: int, db: Session = Depends(get_db)):
    """标记未到店"""
    service = ReservationLifecycleService(db)
    try:
        return service.mark_no_show(reservation_id).to_dict()
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/{reservation_id}/finalize-consumptions")
def finalize_consumptions(reservation_id: int, db: Session = Depends(get_db)):
    """确认所有待确认消费"""
    service = ReservationLifecycleService(db)
    try:
        return service.finalize_consumptions(reservation_id).to_dict()
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/{reservation_id}/unpaid-consumptions")
def has_unpaid_consumptions(reservation_id: int, db: Session = Depends(get_db)):
    """是否存在待确认消费"""
    service = ReservationLifecycleService(db)
    return {
        "reservation_id": reservation_id,
        "has_unpaid_consumptions": service.has_unpaid_consumptions(reservation_id),
    }


@router.post("/{reservation_id}/validate-transition", response_model=ValidationResultResponse)
def validate_transition(reservation_id: int, data: TransitionCheckRequest,
                        db: Session = Depends(get_db)):
    """预检状态流转（不写入）"""
    reservation = ReservationService(db).get_reservation(reservation_id)
    if not reservation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")
    service = ReservationLifecycleService(db)
    result = service.validate_status_transition(
        reservation.status, data.target_status, reservation, reservation.consumptions
    )
    return result.to_dict()


@router.get("/{reservation_id}/allowed-transitions")
def get_allowed_transitions(reservation_id: int, db: Session = Depends(get_db)):
    """当前状态可执行的流转（前台按钮据此显示）"""
    reservation = ReservationService(db).get_reservation(reservation_id)
    if not reservation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")
    targets = allowed_transitions(reservation.status)
    return {
        "reservation_id": reservation.id,
        "status": ReservationStatus(reservation.status).value,
        "allowed_transitions": [s.value for s in ReservationStatus if s in targets],
    }
