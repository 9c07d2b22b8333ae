"""
支付记录路由
退房结算的支付记录由退房操作生成，其余收款通过 POST 登记
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.schemas import PaymentCreate, PaymentResponse
from app.services.billing_service import BillingService
from app.routers.errors import to_http_exception

router = APIRouter(prefix="/payments", tags=["支付管理"])


@router.get("", response_model=List[PaymentResponse])
def list_payments(reservation_id: Optional[int] = None, guest_id: Optional[int] = None,
                  db: Session = Depends(get_db)):
    """获取支付记录"""
    return BillingService(db).get_payments(reservation_id, guest_id)


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_payment(data: PaymentCreate, db: Session = Depends(get_db)):
    """登记支付"""
    try:
        return BillingService(db).create_payment(data)
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/daily-revenue")
def get_daily_revenue(target_date: Optional[date] = None, db: Session = Depends(get_db)):
    """日营收统计"""
    return BillingService(db).calculate_daily_revenue(target_date or date.today())


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: int, db: Session = Depends(get_db)):
    """获取支付记录详情"""
    payment = BillingService(db).get_payment(payment_id)
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return payment
