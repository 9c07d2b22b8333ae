"""
消费与商品路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import ConsumptionStatus
from app.models.schemas import (
    ConsumptionCreate, ConsumptionResponse,
    ProductCreate, ProductResponse, ProductCategoryCreate, ProductCategoryResponse
)
from app.services.consumption_service import ConsumptionService
from app.routers.errors import to_http_exception

router = APIRouter(tags=["消费管理"])


@router.get("/products", response_model=List[ProductResponse])
def list_products(category_id: Optional[int] = None, active_only: bool = True,
                  db: Session = Depends(get_db)):
    """获取商品列表"""
    return ConsumptionService(db).get_products(category_id, active_only)


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(data: ProductCreate, db: Session = Depends(get_db)):
    """创建商品"""
    try:
        return ConsumptionService(db).create_product(data)
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/product-categories", response_model=List[ProductCategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    """获取商品分类"""
    return ConsumptionService(db).get_categories()


@router.post("/product-categories", response_model=ProductCategoryResponse,
             status_code=status.HTTP_201_CREATED)
def create_category(data: ProductCategoryCreate, db: Session = Depends(get_db)):
    """创建商品分类"""
    try:
        return ConsumptionService(db).create_category(data)
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/consumptions", response_model=List[ConsumptionResponse])
def list_consumptions(reservation_id: int, status: Optional[ConsumptionStatus] = None,
                      db: Session = Depends(get_db)):
    """获取预订的消费记录"""
    return ConsumptionService(db).get_consumptions(reservation_id, status)


@router.get("/consumptions/totals")
def get_consumption_totals(reservation_id: int, db: Session = Depends(get_db)):
    """消费合计（按付款责任方）"""
    return ConsumptionService(db).get_totals(reservation_id)


@router.post("/consumptions", response_model=ConsumptionResponse, status_code=status.HTTP_201_CREATED)
def register_consumption(data: ConsumptionCreate, db: Session = Depends(get_db)):
    """登记消费"""
    try:
        return ConsumptionService(db).register_consumption(data)
    except ValueError as e:
        raise to_http_exception(e)


@router.post("/consumptions/{consumption_id}/cancel", response_model=ConsumptionResponse)
def cancel_consumption(consumption_id: int, reason: Optional[str] = None,
                       db: Session = Depends(get_db)):
    """取消消费"""
    try:
        return ConsumptionService(db).cancel_consumption(consumption_id, reason)
    except ValueError as e:
        raise to_http_exception(e)
