"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Any, Dict
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from app.models.ontology import (
    RoomStatus, ReservationStatus, ConsumptionStatus, PaymentStatus,
    PaymentMethod, PaymentResponsibility, ClientType, LogLevel, LogCategory
)


# ============== 客人 Schemas ==============

class GuestBase(BaseModel):
    client_type: ClientType = ClientType.INDIVIDUAL
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    company_name: Optional[str] = Field(None, max_length=200)
    trade_name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    document_type: Optional[str] = Field(None, max_length=30)
    document_number: Optional[str] = Field(None, max_length=50)
    nationality: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    notes: Optional[str] = None


class GuestCreate(GuestBase):

    @model_validator(mode="after")
    def check_names(self):
        if self.client_type == ClientType.COMPANY:
            if not self.company_name:
                raise ValueError("company_name is required for company clients")
        elif not (self.first_name and self.last_name):
            raise ValueError("first_name and last_name are required for individual clients")
        return self


class GuestUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    company_name: Optional[str] = Field(None, max_length=200)
    trade_name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    document_type: Optional[str] = Field(None, max_length=30)
    document_number: Optional[str] = Field(None, max_length=50)
    nationality: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    notes: Optional[str] = None


class GuestResponse(GuestBase):
    id: int
    display_name: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 房间 Schemas ==============

class RoomBase(BaseModel):
    room_number: str = Field(..., max_length=10)
    room_type: str = Field(..., max_length=50)
    capacity: int = Field(default=2, ge=1)
    price_per_night: Decimal = Field(..., ge=0)
    amenities: Optional[List[str]] = None
    description: Optional[str] = None


class RoomCreate(RoomBase):
    status: RoomStatus = RoomStatus.AVAILABLE


class RoomUpdate(BaseModel):
    room_type: Optional[str] = Field(None, max_length=50)
    capacity: Optional[int] = Field(None, ge=1)
    price_per_night: Optional[Decimal] = Field(None, ge=0)
    amenities: Optional[List[str]] = None
    description: Optional[str] = None


class RoomStatusUpdate(BaseModel):
    status: RoomStatus
    reason: str = ""


class RoomResponse(RoomBase):
    id: int
    status: RoomStatus
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 预订 Schemas ==============

class ReservationCreate(BaseModel):
    guest_id: int
    room_id: int
    check_in_date: date
    check_out_date: Optional[date] = None
    adults: int = Field(default=1, ge=1)
    children: int = Field(default=0, ge=0)
    total_amount: Optional[Decimal] = Field(None, ge=0)
    special_requests: Optional[str] = None

    @field_validator("check_out_date")
    @classmethod
    def check_out_after_check_in(cls, v, info):
        check_in = info.data.get("check_in_date")
        if v is not None and check_in is not None and v <= check_in:
            raise ValueError("check_out_date must be after check_in_date")
        return v


class ReservationUpdate(BaseModel):
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    adults: Optional[int] = Field(None, ge=1)
    children: Optional[int] = Field(None, ge=0)
    total_amount: Optional[Decimal] = Field(None, ge=0)
    special_requests: Optional[str] = None

    @field_validator("check_in_date")
    @classmethod
    def check_in_not_null(cls, v):
        # 入住日期可以不传，但不能显式置空
        if v is None:
            raise ValueError("check_in_date cannot be null")
        return v


class ReservationResponse(BaseModel):
    id: int
    reservation_code: str
    guest_id: int
    guest_name: str
    room_id: int
    room_number: str
    check_in_date: date
    check_out_date: Optional[date]
    adults: int
    children: int
    status: ReservationStatus
    total_amount: Optional[Decimal]
    special_requests: Optional[str]
    actual_check_in_date: Optional[datetime] = None
    actual_check_out_date: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancellation_date: Optional[datetime] = None
    no_show_at: Optional[datetime] = None
    payment_status: Optional[str] = None
    payment_id: Optional[int] = None
    payment_amount: Optional[Decimal] = None
    stay_duration: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 生命周期操作 Schemas ==============

class CheckOutRequest(BaseModel):
    payment_method: Optional[PaymentMethod] = None


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class TransitionCheckRequest(BaseModel):
    target_status: ReservationStatus


class ValidationResultResponse(BaseModel):
    valid: bool
    severity: Optional[str] = None
    message: Optional[str] = None
    suggestions: List[str] = []


# ============== 商品与消费 Schemas ==============

class ProductCategoryCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    display_order: int = 0
    active: bool = True


class ProductCategoryResponse(ProductCategoryCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)


class ProductCreate(BaseModel):
    category_id: Optional[int] = None
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    unit: str = "unit"
    stock_quantity: int = Field(default=0, ge=0)
    active: bool = True


class ProductResponse(ProductCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)


class ConsumptionCreate(BaseModel):
    reservation_id: int
    product_id: int
    quantity: int = Field(default=1, ge=1)
    payment_responsibility: PaymentResponsibility = PaymentResponsibility.GUEST
    notes: Optional[str] = None
    registered_by: Optional[str] = None


class ConsumptionResponse(BaseModel):
    id: int
    reservation_id: int
    room_id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    total_amount: Decimal
    payment_responsibility: PaymentResponsibility
    status: ConsumptionStatus
    notes: Optional[str]
    registered_by: Optional[str]
    payment_id: Optional[int]
    consumption_date: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 支付 Schemas ==============

class PaymentCreate(BaseModel):
    reservation_id: int
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    transaction_id: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    reservation_id: int
    guest_id: int
    amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_date: datetime
    description: Optional[str]
    details: Optional[Dict[str, Any]]
    model_config = ConfigDict(from_attributes=True)


# ============== 日志 Schemas ==============

class ActivityLogResponse(BaseModel):
    id: int
    action_type: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    details: Optional[Dict[str, Any]]
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class SystemLogResponse(BaseModel):
    id: int
    level: LogLevel
    category: LogCategory
    message: str
    details: Optional[Dict[str, Any]]
    entity_type: Optional[str]
    entity_id: Optional[int]
    source: Optional[str]
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
