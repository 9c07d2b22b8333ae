"""
本体对象定义 (Ontology Objects)
酒店 PMS 的业务实体：客人、房间、预订、消费、商品、支付与日志
Reservation 是消费记录和退房支付的聚合根，Room 只被引用
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, JSON,
    ForeignKey, Text, Enum as SQLEnum, Boolean, Numeric
)
from sqlalchemy.orm import relationship
from app.database import Base


# ============== 枚举定义 ==============

class RoomStatus(str, Enum):
    """房间状态枚举"""
    AVAILABLE = "available"            # 可用
    OCCUPIED = "occupied"              # 入住中
    MAINTENANCE = "maintenance"        # 维修中
    RESERVED = "reserved"              # 已预留
    OUT_OF_SERVICE = "out_of_service"  # 停用


class ReservationStatus(str, Enum):
    """预订状态枚举"""
    CONFIRMED = "confirmed"      # 已确认
    CHECKED_IN = "checked_in"    # 已入住
    CHECKED_OUT = "checked_out"  # 已退房
    CANCELLED = "cancelled"      # 已取消
    NO_SHOW = "no_show"          # 未到店


class ConsumptionStatus(str, Enum):
    """消费记录状态"""
    PENDING = "pending"        # 待确认
    BILLED = "billed"          # 已入账
    PAID = "paid"              # 已支付
    CANCELLED = "cancelled"    # 已取消


class PaymentStatus(str, Enum):
    """支付状态"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """支付方式"""
    CASH = "cash"                    # 现金
    CREDIT_CARD = "credit_card"      # 信用卡
    DEBIT_CARD = "debit_card"        # 借记卡
    PIX = "pix"                      # 即时转账
    BANK_TRANSFER = "bank_transfer"  # 银行转账


class PaymentResponsibility(str, Enum):
    """消费付款责任方"""
    GUEST = "guest"
    COMPANY = "company"


class ClientType(str, Enum):
    """客户类型"""
    INDIVIDUAL = "individual"  # 个人
    COMPANY = "company"        # 企业


class LogLevel(str, Enum):
    """系统日志级别"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LogCategory(str, Enum):
    """系统日志分类"""
    RESERVATION = "reservation"
    PAYMENT = "payment"
    CONSUMPTION = "consumption"
    ROOM = "room"
    GUEST = "guest"
    SYSTEM = "system"


# 预订终态：不再允许任何状态流转
TERMINAL_RESERVATION_STATUSES = frozenset({
    ReservationStatus.CHECKED_OUT,
    ReservationStatus.CANCELLED,
    ReservationStatus.NO_SHOW,
})


# ============== 本体对象定义 ==============

class Guest(Base):
    """
    客人对象
    个人客户使用 first_name/last_name，企业客户使用 company_name
    """
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    client_type = Column(SQLEnum(ClientType), default=ClientType.INDIVIDUAL, nullable=False)
    first_name = Column(String(100))                     # 名
    last_name = Column(String(100))                      # 姓
    company_name = Column(String(200))                   # 企业名称
    trade_name = Column(String(200))                     # 企业商号
    email = Column(String(100), unique=True)             # 邮箱
    phone = Column(String(30))                           # 电话
    document_type = Column(String(30))                   # 证件类型
    document_number = Column(String(50), unique=True)    # 证件号码
    nationality = Column(String(50))                     # 国籍
    address = Column(Text)                               # 地址
    notes = Column(Text)                                 # 备注
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 链接
    reservations = relationship("Reservation", back_populates="guest")

    @property
    def display_name(self) -> str:
        if self.client_type == ClientType.COMPANY:
            return self.company_name or ""
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Room(Base):
    """
    房间对象
    status 由预订状态变化级联维护；version 用于乐观锁
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(10), unique=True, nullable=False)  # 房间号
    room_type = Column(String(50), nullable=False)                 # 房型
    capacity = Column(Integer, default=2)                          # 可住人数
    price_per_night = Column(Numeric(10, 2), nullable=False)       # 每晚价格
    status = Column(SQLEnum(RoomStatus), default=RoomStatus.AVAILABLE, nullable=False)
    amenities = Column(JSON)                                       # 设施列表
    description = Column(Text)                                     # 描述
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    # 链接
    reservations = relationship("Reservation", back_populates="room")


class Reservation(Base):
    """
    预订对象 - 生命周期状态机的聚合根
    check_out_date 可为空（开放式离店）
    """
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    reservation_code = Column(String(20), unique=True, nullable=False)  # 预订号
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    check_in_date = Column(Date, nullable=False)         # 入住日期
    check_out_date = Column(Date)                        # 离店日期
    adults = Column(Integer, default=1)                  # 成人数
    children = Column(Integer, default=0)                # 儿童数
    total_amount = Column(Numeric(10, 2), default=0)     # 住宿费用（不含消费）
    status = Column(SQLEnum(ReservationStatus), default=ReservationStatus.CONFIRMED, nullable=False)
    special_requests = Column(Text)                      # 特殊要求

    # 状态时间戳
    actual_check_in_date = Column(DateTime)
    actual_check_out_date = Column(DateTime)
    cancellation_reason = Column(Text)
    cancellation_date = Column(DateTime)
    no_show_at = Column(DateTime)
    status_updated_at = Column(DateTime)

    # 退房支付信息
    payment_status = Column(String(20))
    payment_id = Column(Integer)                         # 退房支付记录ID
    payment_method = Column(String(30))
    payment_amount = Column(Numeric(10, 2))
    stay_duration = Column(Integer)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    # 链接
    guest = relationship("Guest", back_populates="reservations")
    room = relationship("Room", back_populates="reservations")
    consumptions = relationship(
        "Consumption", back_populates="reservation",
        order_by="Consumption.id"
    )
    payments = relationship("Payment", back_populates="reservation")


class ProductCategory(Base):
    """商品分类（迷你吧、餐饮等）"""
    __tablename__ = "product_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    display_order = Column(Integer, default=0)
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    products = relationship("Product", back_populates="category")


class Product(Base):
    """可记入房账的商品"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("product_categories.id"))
    name = Column(String(100), nullable=False)
    description = Column(Text)
    price = Column(Numeric(10, 2), nullable=False)       # 售价
    unit = Column(String(20), default="unit")            # 单位
    stock_quantity = Column(Integer, default=0)          # 库存
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = relationship("ProductCategory", back_populates="products")


class Consumption(Base):
    """
    房间消费记录
    生命周期：pending -> billed -> paid，pending 可取消
    total_amount = quantity * unit_price（冗余存储）
    """
    __tablename__ = "room_consumptions"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(10, 2), nullable=False)  # 登记时的单价快照
    total_amount = Column(Numeric(10, 2), nullable=False)
    payment_responsibility = Column(
        SQLEnum(PaymentResponsibility), default=PaymentResponsibility.GUEST, nullable=False
    )
    status = Column(SQLEnum(ConsumptionStatus), default=ConsumptionStatus.PENDING, nullable=False)
    notes = Column(Text)
    registered_by = Column(String(100))                  # 登记人
    payment_id = Column(Integer, ForeignKey("payments.id"))
    consumption_date = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 链接
    reservation = relationship("Reservation", back_populates="consumptions")
    room = relationship("Room")
    product = relationship("Product")
    payment = relationship("Payment", back_populates="consumptions")


class Payment(Base):
    """
    支付记录对象
    退房时生成，金额 = 住宿费用 + 消费合计
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)      # 支付金额
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.COMPLETED, nullable=False)
    payment_date = Column(DateTime, default=datetime.utcnow)
    transaction_id = Column(String(100))
    description = Column(Text)
    details = Column(JSON)                               # 金额明细
    created_at = Column(DateTime, default=datetime.utcnow)

    # 链接
    reservation = relationship("Reservation", back_populates="payments")
    guest = relationship("Guest")
    consumptions = relationship("Consumption", back_populates="payment")


class ActivityLog(Base):
    """
    操作日志对象
    每个改变状态的业务操作都写入一条，不可跳过
    """
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    action_type = Column(String(100), nullable=False, index=True)  # 操作类型
    entity_type = Column(String(50))                               # 实体类型
    entity_id = Column(Integer)                                    # 实体ID
    details = Column(JSON)                                         # 结构化详情
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class SystemLog(Base):
    """
    系统日志对象
    带级别和分类的结构化日志，也记录校验失败和基础设施错误
    """
    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, index=True)
    level = Column(SQLEnum(LogLevel), default=LogLevel.INFO, nullable=False)
    category = Column(SQLEnum(LogCategory), nullable=False)
    message = Column(Text, nullable=False)
    details = Column(JSON)
    entity_type = Column(String(50))
    entity_id = Column(Integer)
    source = Column(String(100))                         # 来源模块
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
