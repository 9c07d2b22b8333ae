"""
Pytest 配置和共享 fixtures
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.database import Base, get_db
from app.models import ontology  # noqa
from app.models.ontology import (
    Guest, ClientType, Room, RoomStatus, Reservation, ReservationStatus,
    Product, ProductCategory
)
from app.main import app


# 测试使用的固定“当前时间”
FIXED_NOW = datetime(2026, 3, 10, 12, 0, 0)
TODAY = FIXED_NOW.date()


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def clock():
    """固定时钟"""
    return lambda: FIXED_NOW


# ============== 业务数据 Fixtures ==============

@pytest.fixture
def sample_guest(db_session):
    guest = Guest(
        client_type=ClientType.INDIVIDUAL,
        first_name="Maria",
        last_name="Silva",
        email="maria@example.com",
        phone="+55 11 91234-5678",
        document_number="123.456.789-00",
    )
    db_session.add(guest)
    db_session.commit()
    db_session.refresh(guest)
    return guest


@pytest.fixture
def sample_room(db_session):
    room = Room(
        room_number="101",
        room_type="standard",
        capacity=2,
        price_per_night=Decimal("200.00"),
        status=RoomStatus.AVAILABLE,
    )
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def sample_product(db_session):
    category = ProductCategory(name="Minibar")
    db_session.add(category)
    db_session.flush()
    product = Product(
        category_id=category.id,
        name="Beer",
        price=Decimal("12.50"),
        stock_quantity=10,
        active=True,
    )
    db_session.add(product)
    db_session.commit()
    db_session.refresh(product)
    return product


@pytest.fixture
def make_reservation(db_session, sample_guest, sample_room):
    """预订工厂：默认今天入住、住两晚、已确认"""
    counter = {"n": 0}

    def _make(status=ReservationStatus.CONFIRMED, check_in_date=None,
              check_out_date="default", total_amount=Decimal("400.00"),
              room=None, special_requests=None):
        counter["n"] += 1
        check_in = check_in_date or TODAY
        if check_out_date == "default":
            check_out_date = check_in + timedelta(days=2)
        reservation = Reservation(
            reservation_code=f"RES{TODAY.strftime('%Y%m%d')}{counter['n']:04d}",
            guest_id=sample_guest.id,
            room_id=(room or sample_room).id,
            check_in_date=check_in,
            check_out_date=check_out_date,
            total_amount=total_amount,
            status=status,
            special_requests=special_requests,
        )
        db_session.add(reservation)
        db_session.commit()
        db_session.refresh(reservation)
        return reservation

    return _make
