"""
消费服务测试
"""
import pytest
from decimal import Decimal

from app.models.ontology import (
    ActivityLog, Consumption, ConsumptionStatus, PaymentResponsibility, ReservationStatus
)
from app.models.schemas import ConsumptionCreate, ProductCreate, ProductCategoryCreate
from app.hotel.domain.validation import EntityNotFoundError, ReservationValidationError
from app.services.consumption_service import ConsumptionService


@pytest.fixture
def service(db_session):
    return ConsumptionService(db_session)


@pytest.fixture
def stay(make_reservation):
    """已入住的预订"""
    return make_reservation(status=ReservationStatus.CHECKED_IN)


class TestProducts:

    def test_create_category_and_product(self, service):
        category = service.create_category(ProductCategoryCreate(name="Restaurant", display_order=2))
        product = service.create_product(ProductCreate(
            category_id=category.id, name="Sandwich", price=Decimal("25.00"), stock_quantity=5
        ))
        assert product.id is not None
        assert [p.name for p in service.get_products(category_id=category.id)] == ["Sandwich"]

    def test_duplicate_category(self, service):
        service.create_category(ProductCategoryCreate(name="Laundry"))
        with pytest.raises(ValueError):
            service.create_category(ProductCategoryCreate(name="Laundry"))

    def test_product_with_unknown_category(self, service):
        with pytest.raises(EntityNotFoundError):
            service.create_product(ProductCreate(category_id=999, name="Ghost", price=Decimal("1")))

    def test_inactive_products_hidden_by_default(self, service, sample_product, db_session):
        sample_product.active = False
        db_session.commit()
        assert service.get_products() == []
        assert service.get_products(active_only=False) == [sample_product]


class TestRegisterConsumption:

    def test_register(self, service, stay, sample_product, db_session):
        consumption = service.register_consumption(ConsumptionCreate(
            reservation_id=stay.id, product_id=sample_product.id, quantity=3, registered_by="front desk"
        ))

        assert consumption.status == ConsumptionStatus.PENDING
        assert consumption.unit_price == Decimal("12.50")
        assert consumption.total_amount == Decimal("37.50")
        assert consumption.room_id == stay.room_id
        db_session.refresh(sample_product)
        assert sample_product.stock_quantity == 7

        log = db_session.query(ActivityLog).filter(
            ActivityLog.action_type == "consumption_registered"
        ).one()
        assert log.entity_id == consumption.id
        assert log.details["product_name"] == "Beer"

    def test_unit_price_is_a_snapshot(self, service, stay, sample_product, db_session):
        consumption = service.register_consumption(ConsumptionCreate(
            reservation_id=stay.id, product_id=sample_product.id
        ))
        sample_product.price = Decimal("99.00")
        db_session.commit()
        db_session.refresh(consumption)
        assert consumption.unit_price == Decimal("12.50")

    def test_requires_checked_in_reservation(self, service, make_reservation, sample_product):
        reservation = make_reservation()
        with pytest.raises(ReservationValidationError) as exc:
            service.register_consumption(ConsumptionCreate(
                reservation_id=reservation.id, product_id=sample_product.id
            ))
        assert "checked in" in str(exc.value)

    def test_insufficient_stock(self, service, stay, sample_product, db_session):
        with pytest.raises(ReservationValidationError) as exc:
            service.register_consumption(ConsumptionCreate(
                reservation_id=stay.id, product_id=sample_product.id, quantity=11
            ))
        assert "Restock the product" in exc.value.suggestions
        assert db_session.query(Consumption).count() == 0

    def test_unknown_product(self, service, stay):
        with pytest.raises(EntityNotFoundError):
            service.register_consumption(ConsumptionCreate(reservation_id=stay.id, product_id=404))

    def test_unknown_reservation(self, service, sample_product):
        with pytest.raises(EntityNotFoundError):
            service.register_consumption(ConsumptionCreate(reservation_id=404, product_id=sample_product.id))


class TestCancelConsumption:

    def test_cancel_pending_restores_stock(self, service, stay, sample_product, db_session):
        consumption = service.register_consumption(ConsumptionCreate(
            reservation_id=stay.id, product_id=sample_product.id, quantity=2
        ))
        cancelled = service.cancel_consumption(consumption.id, "Registered by mistake")

        assert cancelled.status == ConsumptionStatus.CANCELLED
        assert cancelled.notes == "Registered by mistake"
        db_session.refresh(sample_product)
        assert sample_product.stock_quantity == 10

    def test_billed_cannot_be_cancelled(self, service, stay, sample_product, db_session):
        consumption = service.register_consumption(ConsumptionCreate(
            reservation_id=stay.id, product_id=sample_product.id
        ))
        consumption.status = ConsumptionStatus.BILLED
        db_session.commit()

        with pytest.raises(ValueError, match="billed"):
            service.cancel_consumption(consumption.id)

    def test_unknown_consumption(self, service):
        with pytest.raises(EntityNotFoundError):
            service.cancel_consumption(404)


class TestTotals:

    def test_totals_split_by_responsibility(self, service, stay, sample_product):
        service.register_consumption(ConsumptionCreate(
            reservation_id=stay.id, product_id=sample_product.id, quantity=2
        ))
        service.register_consumption(ConsumptionCreate(
            reservation_id=stay.id, product_id=sample_product.id,
            payment_responsibility=PaymentResponsibility.COMPANY,
        ))
        dropped = service.register_consumption(ConsumptionCreate(
            reservation_id=stay.id, product_id=sample_product.id
        ))
        service.cancel_consumption(dropped.id)

        totals = service.get_totals(stay.id)
        assert totals["total"] == Decimal("37.50")
        assert totals["guest"] == Decimal("25.00")
        assert totals["company"] == Decimal("12.50")

    def test_filter_by_status(self, service, stay, sample_product):
        first = service.register_consumption(ConsumptionCreate(
            reservation_id=stay.id, product_id=sample_product.id
        ))
        service.register_consumption(ConsumptionCreate(
            reservation_id=stay.id, product_id=sample_product.id
        ))
        service.cancel_consumption(first.id)

        pending = service.get_consumptions(stay.id, ConsumptionStatus.PENDING)
        assert len(pending) == 1
        assert len(service.get_consumptions(stay.id)) == 2
